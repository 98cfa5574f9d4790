#!/usr/bin/env python
"""
Place predicted annotations for an IFC model on a DXF sheet.

Reads predictions.csv (node_id,predicted_class,confidence,annotation_type)
and, if present next to it, the nodes.csv of the export pass. Writes the DXF
sheet and an annotation.csv table of the committed annotations beside it.

Usage:
    python auto_annotate.py model.ifc predictions.csv [view] [output.dxf]

    view: south, north, east, west or plan (default: south)

Example:
    python auto_annotate.py models/ppvc_13_typ.ifc exports/ppvc_13/predictions.csv south
"""

import sys
from pathlib import Path
from loguru import logger
from ppvc.annotation.orchestrator import AnnotationOrchestrator, PassState
from ppvc.core.errors import FatalPassFailure
from ppvc.core.models import standard_view
from ppvc.document.ifc_document import IfcDocument
from ppvc.io.tables import read_nodes_csv, read_predictions_csv, write_annotations_csv


def main():
    # Parse command line arguments
    if len(sys.argv) < 3:
        print("Usage: python auto_annotate.py model.ifc predictions.csv [view] [output.dxf]")
        print()
        print("Examples:")
        print("  python auto_annotate.py models/ppvc_13_typ.ifc exports/predictions.csv")
        print("  python auto_annotate.py models/ppvc_13_typ.ifc exports/predictions.csv plan sheet.dxf")
        sys.exit(1)

    ifc_file = sys.argv[1]
    predictions_file = Path(sys.argv[2])
    view_name = sys.argv[3] if len(sys.argv) >= 4 else "south"

    # Default: <model>_<view>.dxf next to the predictions
    if len(sys.argv) >= 5:
        output_file = Path(sys.argv[4])
    else:
        output_file = predictions_file.parent / f"{Path(ifc_file).stem}_{view_name}.dxf"

    log_file = output_file.with_name("PPVCAutoAnnotate_Diagnostic.txt")
    annotations_file = output_file.with_name("annotation.csv")

    for path in (Path(ifc_file), predictions_file):
        if not path.exists():
            print(f"Error: Input file not found: {path}")
            sys.exit(1)

    print("=" * 60)
    print("PPVC - Auto Annotate")
    print("=" * 60)
    print(f"Model:       {ifc_file}")
    print(f"Predictions: {predictions_file}")
    print(f"View:        {view_name}")
    print(f"Output:      {output_file}")
    print()

    sink_id = logger.add(str(log_file.with_suffix(".log")), level="DEBUG")

    try:
        # Step 1: Load inputs
        print("[1/3] Loading model and predictions...")
        view = standard_view(view_name)
        document = IfcDocument.open(ifc_file, view=view)
        predictions = read_predictions_csv(predictions_file)
        nodes_file = predictions_file.parent / "nodes.csv"
        nodes = read_nodes_csv(nodes_file) if nodes_file.exists() else None
        print(f"      [OK] Predictions: {len(predictions)}")
        print(f"      [OK] Nodes: {len(nodes) if nodes is not None else 'rebuilt from model'}")
        print()

        # Step 2: Place annotations
        print("[2/3] Placing annotations...")
        report = AnnotationOrchestrator().run(document, predictions, nodes=nodes)
        log_file.write_text(report.to_text(), encoding="utf-8")
        if report.state == PassState.ABORTED:
            print(f"      [FAILED] {report.error}")
            sys.exit(1)
        print(f"      [OK] Text notes: {report.texts_created}")
        print(f"      [OK] Dimensions: {report.dimensions_created}")
        print(f"      [OK] Failed: {report.failed}")
        print()

        # Step 3: Write sheet and annotation table
        print("[3/3] Writing DXF sheet and annotation table...")
        document.sheet.save(output_file)
        write_annotations_csv(document.annotations, view, annotations_file)
        print(f"      [OK] Wrote {output_file}")
        print(f"      [OK] Wrote {annotations_file}")
        print()

        print("=" * 60)
        print("SUCCESS!")
        print("=" * 60)
        print(f"Diagnostic log: {log_file}")
        print()

    except FatalPassFailure as e:
        if e.report is not None:
            log_file.write_text(e.report.to_text(), encoding="utf-8")
        print()
        print("=" * 60)
        print("ERROR!")
        print("=" * 60)
        print(f"Annotation pass rolled back: {e}")
        print(f"Diagnostic log: {log_file}")
        sys.exit(1)

    except Exception as e:
        print()
        print("=" * 60)
        print("ERROR!")
        print("=" * 60)
        print(f"Failed to annotate model: {e}")
        sys.exit(1)

    finally:
        logger.remove(sink_id)


if __name__ == "__main__":
    main()
