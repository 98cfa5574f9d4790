#!/usr/bin/env python
"""
Export the element graph of an IFC model.

Writes nodes.csv, edges.csv and graph.graphml for the annotation classifier.

Usage:
    python export_graph.py model.ifc [output_dir] [whitelist_ids]

Example:
    python export_graph.py models/ppvc_13_typ.ifc exports/ppvc_13
    python export_graph.py models/ppvc_13_typ.ifc exports/ppvc_13 1021,1022,1030
"""

import sys
from pathlib import Path
from ppvc.document.ifc_document import IfcDocument
from ppvc.graph.node_builder import collect_nodes
from ppvc.graph.graph_assembler import assemble_edges
from ppvc.graph.graph_export import write_graphml
from ppvc.io.tables import write_edges_csv, write_nodes_csv


def main():
    # Parse command line arguments
    if len(sys.argv) < 2:
        print("Usage: python export_graph.py model.ifc [output_dir] [whitelist_ids]")
        print()
        print("Examples:")
        print("  python export_graph.py models/ppvc_13_typ.ifc")
        print("  python export_graph.py models/ppvc_13_typ.ifc exports/ppvc_13 1021,1022")
        sys.exit(1)

    ifc_file = sys.argv[1]

    # Default: export next to the model
    if len(sys.argv) >= 3:
        output_dir = Path(sys.argv[2])
    else:
        output_dir = Path(ifc_file).parent

    whitelist = None
    if len(sys.argv) >= 4:
        whitelist = {int(value) for value in sys.argv[3].split(",") if value.strip()}

    if not Path(ifc_file).exists():
        print(f"Error: Input file not found: {ifc_file}")
        sys.exit(1)

    output_dir.mkdir(parents=True, exist_ok=True)

    print("=" * 60)
    print("PPVC - Graph Export")
    print("=" * 60)
    print(f"Input:  {ifc_file}")
    print(f"Output: {output_dir}")
    print()

    try:
        # Step 1: Load model
        print("[1/4] Loading IFC model...")
        document = IfcDocument.open(ifc_file)
        print(f"      [OK] Project: {document.title}")
        print()

        # Step 2: Build nodes
        print("[2/4] Building nodes...")
        nodes = collect_nodes(document, whitelist=whitelist)
        print(f"      [OK] Nodes: {len(nodes)}")
        if whitelist is not None:
            print(f"      [OK] Whitelist: {len(whitelist)} ids")
        print()

        # Step 3: Assemble edges
        print("[3/4] Assembling edges...")
        edges = assemble_edges(nodes)
        print(f"      [OK] Edges: {len(edges)}")
        print()

        # Step 4: Write artifacts
        print("[4/4] Writing tables...")
        nodes_path = write_nodes_csv(nodes, output_dir / "nodes.csv")
        edges_path = write_edges_csv(edges, output_dir / "edges.csv")
        graph_path = write_graphml(nodes, edges, output_dir / "graph.graphml")
        print(f"      [OK] {nodes_path}")
        print(f"      [OK] {edges_path}")
        print(f"      [OK] {graph_path}")
        print()

        print("=" * 60)
        print("SUCCESS!")
        print("=" * 60)
        print("Next steps:")
        print("  1. Run the classifier on nodes.csv/edges.csv")
        print("  2. Place predictions.csv in the same folder")
        print(f"  3. python auto_annotate.py {ifc_file} {output_dir / 'predictions.csv'}")
        print()

    except Exception as e:
        print()
        print("=" * 60)
        print("ERROR!")
        print("=" * 60)
        print(f"Failed to export graph: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
