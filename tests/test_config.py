"""
Tests for the JSON configuration
"""
import json

import pytest

from ppvc.core.config import Config, load_config
from ppvc.core.models import ElementKind, ViewType


class TestDefaults:
    """Tests for the packaged defaults"""

    def test_sections_are_all_read(self):
        """Test that the defaults carry only sections the code looks up"""
        config = Config()

        assert set(config._config) == {
            "name",
            "version",
            "element_categories",
            "supported_view_types",
            "graph",
            "geometry",
            "placement_rules",
        }
        assert not hasattr(config, "get_unit_factor")

    def test_getters(self):
        config = Config()

        assert config.get_element_categories() == list(ElementKind)
        assert ViewType.THREE_D not in config.get_supported_view_types()
        assert config.get_placement_rule("wall_height", "span_factor") == 0.6
        assert config.get_graph_setting("adjacency_tolerance") == 0.05
        assert config.get_geometry_setting("horizontal_edge_tolerance") == 0.01
        assert config.get_placement_rule("wall_height", "missing", 1.5) == 1.5


class TestUserFile:

    def test_load_config(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"name": "Site rules", "graph": {"adjacency_tolerance": 0.2}}))
        config = load_config(str(path))

        assert config.get_graph_setting("adjacency_tolerance") == 0.2
        assert config.get_geometry_setting("horizontal_edge_tolerance", 0.01) == 0.01

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config(str(tmp_path / "missing.json"))
