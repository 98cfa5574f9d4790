"""
Configuration management for PPVC annotation.

Loads category sets, tolerances and placement rules from JSON files.
"""

import json
from pathlib import Path
from typing import Dict, List, Any, Optional
from loguru import logger

from ppvc.core.models import ElementKind, ViewType


class Config:
    """Configuration manager for tolerances and placement rules."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to JSON config file. If None, uses the packaged defaults.
        """
        if config_path is None:
            config_path = Path(__file__).parent.parent / "config" / "ppvc_defaults.json"

        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from JSON file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            self._config = json.load(f)

        logger.info(f"Loaded config: {self._config.get('name', 'Unknown')}")

    def get_element_categories(self) -> List[ElementKind]:
        """
        Get the element kinds collected for export and annotation.

        Returns:
            List of ElementKind in configured order
        """
        names = self._config.get("element_categories", [kind.value for kind in ElementKind])
        return [ElementKind(name) for name in names]

    def get_supported_view_types(self) -> List[ViewType]:
        """Get the view types an annotation pass may run in."""
        names = self._config.get("supported_view_types", ["Elevation", "FloorPlan", "Section", "Detail"])
        return [ViewType(name) for name in names]

    def get_placement_rule(self, rule: str, name: str, default: Any = None) -> Any:
        """
        Get a placement rule value.

        Args:
            rule: Rule group ('wall_height', 'floor_thickness', 'text_note', etc.)
            name: Name of the value inside the group
            default: Default value if not found

        Returns:
            Rule value or default
        """
        rules = self._config.get("placement_rules", {}).get(rule, {})
        return rules.get(name, default)

    def get_graph_setting(self, name: str, default: Any = None) -> Any:
        """Get a graph assembly setting (e.g. 'adjacency_tolerance')."""
        return self._config.get("graph", {}).get(name, default)

    def get_geometry_setting(self, name: str, default: Any = None) -> Any:
        """Get a geometry extraction setting (e.g. 'horizontal_edge_tolerance')."""
        return self._config.get("geometry", {}).get(name, default)


# Global default config instance
_default_config: Optional[Config] = None


def get_default_config() -> Config:
    """Get the default global configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = Config()
    return _default_config


def load_config(config_path: str) -> Config:
    """
    Load configuration from a specific file.

    Args:
        config_path: Path to JSON config file

    Returns:
        Config instance
    """
    return Config(config_path)
