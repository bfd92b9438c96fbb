"""
Configuration loader for user supplied YAML overrides.

Allows users to provide encounter names, tracked buffs and parser options
via YAML configuration files. Loading produces a new ParserSettings value.
"""

import yaml
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Optional, Any

from ..exceptions import ConfigurationError
from .settings import ParserSettings

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Loads custom configuration from YAML files."""

    @staticmethod
    def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to custom config file. If None, looks for:
                        1. evtc_config.yaml in current directory
                        2. config/evtc_config.yaml
                        3. ~/.evtc_analytics/config.yaml

        Returns:
            Configuration dictionary
        """
        search_paths = [
            Path("evtc_config.yaml"),
            Path("config/evtc_config.yaml"),
            Path.home() / ".evtc_analytics" / "config.yaml",
        ]

        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise ConfigurationError(f"Config file not found: {path}")
            search_paths.insert(0, path)

        for path in search_paths:
            if path.exists():
                try:
                    with open(path, "r") as f:
                        config = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigurationError(f"Failed to load config from {path}: {e}") from e
                if not isinstance(config, dict):
                    raise ConfigurationError(f"Config file {path} must contain a mapping")
                logger.info(f"Loaded configuration from {path}")
                return config

        logger.debug("No custom configuration file found, using defaults")
        return {}

    @staticmethod
    def apply_config(config: Dict[str, Any], settings: ParserSettings) -> ParserSettings:
        """
        Apply custom configuration on top of existing settings.

        Args:
            config: Configuration dictionary from YAML
            settings: Settings to start from

        Returns:
            New ParserSettings with the overrides applied
        """
        changes: Dict[str, Any] = {}

        if "encounter_names" in config:
            names = dict(settings.encounter_name_overrides)
            for species_id, name in config["encounter_names"].items():
                try:
                    names[int(species_id)] = str(name)
                    logger.debug(f"Added encounter name override: {species_id} = {name}")
                except (ValueError, TypeError) as e:
                    logger.warning(f"Invalid species ID {species_id}: {e}")
            changes["encounter_name_overrides"] = names

        if "tracked_buffs" in config:
            tracked = set()
            for buff_id in config["tracked_buffs"]:
                try:
                    tracked.add(int(buff_id))
                except (ValueError, TypeError) as e:
                    logger.warning(f"Invalid buff ID {buff_id}: {e}")
            changes["tracked_buff_ids"] = frozenset(tracked)

        for key in ("allow_truncated_tail", "keep_raw_records"):
            if key in config:
                changes[key] = bool(config[key])

        if "agent_resolution" in config:
            changes["agent_resolution"] = str(config["agent_resolution"]).lower()

        if "max_workers" in config:
            changes["max_workers"] = int(config["max_workers"]) if config["max_workers"] else None

        if changes:
            logger.info(f"Custom configuration applied: {', '.join(sorted(changes))}")
        return replace(settings, **changes)


def load_settings(config_path: Optional[str] = None) -> ParserSettings:
    """
    Build settings from the environment plus an optional YAML file.

    Args:
        config_path: Optional path to custom config file
    """
    settings = ParserSettings.from_env()
    config = ConfigLoader.load_config(config_path)
    if config:
        settings = ConfigLoader.apply_config(config, settings)
    return settings
