# utils/config_loader.py
"""YAML configuration loading for the world streamer and pathfinder."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Union

import structlog
import yaml

from game.config import GameSettings, settings_from_dict

log = structlog.get_logger(__name__)

DEFAULT_CONFIG_FILE = Path(__file__).resolve().parent.parent / "config" / "world.yaml"


def load_yaml_config(config_path: Union[str, Path], config_name: str) -> Dict[str, Any]:
    """Loads a generic YAML configuration file."""
    config_path = Path(config_path)
    if not config_path.is_file():
        log.error(f"{config_name} config file not found", path=str(config_path))
        raise FileNotFoundError(f"{config_name} configuration file not found: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        log.error(f"Error parsing YAML for {config_name}", path=str(config_path), error=str(e), exc_info=True)
        raise
    if config_data is None:
        log.warning(f"{config_name} config file is empty.", path=str(config_path))
        return {}
    if not isinstance(config_data, dict):
        log.error(f"{config_name} config must be a mapping", path=str(config_path))
        raise ValueError(f"{config_name} configuration must be a mapping: {config_path}")
    log.info(f"{config_name} config loaded", path=str(config_path))
    return config_data


def load_game_settings(config_path: Union[str, Path, None] = None) -> GameSettings:
    """Load and validate :class:`GameSettings`, defaulting to ``config/world.yaml``."""
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_FILE
    settings = settings_from_dict(load_yaml_config(path, "World"))
    log.debug(
        "Game settings built",
        mode=settings.world.mode,
        seed=settings.world.seed,
        max_iterations=settings.pathfinding.max_iterations,
    )
    return settings


__all__ = ["DEFAULT_CONFIG_FILE", "load_game_settings", "load_yaml_config"]
