import os
import yaml
from collections.abc import Mapping
from typing import Any, Dict, Optional

_CONFIG_CACHE: Optional[Dict[str, Any]] = None


def get_project_dir():
    """Directory holding the packaged default config.yaml."""
    return os.path.dirname(os.path.dirname(os.path.abspath(__file__))) + "/"


def get_custom_config_path() -> str:
    return os.environ.get("ALARM_CLOCK_CONFIG") or os.path.join(
        os.getcwd(), "data", ".config.yaml"
    )


def read_config(config_path):
    with open(config_path, "r", encoding="utf-8") as file:
        config = yaml.safe_load(file)
    return config or {}


def load_config(refresh: bool = False) -> Dict[str, Any]:
    """Load the default config and overlay the user's file when present."""
    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None and not refresh:
        return _CONFIG_CACHE

    default_config = read_config(get_project_dir() + "config.yaml")
    custom_config_path = get_custom_config_path()
    if os.path.exists(custom_config_path):
        config = merge_configs(default_config, read_config(custom_config_path))
    else:
        config = default_config

    _CONFIG_CACHE = config
    return config


def merge_configs(default_config, custom_config):
    """
    Recursively merge two configs, custom_config wins.

    Args:
        default_config: packaged defaults
        custom_config: user overrides

    Returns:
        the merged config
    """
    if not isinstance(default_config, Mapping) or not isinstance(
        custom_config, Mapping
    ):
        return custom_config

    merged = dict(default_config)

    for key, value in custom_config.items():
        if (
            key in merged
            and isinstance(merged[key], Mapping)
            and isinstance(value, Mapping)
        ):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged
