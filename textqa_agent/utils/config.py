import os
from typing import Any, Optional

import yaml

DEFAULT_CONFIG_DIR = "config"
CORE_CONFIG_NAME = "core.yaml"
RULES_CONFIG_NAME = "translation-rules.yaml"


def load_yaml_file(path: Optional[str]) -> Any:
    """Parse a YAML file. Returns None when the file does not exist.

    Parse errors propagate as ``yaml.YAMLError``.
    """
    if not path or not os.path.isfile(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def default_config_path(name: str, base_dir: Optional[str] = None) -> str:
    base_dir = base_dir or os.environ.get("TEXTQA_CONFIG_DIR") or DEFAULT_CONFIG_DIR
    return os.path.join(os.getcwd(), base_dir, name)


def get_section(cfg: Any, *keys, default=None) -> Any:
    """Walk nested mappings, returning ``default`` when any level is
    missing."""
    value = cfg
    for key in keys:
        if not isinstance(value, dict):
            return default
        value = value.get(key)
        if value is None:
            return default
    return value


def resolve_path(path: str, root: Optional[str] = None) -> str:
    if os.path.isabs(path):
        return path
    return os.path.abspath(os.path.join(root or os.getcwd(), path))
