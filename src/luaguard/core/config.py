#!/usr/bin/env python3
"""
LUAGUARD CONFIGURATION
----------------------
Tunables for the validator, lint rules and history store. Values come
from an optional YAML file (``.luaguard.yaml`` in the workspace) layered
over the defaults below.

Author: LuaGuard Team
Date: 2026-10-17
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ruamel.yaml import YAML, YAMLError

from luaguard.core.errors import ConfigError

logger = logging.getLogger("luaguard.config")

CONFIG_FILENAME = ".luaguard.yaml"

DEFAULT_DEPRECATED_APIS = {
    "wait": "task.wait",
    "spawn": "task.spawn",
    "delay": "task.delay",
}

DEFAULT_BUILTIN_NAMES = [
    "assert", "collectgarbage", "coroutine", "debug", "error", "getmetatable",
    "ipairs", "math", "next", "os", "pairs", "pcall", "print", "rawequal",
    "rawget", "rawset", "require", "select", "setmetatable", "string",
    "table", "tonumber", "tostring", "type", "unpack", "utf8", "xpcall",
]


@dataclass
class GuardConfig:
    history_capacity: int = 5
    auto_fix: bool = True
    lint: bool = True
    deprecated_apis: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_DEPRECATED_APIS))
    builtin_names: List[str] = field(default_factory=lambda: list(DEFAULT_BUILTIN_NAMES))
    extensions: List[str] = field(default_factory=lambda: [".lua", ".luau"])
    log_level: str = "INFO"
    history_file: str = ".luaguard/history.json"

    def __post_init__(self):
        if not isinstance(self.history_capacity, int) or self.history_capacity < 1:
            raise ConfigError(f"history_capacity must be a positive integer, got {self.history_capacity!r}")


# Expected Python type per key, used to reject malformed YAML values
_FIELD_TYPES = {
    "history_capacity": int,
    "auto_fix": bool,
    "lint": bool,
    "deprecated_apis": dict,
    "builtin_names": list,
    "extensions": list,
    "log_level": str,
    "history_file": str,
}


def load_config(path: Optional[Union[str, Path]] = None) -> GuardConfig:
    """
    Loads a GuardConfig from YAML. A missing file yields the defaults;
    unknown keys are logged and ignored.
    """
    if path is None:
        path = Path.cwd() / CONFIG_FILENAME
    path = Path(path)
    if not path.exists():
        logger.debug(f"No config at {path}, using defaults")
        return GuardConfig()

    yaml = YAML(typ="safe")
    try:
        data = yaml.load(path.read_text(encoding="utf-8"))
    except (YAMLError, OSError) as e:
        raise ConfigError(f"Unable to read config {path}: {e}")

    if data is None:
        return GuardConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping, got {type(data).__name__}")
    return config_from_mapping(data, source=str(path))


def config_from_mapping(data: Dict[str, Any], source: str = "<mapping>") -> GuardConfig:
    known = {f.name for f in fields(GuardConfig)}
    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key '{key}' in {source}")
            continue
        expected = _FIELD_TYPES[key]
        # bool is an int subclass; a YAML 'true' must not pass as a capacity
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            raise ConfigError(f"Config key '{key}' in {source} must be {expected.__name__}, got {type(value).__name__}")
        values[key] = value
    return GuardConfig(**values)
