"""Lumina configuration — project-level .luminarc.yml support.

Loads configuration from .luminarc.yml (or .luminarc.yaml, .luminarc.json)
in the project root or any parent directory. Command-line flags override
whatever the file sets.

Example .luminarc.yml:
    typecheck: true
    strict: false
    title: My App
    output_dir: dist
    include:
      - "src/**/*.lum"
    exclude:
      - "src/drafts/**"
    log_level: INFO
    watch_interval: 0.5
"""

from __future__ import annotations

import fnmatch
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from lumina.errors import CompileError, ErrorKind, LuminaError

logger = logging.getLogger(__name__)


@dataclass
class LuminaConfig:
    """Project-level Lumina configuration."""
    typecheck: bool = False
    strict: bool = False
    title: str = "Lumina App"
    output_dir: str = "dist"
    # File patterns, matched against paths relative to the build directory
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    log_level: str = "WARNING"
    watch_interval: float = 1.0
    # Path of the file this was loaded from, if any
    source: Optional[str] = None

    def should_include(self, filepath: str) -> bool:
        if self.include and not any(fnmatch.fnmatch(filepath, p) for p in self.include):
            return False
        return not any(fnmatch.fnmatch(filepath, p) for p in self.exclude)


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".luminarc.yml",
    ".luminarc.yaml",
    ".luminarc.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> LuminaConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, returns defaults. A file that exists but
    cannot be read or parsed raises ``CompileError`` (kind ``config_error``).
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return LuminaConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise _config_error(f"Cannot read config file: {e}", path) from e

    try:
        if path.endswith(".json"):
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise _config_error(f"Malformed config file: {e}", path) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise _config_error("Config file must contain a mapping at the top level", path)

    config = _dict_to_config(data, path)
    config.source = path
    logger.debug("loaded config from %s", path)
    return config


def _config_error(message: str, path: str) -> CompileError:
    return CompileError(LuminaError(
        kind=ErrorKind.CONFIG_ERROR,
        message=message,
        details={"path": path},
    ))


def _dict_to_config(data: Dict[str, Any], path: str) -> LuminaConfig:
    """Convert a parsed dict to LuminaConfig."""
    config = LuminaConfig()

    try:
        if "typecheck" in data:
            config.typecheck = bool(data["typecheck"])
        if "strict" in data:
            config.strict = bool(data["strict"])
        if "title" in data:
            config.title = str(data["title"])
        if "output_dir" in data:
            config.output_dir = str(data["output_dir"])
        if "include" in data and isinstance(data["include"], list):
            config.include = [str(p) for p in data["include"]]
        if "exclude" in data and isinstance(data["exclude"], list):
            config.exclude = [str(p) for p in data["exclude"]]
        if "log_level" in data:
            config.log_level = str(data["log_level"]).upper()
        if "watch_interval" in data:
            config.watch_interval = float(data["watch_interval"])
    except (TypeError, ValueError) as e:
        raise _config_error(f"Invalid config value: {e}", path) from e

    return config
