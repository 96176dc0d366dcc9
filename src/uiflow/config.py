"""
Engine configuration, read from ``uiflow.toml``.

Example file::

    [engine]
    max_chain_depth = 16
    default_component_id = "default"

    [logging]
    level = "DEBUG"
    dir = ".uiflow/logs"
"""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

CONFIG_FILE_NAME = "uiflow.toml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class EngineConfig:
    """Executor and logging settings."""

    max_chain_depth: int = 32  # Nested then/chain dispatches allowed
    default_component_id: str = "default"  # Store used when no componentId is given
    log_level: str = "INFO"
    log_dir: str | None = None  # JSONL log directory; None disables file logging

    def __post_init__(self) -> None:
        if isinstance(self.max_chain_depth, bool) or not isinstance(self.max_chain_depth, int):
            raise ValueError("engine.max_chain_depth must be an integer")
        if self.max_chain_depth < 0:
            raise ValueError("engine.max_chain_depth must not be negative")
        if not isinstance(self.default_component_id, str) or not self.default_component_id:
            raise ValueError("engine.default_component_id must be a non-empty string")
        if not isinstance(self.log_level, str) or self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")
        self.log_level = self.log_level.upper()
        if self.log_dir is not None and not isinstance(self.log_dir, str):
            raise ValueError("logging.dir must be a string")


def _table(data: dict[str, Any], name: str) -> dict[str, Any]:
    table = data.get(name, {})
    if not isinstance(table, dict):
        raise ValueError(f"[{name}] must be a table")
    return table


def load_config(path: Path) -> EngineConfig:
    """Read an ``EngineConfig`` from a TOML file. Missing keys take defaults.

    Raises:
        ValueError: If the file is not valid TOML or a value is invalid.
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e

    engine = _table(data, "engine")
    logging_data = _table(data, "logging")

    return EngineConfig(
        max_chain_depth=engine.get("max_chain_depth", 32),
        default_component_id=engine.get("default_component_id", "default"),
        log_level=logging_data.get("level", "INFO"),
        log_dir=logging_data.get("dir"),
    )


def find_config(start: Path | None = None) -> Path | None:
    """Look for ``uiflow.toml`` in ``start`` (default: cwd) and its parents."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None
