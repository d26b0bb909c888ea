"""Configuration loading from environment variables and memtree.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_ROOT = Path.home() / ".memtree" / "memory"
_CONFIG_FILENAME = "memtree.toml"

DEFAULT_MEMORY_EXTENSION = ".md"
DEFAULT_INDEX_EXTENSION = ".yaml"


def normalize_extension(value: str | None, fallback: str) -> str:
    """Ensure a leading dot; blank values fall back."""
    raw = (value or "").strip()
    if not raw:
        return fallback
    return raw if raw.startswith(".") else f".{raw}"


@dataclass
class StoreConfig:
    """Location and file naming of a memory store."""

    root: Path = _DEFAULT_ROOT
    memory_extension: str = DEFAULT_MEMORY_EXTENSION
    index_extension: str = DEFAULT_INDEX_EXTENSION
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> StoreConfig:
    """Load configuration from environment variables and optional memtree.toml.

    Priority: environment variables > memtree.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.memtree/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".memtree" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    store_data = file_data.get("store", {})
    root = os.getenv("MEMTREE_ROOT", store_data.get("root", str(_DEFAULT_ROOT)))

    return StoreConfig(
        root=Path(root).expanduser(),
        memory_extension=normalize_extension(
            os.getenv("MEMTREE_MEMORY_EXTENSION", store_data.get("memory_extension")),
            DEFAULT_MEMORY_EXTENSION,
        ),
        index_extension=normalize_extension(
            os.getenv("MEMTREE_INDEX_EXTENSION", store_data.get("index_extension")),
            DEFAULT_INDEX_EXTENSION,
        ),
        log_level=os.getenv("MEMTREE_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
