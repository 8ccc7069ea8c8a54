"""Configuration loading from environment variables and shotlist.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_DATA_DIR = Path.home() / ".shotlist"
_CONFIG_FILENAME = "shotlist.toml"


@dataclass
class StorageConfig:
    """Durable slot configuration."""

    data_dir: Path = _DEFAULT_DATA_DIR
    slot: str = "sd-shot-list-v2"
    legacy_slot: str = "sd-shot-list-v1"


@dataclass
class ExportConfig:
    """Where exported artifacts land by default."""

    directory: Path = field(default_factory=Path.cwd)


@dataclass
class ShotlistConfig:
    """Top-level shotlist configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    title_prefix: str = "分镜"
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> ShotlistConfig:
    """Load configuration from environment variables and optional shotlist.toml.

    Priority: environment variables > shotlist.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    else:
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _DEFAULT_DATA_DIR / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text(encoding="utf-8"))
                break

    storage_data = file_data.get("storage", {})
    export_data = file_data.get("export", {})

    return ShotlistConfig(
        storage=StorageConfig(
            data_dir=Path(
                os.getenv("SHOTLIST_DATA_DIR", storage_data.get("data_dir", str(_DEFAULT_DATA_DIR)))
            ).expanduser(),
            slot=os.getenv("SHOTLIST_SLOT", storage_data.get("slot", "sd-shot-list-v2")),
            legacy_slot=os.getenv(
                "SHOTLIST_LEGACY_SLOT", storage_data.get("legacy_slot", "sd-shot-list-v1")
            ),
        ),
        export=ExportConfig(
            directory=Path(
                os.getenv("SHOTLIST_EXPORT_DIR", export_data.get("directory", str(Path.cwd())))
            ).expanduser(),
        ),
        title_prefix=os.getenv("SHOTLIST_TITLE_PREFIX", file_data.get("title_prefix", "分镜")),
        log_level=os.getenv("SHOTLIST_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
