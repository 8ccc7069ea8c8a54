"""Durable single-slot persistence.

A slot is one named JSON document in a key-value backend. The adapter
never raises into the editing path: a slot that is missing, unreadable or
not a JSON object loads as ``None``, and a failed write is logged and
dropped.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class StorageUnavailable(Exception):
    """Read or write on a durable slot failed."""


@runtime_checkable
class SlotBackend(Protocol):
    """Key-value store holding one text document per key."""

    def read(self, key: str) -> str | None:
        """Return the stored text, or None if the slot is empty."""
        ...

    def write(self, key: str, text: str) -> None:
        """Replace the slot's content."""
        ...


class FileSlotBackend:
    """One ``<key>.json`` file per slot under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageUnavailable(f"cannot read {path}: {e}") from e

    def write(self, key: str, text: str) -> None:
        path = self._path(key)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file then swap, so a crash never leaves half a slot
            fd, tmp = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageUnavailable(f"cannot write {path}: {e}") from e


class PersistenceAdapter:
    """Best-effort reads and writes of the primary slot, plus a read-only legacy slot."""

    def __init__(self, backend: SlotBackend, key: str, legacy_key: str | None = None) -> None:
        self.backend = backend
        self.key = key
        self.legacy_key = legacy_key

    def load(self) -> dict[str, Any] | None:
        return self._load_slot(self.key)

    def load_legacy(self) -> dict[str, Any] | None:
        if not self.legacy_key:
            return None
        return self._load_slot(self.legacy_key)

    def save(self, payload: dict[str, Any]) -> bool:
        """Write payload to the primary slot. Returns False if the write was dropped."""
        try:
            text = json.dumps(payload, ensure_ascii=False)
            self.backend.write(self.key, text)
        except (StorageUnavailable, OSError, TypeError, ValueError) as e:
            logger.warning("Persist to slot %s skipped: %s", self.key, e)
            return False
        logger.debug("Persisted %d items to slot %s", len(payload.get("items", [])), self.key)
        return True

    def _load_slot(self, key: str) -> dict[str, Any] | None:
        try:
            raw = self.backend.read(key)
        except (StorageUnavailable, OSError) as e:
            logger.warning("Slot %s unreadable: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            parsed = json.loads(raw)
        except (ValueError, RecursionError) as e:
            logger.warning("Slot %s is not valid JSON: %s", key, e)
            return None
        if not isinstance(parsed, dict):
            logger.warning("Slot %s holds %s, expected an object", key, type(parsed).__name__)
            return None
        return parsed
