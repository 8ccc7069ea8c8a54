"""Import/export of portable shot-list artifacts.

An artifact is the v2 payload plus an ``exportedAt`` stamp, pretty-printed
as JSON in a .txt file. Imports accept v1 or v2 and replace the whole list
atomically: the store is touched only after decoding fully succeeds.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from shotlist import codec
from shotlist.records import Record

if TYPE_CHECKING:
    from shotlist.store import RecordStore

logger = logging.getLogger(__name__)

EXPORTED_AT_KEY = "exportedAt"

# Async callable yielding the raw bytes of a user-selected artifact
ByteSource = Callable[[], Awaitable[bytes]]


@runtime_checkable
class ByteSink(Protocol):
    """Receives an exported artifact (e.g. a file save dialog)."""

    def write(self, name: str, data: bytes) -> None: ...


@dataclass
class ImportResult:
    """Outcome of a successful import."""

    count: int
    version: int

    @property
    def message(self) -> str:
        return f"已导入 {self.count} 条分镜（版本 v{self.version}），当前内容已覆盖。"


def artifact_filename(day: date | None = None) -> str:
    day = day or date.today()
    return f"{codec.FORMAT_TAG}-{day.isoformat()}.txt"


def export_artifact(records: list[Record], now: datetime | None = None) -> bytes:
    """Encode records as a pretty-printed v2 artifact."""
    now = now or datetime.now(timezone.utc)
    encoded = codec.encode(records)
    payload = {
        "type": encoded["type"],
        "version": encoded["version"],
        EXPORTED_AT_KEY: _utc_stamp(now),
        "items": encoded["items"],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")


def _utc_stamp(now: datetime) -> str:
    """ISO-8601 in UTC, millisecond precision, ``Z`` suffix."""
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_artifact(data: bytes) -> tuple[list[Record], int]:
    """Decode artifact bytes. Codec errors propagate unchanged."""
    # UnicodeDecodeError is a ValueError; deeply nested arrays hit the recursion limit
    try:
        payload = json.loads(data.decode("utf-8-sig"))
    except (ValueError, RecursionError) as e:
        raise codec.UnrecognizedFormat("无法解析文件") from e
    version = codec.decode_version(payload)
    return codec.decode(payload), version


class ArtifactGateway:
    """Moves artifacts between a RecordStore and byte sinks/sources."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self._import_lock = asyncio.Lock()

    def export_to(self, sink: ByteSink, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        name = artifact_filename(now.astimezone().date())
        sink.write(name, export_artifact(self.store.records, now=now))
        logger.info("Exported %d shots as %s", len(self.store), name)
        return name

    def import_bytes(self, data: bytes) -> ImportResult:
        records, version = parse_artifact(data)
        self.store.replace_all(records)
        logger.info("Imported %d shots (v%d)", len(records), version)
        return ImportResult(count=len(records), version=version)

    async def import_from(self, source: ByteSource) -> ImportResult:
        """Read from ``source`` and apply. Overlapping imports apply in call order."""
        async with self._import_lock:
            data = await source()
            return self.import_bytes(data)


class DirectorySink:
    """ByteSink that writes artifacts into a directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self.last_path: Path | None = None

    def write(self, name: str, data: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / name
        path.write_bytes(data)
        self.last_path = path


def file_source(path: Path) -> ByteSource:
    """Byte source reading ``path`` in the default executor."""

    async def read() -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, path.read_bytes)

    return read
