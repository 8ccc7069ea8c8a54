"""Wire codec — Record sequence <-> versioned JSON payload.

Two schema generations exist:

    v1  {"type": "sd-shot-list", "version": 1,
         "items": [{"title": "...", "prompt": "..."}]}
    v2  {"type": "sd-shot-list", "version": 2,
         "items": [{"title": "...", "positive": "...", "negative": "..."}]}

Only v2 is ever written. v1 is read-only: ``prompt`` becomes ``positive``
and ``negative`` is left empty.

Field-level problems are tolerated (missing field -> ""), payload-level
problems are not (wrong tag, unknown version, no items -> DecodeError).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from shotlist.records import Record

FORMAT_TAG = "sd-shot-list"
SCHEMA_VERSION = 2
SUPPORTED_VERSIONS = (1, 2)

# Per-version field table: wire key -> record field. Absent keys get "".
_FIELD_MAPS: dict[int, dict[str, str]] = {
    1: {"title": "title", "prompt": "positive"},
    2: {"title": "title", "positive": "positive", "negative": "negative"},
}


class DecodeError(Exception):
    """A payload could not be turned into a usable record sequence."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnrecognizedFormat(DecodeError):
    """Payload is not an sd-shot-list document."""


class UnsupportedVersion(DecodeError):
    """Payload carries a schema version this build cannot read."""


class EmptyOrMalformed(DecodeError):
    """Payload has no usable items."""


def encode(records: Iterable[Record]) -> dict[str, Any]:
    """Serialize records as a v2 payload. Ids are not part of the wire format."""
    return {
        "type": FORMAT_TAG,
        "version": SCHEMA_VERSION,
        "items": [
            {"title": r.title, "positive": r.positive, "negative": r.negative} for r in records
        ],
    }


def decode_version(payload: Any, accept: Iterable[int] = SUPPORTED_VERSIONS) -> int:
    """Validate the envelope (tag + version) and return the schema version."""
    if not isinstance(payload, Mapping) or payload.get("type") != FORMAT_TAG:
        raise UnrecognizedFormat(f"导入的文件不是有效的 {FORMAT_TAG} 格式")

    version = payload.get("version")
    # bool is an int subclass; True must not pass for version 1
    if isinstance(version, bool) or version not in tuple(accept):
        raise UnsupportedVersion(f"不支持的版本号：{version!r}")
    return int(version)


def decode(payload: Any, accept: Iterable[int] = SUPPORTED_VERSIONS) -> list[Record]:
    """Decode a v1 or v2 payload into fresh records (new ids every time)."""
    version = decode_version(payload, accept)

    items = payload.get("items")
    if not isinstance(items, list):
        raise EmptyOrMalformed("导入内容缺少 items 列表")

    field_map = _FIELD_MAPS[version]
    records = [Record.new(**_apply_defaults(item, field_map)) for item in items]
    if not records:
        raise EmptyOrMalformed("导入内容为空")
    return records


def _apply_defaults(item: Any, field_map: Mapping[str, str]) -> dict[str, str]:
    """Substitute "" for every missing field; stringify stray scalars."""
    fields = {name: "" for name in ("title", "positive", "negative")}
    if not isinstance(item, Mapping):
        return fields
    for wire_key, record_field in field_map.items():
        fields[record_field] = _as_text(item.get(wire_key))
    return fields


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
