"""Record store — sole owner of the ordered shot list.

The sequence is never empty and ids are unique within it. Every mutation
that changes the sequence is encoded and handed to the persistence adapter;
a failed write leaves the in-memory list authoritative.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from shotlist import codec
from shotlist.records import EDITABLE_FIELDS, Record

if TYPE_CHECKING:
    from shotlist.storage import PersistenceAdapter

logger = logging.getLogger(__name__)

DEFAULT_TITLE_PREFIX = "分镜"


class RecordStore:
    """In-memory shot list with write-through persistence."""

    def __init__(
        self,
        persistence: PersistenceAdapter | None = None,
        *,
        title_prefix: str = DEFAULT_TITLE_PREFIX,
        records: list[Record] | None = None,
    ) -> None:
        self.persistence = persistence
        self.title_prefix = title_prefix
        self._records: list[Record] = list(records) if records else [self._seed_record()]
        self._check_ids(self._records)

    # ── Bootstrap ────────────────────────────────────────────

    @classmethod
    def open(
        cls,
        persistence: PersistenceAdapter,
        *,
        title_prefix: str = DEFAULT_TITLE_PREFIX,
    ) -> RecordStore:
        """Seed from the primary slot (v2), then the legacy slot (v1), then a blank record."""
        records = cls._restore(persistence.load(), accept=(2,), slot=persistence.key)
        if records is None:
            records = cls._restore(
                persistence.load_legacy(), accept=(1,), slot=persistence.legacy_key
            )
        if records is None:
            logger.info("No saved shot list found, starting fresh")
        return cls(persistence, title_prefix=title_prefix, records=records)

    @staticmethod
    def _restore(payload: dict | None, accept: tuple[int, ...], slot: str | None) -> list[Record] | None:
        if payload is None:
            return None
        try:
            records = codec.decode(payload, accept=accept)
        except codec.DecodeError as e:
            logger.warning("Ignoring slot %s: %s", slot, e.message)
            return None
        logger.info("Restored %d shots from slot %s", len(records), slot)
        return records

    def _seed_record(self) -> Record:
        return Record.new(title=f"{self.title_prefix} 1")

    # ── Reads ────────────────────────────────────────────────

    @property
    def records(self) -> list[Record]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(list(self._records))

    def __getitem__(self, index: int) -> Record:
        return self._records[index]

    def _in_range(self, index: int) -> bool:
        return 0 <= index < len(self._records)

    # ── Mutations ────────────────────────────────────────────

    def insert_after(self, index: int) -> list[Record]:
        """Insert a blank record after ``index``; out-of-range indexes append."""
        record = Record.new(title=f"{self.title_prefix} {len(self._records) + 1}")
        if self._in_range(index):
            self._records.insert(index + 1, record)
        else:
            self._records.append(record)
        self._commit()
        return self.records

    def update(self, index: int, **fields: str) -> list[Record]:
        """Replace only the supplied fields of the record at ``index``."""
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
        if not self._in_range(index) or not fields:
            return self.records
        current = self._records[index]
        updated = dataclasses.replace(current, **fields)
        if updated != current:
            self._records[index] = updated
            self._commit()
        return self.records

    def remove(self, index: int) -> list[Record]:
        """Delete the record at ``index``. The last remaining record is never removed."""
        if not self._in_range(index) or len(self._records) <= 1:
            return self.records
        del self._records[index]
        self._commit()
        return self.records

    def move(self, src: int, dst: int) -> list[Record]:
        """Move the record at ``src`` so it ends up at ``dst``."""
        if src == dst or not self._in_range(src) or not self._in_range(dst):
            return self.records
        record = self._records.pop(src)
        self._records.insert(dst, record)
        self._commit()
        return self.records

    def replace_all(self, records: list[Record]) -> list[Record]:
        """Swap in a whole new sequence (import). Callers must reject empty input first."""
        records = list(records)
        if not records:
            raise ValueError("Cannot replace the shot list with an empty sequence")
        self._check_ids(records)
        self._records = records
        self._commit()
        return self.records

    # ── Persistence ──────────────────────────────────────────

    def _commit(self) -> None:
        if self.persistence is None:
            return
        self.persistence.save(codec.encode(self._records))

    @staticmethod
    def _check_ids(records: list[Record]) -> None:
        ids = [r.id for r in records]
        if len(set(ids)) != len(ids):
            raise ValueError("Record ids must be unique")
