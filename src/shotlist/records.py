"""Record: one editable shot, a title plus positive/negative prompt text."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

EDITABLE_FIELDS = ("title", "positive", "negative")


def new_id() -> str:
    """Opaque, locally generated id. Never persisted, never reused."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Record:
    """A single shot in the list.

    ``id`` only identifies the record within the running session; the wire
    format drops it and every decode hands out fresh ones.
    """

    id: str = field(default_factory=new_id)
    title: str = ""
    positive: str = ""
    negative: str = ""

    @classmethod
    def new(cls, title: str = "", positive: str = "", negative: str = "") -> Record:
        return cls(id=new_id(), title=title, positive=positive, negative=negative)

    def content(self) -> tuple[str, str, str]:
        """Field values without the id, in wire order."""
        return (self.title, self.positive, self.negative)
