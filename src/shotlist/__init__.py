"""shotlist — ordered Stable Diffusion shot/prompt list with versioned persistence.

Layout:
    ~/.shotlist/
    ├── shotlist.toml              # Optional configuration
    ├── sd-shot-list-v2.json       # Primary slot (v2 payload, rewritten on every edit)
    └── sd-shot-list-v1.json       # Legacy slot (v1 payload, read-only fallback)
"""

from shotlist.codec import (
    DecodeError,
    EmptyOrMalformed,
    UnrecognizedFormat,
    UnsupportedVersion,
)
from shotlist.records import Record
from shotlist.store import RecordStore

__all__ = [
    "DecodeError",
    "EmptyOrMalformed",
    "Record",
    "RecordStore",
    "UnrecognizedFormat",
    "UnsupportedVersion",
]
