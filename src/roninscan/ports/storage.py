# roninscan/ports/storage.py
from __future__ import annotations

from typing import Iterable, Protocol, Sequence
from ..domain.models import KeyedRecord, WindowRecord, WriteReport


class RecordStore(Protocol):
    """Port for the document store holding one collection per record kind."""

    async def find_max_block(self, kind: str) -> int | None:
        """Highest `block` persisted for `kind`, or None when nothing is stored yet."""

    async def existing_keys(self, kind: str, keys: Iterable[str]) -> set[str]:
        """Subset of `keys` already persisted for `kind` (one round trip)."""

    async def insert_many_unordered(self, kind: str, records: Sequence[KeyedRecord]) -> WriteReport:
        """
        Insert every record independently. A key that already exists is a
        conflict, never a failure of the whole call.
        """


class ManifestSink(Protocol):
    """Port for appending per-window status records (e.g., JSONL journal)."""

    async def append(self, rec: WindowRecord) -> None:
        """Append a manifest record atomically (callers handle ordering/locking)."""
