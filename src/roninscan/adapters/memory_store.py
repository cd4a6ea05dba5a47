from __future__ import annotations
from collections.abc import Iterable, Sequence
from typing import Any

from ..domain.models import KeyedRecord, WriteReport
from ..ports.storage import RecordStore


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed RecordStore with the same uniqueness rule as the Mongo
    adapter (one document per key). Used for --dry-run.
    """
    def __init__(self) -> None:
        self.documents: dict[str, dict[str, dict[str, Any]]] = {}

    def _kind(self, kind: str) -> dict[str, dict[str, Any]]:
        return self.documents.setdefault(kind, {})

    async def find_max_block(self, kind: str) -> int | None:
        blocks = [d["block"] for d in self._kind(kind).values()]
        return max(blocks) if blocks else None

    async def existing_keys(self, kind: str, keys: Iterable[str]) -> set[str]:
        docs = self._kind(kind)
        return {k for k in keys if k in docs}

    async def insert_many_unordered(self, kind: str, records: Sequence[KeyedRecord]) -> WriteReport:
        docs = self._kind(kind)
        inserted = conflicts = 0
        for kr in records:
            if kr.key in docs:
                conflicts += 1
                continue
            docs[kr.key] = {"_id": kr.key, **kr.record.to_document()}
            inserted += 1
        return WriteReport(inserted_count=inserted, conflict_count=conflicts)
