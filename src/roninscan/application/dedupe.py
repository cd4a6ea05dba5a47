from __future__ import annotations
import logging
from typing import Callable, Sequence

from ..domain.models import KeyedRecord
from ..domain.records import DomainRecord
from ..ports.storage import RecordStore

logger = logging.getLogger(__name__)


class DedupeBuffer:
    """
    Pending batch for one window.

    A record is admitted only if its key is neither already pending nor
    already persisted. Persisted keys are fetched with one batched query per
    window. This check is advisory: two scanners can both pass it for the same
    key, and the store's uniqueness constraint settles the race at write time.
    """

    def __init__(self, keyer: Callable[[DomainRecord], str]) -> None:
        self.keyer = keyer
        self.pending: list[KeyedRecord] = []
        self._pending_keys: set[str] = set()
        self._persisted: set[str] = set()
        self.skipped_pending = 0
        self.skipped_persisted = 0

    def keyed(self, records: Sequence[DomainRecord]) -> list[KeyedRecord]:
        return [KeyedRecord(key=self.keyer(r), record=r) for r in records]

    async def prefetch(self, kind: str, store: RecordStore, keyed: Sequence[KeyedRecord]) -> None:
        if keyed:
            self._persisted |= await store.existing_keys(kind, [kr.key for kr in keyed])

    def admit(self, kr: KeyedRecord) -> bool:
        if kr.key in self._pending_keys:
            self.skipped_pending += 1
            logger.debug("duplicate within window: %s", kr.key)
            return False
        if kr.key in self._persisted:
            self.skipped_persisted += 1
            logger.debug("already persisted: %s", kr.key)
            return False
        self.pending.append(kr)
        self._pending_keys.add(kr.key)
        return True

    async def admit_all(self, kind: str, store: RecordStore, records: Sequence[DomainRecord]) -> int:
        keyed = self.keyed(records)
        await self.prefetch(kind, store, keyed)
        return sum(1 for kr in keyed if self.admit(kr))

    def drain(self) -> list[KeyedRecord]:
        """Hand the pending batch (discovery order) to the writer and reset."""
        batch, self.pending = self.pending, []
        self._pending_keys.clear()
        self._persisted.clear()
        return batch
