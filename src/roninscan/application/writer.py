from __future__ import annotations
import logging
from typing import Sequence

from ..domain.models import KeyedRecord, WriteReport
from ..ports.storage import RecordStore

logger = logging.getLogger(__name__)


class BatchWriter:
    """Unordered bulk insert of one pending batch, with conflicts kept apart from real failures."""

    def __init__(self, store: RecordStore, kind: str) -> None:
        self.store = store
        self.kind = kind

    async def write_all(self, batch: Sequence[KeyedRecord]) -> WriteReport:
        if not batch:
            return WriteReport()
        report = await self.store.insert_many_unordered(self.kind, batch)
        if report.conflict_count:
            logger.debug("%s: %d of %d records already stored", self.kind, report.conflict_count, len(batch))
        for err in report.errors:
            logger.error("%s: write failed: %s", self.kind, err)
        return report
