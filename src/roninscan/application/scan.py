from __future__ import annotations
import logging, time
from enum import Enum

from ..domain.models import BlockRange, ChainCursor, ScanReport, WindowRecord
from ..ports.rpc import ChainSource
from ..ports.storage import ManifestSink, RecordStore
from .cursor import resolve_cursor
from .dedupe import DedupeBuffer
from .planning import DEFAULT_WINDOW_SIZE, next_window
from .plans import RecordPlan
from .writer import BatchWriter

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    # QUERYING covers decode and map too: plans decode each log as it arrives
    INIT = "init"
    WINDOWING = "windowing"
    QUERYING = "querying"
    DEDUPING = "deduping"
    WRITING = "writing"
    ADVANCING = "advancing"
    DONE = "done"


class ScanLoop:
    """
    Drives one plan over [current, ceiling]: query -> decode/map -> dedupe ->
    write -> advance, one window at a time. The cursor lives only in memory;
    a restarted run resumes from the store's max persisted block.

    Record-level decode failures are collected in the report. Source errors
    end the run; conflicts are counted, other write errors mark it degraded.
    """

    def __init__(
        self,
        plan: RecordPlan,
        source: ChainSource,
        store: RecordStore,
        *,
        window_size: int = DEFAULT_WINDOW_SIZE,
        manifest: ManifestSink | None = None,
    ) -> None:
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self.plan = plan
        self.source = source
        self.store = store
        self.window_size = window_size
        self.manifest = manifest
        self.buffer = DedupeBuffer(plan.keyer)
        self.writer = BatchWriter(store, plan.kind)
        self.state = ScanState.INIT
        self.cursor: ChainCursor | None = None

    async def run(self, start_block: int = 0, end_block: int = 0) -> ScanReport:
        self.state = ScanState.INIT
        kind = self.plan.kind
        cursor = await resolve_cursor(
            start_block, end_block,
            persisted_max_block=lambda: self.store.find_max_block(kind),
            chain_head=self.source.current_height,
            genesis_block=self.plan.genesis_block,
            head_lag=self.plan.head_lag,
        )
        self.cursor = cursor
        logger.info("%s: effective start_block=%d end_block=%d", kind, cursor.current, cursor.ceiling)
        report = ScanReport(kind=kind, start_block=cursor.current, end_block=cursor.ceiling)

        while not cursor.exhausted:
            self.state = ScanState.WINDOWING
            window = next_window(cursor, self.window_size)
            await self._process_window(window, report)
            self.state = ScanState.ADVANCING
            cursor = cursor.advanced_past(window.end)
            self.cursor = cursor

        self.state = ScanState.DONE
        return report

    async def _process_window(self, window: BlockRange, report: ScanReport) -> None:
        self.state = ScanState.QUERYING
        try:
            collected = await self.plan.collect(self.source, window)
        except Exception as e:
            await self._journal(WindowRecord(window.start, window.end, "failed", error=str(e), updated_at=time.time()))
            raise

        self.state = ScanState.DEDUPING
        before_pending, before_persisted = self.buffer.skipped_pending, self.buffer.skipped_persisted
        admitted = await self.buffer.admit_all(self.plan.kind, self.store, collected.records)

        self.state = ScanState.WRITING
        write = await self.writer.write_all(self.buffer.drain())

        report.windows += 1
        report.logs_seen += collected.logs
        report.records_mapped += len(collected.records)
        report.admitted += admitted
        report.skipped_pending += self.buffer.skipped_pending - before_pending
        report.skipped_persisted += self.buffer.skipped_persisted - before_persisted
        report.write = report.write + write
        report.decode_failures.extend(collected.failures)

        logger.info(
            "Block range %d-%d: logs=%d records=%d inserted=%d conflicts=%d errors=%d decode_failures=%d",
            window.start, window.end, collected.logs, len(collected.records),
            write.inserted_count, write.conflict_count, write.other_error_count, len(collected.failures),
        )
        await self._journal(WindowRecord(
            from_block=window.start,
            to_block=window.end,
            status="done" if write.ok else "degraded",
            logs=collected.logs,
            records=len(collected.records),
            inserted=write.inserted_count,
            conflicts=write.conflict_count,
            errors=write.other_error_count,
            decode_failures=len(collected.failures),
            updated_at=time.time(),
        ))

    async def _journal(self, rec: WindowRecord) -> None:
        if self.manifest is not None:
            await self.manifest.append(rec)
