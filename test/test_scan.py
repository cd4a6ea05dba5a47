"""End-to-end properties of the scan loop over a fake chain and an in-memory store."""
import pytest

from roninscan.adapters.memory_store import InMemoryRecordStore
from roninscan.application.plans import AXIE_GENESIS_BLOCK, BlockPlan, LogPlan, build_plan
from roninscan.application.scan import ScanLoop, ScanState
from roninscan.domain.contracts import AXIE_CONTRACT, MARKETPLACE_CONTRACT
from roninscan.domain.errors import ConfigurationError, ConnectivityError
from roninscan.domain.keys import content_key
from roninscan.domain.models import RawLog, TxSummary
from roninscan.domain.value_types import RECORD_KINDS
from factories import (
    ALICE, BOB, CAROL, FakeChain, RejectingStore, auction_successful, erc20_transfer, erc721_transfer, tx_hash,
)

WETH = "0xc99a6a985ed2cac1ef41640596c5a5f9f4e19ef5"


class ListManifest:
    def __init__(self):
        self.records = []

    async def append(self, rec):
        self.records.append(rec)


class BlindStore(InMemoryRecordStore):
    """Pretends nothing is persisted, as when another scanner wrote in between."""

    async def existing_keys(self, kind, keys):
        return set()


def transfers_chain() -> FakeChain:
    return FakeChain(head=20, logs=[
        erc20_transfer(WETH, ALICE, BOB, 100, block=10, tx=tx_hash(1), index=0),
        erc20_transfer(WETH, BOB, CAROL, 50, block=11, tx=tx_hash(2), index=0),
        erc721_transfer(AXIE_CONTRACT, ALICE, CAROL, 77, block=11, tx=tx_hash(2), index=1),
    ])


class TestScanLoop:
    @pytest.mark.asyncio
    async def test_replaying_a_range_adds_nothing(self, store):
        chain = transfers_chain()
        first = await ScanLoop(build_plan("erc-transfers"), chain, store).run(10, 12)
        assert first.write.inserted_count == 3
        snapshot = dict(store.documents["erc-transfers"])

        second = await ScanLoop(build_plan("erc-transfers"), chain, store).run(10, 12)
        assert second.write.inserted_count == 0
        assert second.skipped_persisted == 3
        assert store.documents["erc-transfers"] == snapshot

    @pytest.mark.asyncio
    async def test_empty_windows_still_advance(self, store):
        chain = FakeChain(head=20)
        loop = ScanLoop(build_plan("axie-transfers"), chain, store)
        report = await loop.run(1, 3)
        assert report.windows == 3
        assert report.write.inserted_count == 0
        assert loop.cursor.current == 4
        assert loop.state is ScanState.DONE

    @pytest.mark.asyncio
    async def test_store_conflicts_are_counted_not_failed(self):
        chain = transfers_chain()
        store = BlindStore()
        seen = await ScanLoop(build_plan("erc-transfers"), chain, store).run(11, 11)
        assert seen.write.inserted_count == 2
        chain.logs.append(erc20_transfer(WETH, CAROL, ALICE, 1, block=11, tx=tx_hash(3), index=0))
        report = await ScanLoop(build_plan("erc-transfers"), chain, store).run(11, 11)
        assert (report.write.inserted_count, report.write.conflict_count) == (1, 2)
        assert not report.degraded

    @pytest.mark.asyncio
    async def test_start_past_end_runs_no_window(self, store):
        chain = transfers_chain()
        report = await ScanLoop(build_plan("erc-transfers"), chain, store).run(20, 10)
        assert report.windows == 0
        assert chain.filters == []

    @pytest.mark.asyncio
    async def test_start_equal_to_end_runs_one_window(self, store):
        chain = transfers_chain()
        report = await ScanLoop(build_plan("axie-transfers"), chain, store).run(11, 11)
        assert report.windows == 1
        assert report.write.inserted_count == 1

    @pytest.mark.asyncio
    async def test_undecodable_log_does_not_stop_the_window(self, store):
        chain = transfers_chain()
        good = chain.logs[0]
        chain.logs.append(erc20_transfer(WETH, ALICE, CAROL, 5, block=10, tx=tx_hash(9), index=1))
        chain.logs.append(RawLog(WETH, good.topics, "0x1234", 10, good.block_hash, tx_hash(8), 2))
        report = await ScanLoop(build_plan("erc-transfers"), chain, store).run(10, 10)
        assert report.write.inserted_count == 2
        assert len(report.decode_failures) == 1
        assert report.decode_failures[0].tx_hash == tx_hash(8)
        assert not report.degraded

    @pytest.mark.asyncio
    async def test_resume_starts_after_stored_block(self, store):
        chain = transfers_chain()
        await ScanLoop(build_plan("erc-transfers"), chain, store).run(10, 10)
        report = await ScanLoop(build_plan("erc-transfers"), chain, store).run(0, 12)
        assert report.start_block == 11
        assert report.write.inserted_count == 2

    @pytest.mark.asyncio
    async def test_source_failure_aborts_and_keeps_earlier_windows(self, store):
        chain = transfers_chain()
        chain.fail_at = {11}
        manifest = ListManifest()
        loop = ScanLoop(build_plan("erc-transfers"), chain, store, manifest=manifest)
        with pytest.raises(ConnectivityError):
            await loop.run(10, 12)
        assert loop.cursor.current == 11
        assert len(store.documents["erc-transfers"]) == 1
        assert [r.status for r in manifest.records] == ["done", "failed"]

    @pytest.mark.asyncio
    async def test_write_errors_degrade_the_run(self):
        chain = transfers_chain()
        doomed = content_key(tx_hash(1), 0)
        store = RejectingStore(reject={doomed})
        manifest = ListManifest()
        report = await ScanLoop(build_plan("erc-transfers"), chain, store, manifest=manifest).run(10, 11)
        assert report.write.other_error_count == 1
        assert report.degraded
        assert [r.status for r in manifest.records] == ["degraded", "done"]

    @pytest.mark.asyncio
    async def test_window_size_groups_blocks(self, store):
        chain = transfers_chain()
        report = await ScanLoop(build_plan("erc-transfers"), chain, store, window_size=5).run(10, 19)
        assert report.windows == 2
        assert report.write.inserted_count == 3

    def test_window_size_must_be_positive(self, store):
        with pytest.raises(ValueError):
            ScanLoop(build_plan("block-stats"), FakeChain(), store, window_size=0)


class TestPlans:
    @pytest.mark.parametrize("kind", RECORD_KINDS)
    def test_every_kind_has_a_plan(self, kind):
        plan = build_plan(kind)
        assert plan.kind == kind
        assert isinstance(plan, (LogPlan, BlockPlan))

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError):
            build_plan("nft-mints")

    def test_axie_plans_start_at_axie_genesis(self):
        assert build_plan("axie-transfers").genesis_block == AXIE_GENESIS_BLOCK
        assert build_plan("axie-sales").genesis_block == AXIE_GENESIS_BLOCK

    @pytest.mark.asyncio
    async def test_sale_takes_axie_from_receipt(self, store):
        sale_tx = tx_hash(5)
        chain = FakeChain(
            head=20,
            logs=[auction_successful(MARKETPLACE_CONTRACT, ALICE, BOB, WETH, 10**18, block=12, tx=sale_tx, index=2)],
            receipts={sale_tx: (
                erc20_transfer(WETH, BOB, ALICE, 10**18, block=12, tx=sale_tx, index=0),
                erc721_transfer(AXIE_CONTRACT, ALICE, BOB, 123456, block=12, tx=sale_tx, index=1),
            )},
        )
        report = await ScanLoop(build_plan("axie-sales"), chain, store).run(12, 12)
        assert report.write.inserted_count == 1
        (doc,) = store.documents["axie-sales"].values()
        assert doc["axie"] == 123456
        assert doc["price"] == str(10**18)
        assert doc["transaction_id"] == sale_tx

    @pytest.mark.asyncio
    async def test_sale_without_axie_transfer_is_dropped(self, store):
        sale_tx = tx_hash(5)
        chain = FakeChain(
            head=20,
            logs=[auction_successful(MARKETPLACE_CONTRACT, ALICE, BOB, WETH, 1, block=12, tx=sale_tx, index=2)],
        )
        report = await ScanLoop(build_plan("axie-sales"), chain, store).run(12, 12)
        assert report.logs_seen == 1
        assert report.records_mapped == 0

    @pytest.mark.asyncio
    async def test_transactions_from_full_blocks(self, store):
        chain = FakeChain(head=20, transactions={
            5: (TxSummary(tx_hash(1), ALICE, BOB), TxSummary(tx_hash(2), BOB, None)),
        })
        report = await ScanLoop(build_plan("transactions"), chain, store).run(4, 6)
        assert report.write.inserted_count == 2
        docs = {d["hash"]: d for d in store.documents["transactions"].values()}
        assert docs[tx_hash(2)]["to"] is None
        assert docs[tx_hash(1)]["block"] == 5

    @pytest.mark.asyncio
    async def test_block_stats_stop_short_of_head(self, store):
        chain = FakeChain(head=100, transactions={3: (TxSummary(tx_hash(1)),)})
        report = await ScanLoop(build_plan("block-stats"), chain, store, window_size=10).run()
        assert (report.start_block, report.end_block) == (0, 49)
        assert report.write.inserted_count == 50
        assert await store.find_max_block("block-stats") == 49
        stats = {d["block"]: d["tx_num"] for d in store.documents["block-stats"].values()}
        assert stats[3] == 1 and stats[4] == 0

    @pytest.mark.asyncio
    async def test_oversized_axie_id_is_a_decode_failure(self, store):
        sale_tx = tx_hash(6)
        chain = FakeChain(
            head=20,
            logs=[auction_successful(MARKETPLACE_CONTRACT, ALICE, BOB, WETH, 1, block=12, tx=sale_tx, index=2)],
            receipts={sale_tx: (erc721_transfer(AXIE_CONTRACT, ALICE, BOB, 2**64, block=12, tx=sale_tx, index=1),)},
        )
        report = await ScanLoop(build_plan("axie-sales"), chain, store).run(12, 12)
        assert report.write.inserted_count == 0
        assert [f.tx_hash for f in report.decode_failures] == [sale_tx]


class RecordingPlan:
    """Wraps a plan and notes the loop state while it collects."""

    def __init__(self, plan):
        self.plan = plan
        self.kind, self.keyer = plan.kind, plan.keyer
        self.genesis_block, self.head_lag = plan.genesis_block, plan.head_lag
        self.loop = None
        self.states = []

    async def collect(self, source, window):
        self.states.append(self.loop.state)
        return await self.plan.collect(source, window)


class TestScanState:
    @pytest.mark.asyncio
    async def test_decoding_happens_while_querying(self, store):
        plan = RecordingPlan(build_plan("erc-transfers"))
        loop = ScanLoop(plan, transfers_chain(), store)
        plan.loop = loop
        report = await loop.run(10, 11)
        assert plan.states == [ScanState.QUERYING, ScanState.QUERYING]
        assert report.records_mapped == 3
        assert loop.state is ScanState.DONE
