"""
Per-kind scan plans.

A plan bundles what differs between importers (where records come from, the
event signatures, the mapper and the keyer) so that one ScanLoop can drive
all of them. Plans are plain values built by `build_plan`; the loop never
branches on the kind itself.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

from ..domain.contracts import AXIE_CONTRACT, MARKETPLACE_CONTRACT, ContractRegistry, default_registry
from ..domain.decoding import DecodedEvent, decode_log
from ..domain.errors import ConfigurationError, DecodeError
from ..domain.keys import (
    axie_transfer_key, block_stats_key, log_position_key, sale_key, transaction_key,
)
from ..domain.mapping import LogContext, map_block_stats, map_sale, map_transaction, map_transfer
from ..domain.models import BlockData, BlockMeta, BlockRange, DecodeFailure, RawLog, TxMeta
from ..domain.records import DomainRecord
from ..domain.signatures import AUCTION_SUCCESSFUL, ERC20_TRANSFER, ERC721_TRANSFER, EventSignature
from ..domain.value_types import Address, ErcKind
from ..ports.rpc import ChainSource
from .planning import build_filter

logger = logging.getLogger(__name__)

AXIE_GENESIS_BLOCK = 2_678_592     # first block of the Axie contracts on Ronin
BLOCK_STATS_HEAD_LAG = 51


@dataclass(slots=True)
class Collected:
    records: list[DomainRecord] = field(default_factory=list)
    logs: int = 0
    failures: list[DecodeFailure] = field(default_factory=list)


class RecordPlan(Protocol):
    kind: str
    keyer: Callable[[DomainRecord], str]
    genesis_block: int
    head_lag: int

    async def collect(self, source: ChainSource, window: BlockRange) -> Collected: ...


@dataclass(slots=True, frozen=True)
class Subscription:
    contract: Address
    signature: EventSignature
    erc: ErcKind = "unknown"


async def _block_meta(source: ChainSource, log: RawLog, cache: dict[object, BlockMeta]) -> BlockMeta:
    ref: object = log.block_hash or log.block_number
    if ref not in cache:
        if log.block_hash:
            cache[ref] = await source.get_block_by_hash(log.block_hash)
        else:
            cache[ref] = (await source.get_block_by_number(log.block_number)).meta
    return cache[ref]


def _skip(out: Collected, sub: Subscription, log: RawLog, e: DecodeError) -> None:
    logger.warning(
        "Skipping undecodable %s log tx=%s index=%d block=%d: %s",
        sub.signature.name, log.tx_hash, log.log_index, log.block_number, e,
    )
    out.failures.append(DecodeFailure(log.block_number, log.tx_hash, log.log_index, str(e)))


@dataclass(frozen=True)
class LogPlan:
    """Records decoded from contract logs, one eth_getLogs call per subscription per window."""
    kind: str
    subscriptions: tuple[Subscription, ...]
    mapper: Callable[[DecodedEvent, LogContext], DomainRecord | None]
    keyer: Callable[[DomainRecord], str]
    needs_receipt: bool = False
    genesis_block: int = 1
    head_lag: int = 0

    async def collect(self, source: ChainSource, window: BlockRange) -> Collected:
        out = Collected()
        blocks: dict[object, BlockMeta] = {}
        for sub in self.subscriptions:
            logs = await source.query_logs(build_filter(sub.contract, sub.signature, window.start, window.end))
            out.logs += len(logs)
            for log in logs:
                try:
                    decoded = decode_log(sub.signature, log)
                except DecodeError as e:
                    _skip(out, sub, log, e)
                    continue
                block = await _block_meta(source, log, blocks)
                receipt = await source.get_transaction_receipt(log.tx_hash) if self.needs_receipt else ()
                ctx = LogContext(
                    contract=log.address,
                    erc=sub.erc,
                    block=block,
                    tx=TxMeta(tx_hash=log.tx_hash, log_index=log.log_index, receipt_logs=receipt),
                )
                try:
                    record = self.mapper(decoded, ctx)
                except DecodeError as e:
                    _skip(out, sub, log, e)
                    continue
                if record is not None:
                    out.records.append(record)
        return out


@dataclass(frozen=True)
class BlockPlan:
    """Records derived from whole blocks, one eth_getBlockByNumber call per block."""
    kind: str
    mapper: Callable[[BlockData], list[DomainRecord]]
    keyer: Callable[[DomainRecord], str]
    full_transactions: bool = False
    genesis_block: int = 1
    head_lag: int = 0

    async def collect(self, source: ChainSource, window: BlockRange) -> Collected:
        out = Collected()
        for number in range(window.start, window.end + 1):
            block = await source.get_block_by_number(number, full_transactions=self.full_transactions)
            out.records.extend(self.mapper(block))
        return out


def _transactions_of(block: BlockData) -> list[DomainRecord]:
    meta = block.meta
    return [map_transaction(tx, meta) for tx in block.transactions]

def _stats_of(block: BlockData) -> list[DomainRecord]:
    return [map_block_stats(block)]

def _signature_for(erc: ErcKind) -> EventSignature:
    return ERC721_TRANSFER if erc == "erc721" else ERC20_TRANSFER


def build_plan(kind: str, registry: ContractRegistry | None = None) -> RecordPlan:
    registry = registry if registry is not None else default_registry()
    if kind == "erc-transfers":
        subs = tuple(
            Subscription(addr, _signature_for(registry[addr].erc_kind), registry[addr].erc_kind)
            for addr in registry.of_kind("erc20", "erc721")
        )
        return LogPlan(kind, subs, map_transfer, log_position_key)
    if kind == "axie-transfers":
        subs = (Subscription(AXIE_CONTRACT, ERC721_TRANSFER, "erc721"),)
        return LogPlan(kind, subs, map_transfer, axie_transfer_key, genesis_block=AXIE_GENESIS_BLOCK)
    if kind == "axie-sales":
        subs = (Subscription(MARKETPLACE_CONTRACT, AUCTION_SUCCESSFUL),)
        return LogPlan(kind, subs, map_sale, sale_key, needs_receipt=True, genesis_block=AXIE_GENESIS_BLOCK)
    if kind == "transactions":
        return BlockPlan(kind, _transactions_of, transaction_key, full_transactions=True)
    if kind == "block-stats":
        # last block is head - 51; the newest blocks are left for a later run
        return BlockPlan(kind, _stats_of, block_stats_key, genesis_block=0, head_lag=BLOCK_STATS_HEAD_LAG)
    raise ConfigurationError(f"Unknown record kind: {kind!r}")
