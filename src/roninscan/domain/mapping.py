from __future__ import annotations

import logging
from dataclasses import dataclass

from .contracts import AXIE_CONTRACT
from .decoding import DecodedEvent, decode_log
from .errors import DecodeError, TypeMismatch
from .models import BlockData, BlockMeta, TxMeta, TxSummary
from .records import BlockStatsRecord, SaleRecord, TransactionRecord, TransferRecord
from .signatures import ERC721_TRANSFER
from .value_types import Address, ErcKind, TxHash

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class LogContext:
    """Everything a mapper may copy besides the decoded parameters."""
    contract: Address
    erc: ErcKind
    block: BlockMeta
    tx: TxMeta


def map_transfer(decoded: DecodedEvent, ctx: LogContext) -> TransferRecord | None:
    """ERC-20 / ERC-721 Transfer -> TransferRecord; unknown contract kinds map to nothing."""
    if ctx.erc not in ("erc20", "erc721"):
        return None
    from_address, to_address, amount = decoded.values()
    return TransferRecord(
        from_address=Address(from_address),
        to_address=Address(to_address),
        token=ctx.contract,
        value_or_token_id=str(amount),
        erc=ctx.erc,
        block=ctx.block.number,
        transaction_id=ctx.tx.tx_hash,
        log_index=ctx.tx.log_index,
        created_at_ms=ctx.block.timestamp_ms,
    )


def _axie_in_receipt(ctx: LogContext, axie_contract: Address) -> int | None:
    for log in ctx.tx.receipt_logs:
        if log.address.lower() != axie_contract:
            continue
        try:
            transfer = decode_log(ERC721_TRANSFER, log)
        except DecodeError:
            continue
        return int(transfer["_tokenId"])
    return None


def map_sale(decoded: DecodedEvent, ctx: LogContext, *, axie_contract: Address = AXIE_CONTRACT) -> SaleRecord | None:
    """
    AuctionSuccessful -> SaleRecord.

    The marketplace event does not name the axie; it is taken from the first
    AXIE Transfer found in the same transaction's receipt. No transfer, no sale.
    """
    axie_id = _axie_in_receipt(ctx, axie_contract)
    if axie_id is None:
        logger.debug("No axie transfer in receipt of %s; sale skipped", ctx.tx.tx_hash)
        return None
    if axie_id >> 63:
        # stored as a BSON int64
        raise TypeMismatch(f"axie id {axie_id} in {ctx.tx.tx_hash} does not fit int64")
    return SaleRecord(
        seller=Address(decoded["_seller"]),
        buyer=Address(decoded["_buyer"]),
        token=Address(decoded["_token"]),
        price=str(decoded["_totalPrice"]),
        axie_id=axie_id,
        block=ctx.block.number,
        transaction_id=ctx.tx.tx_hash,
        created_at_ms=ctx.block.timestamp_ms,
    )


def map_transaction(tx: TxSummary, block: BlockMeta) -> TransactionRecord:
    return TransactionRecord(
        from_address=tx.from_address,
        to_address=tx.to_address,
        hash=TxHash(tx.hash),
        block=block.number,
        created_at_ms=block.timestamp_ms,
    )


def map_block_stats(block: BlockData) -> BlockStatsRecord:
    return BlockStatsRecord(block=block.number, tx_num=len(block.transactions))
