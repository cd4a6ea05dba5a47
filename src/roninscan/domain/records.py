"""
Domain records persisted by the importers.

Every record carries the block it was observed in and `created_at_ms`, the
source block's own timestamp in milliseconds. Big integers (token amounts,
prices) are kept as decimal strings so they survive BSON's 64-bit limit.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Union

from .value_types import Address, ErcKind, TxHash


def _ms_to_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


@dataclass(slots=True, frozen=True)
class TransferRecord:
    from_address: Address
    to_address: Address
    token: Address
    value_or_token_id: str
    erc: ErcKind
    block: int
    transaction_id: TxHash
    log_index: int
    created_at_ms: int

    def to_document(self) -> dict[str, Any]:
        return {
            "from": self.from_address,
            "to": self.to_address,
            "token": self.token,
            "value_or_token_id": self.value_or_token_id,
            "erc": self.erc,
            "block": self.block,
            "transaction_id": self.transaction_id,
            "log_index": self.log_index,
            "created_at": _ms_to_datetime(self.created_at_ms),
        }


@dataclass(slots=True, frozen=True)
class SaleRecord:
    seller: Address
    buyer: Address
    token: Address             # payment token
    price: str
    axie_id: int
    block: int
    transaction_id: TxHash
    created_at_ms: int

    def to_document(self) -> dict[str, Any]:
        return {
            "seller": self.seller,
            "buyer": self.buyer,
            "token": self.token,
            "price": self.price,
            "axie": self.axie_id,
            "block": self.block,
            "transaction_id": self.transaction_id,
            "created_at": _ms_to_datetime(self.created_at_ms),
        }


@dataclass(slots=True, frozen=True)
class TransactionRecord:
    from_address: Address | None
    to_address: Address | None
    hash: TxHash
    block: int
    created_at_ms: int

    def to_document(self) -> dict[str, Any]:
        return {
            "from": self.from_address,
            "to": self.to_address,
            "hash": self.hash,
            "block": self.block,
            "created_at": _ms_to_datetime(self.created_at_ms),
        }


@dataclass(slots=True, frozen=True)
class BlockStatsRecord:
    block: int
    tx_num: int

    def to_document(self) -> dict[str, Any]:
        return {"block": self.block, "tx_num": self.tx_num}


DomainRecord = Union[TransferRecord, SaleRecord, TransactionRecord, BlockStatsRecord]
