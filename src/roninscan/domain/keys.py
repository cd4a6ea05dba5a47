"""
Idempotency keys.

A key is the sha256 hex digest of a `|`-joined list of identifying fields.
Hex values are lowercased before joining so the same logical event always
hashes the same way, whichever casing the node returned.
"""
from __future__ import annotations

import hashlib

from .records import BlockStatsRecord, SaleRecord, TransactionRecord, TransferRecord


def content_key(*parts: object) -> str:
    material = "|".join(str(p).lower() if isinstance(p, str) else str(p) for p in parts)
    return hashlib.sha256(material.encode()).hexdigest()


def axie_transfer_key(r: TransferRecord) -> str:
    # an axie moves from A to B at most once per block
    return content_key(r.from_address, r.to_address, r.value_or_token_id, r.block)


def log_position_key(r: TransferRecord) -> str:
    return content_key(r.transaction_id, r.log_index)


def sale_key(r: SaleRecord) -> str:
    return content_key(r.transaction_id)


def transaction_key(r: TransactionRecord) -> str:
    return content_key(r.hash)


def block_stats_key(r: BlockStatsRecord) -> str:
    return content_key("block", r.block)
