# roninscan/ports/rpc.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import BlockData, BlockMeta, FilterDescriptor, RawLog


class ChainSource(Protocol):
    """Port defining the contract for an EVM JSON-RPC node (http or ws)."""

    async def current_height(self) -> int:
        """Return the latest block number as an integer."""

    async def query_logs(self, flt: FilterDescriptor) -> list[RawLog]:
        """Return normalized, typed logs matching `flt` (block window inclusive)."""

    async def get_block_by_hash(self, block_hash: str) -> BlockMeta:
        """Return number and timestamp (ms) of the block with `block_hash`."""

    async def get_block_by_number(self, number: int, *, full_transactions: bool = False) -> BlockData:
        """Return the block at `number`; transactions carry from/to only when `full_transactions`."""

    async def get_transaction_receipt(self, tx_hash: str) -> tuple[RawLog, ...]:
        """Return every log emitted by the transaction, in log-index order."""

    async def aclose(self) -> None:
        """Release the underlying connection."""
