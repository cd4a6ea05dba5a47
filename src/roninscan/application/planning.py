from __future__ import annotations
from ..domain.models import BlockRange, ChainCursor, FilterDescriptor
from ..domain.signatures import EventSignature
from ..domain.value_types import Address

# One block per eth_getLogs call: one round trip per block, but no risk of
# hitting a provider's per-call log cap. Larger windows trade that risk for
# fewer calls.
DEFAULT_WINDOW_SIZE = 1


def build_filter(contract: Address, signature: EventSignature, window_start: int, window_end: int) -> FilterDescriptor:
    return FilterDescriptor(
        from_block=window_start,
        to_block=window_end,
        address=(Address(contract.lower()),),
        topics=(signature.topic_hash, None, None, None),
    )

def next_window(cursor: ChainCursor, window_size: int) -> BlockRange:
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    return BlockRange(cursor.current, min(cursor.current + window_size - 1, cursor.ceiling))
