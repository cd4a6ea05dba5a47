from __future__ import annotations
import logging
from typing import Awaitable, Callable

from ..domain.errors import ConfigurationError
from ..domain.models import ChainCursor

logger = logging.getLogger(__name__)


async def resolve_cursor(
    start_block: int,
    end_block: int,
    *,
    persisted_max_block: Callable[[], Awaitable[int | None]],
    chain_head: Callable[[], Awaitable[int]],
    genesis_block: int = 1,
    head_lag: int = 0,
) -> ChainCursor:
    """
    Effective [current, ceiling] for one run.

    start_block == 0 resumes at the persisted max block + 1 (or `genesis_block`
    on an empty store); end_block == 0 pins the ceiling to the chain head,
    minus `head_lag`, read once here. current > ceiling is a valid cursor
    that yields zero windows.
    """
    if start_block < 0 or end_block < 0:
        raise ConfigurationError(f"block numbers must be >= 0 (start={start_block}, end={end_block})")

    if start_block != 0:
        current = start_block
    else:
        persisted = await persisted_max_block()
        current = genesis_block if persisted is None else persisted + 1
        logger.info("Resuming after persisted block %s -> %d", persisted, current)

    if end_block != 0:
        ceiling = end_block
    else:
        ceiling = max(0, await chain_head() - head_lag)

    return ChainCursor(current=current, ceiling=ceiling)
