"""Tests for start/end block resolution."""
import pytest

from roninscan.application.cursor import resolve_cursor
from roninscan.domain.errors import ConfigurationError
from roninscan.domain.models import ChainCursor


def const(value):
    async def _get():
        return value
    return _get


def unreachable():
    async def _get():
        raise AssertionError("should not be queried")
    return _get


class TestResolveCursor:
    @pytest.mark.asyncio
    async def test_zero_start_resumes_after_persisted_block(self):
        c = await resolve_cursor(0, 0, persisted_max_block=const(100), chain_head=const(500))
        assert c == ChainCursor(101, 500)

    @pytest.mark.asyncio
    async def test_explicit_bounds_skip_both_lookups(self):
        c = await resolve_cursor(50, 200, persisted_max_block=unreachable(), chain_head=unreachable())
        assert c == ChainCursor(50, 200)

    @pytest.mark.asyncio
    async def test_empty_store_starts_at_genesis(self):
        c = await resolve_cursor(0, 10, persisted_max_block=const(None), chain_head=unreachable(),
                                 genesis_block=3)
        assert c.current == 3

    @pytest.mark.asyncio
    async def test_head_lag_lowers_ceiling(self):
        c = await resolve_cursor(1, 0, persisted_max_block=unreachable(), chain_head=const(500), head_lag=50)
        assert c.ceiling == 450

    @pytest.mark.asyncio
    async def test_head_lag_never_goes_negative(self):
        c = await resolve_cursor(1, 0, persisted_max_block=unreachable(), chain_head=const(10), head_lag=50)
        assert c.ceiling == 0
        assert c.exhausted

    @pytest.mark.asyncio
    async def test_start_after_end_is_an_empty_cursor(self):
        c = await resolve_cursor(0, 0, persisted_max_block=const(500), chain_head=const(500))
        assert c == ChainCursor(501, 500)
        assert c.exhausted

    @pytest.mark.asyncio
    async def test_negative_blocks_are_rejected(self):
        with pytest.raises(ConfigurationError):
            await resolve_cursor(-1, 0, persisted_max_block=const(None), chain_head=const(1))


class TestChainCursor:
    def test_advance_never_moves_backwards(self):
        c = ChainCursor(10, 20)
        assert c.advanced_past(14).current == 15
        assert c.advanced_past(5).current == 10

    def test_equal_bounds_is_not_exhausted(self):
        assert not ChainCursor(7, 7).exhausted
