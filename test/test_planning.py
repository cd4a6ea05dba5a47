"""Tests for filters and windows."""
import pytest

from roninscan.application.planning import DEFAULT_WINDOW_SIZE, build_filter, next_window
from roninscan.domain.contracts import AXIE_CONTRACT
from roninscan.domain.models import BlockRange, ChainCursor
from roninscan.domain.signatures import ERC20_TRANSFER, TRANSFER_T0


class TestBuildFilter:
    def test_filter_shape(self):
        flt = build_filter("0xABCDEF" + "0" * 34, ERC20_TRANSFER, 10, 12)
        assert flt.from_block == 10 and flt.to_block == 12
        assert flt.address == ("0xabcdef" + "0" * 34,)
        assert flt.topics == (TRANSFER_T0, None, None, None)

    def test_rpc_params_use_hex_blocks_and_drop_trailing_wildcards(self):
        params = build_filter(AXIE_CONTRACT, ERC20_TRANSFER, 255, 256).to_rpc_params()
        assert params == {
            "fromBlock": "0xff",
            "toBlock": "0x100",
            "address": [AXIE_CONTRACT],
            "topics": [TRANSFER_T0],
        }


class TestNextWindow:
    def test_default_is_one_block(self):
        assert DEFAULT_WINDOW_SIZE == 1
        assert next_window(ChainCursor(5, 100), DEFAULT_WINDOW_SIZE) == BlockRange(5, 5)

    def test_window_is_clamped_to_ceiling(self):
        w = next_window(ChainCursor(95, 100), 10)
        assert w == BlockRange(95, 100)
        assert w.span() == 6

    def test_window_size_must_be_positive(self):
        with pytest.raises(ValueError):
            next_window(ChainCursor(1, 2), 0)
