"""Tests for idempotency keys."""
from roninscan.domain.keys import (
    axie_transfer_key, block_stats_key, content_key, log_position_key, sale_key, transaction_key,
)
from roninscan.domain.records import BlockStatsRecord, SaleRecord, TransactionRecord, TransferRecord
from factories import ALICE, BOB, CAROL


def transfer(**overrides):
    fields = dict(
        from_address=ALICE, to_address=BOB, token=CAROL, value_or_token_id="7", erc="erc721",
        block=10, transaction_id="0xabc", log_index=2, created_at_ms=1,
    )
    fields.update(overrides)
    return TransferRecord(**fields)


class TestKeys:
    def test_key_is_deterministic_sha256_hex(self):
        k = content_key("0xABC", 1)
        assert k == content_key("0xabc", 1)
        assert len(k) == 64
        int(k, 16)

    def test_field_order_matters(self):
        assert content_key("a", "b") != content_key("b", "a")

    def test_log_position_key_ignores_content(self):
        a = transfer(value_or_token_id="1", created_at_ms=1)
        b = transfer(value_or_token_id="2", created_at_ms=2)
        assert log_position_key(a) == log_position_key(b)
        assert log_position_key(a) != log_position_key(transfer(log_index=3))

    def test_axie_transfer_key_is_per_block_movement(self):
        a = transfer()
        assert axie_transfer_key(a) == axie_transfer_key(transfer(transaction_id="0xother", log_index=9))
        assert axie_transfer_key(a) != axie_transfer_key(transfer(block=11))
        assert axie_transfer_key(a) != axie_transfer_key(transfer(from_address=BOB, to_address=ALICE))

    def test_sale_and_transaction_keys_follow_hash(self):
        sale = SaleRecord(ALICE, BOB, CAROL, "1", 7, 10, "0xABC", 1)
        tx = TransactionRecord(ALICE, BOB, "0xabc", 10, 1)
        assert sale_key(sale) == sale_key(SaleRecord(BOB, ALICE, CAROL, "2", 8, 10, "0xabc", 2))
        assert transaction_key(tx) == content_key("0xabc")

    def test_block_stats_key(self):
        assert block_stats_key(BlockStatsRecord(5, 1)) == block_stats_key(BlockStatsRecord(5, 9))
        assert block_stats_key(BlockStatsRecord(5, 1)) != block_stats_key(BlockStatsRecord(6, 1))
