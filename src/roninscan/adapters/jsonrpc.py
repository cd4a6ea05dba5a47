from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..domain.errors import RpcError
from ..domain.models import BlockData, BlockMeta, FilterDescriptor, RawLog, TxSummary
from ..domain.value_types import Address, TxHash


def _hex_int(v: Any) -> int:
    """Handles 0x..., decimal strings, and native ints."""
    if isinstance(v, int):
        return v
    s = str(v).lower()
    return int(s, 16) if s.startswith("0x") else int(s)

def _lower_or_none(v: Any) -> str | None:
    return v.lower() if isinstance(v, str) else None

def parse_log(rl: dict[str, Any]) -> RawLog:
    topics = tuple((t if isinstance(t, str) else t.decode()).lower() for t in rl.get("topics", []))
    return RawLog(
        address=Address(rl["address"].lower()),
        topics=topics,
        data_hex=str(rl.get("data") or "0x"),
        block_number=_hex_int(rl["blockNumber"]),
        block_hash=_lower_or_none(rl.get("blockHash")),
        tx_hash=TxHash((rl.get("transactionHash") or "").lower()),
        log_index=_hex_int(rl["logIndex"]),
    )

def parse_block(blk: dict[str, Any]) -> BlockData:
    txs: list[TxSummary] = []
    for tx in blk.get("transactions", []):
        if isinstance(tx, str):
            txs.append(TxSummary(hash=TxHash(tx.lower())))
        else:
            txs.append(TxSummary(
                hash=TxHash(tx["hash"].lower()),
                from_address=Address(tx["from"].lower()) if tx.get("from") else None,
                to_address=Address(tx["to"].lower()) if tx.get("to") else None,
            ))
    return BlockData(
        number=_hex_int(blk["number"]),
        hash=blk["hash"].lower(),
        timestamp_ms=_hex_int(blk["timestamp"]) * 1000,
        transactions=tuple(txs),
    )


class JsonRpcSource(ABC):
    """
    ChainSource on top of a JSON-RPC transport. Subclasses only implement
    `_send(payload) -> decoded response` and `aclose()`.
    """

    def __init__(self) -> None:
        self._next_id = 0

    @abstractmethod
    async def _send(self, payload: dict[str, Any]) -> dict[str, Any]: ...

    @abstractmethod
    async def aclose(self) -> None: ...

    async def call(self, method: str, params: list[Any]) -> Any:
        self._next_id += 1
        data = await self._send({"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params})
        if "error" in data:
            err = data["error"]
            if isinstance(err, dict):
                raise RpcError(method, err.get("code"), err.get("message"))
            raise RpcError(method, None, str(err))
        return data.get("result")

    async def current_height(self) -> int:
        return _hex_int(await self.call("eth_blockNumber", []))

    async def query_logs(self, flt: FilterDescriptor) -> list[RawLog]:
        res = await self.call("eth_getLogs", [flt.to_rpc_params()])
        return [parse_log(rl) for rl in res or []]

    async def get_block_by_hash(self, block_hash: str) -> BlockMeta:
        blk = await self.call("eth_getBlockByHash", [block_hash, False])
        if blk is None:
            raise RpcError("eth_getBlockByHash", None, f"unknown block {block_hash}")
        return parse_block(blk).meta

    async def get_block_by_number(self, number: int, *, full_transactions: bool = False) -> BlockData:
        blk = await self.call("eth_getBlockByNumber", [hex(number), full_transactions])
        if blk is None:
            raise RpcError("eth_getBlockByNumber", None, f"block {number} not available")
        return parse_block(blk)

    async def get_transaction_receipt(self, tx_hash: str) -> tuple[RawLog, ...]:
        rcpt = await self.call("eth_getTransactionReceipt", [tx_hash])
        if rcpt is None:
            raise RpcError("eth_getTransactionReceipt", None, f"no receipt for {tx_hash}")
        logs = [parse_log(rl) for rl in rcpt.get("logs", [])]
        return tuple(sorted(logs, key=lambda lg: lg.log_index))
