from __future__ import annotations
from typing import NewType, Literal

Address   = NewType("Address", str)    # 0x-prefixed, lowercase
TopicHash = NewType("TopicHash", str)  # 66-char 0x-hash, lowercase
TxHash    = NewType("TxHash", str)     # 66-char 0x-hash, lowercase
ErcKind   = Literal["erc20", "erc721", "unknown"]
RecordKind = Literal["erc-transfers", "axie-transfers", "axie-sales", "transactions", "block-stats"]
WindowStatus = Literal["done", "degraded", "failed"]

RECORD_KINDS: tuple[RecordKind, ...] = ("erc-transfers", "axie-transfers", "axie-sales", "transactions", "block-stats")
