from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from .value_types import Address, TopicHash, TxHash, WindowStatus

@dataclass(slots=True, frozen=True)
class BlockRange:
    start: int
    end: int
    def span(self) -> int: return self.end - self.start + 1

@dataclass(slots=True, frozen=True)
class ChainCursor:
    current: int
    ceiling: int

    @property
    def exhausted(self) -> bool:
        return self.current > self.ceiling

    def advanced_past(self, window_end: int) -> "ChainCursor":
        # current never moves backwards
        return ChainCursor(current=max(self.current, window_end + 1), ceiling=self.ceiling)

@dataclass(slots=True, frozen=True)
class RawLog:
    address: Address
    topics: tuple[str, ...]            # lowercased with 0x
    data_hex: str                      # hex with 0x (or "0x")
    block_number: int
    block_hash: str | None
    tx_hash: TxHash
    log_index: int

    @property
    def topic0(self) -> str | None:
        return self.topics[0] if self.topics else None

@dataclass(slots=True, frozen=True)
class BlockMeta:
    number: int
    timestamp_ms: int

@dataclass(slots=True, frozen=True)
class TxMeta:
    tx_hash: TxHash
    log_index: int
    receipt_logs: tuple[RawLog, ...] = ()

@dataclass(slots=True, frozen=True)
class TxSummary:
    hash: TxHash
    from_address: Address | None = None
    to_address: Address | None = None      # None for contract creation

@dataclass(slots=True, frozen=True)
class BlockData:
    number: int
    hash: str
    timestamp_ms: int
    transactions: tuple[TxSummary, ...]

    @property
    def meta(self) -> BlockMeta:
        return BlockMeta(number=self.number, timestamp_ms=self.timestamp_ms)

@dataclass(slots=True, frozen=True)
class FilterDescriptor:
    from_block: int
    to_block: int
    address: tuple[Address, ...]
    topics: tuple[TopicHash | None, ...]

    def to_rpc_params(self) -> dict[str, Any]:
        topics = list(self.topics)
        # nodes drop logs with fewer topics than filter positions, wildcards included
        while topics and topics[-1] is None:
            topics.pop()
        return {
            "fromBlock": hex(self.from_block),
            "toBlock": hex(self.to_block),
            "address": list(self.address),
            "topics": topics,
        }

@dataclass(slots=True, frozen=True)
class KeyedRecord:
    key: str
    record: Any                        # one of domain.records.*

@dataclass(slots=True, frozen=True)
class DecodeFailure:
    block_number: int
    tx_hash: str
    log_index: int
    error: str

@dataclass(slots=True, frozen=True)
class WriteReport:
    inserted_count: int = 0
    conflict_count: int = 0
    other_error_count: int = 0
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.other_error_count == 0

    def __add__(self, other: "WriteReport") -> "WriteReport":
        return WriteReport(
            inserted_count=self.inserted_count + other.inserted_count,
            conflict_count=self.conflict_count + other.conflict_count,
            other_error_count=self.other_error_count + other.other_error_count,
            errors=self.errors + other.errors,
        )

@dataclass(slots=True, frozen=True)
class WindowRecord:
    from_block: int
    to_block: int
    status: WindowStatus
    logs: int = 0
    records: int = 0
    inserted: int = 0
    conflicts: int = 0
    errors: int = 0
    decode_failures: int = 0
    error: str | None = None
    updated_at: float = 0.0

@dataclass(slots=True)
class ScanReport:
    kind: str
    start_block: int
    end_block: int
    windows: int = 0
    logs_seen: int = 0
    records_mapped: int = 0
    admitted: int = 0
    skipped_pending: int = 0
    skipped_persisted: int = 0
    write: WriteReport = field(default_factory=WriteReport)
    decode_failures: list[DecodeFailure] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return not self.write.ok

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "start_block": self.start_block,
            "end_block": self.end_block,
            "windows": self.windows,
            "logs_seen": self.logs_seen,
            "records_mapped": self.records_mapped,
            "admitted": self.admitted,
            "skipped_pending": self.skipped_pending,
            "skipped_persisted": self.skipped_persisted,
            "inserted": self.write.inserted_count,
            "conflicts": self.write.conflict_count,
            "write_errors": self.write.other_error_count,
            "decode_failures": len(self.decode_failures),
        }
