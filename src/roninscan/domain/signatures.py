from __future__ import annotations

import re
from dataclasses import dataclass

from eth_utils import keccak

from .value_types import TopicHash

_UINT_RE  = re.compile(r"^u?int(\d{0,3})$")
_BYTES_RE = re.compile(r"^bytes(\d{1,2})$")
DYNAMIC_TYPES = frozenset({"bytes", "string"})


def _validate_type(abi_type: str) -> str:
    if abi_type in ("address", "bool") or abi_type in DYNAMIC_TYPES:
        return abi_type
    m = _UINT_RE.match(abi_type)
    if m:
        bits = int(m.group(1) or 256)
        if bits % 8 == 0 and 8 <= bits <= 256:
            # canonical form always spells out the width
            return ("uint" if abi_type.startswith("u") else "int") + str(bits)
    m = _BYTES_RE.match(abi_type)
    if m and 1 <= int(m.group(1)) <= 32:
        return abi_type
    raise ValueError(f"Unsupported event parameter type: {abi_type!r}")


@dataclass(slots=True, frozen=True)
class EventParam:
    name: str
    type: str
    indexed: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", _validate_type(self.type))

    @property
    def dynamic(self) -> bool:
        return self.type in DYNAMIC_TYPES


def event_topic(name: str, params: tuple[EventParam, ...] | list[EventParam]) -> TopicHash:
    """keccak256 of the canonical `Name(type1,type2,...)` text, 0x-prefixed."""
    text = f"{name}({','.join(p.type for p in params)})"
    return TopicHash("0x" + keccak(text=text).hex())


@dataclass(slots=True, frozen=True)
class EventSignature:
    name: str
    topic_hash: TopicHash
    params: tuple[EventParam, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "topic_hash", TopicHash(self.topic_hash.lower()))

    @classmethod
    def from_params(cls, name: str, params: list[EventParam]) -> "EventSignature":
        return cls(name=name, topic_hash=event_topic(name, params), params=tuple(params))

    @property
    def indexed_params(self) -> tuple[EventParam, ...]:
        return tuple(p for p in self.params if p.indexed)

    @property
    def data_params(self) -> tuple[EventParam, ...]:
        return tuple(p for p in self.params if not p.indexed)

    @property
    def expected_topics(self) -> int:
        return 1 + len(self.indexed_params)

    def __str__(self) -> str:
        return f"{self.name}({','.join(p.type for p in self.params)})"


# Static signature table. ERC-20 and ERC-721 Transfer share topic0 and differ
# only in whether the third argument is indexed (3 vs 4 topics).

TRANSFER_T0           = TopicHash("0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef")
AUCTION_SUCCESSFUL_T0 = TopicHash("0x0c0258cd7f0d9474f62106c6981c027ea54bee0b323ea1991f4caa7e288a5725")

ERC20_TRANSFER = EventSignature(
    name="Transfer",
    topic_hash=TRANSFER_T0,
    params=(
        EventParam("_from", "address", indexed=True),
        EventParam("_to", "address", indexed=True),
        EventParam("_value", "uint256"),
    ),
)

ERC721_TRANSFER = EventSignature(
    name="Transfer",
    topic_hash=TRANSFER_T0,
    params=(
        EventParam("_from", "address", indexed=True),
        EventParam("_to", "address", indexed=True),
        EventParam("_tokenId", "uint256", indexed=True),
    ),
)

# Axie marketplace settlement; every argument lives in the data payload.
AUCTION_SUCCESSFUL = EventSignature(
    name="AuctionSuccessful",
    topic_hash=AUCTION_SUCCESSFUL_T0,
    params=(
        EventParam("_seller", "address"),
        EventParam("_buyer", "address"),
        EventParam("_listingIndex", "uint256"),
        EventParam("_token", "address"),
        EventParam("_totalPrice", "uint256"),
    ),
)
