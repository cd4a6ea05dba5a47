from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from eth_utils import is_address, to_normalized_address

from .value_types import Address, ErcKind

AXIE_CONTRACT        = Address("0x32950db2a7164ae833121501c797d79e7b79d74c")
MARKETPLACE_CONTRACT = Address("0x213073989821f738a7ba3520c3d31a1f9ad31bbd")


@dataclass(slots=True, frozen=True)
class ContractInfo:
    display_name: str
    decimals: int
    erc_kind: ErcKind


class ContractRegistry(Mapping[Address, ContractInfo]):
    """Read-only address -> ContractInfo table; lookups ignore address case."""

    def __init__(self, entries: Mapping[str, ContractInfo]) -> None:
        table: dict[Address, ContractInfo] = {}
        for addr, info in entries.items():
            if not is_address(addr):
                raise ValueError(f"Invalid contract address in registry: {addr!r}")
            table[Address(to_normalized_address(addr))] = info
        self._table = MappingProxyType(table)

    def __getitem__(self, address: str) -> ContractInfo:
        return self._table[Address(address.lower())]

    def __iter__(self) -> Iterator[Address]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def of_kind(self, *kinds: ErcKind) -> list[Address]:
        return sorted(a for a, info in self._table.items() if info.erc_kind in kinds)


def default_registry() -> ContractRegistry:
    """Ronin token contracts indexed by the transfer importer."""
    return ContractRegistry({
        "0xc99a6a985ed2cac1ef41640596c5a5f9f4e19ef5": ContractInfo("WETH", 18, "erc20"),
        "0xed4a9f48a62fb6fdcfb45bb00c9f61d1a436e58c": ContractInfo("AXS", 18, "erc20"),
        "0xa8754b9fa15fc18bb59458815510e40a12cd2014": ContractInfo("SLP", 0, "erc20"),
        "0x173a2d4fa585a63acd02c107d57f932be0a71bcc": ContractInfo("AEC", 0, "erc20"),
        "0x0b7007c13325c48911f73a2dad5fa5dcbf808adc": ContractInfo("USDC", 18, "erc20"),
        "0xe514d9deb7966c8be0ca922de8a064264ea6bcd4": ContractInfo("WRON", 18, "erc20"),
        AXIE_CONTRACT:                                ContractInfo("AXIE", 0, "erc721"),
        "0x8c811e3c958e190f5ec15fb376533a3398620500": ContractInfo("LAND", 0, "erc721"),
        "0xa96660f0e4a3e9bc7388925d245a6d4d79e21259": ContractInfo("ITEM", 0, "erc721"),
    })
