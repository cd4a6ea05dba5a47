"""
Run configuration for the importers.

Plain values consumed by the wiring layer; the CLI fills them from options
and environment variables.
"""
from __future__ import annotations

from dataclasses import dataclass

from .application.planning import DEFAULT_WINDOW_SIZE
from .domain.errors import ConfigurationError
from .domain.value_types import RECORD_KINDS

DEFAULT_COLLECTIONS: dict[str, str] = {
    "erc-transfers": "tokentransfers",
    "axie-transfers": "axietransfers",
    "axie-sales": "axiesales",
    "transactions": "transactions",
    "block-stats": "blocks",
}

PROVIDER_TYPES = ("ws", "http")


@dataclass(frozen=True)
class ScanConfig:
    """Configuration for one importer run."""

    kind: str
    mongodb_uri: str = "mongodb://127.0.0.1:27017"
    mongodb_name: str = "ronin"
    mongodb_collection: str | None = None     # None = default for the kind
    web3_hostname: str = "ws://localhost:8546"
    web3_provider_type: str = "ws"
    start_block: int = 0                      # 0 = resume after the persisted max block
    end_block: int = 0                        # 0 = chain head at start
    window_size: int = DEFAULT_WINDOW_SIZE
    timeout_s: int = 20
    manifest_path: str | None = None
    dry_run: bool = False

    def __post_init__(self) -> None:
        if self.kind not in RECORD_KINDS:
            raise ConfigurationError(f"kind must be one of {', '.join(RECORD_KINDS)}; got {self.kind!r}")
        if self.web3_provider_type not in PROVIDER_TYPES:
            raise ConfigurationError(f"web3_provider_type must be 'ws' or 'http'; got {self.web3_provider_type!r}")
        if self.start_block < 0 or self.end_block < 0:
            raise ConfigurationError("start_block and end_block must be >= 0")
        if self.window_size < 1:
            raise ConfigurationError(f"window_size must be >= 1; got {self.window_size}")
        if self.timeout_s < 1:
            raise ConfigurationError(f"timeout_s must be >= 1; got {self.timeout_s}")

    @property
    def collection(self) -> str:
        return self.mongodb_collection or DEFAULT_COLLECTIONS[self.kind]

    def describe(self) -> dict[str, object]:
        """Settings safe to log (the Mongo URI may embed credentials)."""
        return {
            "kind": self.kind,
            "mongodb": f"{self.mongodb_name}.{self.collection}" if not self.dry_run else "(dry run, in memory)",
            "web3": f"{self.web3_provider_type} {self.web3_hostname}",
            "start_block": self.start_block or "resume",
            "end_block": self.end_block or "head",
            "window_size": self.window_size,
        }
