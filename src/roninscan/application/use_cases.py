from __future__ import annotations
import logging

from pymongo import MongoClient

from ..adapters.jsonrpc import JsonRpcSource
from ..adapters.manifest_jsonl import JSONLManifest
from ..adapters.memory_store import InMemoryRecordStore
from ..adapters.mongo_store import MongoRecordStore
from ..adapters.rpc_httpx import HttpxRPC
from ..adapters.rpc_websocket import WebSocketRPC
from ..config import ScanConfig
from ..domain.contracts import ContractRegistry
from ..domain.errors import ScanAborted
from ..domain.models import ScanReport
from ..ports.storage import RecordStore
from .plans import build_plan
from .scan import ScanLoop

logger = logging.getLogger(__name__)


def make_source(config: ScanConfig) -> JsonRpcSource:
    if config.web3_provider_type == "http":
        return HttpxRPC(config.web3_hostname, timeout_s=config.timeout_s)
    return WebSocketRPC(config.web3_hostname, timeout_s=config.timeout_s)


async def run_scan(config: ScanConfig, *, registry: ContractRegistry | None = None) -> ScanReport:
    """
    Wire concrete adapters for `config` and run one import.

    Startup problems surface as ConnectivityError / ConfigurationError before
    any window is processed; a failure after that is re-raised as ScanAborted
    carrying the first block that was not persisted.
    """
    plan = build_plan(config.kind, registry)
    source = make_source(config)
    client: MongoClient | None = None
    try:
        store: RecordStore
        if config.dry_run:
            store = InMemoryRecordStore()
        else:
            client = MongoClient(config.mongodb_uri, serverSelectionTimeoutMS=config.timeout_s * 1000)
            mongo = MongoRecordStore(client[config.mongodb_name], {config.kind: config.collection})
            await mongo.ping()
            await mongo.ensure_indexes(config.kind)
            store = mongo

        head = await source.current_height()
        logger.info("Connected to %s (head block %d)", config.web3_hostname, head)

        manifest = JSONLManifest(config.manifest_path) if config.manifest_path else None
        loop = ScanLoop(plan, source, store, window_size=config.window_size, manifest=manifest)
        try:
            return await loop.run(config.start_block, config.end_block)
        except Exception as e:
            block = loop.cursor.current if loop.cursor is not None else None
            raise ScanAborted(f"{config.kind} import stopped at block {block}: {e}", block) from e
    finally:
        await source.aclose()
        if client is not None:
            client.close()
