from __future__ import annotations
import asyncio, logging
from collections.abc import Iterable, Mapping, Sequence

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import BulkWriteError, ConnectionFailure, PyMongoError

from ..domain.errors import ConnectivityError
from ..domain.models import KeyedRecord, WriteReport
from ..ports.storage import RecordStore

logger = logging.getLogger(__name__)

DUPLICATE_KEY = 11000

# secondary indexes used by downstream queries; the idempotency key is `_id`
SECONDARY_INDEXES: dict[str, tuple[str, ...]] = {
    "erc-transfers":  ("from", "to", "token", "value_or_token_id", "block", "erc", "transaction_id"),
    "axie-transfers": ("from", "to", "value_or_token_id", "block"),
    "axie-sales":     ("buyer", "seller", "axie", "block", "created_at"),
    "transactions":   ("from", "to", "block"),
    "block-stats":    ("block",),
}


def classify_bulk_error(details: Mapping) -> WriteReport:
    """Split a BulkWriteError result into inserted / conflict / other counts."""
    conflicts = other = 0
    errors: list[str] = []
    for err in details.get("writeErrors", []):
        if err.get("code") == DUPLICATE_KEY:
            conflicts += 1
        else:
            other += 1
            errors.append(f"index={err.get('index')} code={err.get('code')} {err.get('errmsg')}")
    for wce in details.get("writeConcernErrors", []):
        other += 1
        errors.append(f"write concern: {wce.get('errmsg')}")
    return WriteReport(
        inserted_count=int(details.get("nInserted", 0)),
        conflict_count=conflicts,
        other_error_count=other,
        errors=tuple(errors),
    )


class MongoRecordStore(RecordStore):
    """
    RecordStore backed by pymongo. Each kind maps to one collection; records
    are stored with their idempotency key as `_id`, so the primary-key index
    is the uniqueness constraint. Blocking driver calls run in a worker thread.
    """
    def __init__(self, database: Database, collections: Mapping[str, str] | None = None) -> None:
        self.database = database
        self.collections = dict(collections or {})

    def _collection(self, kind: str) -> Collection:
        return self.database[self.collections.get(kind, kind)]

    async def _run(self, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except ConnectionFailure as e:
            raise ConnectivityError(f"lost connection to MongoDB: {e}") from e

    async def ping(self) -> None:
        try:
            await asyncio.to_thread(self.database.client.admin.command, "ping")
        except PyMongoError as e:
            raise ConnectivityError(f"cannot reach MongoDB: {e}") from e

    async def ensure_indexes(self, kind: str) -> None:
        col = self._collection(kind)
        for field in SECONDARY_INDEXES.get(kind, ("block",)):
            await self._run(col.create_index, [(field, ASCENDING)])

    async def find_max_block(self, kind: str) -> int | None:
        doc = await self._run(
            self._collection(kind).find_one, {}, {"block": 1}, sort=[("block", DESCENDING)]
        )
        return None if doc is None else int(doc["block"])

    async def existing_keys(self, kind: str, keys: Iterable[str]) -> set[str]:
        wanted = list(dict.fromkeys(keys))
        if not wanted:
            return set()
        col = self._collection(kind)
        def _query() -> set[str]:
            return {d["_id"] for d in col.find({"_id": {"$in": wanted}}, {"_id": 1})}
        return await self._run(_query)

    async def insert_many_unordered(self, kind: str, records: Sequence[KeyedRecord]) -> WriteReport:
        if not records:
            return WriteReport()
        docs = [{"_id": kr.key, **kr.record.to_document()} for kr in records]
        col = self._collection(kind)
        try:
            res = await self._run(col.insert_many, docs, ordered=False)
        except BulkWriteError as e:
            report = classify_bulk_error(e.details)
            if report.conflict_count:
                logger.debug("%s: %d duplicate keys rejected by the store", kind, report.conflict_count)
            return report
        except PyMongoError as e:
            # the whole call was refused (auth, validation); nothing from this batch was written
            return WriteReport(other_error_count=len(records), errors=(str(e),))
        return WriteReport(inserted_count=len(res.inserted_ids))
