"""
Time-boxed report cache on top of a key-value store.

Entries are `{"data": <report>, "storedAt": <epoch ms>}` blobs stored under
`"<namespace>:<lower-cased name>"`.  Expired entries are simply ignored and get
overwritten by the next successful write.  Caching never decides correctness:
every store failure degrades to a miss (reads) or to an unpersisted result
(writes).
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import timedelta
from typing import Callable, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from domain.models import CacheEntry

from .kv_store import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)

ModelT = TypeVar("ModelT", bound=BaseModel)


def normalize_name(name: str) -> str:
    return (name or "").strip().lower()


class CacheManager(Generic[ModelT]):
    def __init__(
        self,
        store: KeyValueStore,
        *,
        namespace: str,
        model: Type[ModelT],
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._namespace = namespace
        self._model = model
        self._ttl_ms = int(ttl.total_seconds() * 1000)
        self._clock = clock

    @property
    def namespace(self) -> str:
        return self._namespace

    def key_for(self, name: str) -> str:
        return f"{self._namespace}:{normalize_name(name)}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def get(self, name: str) -> Optional[ModelT]:
        key = self.key_for(name)
        try:
            raw = await asyncio.to_thread(self._store.get, key)
        except StoreError as exc:
            logger.warning("Cache read failed for %s, treating as miss: %s", key, exc)
            return None
        if raw is None:
            logger.debug("Cache miss for %s", key)
            return None

        try:
            entry = CacheEntry.model_validate(json.loads(raw))
            payload = self._model.model_validate(entry.data)
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Discarding unreadable cache entry %s: %s", key, exc)
            return None

        age_ms = self._now_ms() - entry.stored_at
        if age_ms >= self._ttl_ms:
            logger.info("Cache entry %s expired (%.1fh old)", key, age_ms / 3_600_000)
            return None
        logger.info("Cache hit for %s", key)
        return payload

    async def put(self, name: str, data: ModelT) -> None:
        key = self.key_for(name)
        entry = CacheEntry(data=data.model_dump(mode="json", by_alias=True), stored_at=self._now_ms())
        try:
            await asyncio.to_thread(self._store.set, key, json.dumps(entry.to_wire(), ensure_ascii=False))
        except StoreError as exc:
            logger.warning("Cache write failed for %s, result not persisted: %s", key, exc)
            return
        logger.debug("Cached %s", key)
