"""Recent searches, newest first, one entry per query (case-insensitive)."""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, List, Optional

from pydantic import TypeAdapter, ValidationError

from domain.models import SearchHistoryItem

from .kv_store import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20

_HISTORY_ADAPTER = TypeAdapter(List[SearchHistoryItem])


class SearchHistory:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: str = "search_history",
        limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._key = key
        self._limit = max(1, limit)
        self._clock = clock

    def entries(self) -> List[SearchHistoryItem]:
        raw = self._store.get(self._key)
        if not raw:
            return []
        try:
            return _HISTORY_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            raise StoreError(f"Search history under '{self._key}' is corrupt: {exc}", key=self._key) from exc

    def record(self, query: str, score: Optional[int] = None) -> List[SearchHistoryItem]:
        cleaned = (query or "").strip()
        if not cleaned:
            raise ValueError("Query must be a non-empty string.")
        item = SearchHistoryItem(query=cleaned, score=score, timestamp=int(self._clock() * 1000))
        previous = [entry for entry in self.entries() if entry.query.lower() != cleaned.lower()]
        updated = [item, *previous][: self._limit]
        self._store.set(self._key, json.dumps([entry.to_wire() for entry in updated], ensure_ascii=False))
        logger.debug("Recorded search '%s' (%d entries kept)", cleaned, len(updated))
        return updated
