"""
Key-value backends for persisted state.

Two interchangeable implementations of the same tiny get/set contract:

  - `LocalKeyValueStore` keeps every key in one JSON document on disk (or in
    process memory when no path is given).
  - `RemoteKeyValueStore` talks to a Redis-over-REST service addressed by a
    base URL and a bearer token.

Values are opaque UTF-8 strings; callers serialize JSON themselves.  Which
backend is used is decided once by the composition root.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when a backend cannot read or write a key."""

    def __init__(self, message: str, *, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class LocalKeyValueStore:
    """Single-file JSON store; `path=None` keeps everything in memory."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._data: Optional[Dict[str, str]] = None

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StoreError(f"Value for '{key}' must be a string.", key=key)
        with self._lock:
            data = self._load()
            data[key] = value
            self._flush(data)

    def _load(self) -> Dict[str, str]:
        if self._data is not None:
            return self._data
        if self._path is None or not self._path.exists():
            self._data = {}
            return self._data
        try:
            raw = self._path.read_text(encoding="utf-8")
            loaded = json.loads(raw) if raw.strip() else {}
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Unable to read local store {self._path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise StoreError(f"Local store {self._path} does not contain a JSON object.")
        self._data = {str(k): v for k, v in loaded.items() if isinstance(v, str)}
        return self._data

    def _flush(self, data: Dict[str, str]) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            raise StoreError(f"Unable to write local store {self._path}: {exc}") from exc
        logger.debug("Persisted %d keys to %s", len(data), self._path)


class RemoteKeyValueStore:
    """
    Minimal client for a Redis-over-REST key-value service.

    `GET {base}/get/{key}` answers `{"result": <string or null>}` and
    `POST {base}/set/{key}` stores the request body.  Errors come back as
    `{"error": "..."}`.
    """

    def __init__(self, *, base_url: str, token: str, request_timeout: int = 15) -> None:
        if not base_url:
            raise ValueError("Remote store base URL must be provided.")
        if not token:
            raise ValueError("Remote store token must be provided.")
        self._base_url = base_url.rstrip("/")
        self._timeout = request_timeout
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "User-Agent": "AirdropResearchDesk/0.1",
            }
        )
        logger.info("Initialising RemoteKeyValueStore for %s", self._base_url)

    def get(self, key: str) -> Optional[str]:
        result = self._call("GET", f"get/{quote(key, safe='')}", key=key)
        if result is None or isinstance(result, str):
            return result
        # Some deployments return stored JSON already decoded.
        return json.dumps(result)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StoreError(f"Value for '{key}' must be a string.", key=key)
        self._call("POST", f"set/{quote(key, safe='')}", key=key, body=value)

    def _call(self, method: str, path: str, *, key: str, body: Optional[str] = None) -> object:
        url = f"{self._base_url}/{path}"
        logger.debug("Remote store %s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                data=body.encode("utf-8") if body is not None else None,
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise StoreError(f"Remote store request failed: {exc}", key=key) from exc

        if response.status_code >= 400:
            logger.error("Remote store HTTP %s: %s", response.status_code, response.text[:200])
            raise StoreError(f"Remote store returned HTTP {response.status_code}", key=key)
        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreError("Remote store returned a non-JSON response.", key=key) from exc

        if isinstance(payload, dict) and payload.get("error"):
            raise StoreError(f"Remote store error: {payload['error']}", key=key)
        return payload.get("result") if isinstance(payload, dict) else payload
