"""
Persistence for the research desk: key-value backends, the report cache,
search history and the tracked-project list.
"""

from .cache import CacheManager  # noqa: F401
from .history import SearchHistory  # noqa: F401
from .kv_store import KeyValueStore, LocalKeyValueStore, RemoteKeyValueStore, StoreError  # noqa: F401
from .projects import ProjectRepository  # noqa: F401

__all__ = [
    "CacheManager",
    "KeyValueStore",
    "LocalKeyValueStore",
    "ProjectRepository",
    "RemoteKeyValueStore",
    "SearchHistory",
    "StoreError",
]
