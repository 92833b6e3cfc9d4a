"""
Tracked-project list persisted under a single key.

Every mutation is a read-modify-write of the whole list with no locking, so
two concurrent writers can lose an update.  That is acceptable for the
single-user tracker; store failures propagate to the caller.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from domain.models import StoredProject

from .kv_store import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

_PROJECTS_ADAPTER = TypeAdapter(List[StoredProject])


class ProjectRepository:
    def __init__(self, store: KeyValueStore, *, key: str = "tracked_projects") -> None:
        self._store = store
        self._key = key

    def list_projects(self) -> List[StoredProject]:
        raw = self._store.get(self._key)
        if not raw:
            return []
        try:
            return _PROJECTS_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            raise StoreError(f"Project list under '{self._key}' is corrupt: {exc}", key=self._key) from exc

    def get_project(self, project_id: str) -> Optional[StoredProject]:
        return next((p for p in self.list_projects() if p.id == project_id), None)

    def save_project(self, project: StoredProject) -> StoredProject:
        projects = self.list_projects()
        for index, existing in enumerate(projects):
            if existing.id == project.id:
                projects[index] = project
                break
        else:
            projects.append(project)
        self._write(projects)
        logger.info("Saved project %s (%s)", project.id, project.name)
        return project

    def delete_project(self, project_id: str) -> bool:
        projects = self.list_projects()
        remaining = [p for p in projects if p.id != project_id]
        if len(remaining) == len(projects):
            return False
        self._write(remaining)
        logger.info("Deleted project %s", project_id)
        return True

    def _write(self, projects: List[StoredProject]) -> None:
        self._store.set(self._key, json.dumps([p.to_wire() for p in projects], ensure_ascii=False))
