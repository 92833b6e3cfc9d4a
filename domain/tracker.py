from __future__ import annotations

import time
from datetime import date
from typing import Dict, Optional, Set
from uuid import uuid4

from .models import (
    CryptoRankReport,
    FarmingTask,
    ProjectAnalysis,
    ProjectStatus,
    StoredProject,
    TaskStatus,
    Tier,
)

DEFAULT_TASK_TITLES = ("Follow on Twitter", "Join Discord")

ALLOWED_TRANSITIONS: Dict[str, Set[str]] = {
    "researching": {"farming", "ignored"},
    "farming": {"claimed", "ignored"},
    "claimed": set(),
    "ignored": set(),
}


class InvalidTransitionError(ValueError):
    """Raised when a tracked project is moved to a status it cannot reach."""

    def __init__(self, *, current: str, requested: str) -> None:
        super().__init__(f"Cannot move project from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


def derive_tier(score: float) -> Tier:
    if score >= 8:
        return "S"
    if score >= 6:
        return "A"
    return "B"


def new_task(title: str, priority: str = "medium") -> FarmingTask:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValueError("Task title must be a non-empty string.")
    return FarmingTask(id=uuid4().hex, title=cleaned, status="todo", priority=priority)


def new_project(
    name: str,
    *,
    tier: Tier = "B",
    status: ProjectStatus = "researching",
    notes: Optional[str] = None,
    now: Optional[float] = None,
) -> StoredProject:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Project name must be a non-empty string.")
    added_at = int((now if now is not None else time.time()) * 1000)
    return StoredProject(
        id=uuid4().hex,
        name=cleaned,
        added_at=added_at,
        status=status,
        tier=tier,
        tasks=[new_task(title) for title in DEFAULT_TASK_TITLES],
        notes=notes,
    )


def add_task(project: StoredProject, title: str, priority: str = "medium") -> StoredProject:
    return project.model_copy(update={"tasks": [*project.tasks, new_task(title, priority)]})


def set_task_status(project: StoredProject, task_id: str, status: TaskStatus) -> StoredProject:
    if not any(task.id == task_id for task in project.tasks):
        raise KeyError(task_id)
    tasks = [
        task.model_copy(update={"status": status}) if task.id == task_id else task
        for task in project.tasks
    ]
    return project.model_copy(update={"tasks": tasks})


def toggle_task(project: StoredProject, task_id: str) -> StoredProject:
    """Done tasks go back to todo; anything else becomes done."""
    task = next((t for t in project.tasks if t.id == task_id), None)
    if task is None:
        raise KeyError(task_id)
    return set_task_status(project, task_id, "todo" if task.status == "done" else "done")


def task_progress(project: StoredProject) -> int:
    if not project.tasks:
        return 0
    done = sum(1 for task in project.tasks if task.status == "done")
    return round(done / len(project.tasks) * 100)


def transition_status(project: StoredProject, status: ProjectStatus) -> StoredProject:
    if status == project.status:
        return project
    if status not in ALLOWED_TRANSITIONS.get(project.status, set()):
        raise InvalidTransitionError(current=project.status, requested=status)
    return project.model_copy(update={"status": status})


def start_farming(project: StoredProject, today: Optional[date] = None) -> StoredProject:
    farming = transition_status(project, "farming")
    start = project.start_date or (today or date.today()).isoformat()
    return farming.model_copy(update={"start_date": start})


def set_dates(
    project: StoredProject,
    *,
    start_date: Optional[str] = None,
    target_date: Optional[str] = None,
) -> StoredProject:
    update = {}
    for field_name, value in (("start_date", start_date), ("target_date", target_date)):
        if value is None:
            continue
        # ISO calendar dates only
        date.fromisoformat(value)
        update[field_name] = value
    return project.model_copy(update=update)


def attach_analysis(project: StoredProject, analysis: ProjectAnalysis) -> StoredProject:
    return project.model_copy(update={"analysis": analysis, "tier": derive_tier(analysis.verdict.score)})


def attach_funding_report(project: StoredProject, report: CryptoRankReport) -> StoredProject:
    update = {"funding_report": report}
    if not project.ticker and report.ticker:
        update["ticker"] = report.ticker
    return project.model_copy(update=update)
