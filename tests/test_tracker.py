from datetime import date

import pytest

from domain.models import CryptoRankReport, ProjectAnalysis, Verdict
from domain.tracker import (
    DEFAULT_TASK_TITLES,
    InvalidTransitionError,
    add_task,
    attach_analysis,
    attach_funding_report,
    derive_tier,
    new_project,
    set_dates,
    start_farming,
    task_progress,
    toggle_task,
    transition_status,
)
from storage.projects import ProjectRepository
from storage.kv_store import StoreError


@pytest.mark.parametrize("score,tier", [(10, "S"), (8, "S"), (7, "A"), (6, "A"), (5, "B"), (1, "B")])
def test_derive_tier(score, tier):
    assert derive_tier(score) == tier


def test_new_project_has_default_tasks():
    project = new_project("  Monad ", now=1_700_000_000)

    assert project.name == "Monad"
    assert project.added_at == 1_700_000_000_000
    assert project.status == "researching"
    assert [task.title for task in project.tasks] == list(DEFAULT_TASK_TITLES)
    assert all(task.status == "todo" for task in project.tasks)


def test_new_project_requires_a_name():
    with pytest.raises(ValueError):
        new_project("")


def test_toggle_task_flips_between_done_and_todo():
    project = new_project("Monad")
    task_id = project.tasks[0].id

    done = toggle_task(project, task_id)
    assert done.tasks[0].status == "done"
    assert project.tasks[0].status == "todo"
    assert toggle_task(done, task_id).tasks[0].status == "todo"


def test_toggle_unknown_task():
    with pytest.raises(KeyError):
        toggle_task(new_project("Monad"), "missing")


def test_progress_counts_done_tasks():
    project = add_task(new_project("Monad"), "Bridge to testnet", "high")
    assert task_progress(project) == 0

    project = toggle_task(project, project.tasks[2].id)

    assert project.tasks[2].priority == "high"
    assert task_progress(project) == 33


def test_progress_without_tasks():
    project = new_project("Monad").model_copy(update={"tasks": []})
    assert task_progress(project) == 0


def test_status_transitions():
    project = new_project("Monad")

    farming = start_farming(project, today=date(2024, 5, 1))
    assert farming.status == "farming"
    assert farming.start_date == "2024-05-01"

    claimed = transition_status(farming, "claimed")
    assert claimed.status == "claimed"
    assert transition_status(claimed, "claimed") is claimed

    with pytest.raises(InvalidTransitionError) as info:
        transition_status(claimed, "farming")
    assert info.value.current == "claimed"


def test_cannot_claim_while_researching():
    with pytest.raises(InvalidTransitionError):
        transition_status(new_project("Monad"), "claimed")


def test_set_dates_validates_iso_format():
    project = set_dates(new_project("Monad"), start_date="2024-05-01", target_date="2024-12-31")
    assert (project.start_date, project.target_date) == ("2024-05-01", "2024-12-31")

    with pytest.raises(ValueError):
        set_dates(project, target_date="31/12/2024")


def test_attach_analysis_rederives_tier():
    analysis = ProjectAnalysis(project_name="Monad", verdict=Verdict(score=8))

    project = attach_analysis(new_project("Monad"), analysis)

    assert project.tier == "S"
    assert project.analysis.verdict.score == 8


def test_attach_funding_report_fills_missing_ticker_only():
    report = CryptoRankReport(project_name="Monad", ticker="MON")

    project = attach_funding_report(new_project("Monad"), report)
    assert project.ticker == "MON"

    renamed = project.model_copy(update={"ticker": "MONAD"})
    assert attach_funding_report(renamed, report).ticker == "MONAD"


def test_repository_round_trip(store):
    repository = ProjectRepository(store)
    project = new_project("Monad")

    repository.save_project(project)
    updated = toggle_task(project, project.tasks[0].id)
    repository.save_project(updated)
    repository.save_project(new_project("Berachain"))

    projects = repository.list_projects()
    assert [p.name for p in projects] == ["Monad", "Berachain"]
    assert repository.get_project(project.id).tasks[0].status == "done"


def test_repository_delete(store):
    repository = ProjectRepository(store)
    project = repository.save_project(new_project("Monad"))

    assert repository.delete_project(project.id) is True
    assert repository.delete_project(project.id) is False
    assert repository.list_projects() == []


def test_repository_rejects_corrupt_list(store):
    store.set("tracked_projects", '[{"name": "no id"}]')

    with pytest.raises(StoreError):
        ProjectRepository(store).list_projects()


def test_repository_reads_camel_case_records(store):
    store.set(
        "tracked_projects",
        '[{"id": "p1", "name": "Monad", "addedAt": 1, "status": "farming", "tier": "A",'
        ' "tasks": [{"id": "t1", "title": "Swap", "status": "in-progress", "priority": "low"}]}]',
    )

    project = ProjectRepository(store).get_project("p1")

    assert project.added_at == 1
    assert project.tasks[0].status == "in-progress"
