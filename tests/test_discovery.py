from domain.discovery import apply_evaluations, candidates_from_signals, project_from_signal
from domain.models import DiscoverySignal, EvaluationResult


def _signal(name, narrative="Restaking layer", source="Twitter Alpha"):
    return DiscoverySignal(id=name.lower(), name=name, handle=f"@{name.lower()}", source=source, raw_narrative=narrative)


def test_candidates_carry_name_and_narrative():
    assert candidates_from_signals([_signal("Eigen")]) == [{"name": "Eigen", "context": "Restaking layer"}]


def test_evaluations_match_by_case_insensitive_containment():
    signals = [_signal("EigenLayer"), _signal("Monad"), _signal("Unrelated")]
    results = [
        EvaluationResult(name="eigenlayer protocol", is_match=True, score=9, reason="restaking"),
        EvaluationResult(name="MONAD", is_match=True, score=8, reason="parallel EVM"),
    ]

    updated = apply_evaluations(signals, results)

    assert updated[0].evaluation.reason == "restaking"
    assert updated[1].evaluation.score == 8
    assert updated[2].evaluation is None


def test_first_overlapping_evaluation_wins():
    results = [
        EvaluationResult(name="Mon", score=3),
        EvaluationResult(name="Monad", score=9),
    ]

    updated = apply_evaluations([_signal("Monad")], results)

    assert updated[0].evaluation.score == 3


def test_blank_names_never_match():
    updated = apply_evaluations([_signal("Monad")], [EvaluationResult(name="  ", score=9)])
    assert updated[0].evaluation is None


def test_high_score_signal_becomes_s_tier_project():
    signal = apply_evaluations([_signal("Monad")], [EvaluationResult(name="Monad", is_match=True, score=8)])[0]

    project = project_from_signal(signal)

    assert project.tier == "S"
    assert project.status == "researching"
    assert project.notes == "Source: Twitter Alpha. Narrative: Restaking layer"


def test_unscored_signal_becomes_b_tier_project():
    assert project_from_signal(_signal("Monad")).tier == "B"


def test_mid_score_signal_becomes_a_tier_project():
    signal = apply_evaluations([_signal("Monad")], [EvaluationResult(name="Monad", score=6)])[0]

    assert project_from_signal(signal).tier == "A"
