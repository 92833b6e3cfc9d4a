from __future__ import annotations

from typing import Dict, List, Sequence

from .models import DiscoverySignal, EvaluationResult, StoredProject
from .tracker import derive_tier, new_project


def candidates_from_signals(signals: Sequence[DiscoverySignal]) -> List[Dict[str, str]]:
    return [{"name": signal.name, "context": signal.raw_narrative} for signal in signals]


def _names_overlap(left: str, right: str) -> bool:
    a, b = left.strip().lower(), right.strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


def apply_evaluations(
    signals: Sequence[DiscoverySignal],
    results: Sequence[EvaluationResult],
) -> List[DiscoverySignal]:
    """Attach the first evaluation whose name overlaps each signal's name."""
    updated: List[DiscoverySignal] = []
    for signal in signals:
        match = next((r for r in results if _names_overlap(r.name, signal.name)), None)
        updated.append(signal.model_copy(update={"evaluation": match}) if match else signal)
    return updated


def project_from_signal(signal: DiscoverySignal) -> StoredProject:
    score = signal.evaluation.score if signal.evaluation else 0
    return new_project(
        signal.name,
        tier=derive_tier(score),
        notes=f"Source: {signal.source}. Narrative: {signal.raw_narrative}",
    )
