import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

import pytest

from analysis.prompts import (
    CORE_SEGMENT,
    FUNDING_REPORT_SEGMENT,
    FUNDING_SEGMENT,
    OUTLOOK_SEGMENT,
    QUICK_ANALYSIS_SEGMENT,
)
from analysis.provider import Generation
from domain.models import Source
from storage.kv_store import LocalKeyValueStore

# Every segment's search query ends with its own hint, which is how the fake
# provider tells the requests apart.
_HINTS = {
    segment.name: segment.search_hint
    for segment in (CORE_SEGMENT, FUNDING_SEGMENT, OUTLOOK_SEGMENT, QUICK_ANALYSIS_SEGMENT, FUNDING_REPORT_SEGMENT)
}


class FakeProvider:
    """Scripted GenerationProvider.

    `replies` maps a segment name (or "batch" for batch evaluation) to a
    reply string, a `Generation`, an exception instance to raise, or an async
    callable taking the prompt and returning one of those.
    """

    def __init__(self, replies: Dict[str, Any], citations: Optional[Dict[str, List[Source]]] = None) -> None:
        self.replies = dict(replies)
        self.citations = dict(citations or {})
        self.calls: List[Dict[str, Any]] = []

    def calls_for(self, label: str) -> int:
        return sum(1 for call in self.calls if call["label"] == label)

    @staticmethod
    def _label(search_query: Optional[str]) -> str:
        for name, hint in _HINTS.items():
            if search_query and search_query.endswith(hint):
                return name
        return "batch"

    async def generate(
        self,
        prompt: str,
        *,
        enable_search_grounding: bool = False,
        system_instruction: Optional[str] = None,
        search_query: Optional[str] = None,
    ) -> Generation:
        label = self._label(search_query)
        self.calls.append(
            {
                "label": label,
                "prompt": prompt,
                "grounded": enable_search_grounding,
                "system_instruction": system_instruction,
                "search_query": search_query,
            }
        )
        reply = self.replies[label]
        if callable(reply):
            reply = await reply(prompt)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, Generation):
            return reply
        return Generation(text=reply, citations=list(self.citations.get(label, [])))


class FixedClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


CORE_PAYLOAD = {
    "tldr": {
        "summary": "Parallel EVM layer 1.",
        "problemSolved": "Throughput",
        "backers": "Paradigm",
        "status": "Testnet, no token",
        "quickVerdict": "High",
    },
    "overview": {
        "category": "L1",
        "targetAudience": "DeFi users",
        "socials": {"website": "N/A", "twitter": None, "docs": "https://docs.monad.xyz"},
    },
    "tech": {"chain": "Monad", "architecture": "Parallel execution", "differentiation": "10k TPS"},
    "sources": [{"title": "Monad docs", "uri": "https://docs.monad.xyz"}],
}

FUNDING_PAYLOAD = {
    "funding": {
        "rounds": [{"stage": "Series A", "amount": "$225M", "investors": ["Paradigm"], "date": "2024-04"}],
        "keyBackers": ["Paradigm"],
        "hasTier1Backing": True,
    },
    "tokenomics": {"tokenStatus": "Unreleased", "ticker": None, "supply": None, "airdropPrediction": "Use testnet"},
}

OUTLOOK_PAYLOAD = {
    "metrics": {"tvl": None, "users": "1M", "growthComment": "Fast"},
    "sentiment": {"twitterVibe": "Positive", "narrativeFit": "Parallel EVM"},
    "competitors": ["Sei", "MegaETH"],
    "risks": ["Delays"],
    "verdict": {"score": 9, "finalThoughts": "Farm it.", "actionPlan": ["Bridge", "Swap"]},
    "sources": [{"url": "https://x.com/monad_xyz", "title": "Monad on X"}],
}

QUICK_PAYLOAD = {
    "projectName": "whatever the model says",
    "narrative": "Parallel EVM",
    "score": 8,
    "signals": {"smartMoney": "Paradigm", "community": "Huge", "stage": "Testnet"},
    "verdict": "Strong candidate",
    "strategy": ["Join Discord"],
}

FUNDING_REPORT_PAYLOAD = {
    "projectName": "ignored",
    "ticker": "MON",
    "category": "L1",
    "totalRaised": "$244M",
    "rounds": [{"type": "Series A", "date": "2024-04", "raised": "$225M", "investors": ["Paradigm"]}],
    "investorAnalysis": {"tier1Count": 1, "leadInvestors": ["Paradigm"], "commentary": "Strong"},
}


def as_reply(payload: Any, prefix: str = "", suffix: str = "") -> str:
    return f"{prefix}{json.dumps(payload)}{suffix}"


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> LocalKeyValueStore:
    return LocalKeyValueStore()


@pytest.fixture
def segment_replies() -> Dict[str, Any]:
    return {
        "core": as_reply(CORE_PAYLOAD, prefix="```json\n", suffix="\n```"),
        "funding": as_reply(FUNDING_PAYLOAD, prefix="Here is the data: "),
        "outlook": as_reply(OUTLOOK_PAYLOAD),
        "quick_analysis": as_reply(QUICK_PAYLOAD),
        "funding_report": as_reply(FUNDING_REPORT_PAYLOAD),
    }


@pytest.fixture
def segment_citations() -> Dict[str, List[Source]]:
    return {
        "core": [
            Source(title="Monad | Official Home", uri="https://www.monad.xyz"),
            Source(title="Monad docs", uri="https://docs.monad.xyz"),
        ],
        "funding": [Source(title="Monad raises $225M", uri="https://www.theblock.co/monad")],
        "outlook": [Source(title="Monad on Medium", uri="https://medium.com/monad")],
    }


@pytest.fixture
def make_provider(segment_replies, segment_citations) -> Callable[..., FakeProvider]:
    def factory(**overrides: Any) -> FakeProvider:
        return FakeProvider({**segment_replies, **overrides}, citations=segment_citations)

    return factory


@pytest.fixture
def run() -> Callable[[Any], Any]:
    return asyncio.run
