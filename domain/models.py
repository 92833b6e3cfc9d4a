"""
Report and tracker records.

Everything here crosses a JSON boundary (model output, the key-value store),
so the records are pydantic models with camelCase wire names.  Unknown keys
from the model are ignored; missing sections fall back to empty defaults.
"""

from __future__ import annotations

import math
from typing import Annotated, Any, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MIN_SCORE = 1
MAX_SCORE = 10


def _as_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _as_optional_text(value: Any) -> Any:
    if value is None:
        return None
    return _as_text(value)


def _as_flag(value: Any) -> Any:
    return False if value is None else value


# Model output is loose about nulls and numbers in text fields.
Text = Annotated[str, BeforeValidator(_as_text)]
OptionalText = Annotated[Optional[str], BeforeValidator(_as_optional_text)]
Flag = Annotated[bool, BeforeValidator(_as_flag)]


def clamp_score(value: Any) -> int:
    """Coerce a model-provided score into the 1-10 range."""
    if value is None or value == "":
        return MIN_SCORE
    if isinstance(value, bool):
        raise ValueError("score must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"score must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise ValueError(f"score must be finite, got {value!r}")
    return int(min(MAX_SCORE, max(MIN_SCORE, round(number))))


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Source(WireModel):
    title: Text = ""
    uri: Text = ""


# ---------------------------------------------------------------------------
# Deep-dive analysis
# ---------------------------------------------------------------------------
class TlDr(WireModel):
    summary: Text = ""
    problem_solved: Text = ""
    backers: Text = ""
    status: Text = ""
    quick_verdict: Text = "Medium"


class Socials(WireModel):
    website: OptionalText = None
    twitter: OptionalText = None
    docs: OptionalText = None


class Overview(WireModel):
    category: Text = ""
    target_audience: Text = ""
    socials: Socials = Field(default_factory=Socials)


class FundingRound(WireModel):
    stage: Text = ""
    amount: Text = ""
    investors: List[Text] = Field(default_factory=list)
    date: OptionalText = None


class Funding(WireModel):
    rounds: List[FundingRound] = Field(default_factory=list)
    key_backers: List[Text] = Field(default_factory=list)
    has_tier1_backing: Flag = False


class Tech(WireModel):
    chain: Text = ""
    architecture: Text = ""
    differentiation: Text = ""


class Tokenomics(WireModel):
    token_status: Text = "Unreleased"
    ticker: OptionalText = None
    supply: OptionalText = None
    airdrop_prediction: Text = ""


class Metrics(WireModel):
    tvl: OptionalText = None
    users: OptionalText = None
    growth_comment: Text = ""


class Sentiment(WireModel):
    twitter_vibe: Text = "Neutral"
    narrative_fit: Text = ""


class Verdict(WireModel):
    score: int = MIN_SCORE
    final_thoughts: Text = ""
    action_plan: List[Text] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        return clamp_score(value)


class SegmentVerdict(Verdict):
    """Verdict as a segment reply must carry it: the score is mandatory."""

    score: int

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        if value is None or value == "":
            raise ValueError("score is required")
        return clamp_score(value)


# Segment models require the sections they own so an empty or off-topic
# reply fails validation instead of merging as defaults.
class CoreSegment(WireModel):
    """Segment 1: summary, overview and technology."""

    tldr: TlDr
    overview: Overview
    tech: Tech


class FundingSegment(WireModel):
    """Segment 2: funding rounds and tokenomics."""

    funding: Funding
    tokenomics: Tokenomics


class OutlookSegment(WireModel):
    """Segment 3: on-chain metrics, sentiment, competition, risks and verdict."""

    metrics: Metrics
    sentiment: Sentiment
    competitors: List[Text] = Field(default_factory=list)
    risks: List[Text] = Field(default_factory=list)
    verdict: SegmentVerdict


class ProjectAnalysis(WireModel):
    project_name: Text
    tldr: TlDr = Field(default_factory=TlDr)
    overview: Overview = Field(default_factory=Overview)
    funding: Funding = Field(default_factory=Funding)
    tech: Tech = Field(default_factory=Tech)
    tokenomics: Tokenomics = Field(default_factory=Tokenomics)
    metrics: Metrics = Field(default_factory=Metrics)
    sentiment: Sentiment = Field(default_factory=Sentiment)
    competitors: List[Text] = Field(default_factory=list)
    risks: List[Text] = Field(default_factory=list)
    verdict: Verdict = Field(default_factory=Verdict)
    sources: List[Source] = Field(default_factory=list)

    @field_validator("sources")
    @classmethod
    def _unique_uris(cls, sources: List[Source]) -> List[Source]:
        seen = set()
        for source in sources:
            if source.uri in seen:
                raise ValueError(f"duplicate source uri {source.uri!r}")
            seen.add(source.uri)
        return sources


# ---------------------------------------------------------------------------
# Lightweight analysis
# ---------------------------------------------------------------------------
class Signals(WireModel):
    smart_money: Text = ""
    community: Text = ""
    stage: Text = ""


class QuickAnalysis(WireModel):
    project_name: Text
    narrative: Text = ""
    score: int = MIN_SCORE
    signals: Signals = Field(default_factory=Signals)
    verdict: Text = ""
    strategy: List[Text] = Field(default_factory=list)
    sources: List[Source] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        return clamp_score(value)


# ---------------------------------------------------------------------------
# Funding report
# ---------------------------------------------------------------------------
class CryptoRankRound(WireModel):
    type: Text = ""
    date: Text = ""
    price: Text = ""
    raised: Text = ""
    valuation: Text = ""
    roi: Text = ""
    investors: List[Text] = Field(default_factory=list)
    unlock_terms: Text = ""


class ReportTokenomics(WireModel):
    initial_supply: Text = ""
    total_supply: Text = ""
    initial_market_cap: Text = ""
    fully_diluted_valuation: Text = ""


class InvestorAnalysis(WireModel):
    tier1_count: int = 0
    lead_investors: List[Text] = Field(default_factory=list)
    commentary: Text = ""


class InvestmentVerdict(WireModel):
    rating: Text = "Fair Value"
    risk_level: Text = "Medium"
    summary: Text = ""
    pros: List[Text] = Field(default_factory=list)
    cons: List[Text] = Field(default_factory=list)


class CryptoRankReport(WireModel):
    project_name: Text
    ticker: Text = ""
    category: Text = ""
    total_raised: Text = ""
    rounds: List[CryptoRankRound] = Field(default_factory=list)
    tokenomics: ReportTokenomics = Field(default_factory=ReportTokenomics)
    investor_analysis: InvestorAnalysis = Field(default_factory=InvestorAnalysis)
    investment_verdict: InvestmentVerdict = Field(default_factory=InvestmentVerdict)


# ---------------------------------------------------------------------------
# Batch evaluation
# ---------------------------------------------------------------------------
class EvaluationResult(WireModel):
    name: Text
    is_match: Flag = False
    score: int = MIN_SCORE
    reason: Text = ""

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        return clamp_score(value)


# ---------------------------------------------------------------------------
# Persistence records
# ---------------------------------------------------------------------------
class CacheEntry(WireModel):
    data: dict
    stored_at: int


TaskStatus = Literal["todo", "in-progress", "done"]
TaskPriority = Literal["high", "medium", "low"]
ProjectStatus = Literal["researching", "farming", "claimed", "ignored"]
Tier = Literal["S", "A", "B", "C"]


class FarmingTask(WireModel):
    id: Text
    title: Text
    status: TaskStatus = "todo"
    priority: TaskPriority = "medium"


class StoredProject(WireModel):
    id: Text
    name: Text
    ticker: Optional[str] = None
    added_at: int
    start_date: Optional[str] = None
    target_date: Optional[str] = None
    status: ProjectStatus = "researching"
    tier: Tier = "B"
    analysis: Optional[ProjectAnalysis] = None
    funding_report: Optional[CryptoRankReport] = None
    tasks: List[FarmingTask] = Field(default_factory=list)
    notes: Optional[str] = None


class SearchHistoryItem(WireModel):
    query: Text
    timestamp: int
    score: Optional[int] = None


class DiscoverySignal(WireModel):
    id: Text
    name: Text
    handle: Text = ""
    source: Text = ""
    raw_narrative: Text = ""
    evaluation: Optional[EvaluationResult] = None
