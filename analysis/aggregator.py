"""
Multi-segment report aggregation.

A full analysis is three independent segment requests issued concurrently.
Each reply is parsed and validated against its segment model; the first
segment that fails aborts the whole report with an `AggregationError`, so a
partially populated report is never returned.  The validated segments own
disjoint top-level keys and are merged by plain union, citations from every
reply (grounding results plus any `sources` array the model embedded) are
deduplicated by URI, and missing website / twitter links are back-filled from
the citations.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar
from urllib.parse import urlparse

from pydantic import BaseModel, ValidationError

from domain.models import CryptoRankReport, ProjectAnalysis, QuickAnalysis, Source

from .errors import AggregationError, ParseError
from .prompts import FULL_ANALYSIS_SEGMENTS, FUNDING_REPORT_SEGMENT, QUICK_ANALYSIS_SEGMENT
from .response_parser import extract_json, snippet_of
from .segments import Segment, SegmentRequester, SegmentResponse

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

PLACEHOLDER_VALUES = {"", "n/a", "na", "none", "null", "unknown", "tbd", "#", "undisclosed"}
NON_CANONICAL_DOMAINS = ("medium.com", "linkedin.com", "crunchbase.com", "defillama.com", "twitter.com", "x.com")
TWITTER_DOMAINS = ("twitter.com", "x.com")
WEBSITE_TITLE_HINTS = ("home", "official")


class Aggregator:
    def __init__(
        self,
        requester: SegmentRequester,
        *,
        segments: Sequence[Segment] = FULL_ANALYSIS_SEGMENTS,
        quick_segment: Segment = QUICK_ANALYSIS_SEGMENT,
        funding_segment: Segment = FUNDING_REPORT_SEGMENT,
    ) -> None:
        if not segments:
            raise ValueError("At least one segment is required.")
        self._requester = requester
        self._segments = tuple(segments)
        self._quick_segment = quick_segment
        self._funding_segment = funding_segment

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def run_full_analysis(self, project_name: str) -> ProjectAnalysis:
        name = project_name.strip()
        responses = await self._request_all(name)

        validated: List[BaseModel] = []
        source_lists: List[List[Source]] = []
        for index, response in enumerate(responses, start=1):
            model, embedded = parse_segment(response, index)
            validated.append(model)
            source_lists.append(response.citations)
            source_lists.append(embedded)

        analysis = merge_segments(name, validated, source_lists)
        logger.info(
            "Merged %d segments for %s (score %d, %d sources)",
            len(validated),
            name,
            analysis.verdict.score,
            len(analysis.sources),
        )
        return analysis

    async def run_funding_report(self, project_name: str) -> CryptoRankReport:
        name = project_name.strip()
        response = await self._requester.request(self._funding_segment, name)
        payload = _parse_object(response, 1)
        payload["projectName"] = name
        return _validate(CryptoRankReport, payload, response, 1)

    async def run_quick_analysis(self, project_name: str) -> QuickAnalysis:
        name = project_name.strip()
        response = await self._requester.request(self._quick_segment, name)
        payload = _parse_object(response, 1)
        embedded = _embedded_sources(payload)
        payload["projectName"] = name
        payload["sources"] = [s.to_wire() for s in dedupe_sources(response.citations, embedded)]
        return _validate(QuickAnalysis, payload, response, 1)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _request_all(self, name: str) -> List[SegmentResponse]:
        """Run every segment concurrently; the first failure cancels the rest."""
        tasks = [
            asyncio.ensure_future(self._requester.request(segment, name))
            for segment in self._segments
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise


def parse_segment(response: SegmentResponse, index: int) -> Tuple[BaseModel, List[Source]]:
    """Parse and validate one segment reply; returns the model and its embedded sources."""
    payload = _parse_object(response, index)
    embedded = _embedded_sources(payload)
    return _validate(response.segment.model, payload, response, index), embedded


def merge_segments(
    project_name: str,
    segments: Sequence[BaseModel],
    source_lists: Iterable[Iterable[Source]],
) -> ProjectAnalysis:
    merged: Dict[str, Any] = {}
    for segment in segments:
        merged.update(segment.model_dump(mode="json", by_alias=True))
    merged["projectName"] = project_name
    merged["sources"] = [s.to_wire() for s in dedupe_sources(*source_lists)]
    return autocorrect_socials(ProjectAnalysis.model_validate(merged))


def dedupe_sources(*source_lists: Iterable[Source]) -> List[Source]:
    """Keep one entry per URI in first-seen order; the last title seen wins."""
    by_uri: Dict[str, Source] = {}
    for sources in source_lists:
        for source in sources:
            uri = (source.uri or "").strip()
            if not uri:
                continue
            by_uri[uri] = Source(title=source.title, uri=uri)
    return list(by_uri.values())


def is_placeholder(value: Optional[str]) -> bool:
    return value is None or value.strip().lower() in PLACEHOLDER_VALUES


def _host(uri: str) -> str:
    host = urlparse(uri if "://" in uri else f"https://{uri}").hostname or ""
    return host.lower()


def _host_matches(host: str, domains: Iterable[str]) -> bool:
    return any(host == domain or host.endswith(f".{domain}") for domain in domains)


def autocorrect_socials(analysis: ProjectAnalysis) -> ProjectAnalysis:
    socials = analysis.overview.socials
    update: Dict[str, str] = {}

    if is_placeholder(socials.twitter):
        twitter = next((s.uri for s in analysis.sources if _host_matches(_host(s.uri), TWITTER_DOMAINS)), None)
        if twitter:
            update["twitter"] = twitter

    if is_placeholder(socials.website):
        hints = (*WEBSITE_TITLE_HINTS, analysis.project_name.lower())
        website = next(
            (
                s.uri
                for s in analysis.sources
                if not _host_matches(_host(s.uri), NON_CANONICAL_DOMAINS)
                and any(hint and hint in s.title.lower() for hint in hints)
            ),
            None,
        )
        if website:
            update["website"] = website

    if not update:
        return analysis
    logger.info("Filled missing socials for %s from citations: %s", analysis.project_name, ", ".join(update))
    overview = analysis.overview.model_copy(update={"socials": socials.model_copy(update=update)})
    return analysis.model_copy(update={"overview": overview})


def _parse_object(response: SegmentResponse, index: int) -> Dict[str, Any]:
    try:
        payload = extract_json(response.raw_text)
    except ParseError as exc:
        logger.error("Segment %d ('%s') unparseable: %s | %s", index, response.segment.name, exc, exc.snippet)
        raise AggregationError(
            failed_segment=response.segment.name,
            segment_index=index,
            snippet=exc.snippet,
            reason=str(exc),
        ) from exc
    if not isinstance(payload, dict):
        raise AggregationError(
            failed_segment=response.segment.name,
            segment_index=index,
            snippet=snippet_of(response.raw_text),
            reason="expected a JSON object",
        )
    return payload


def _embedded_sources(payload: Dict[str, Any]) -> List[Source]:
    raw = payload.pop("sources", None)
    if not isinstance(raw, list):
        return []
    sources: List[Source] = []
    for item in raw:
        if isinstance(item, dict) and isinstance(item.get("uri") or item.get("url"), str):
            sources.append(Source(title=str(item.get("title") or ""), uri=item.get("uri") or item.get("url")))
    return sources


def _validate(model: Type[ModelT], payload: Dict[str, Any], response: SegmentResponse, index: int) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        logger.error("Segment %d ('%s') failed validation: %s", index, response.segment.name, exc)
        raise AggregationError(
            failed_segment=response.segment.name,
            segment_index=index,
            snippet=snippet_of(response.raw_text),
            reason=f"{exc.error_count()} invalid field(s)",
        ) from exc
