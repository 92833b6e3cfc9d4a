"""
Public entry point for the research desk.

`ReportService` puts the cache in front of the aggregator and makes sure at
most one aggregation per (report kind, project name) is running: concurrent
callers for the same project share the in-flight task instead of racing each
other's cache writes.  Funding reports are always fetched live.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar

from pydantic import TypeAdapter, ValidationError

from analysis_state import AnalysisRequest, RequestStatus
from domain.models import CryptoRankReport, EvaluationResult, ProjectAnalysis, QuickAnalysis, SearchHistoryItem
from storage.cache import DEFAULT_TTL, CacheManager, normalize_name
from storage.history import DEFAULT_HISTORY_LIMIT, SearchHistory
from storage.kv_store import KeyValueStore, StoreError

from .aggregator import Aggregator
from .errors import AggregationError, ParseError
from .prompts import BATCH_SYSTEM_PROMPT, batch_evaluation_prompt
from .provider import GenerationProvider
from .response_parser import extract_json, snippet_of
from .segments import DEFAULT_SEGMENT_TIMEOUT, SegmentRequester

logger = logging.getLogger(__name__)

ReportT = TypeVar("ReportT")

_EVALUATIONS_ADAPTER = TypeAdapter(List[EvaluationResult])


@dataclass(slots=True)
class ReportServiceConfig:
    """Everything the service needs, constructed explicitly by the caller."""

    provider: GenerationProvider
    store: KeyValueStore
    segment_timeout: float = DEFAULT_SEGMENT_TIMEOUT
    cache_ttl: timedelta = DEFAULT_TTL
    clock: Callable[[], float] = time.time
    history_limit: int = DEFAULT_HISTORY_LIMIT
    record_history: bool = True


@dataclass(slots=True)
class _InFlight:
    task: asyncio.Future
    waiters: int = 0


class ReportService:
    def __init__(self, config: ReportServiceConfig) -> None:
        self._config = config
        self._requester = SegmentRequester(config.provider, timeout=config.segment_timeout)
        self._aggregator = Aggregator(self._requester)
        self._analysis_cache: CacheManager[ProjectAnalysis] = CacheManager(
            config.store,
            namespace="analysis",
            model=ProjectAnalysis,
            ttl=config.cache_ttl,
            clock=config.clock,
        )
        self._quick_cache: CacheManager[QuickAnalysis] = CacheManager(
            config.store,
            namespace="quick_analysis",
            model=QuickAnalysis,
            ttl=config.cache_ttl,
            clock=config.clock,
        )
        self._history = SearchHistory(config.store, limit=config.history_limit, clock=config.clock)
        self._in_flight: Dict[Tuple[str, str], _InFlight] = {}
        self._last_request: Optional[AnalysisRequest] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def get_analysis(self, name: str, force_refresh: bool = False) -> ProjectAnalysis:
        """Deep-dive report: cache first, otherwise the three-segment aggregation."""
        project_name = self._clean_name(name)
        request = AnalysisRequest(project_name=project_name, force_refresh=force_refresh)
        self._last_request = request
        analysis = await self._cached_report(
            kind="analysis",
            cache=self._analysis_cache,
            runner=self._aggregator.run_full_analysis,
            name=project_name,
            force_refresh=force_refresh,
            request=request,
        )
        await self._record_search(project_name, analysis.verdict.score)
        return analysis

    async def get_quick_analysis(self, name: str, force_refresh: bool = False) -> QuickAnalysis:
        """Lightweight single-call report, cached in its own namespace."""
        project_name = self._clean_name(name)
        analysis = await self._cached_report(
            kind="quick_analysis",
            cache=self._quick_cache,
            runner=self._aggregator.run_quick_analysis,
            name=project_name,
            force_refresh=force_refresh,
        )
        await self._record_search(project_name, analysis.score)
        return analysis

    async def get_funding_report(self, name: str) -> CryptoRankReport:
        """Funding data is treated as always fresh: no cache, no sharing."""
        project_name = self._clean_name(name)
        logger.info("Generating live funding report for %s", project_name)
        return await self._aggregator.run_funding_report(project_name)

    async def batch_evaluate(self, candidates: Sequence[Mapping[str, str]]) -> List[EvaluationResult]:
        """Score all candidates in one request.

        An empty list means the evaluation is unavailable (the model reply
        could not be used), not that nothing matched.
        """
        cleaned = []
        for candidate in candidates:
            candidate_name = candidate.get("name")
            if not isinstance(candidate_name, str) or not candidate_name.strip():
                raise ValueError("Every candidate needs a non-empty string name.")
            context = candidate.get("context")
            cleaned.append(
                {"name": candidate_name.strip(), "context": "" if context is None else str(context).strip()}
            )
        if not cleaned:
            return []

        generation = await self._requester.request_prompt(
            batch_evaluation_prompt(cleaned),
            label="batch_evaluation",
            system_instruction=BATCH_SYSTEM_PROMPT,
            search_query="crypto airdrop " + " ".join(c["name"] for c in cleaned),
        )
        try:
            payload = extract_json(generation.text)
        except ParseError as exc:
            logger.error("Batch evaluation unparseable: %s | %s", exc, exc.snippet)
            return []
        if not isinstance(payload, list):
            logger.error("Batch evaluation returned %s instead of an array: %s", type(payload).__name__, snippet_of(generation.text))
            return []
        try:
            results = _EVALUATIONS_ADAPTER.validate_python(payload)
        except ValidationError as exc:
            logger.error("Batch evaluation items invalid: %s", exc)
            return []
        logger.info("Batch evaluation scored %d of %d candidates", len(results), len(cleaned))
        return results

    def search_history(self) -> List[SearchHistoryItem]:
        return self._history.entries()

    @property
    def last_request(self) -> Optional[AnalysisRequest]:
        """State record of the most recent `get_analysis` call."""

        return self._last_request

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _cached_report(
        self,
        *,
        kind: str,
        cache: CacheManager[ReportT],
        runner: Callable[[str], Awaitable[ReportT]],
        name: str,
        force_refresh: bool,
        request: Optional[AnalysisRequest] = None,
    ) -> ReportT:
        request = request or AnalysisRequest(project_name=name, force_refresh=force_refresh)
        request.advance(RequestStatus.REQUESTED)
        if not force_refresh:
            cached = await cache.get(name)
            if cached is not None:
                request.advance(RequestStatus.CACHE_HIT)
                request.advance(RequestStatus.DONE)
                return cached
        request.advance(RequestStatus.CACHE_MISS)
        request.advance(RequestStatus.IN_FLIGHT)

        async def aggregate_and_store(project_name: str) -> ReportT:
            report = await runner(project_name)
            await cache.put(project_name, report)
            return report

        try:
            report = await self._run_shared(kind, name, aggregate_and_store)
        except AggregationError as exc:
            request.fail(exc, parse_failure=True)
            raise
        except BaseException as exc:
            request.fail(exc)
            raise
        request.advance(RequestStatus.PARSED)
        request.advance(RequestStatus.DONE)
        return report

    async def _run_shared(
        self,
        kind: str,
        name: str,
        factory: Callable[[str], Awaitable[ReportT]],
    ) -> ReportT:
        key = (kind, normalize_name(name))
        run = self._in_flight.get(key)
        if run is None:
            run = _InFlight(task=asyncio.ensure_future(factory(name)))
            self._in_flight[key] = run
            run.task.add_done_callback(lambda task, key=key, run=run: self._release(key, run, task))
        else:
            logger.info("Joining in-flight %s for %s", kind, name)

        run.waiters += 1
        try:
            return await asyncio.shield(run.task)
        except asyncio.CancelledError:
            # Only the last interested caller may cancel the shared work.
            if run.waiters <= 1 and not run.task.done():
                logger.info("Cancelling in-flight %s for %s", kind, name)
                run.task.cancel()
            raise
        finally:
            run.waiters -= 1

    def _release(self, key: Tuple[str, str], run: _InFlight, task: asyncio.Future) -> None:
        if self._in_flight.get(key) is run:
            del self._in_flight[key]
        if not task.cancelled():
            # Mark the outcome as observed even if every waiter went away.
            task.exception()

    async def _record_search(self, query: str, score: Optional[int]) -> None:
        if not self._config.record_history:
            return
        try:
            await asyncio.to_thread(self._history.record, query, score)
        except StoreError as exc:
            logger.warning("Could not record search history for %s: %s", query, exc)

    @staticmethod
    def _clean_name(name: str) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValueError("Project name must be a non-empty string.")
        return cleaned
