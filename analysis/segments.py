"""One prompt/response round-trip per report segment."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Type

from pydantic import BaseModel

from domain.models import Source

from .errors import SegmentTimeoutError
from .provider import Generation, GenerationProvider

logger = logging.getLogger(__name__)

PROJECT_PLACEHOLDER: str = "{{PROJECT_NAME}}"
DEFAULT_SEGMENT_TIMEOUT = 120.0


@dataclass(frozen=True, slots=True)
class Segment:
    """A fixed prompt template covering a disjoint slice of a report."""

    name: str
    template: str
    system_instruction: str
    search_hint: str
    model: Type[BaseModel]

    def render(self, project_name: str) -> str:
        return self.template.replace(PROJECT_PLACEHOLDER, project_name)


@dataclass(slots=True)
class SegmentResponse:
    segment: Segment
    raw_text: str
    citations: List[Source] = field(default_factory=list)


class SegmentRequester:
    """Issues grounded model requests; never retries."""

    def __init__(self, provider: GenerationProvider, *, timeout: float = DEFAULT_SEGMENT_TIMEOUT) -> None:
        self._provider = provider
        self._timeout = timeout

    async def request(self, segment: Segment, project_name: str) -> SegmentResponse:
        name = (project_name or "").strip()
        if not name:
            raise ValueError("Project name must be a non-empty string.")
        logger.info("Requesting segment '%s' for %s", segment.name, name)
        generation = await self._generate(
            segment.name,
            segment.render(name),
            system_instruction=segment.system_instruction,
            search_query=f"{name} {segment.search_hint}",
        )
        return SegmentResponse(segment=segment, raw_text=generation.text, citations=list(generation.citations))

    async def request_prompt(
        self,
        prompt: str,
        *,
        label: str,
        system_instruction: Optional[str] = None,
        search_query: Optional[str] = None,
    ) -> Generation:
        return await self._generate(
            label,
            prompt,
            system_instruction=system_instruction,
            search_query=search_query,
        )

    async def _generate(
        self,
        label: str,
        prompt: str,
        *,
        system_instruction: Optional[str],
        search_query: Optional[str],
    ) -> Generation:
        call = self._provider.generate(
            prompt,
            enable_search_grounding=True,
            system_instruction=system_instruction,
            search_query=search_query,
        )
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Segment '%s' exceeded %.0fs", label, self._timeout)
            raise SegmentTimeoutError(segment=label, timeout=self._timeout) from exc
