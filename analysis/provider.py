"""
Text generation with optional web-search grounding.

The pipeline only depends on `GenerationProvider.generate`.  The production
implementation runs a Tavily search for grounding, hands the results to a
one-shot AutoGen assistant backed by an OpenAI-compatible model and returns
the reply text together with the search results as citations.

Required env (via `Settings`):
  - OPENAI_API_KEY
  - TAVILY_API_KEY (only when search grounding is requested)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol

from autogen_agentchat.agents import AssistantAgent
from autogen_agentchat.messages import BaseChatMessage
from autogen_core.models import ChatCompletionClient, ModelInfo
from autogen_ext.models.openai import OpenAIChatCompletionClient
from tavily import AsyncTavilyClient

from domain.models import Source

from .errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_INSTRUCTION = "You are a concise analyst. Respond with strict JSON only."
# Tavily rejects very long queries.
MAX_SEARCH_QUERY_CHARS = 380


@dataclass(slots=True)
class Generation:
    """Raw model reply plus the citations used to ground it."""

    text: str
    citations: List[Source] = field(default_factory=list)


class GenerationProvider(Protocol):
    async def generate(
        self,
        prompt: str,
        *,
        enable_search_grounding: bool = False,
        system_instruction: Optional[str] = None,
        search_query: Optional[str] = None,
    ) -> Generation:
        ...


class GroundedChatProvider:
    """OpenAI chat model grounded with Tavily web search."""

    def __init__(
        self,
        *,
        openai_api_key: str,
        openai_model_name: str = "gpt-4o-mini",
        openai_base_url: str = "https://api.openai.com/v1",
        temperature: Optional[float] = 0.2,
        tavily_api_key: Optional[str] = None,
        tavily_max_results: int = 5,
    ) -> None:
        if not openai_api_key:
            raise EnvironmentError("OPENAI_API_KEY is not set.")
        self._model_name = openai_model_name
        self._model_client = self._build_openai_client(
            api_key=openai_api_key,
            base_url=openai_base_url,
            openai_model_name=openai_model_name,
            temperature=temperature,
        )
        self._tavily_client = AsyncTavilyClient(api_key=tavily_api_key) if tavily_api_key else None
        self._tavily_max_results = max(1, tavily_max_results)
        logger.info("Initialised GroundedChatProvider with model '%s'", openai_model_name)

    async def generate(
        self,
        prompt: str,
        *,
        enable_search_grounding: bool = False,
        system_instruction: Optional[str] = None,
        search_query: Optional[str] = None,
    ) -> Generation:
        citations: List[Source] = []
        task = prompt
        if enable_search_grounding:
            query = (search_query or prompt).strip()[:MAX_SEARCH_QUERY_CHARS]
            results = await self._search(query)
            citations = [Source(title=r["title"], uri=r["url"]) for r in results if r.get("url")]
            task = f"{prompt}\n\n{self._format_results(query, results)}"

        agent = AssistantAgent(
            name="crypto_researcher",
            model_client=self._model_client,
            system_message=system_instruction or DEFAULT_SYSTEM_INSTRUCTION,
            description="Answers a single research prompt with strict JSON.",
            tools=[],
            max_tool_iterations=1,
        )
        try:
            result = await agent.run(task=task)
        except Exception as exc:
            logger.exception("Model call failed for %s", self._model_name)
            raise ProviderError(f"Model call failed: {exc}") from exc
        text = self._extract_text(result.messages, preferred_source=agent.name)
        logger.debug("Model reply (%d chars, %d citations)", len(text), len(citations))
        return Generation(text=text, citations=citations)

    async def _search(self, query: str) -> List[Dict[str, str]]:
        if self._tavily_client is None:
            raise ProviderError("Search grounding requested but TAVILY_API_KEY is not set.")
        logger.info("Executing Tavily search for: %s", query)
        try:
            response = await self._tavily_client.search(query=query, max_results=self._tavily_max_results)
        except Exception as exc:
            logger.exception("Tavily search failed")
            raise ProviderError(f"Search grounding failed: {exc}") from exc

        entries = response.get("results", []) if isinstance(response, dict) else []
        simplified: List[Dict[str, str]] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            url = entry.get("url") or entry.get("link") or ""
            simplified.append(
                {
                    "title": entry.get("title") or url or "Result",
                    "url": url,
                    "content": entry.get("content") or entry.get("snippet") or "",
                }
            )
        return simplified

    @staticmethod
    def _format_results(query: str, results: List[Dict[str, str]]) -> str:
        if not results:
            return f"Web search results for '{query}': none found."
        lines = [f"- {r['title']}: {r['content']} ({r['url']})" for r in results]
        return f"Web search results for '{query}':\n" + "\n".join(lines)

    @staticmethod
    def _last_chat_message(messages: Iterable[Any], preferred_source: Optional[str] = None) -> BaseChatMessage:
        candidate: Optional[BaseChatMessage] = None
        for message in reversed(list(messages)):
            if not isinstance(message, BaseChatMessage):
                continue
            if preferred_source and getattr(message, "source", None) == preferred_source:
                return message
            if candidate is None:
                candidate = message
        if candidate:
            return candidate
        raise ProviderError("Assistant did not produce a chat response.")

    def _extract_text(self, messages: Iterable[Any], preferred_source: Optional[str]) -> str:
        final_message = self._last_chat_message(messages, preferred_source=preferred_source)
        to_text = getattr(final_message, "to_text", None)
        if callable(to_text):
            return to_text().strip()
        return str(final_message).strip()

    @staticmethod
    def _build_openai_client(
        *,
        api_key: str,
        base_url: str,
        openai_model_name: str,
        temperature: Optional[float],
    ) -> ChatCompletionClient:
        model_info: ModelInfo = {
            "vision": False,
            "function_calling": False,
            "json_output": False,
            "structured_output": False,
            "family": "openai",
        }
        client_kwargs: Dict[str, Any] = {
            "model": openai_model_name,
            "api_key": api_key,
            "base_url": base_url,
            "include_name_in_message": False,
            "model_info": model_info,
        }
        if temperature is not None:
            client_kwargs["temperature"] = temperature
        return OpenAIChatCompletionClient(**client_kwargs)
