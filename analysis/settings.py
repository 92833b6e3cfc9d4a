"""Process configuration read from the environment (after `load_dotenv`)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise EnvironmentError(f"{name} must be an integer, got {raw!r}") from exc


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise EnvironmentError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(slots=True)
class Settings:
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    tavily_api_key: Optional[str] = None
    tavily_max_results: int = 5
    kv_rest_api_url: Optional[str] = None
    kv_rest_api_token: Optional[str] = None
    local_store_path: Path = Path("data") / "store.json"
    segment_timeout: float = 120.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_model=env.get("OPENAI_MODEL") or "gpt-4o-mini",
            openai_base_url=env.get("OPENAI_API_BASE_URL") or "https://api.openai.com/v1",
            tavily_api_key=env.get("TAVILY_API_KEY") or None,
            tavily_max_results=_int_env(env, "TAVILY_MAX_RESULTS", 5),
            kv_rest_api_url=env.get("KV_REST_API_URL") or None,
            kv_rest_api_token=env.get("KV_REST_API_TOKEN") or None,
            local_store_path=Path(env.get("LOCAL_STORE_PATH") or Path("data") / "store.json"),
            segment_timeout=_float_env(env, "SEGMENT_TIMEOUT_SECONDS", 120.0),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )

    @property
    def remote_store_configured(self) -> bool:
        return bool(self.kv_rest_api_url and self.kv_rest_api_token)
