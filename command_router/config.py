"""Router settings read from the environment (``.env`` is loaded on package import)."""

from __future__ import annotations

import os
from typing import Mapping

from pydantic import BaseModel, Field, field_validator


class RouterSettings(BaseModel):
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    use_mock_llm: bool = False
    cache_ttl: float = Field(default=300.0, gt=0)
    cache_max_size: int = Field(default=500, ge=1)
    fallback_timeout: float = Field(default=5.0, gt=0)
    fallback_max_length: int = Field(default=100, ge=1)
    trace_dir: str = "./traces"
    companies: dict[str, list[str]] = Field(default_factory=dict)
    known_repos: list[str] = Field(default_factory=list)

    @field_validator("companies", mode="before")
    @classmethod
    def _parse_companies(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_companies(value)
        return value

    @field_validator("known_repos", mode="before")
    @classmethod
    def _parse_repos(cls, value: object) -> object:
        if isinstance(value, str):
            return [r.strip() for r in value.split(",") if r.strip()]
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RouterSettings:
        """Build settings from ``environ`` (default ``os.environ``).

        Environment variables (all optional):
          OPENAI_API_KEY              — required for real fallback calls
          OPENAI_MODEL                — default ``gpt-4o-mini``
          USE_MOCK_LLM                — ``1`` to use the demo mock
          ROUTER_CACHE_TTL            — seconds, default 300
          ROUTER_CACHE_MAX_SIZE       — entries, default 500
          ROUTER_FALLBACK_TIMEOUT     — seconds, default 5
          ROUTER_FALLBACK_MAX_LENGTH  — characters, default 100
          ROUTER_TRACE_DIR            — default ``./traces``
          ROUTER_COMPANIES            — ``GMH:holdings,GQCARS:gq cars|gqcars``
          ROUTER_KNOWN_REPOS          — ``judo,website``

        Raises ``ValueError`` (a pydantic ``ValidationError``) on malformed values.
        """
        env = os.environ if environ is None else environ
        mapping = {
            "openai_api_key": "OPENAI_API_KEY",
            "openai_model": "OPENAI_MODEL",
            "cache_ttl": "ROUTER_CACHE_TTL",
            "cache_max_size": "ROUTER_CACHE_MAX_SIZE",
            "fallback_timeout": "ROUTER_FALLBACK_TIMEOUT",
            "fallback_max_length": "ROUTER_FALLBACK_MAX_LENGTH",
            "trace_dir": "ROUTER_TRACE_DIR",
            "companies": "ROUTER_COMPANIES",
            "known_repos": "ROUTER_KNOWN_REPOS",
        }
        values: dict[str, object] = {
            field: env[var] for field, var in mapping.items() if env.get(var)
        }
        values["use_mock_llm"] = env.get("USE_MOCK_LLM") == "1"
        return cls(**values)


def parse_companies(raw: str) -> dict[str, list[str]]:
    """``"GMH:holdings,GQCARS:gq cars|gqcars"`` → ``{"GMH": ["holdings"], ...}``."""
    companies: dict[str, list[str]] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        code, _, aliases = item.partition(":")
        code = code.strip().upper()
        if not code:
            raise ValueError(f"Company entry {item!r} has no code")
        companies[code] = [a.strip() for a in aliases.split("|") if a.strip()]
    return companies
