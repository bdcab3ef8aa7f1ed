"""Core data models — no internal dependencies, only Pydantic + stdlib."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ---------------------------------------------------------------------------
# Inbound context (transport → router)
# ---------------------------------------------------------------------------

class RouteContext(BaseModel):
    """Caller-supplied hints. Immutable for the duration of a routing call."""

    model_config = ConfigDict(frozen=True)

    active_repo: str | None = None
    active_company: str | None = None
    conversation_id: str | None = None

    def default_for(self, kind: str) -> str | None:
        if kind == "repo":
            return self.active_repo
        if kind == "company":
            return self.active_company
        return None

    @property
    def has_default_target(self) -> bool:
        return bool(self.active_repo or self.active_company)


# ---------------------------------------------------------------------------
# Resolved commands
# ---------------------------------------------------------------------------

class RouteSource(str, Enum):
    CACHE = "cache"
    PATTERN = "pattern"
    STRUCTURED = "structured"
    DELEGATION = "delegation"
    FALLBACK = "fallback"
    PASSTHROUGH = "passthrough"


class ResolvedCommand(BaseModel):
    """Structured command carried through the router.

    Only ``text`` crosses the dispatch boundary; the rest is kept for
    auditing and tracing.
    """

    text: str
    verb: str = ""
    args: list[str] = Field(default_factory=list)
    target: str | None = None
    confidence: float = 1.0
    source: RouteSource = RouteSource.PATTERN

    @classmethod
    def from_text(
        cls,
        text: str,
        source: RouteSource,
        confidence: float = 1.0,
        target: str | None = None,
    ) -> ResolvedCommand:
        parts = text.split()
        return cls(
            text=text,
            verb=parts[0].lower() if parts else "",
            args=parts[1:],
            target=target if target is not None else (parts[-1] if len(parts) > 1 else None),
            confidence=confidence,
            source=source,
        )

    def __str__(self) -> str:
        return self.text


# ---------------------------------------------------------------------------
# Multi-intent
# ---------------------------------------------------------------------------

class Intent(BaseModel):
    text: str
    order: int = 0
    connector: str | None = None
    is_sequential: bool = False


class DecompositionResult(BaseModel):
    is_multi_intent: bool = False
    original_message: str = ""
    intents: list[Intent] = Field(default_factory=list)


class IntentContinuation(BaseModel):
    """Intents left over after the first one of a compound message was routed."""

    total_intents: int
    remaining_intents: list[Intent] = Field(default_factory=list)
    is_sequential: bool = False
    original_message: str = ""


# ---------------------------------------------------------------------------
# Route outcome (router → transport)
# ---------------------------------------------------------------------------

class RouteResult(BaseModel):
    text: str
    source: RouteSource
    command: ResolvedCommand | None = None
    continuation: IntentContinuation | None = None
    original_message: str = ""

    @property
    def is_command(self) -> bool:
        return self.command is not None


class RouteMetrics(BaseModel):
    """Process-lifetime routing counters. Observability only."""

    cache_hits: int = 0
    pattern_hits: int = 0
    ai_hits: int = 0
    passthroughs: int = 0
    pronoun_resolutions: int = 0
    multi_intents: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return self.cache_hits + self.pattern_hits + self.ai_hits + self.passthroughs

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pattern_rate(self) -> str:
        return _rate(self.pattern_hits, self.total)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cache_rate(self) -> str:
        return _rate(self.cache_hits, self.total)


def _rate(part: int, total: int) -> str:
    if total <= 0:
        return "0%"
    return f"{part / total * 100:.1f}%"


# ---------------------------------------------------------------------------
# Skill execution
# ---------------------------------------------------------------------------

class SkillResult(BaseModel):
    success: bool = True
    message: str = ""
    data: dict[str, Any] = Field(default_factory=dict)


class DispatchStatus(str, Enum):
    HANDLED = "handled"
    FAILED = "failed"
    UNHANDLED = "unhandled"


class DispatchResult(BaseModel):
    status: DispatchStatus
    skill: str | None = None
    message: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
    error_kind: str | None = None
    matching_skills: list[str] = Field(default_factory=list)

    @property
    def handled(self) -> bool:
        return self.status == DispatchStatus.HANDLED


class SkillConflict(BaseModel):
    """More than one skill claimed the same command."""

    command: str
    matching_skills: list[str]
    priorities: list[int] = Field(default_factory=list)
    timestamp: float = Field(default_factory=time.time)
