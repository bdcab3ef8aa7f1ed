"""Typed trace records written by the router and the skill registry."""

from __future__ import annotations

import time
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from command_router.engine.models import DispatchStatus, RouteSource


class TraceEvent(BaseModel):
    trace_id: str
    event: str
    ts: float = Field(default_factory=time.time)


class RouteTrace(TraceEvent):
    """One per routed message."""

    event: Literal["route"] = "route"
    source: RouteSource
    cache_hit: bool = False
    original_message: str = ""
    text: str = ""
    remaining_intents: int = 0
    latency_ms: float = 0.0


class DispatchTrace(TraceEvent):
    """One per dispatched command, handled or not."""

    event: Literal["dispatch"] = "dispatch"
    command: str
    status: DispatchStatus
    skill: str | None = None
    error_kind: str | None = None
    matching_skills: list[str] = Field(default_factory=list)
    latency_ms: float = 0.0


class ConflictTrace(TraceEvent):
    event: Literal["skill_conflict"] = "skill_conflict"
    command: str
    matching_skills: list[str]
    priorities: list[int] = Field(default_factory=list)


TraceRecord = Annotated[
    Union[RouteTrace, DispatchTrace, ConflictTrace],
    Field(discriminator="event"),
]

trace_record_adapter: TypeAdapter[TraceRecord] = TypeAdapter(TraceRecord)
