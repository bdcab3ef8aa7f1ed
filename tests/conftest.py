"""Shared fixtures for command_router tests."""

from __future__ import annotations

from typing import Iterable

import pytest

from command_router.engine.cache import RouteCache
from command_router.engine.models import RouteContext, SkillResult
from command_router.engine.router import SmartRouter
from command_router.routing.patterns import PatternMatcher
from command_router.skills.interface import CommandSpec, Skill, command
from command_router.skills.registry import SkillRegistry
from command_router.tracing.jsonl_tracer import JSONLTraceCollector


class FakeClock:
    """Manually advanced replacement for ``time.monotonic``."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubSkill(Skill):
    """Configurable skill that records the commands it executes."""

    def __init__(
        self,
        name: str,
        priority: int = 0,
        patterns: Iterable[str] = (r".*",),
        result: SkillResult | None = None,
        error: Exception | None = None,
    ) -> None:
        super().__init__()
        self._name = name
        self._priority = priority
        self._commands = [command(p, f"{name} command", f"{name} <arg>") for p in patterns]
        self._result = result or SkillResult(message=f"{name} ok")
        self._error = error
        self.calls: list[str] = []
        self.shutdown_calls = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def priority(self) -> int:
        return self._priority

    def commands(self) -> list[CommandSpec]:
        return self._commands

    async def execute(self, command: str, context: RouteContext) -> SkillResult:
        self.calls.append(command)
        if self._error is not None:
            raise self._error
        return self._result

    async def shutdown(self) -> None:
        self.shutdown_calls += 1
        await super().shutdown()


@pytest.fixture
def make_skill():
    return StubSkill


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return SkillRegistry()


@pytest.fixture
def matcher():
    return PatternMatcher()


@pytest.fixture
def cache(clock):
    return RouteCache(ttl=300.0, max_size=500, clock=clock)


@pytest.fixture
def router(registry, matcher, cache):
    return SmartRouter(registry=registry, matcher=matcher, cache=cache)


@pytest.fixture
def trace_collector(tmp_path):
    return JSONLTraceCollector(trace_dir=str(tmp_path / "traces"))
