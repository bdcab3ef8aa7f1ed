"""Skill registry — priority-ordered dispatch with conflict reporting."""

from __future__ import annotations

import logging
import re
import time
from collections import deque
from typing import Any, Callable, Iterable

from command_router.engine.models import (
    DispatchResult,
    DispatchStatus,
    RouteContext,
    SkillConflict,
)
from command_router.skills.interface import Skill
from command_router.tracing.events import ConflictTrace, DispatchTrace
from command_router.tracing.interface import TraceCollector

logger = logging.getLogger(__name__)

ConflictListener = Callable[[SkillConflict], None]


class SkillRegistry:
    """Holds the registered skills and dispatches commands to them.

    Readers always work on an immutable tuple snapshot; every mutation builds a
    new tuple and swaps it in, so a reload never exposes a half-updated list to
    an in-flight dispatch.
    """

    def __init__(
        self,
        trace_collector: TraceCollector | None = None,
        max_conflicts: int = 50,
    ) -> None:
        self._skills: tuple[Skill, ...] = ()
        self._trace = trace_collector
        self._listeners: list[ConflictListener] = []
        self._conflicts: deque[SkillConflict] = deque(maxlen=max_conflicts)
        self._started = False

    # -- registration -------------------------------------------------------

    def preload(self, skills: Iterable[Skill]) -> None:
        """Add skills to a registry that has not started yet.

        No lifecycle calls are made; ``start()`` initializes them. Use
        ``register`` once the registry is running or to replace a skill.
        """
        if self._started:
            raise RuntimeError("Registry already started, use register()")
        for skill in skills:
            if skill.name in self:
                raise ValueError(f"Skill {skill.name} already registered")
            self._skills = (*self._skills, skill)
            logger.info("Registered skill %s (priority=%d)", skill.name, skill.priority)

    async def register(self, skill: Skill) -> None:
        """Add ``skill``, replacing (and shutting down) any skill with the same name.

        On a started registry the new skill is initialized before it returns.
        """
        existing = self.get(skill.name)
        if existing is not None:
            logger.warning("Skill %s already registered, replacing", skill.name)
            self._skills = tuple(s for s in self._skills if s.name != skill.name)
            if existing is not skill:
                await self._shutdown_skill(existing)
        self._skills = (*self._skills, skill)
        logger.info("Registered skill %s (priority=%d)", skill.name, skill.priority)
        if self._started and not skill.initialized:
            await self._initialize_skill(skill)

    async def unregister(self, name: str) -> bool:
        skill = self.get(name)
        if skill is None:
            logger.warning("Skill %s not found", name)
            return False
        self._skills = tuple(s for s in self._skills if s.name != name)
        await self._shutdown_skill(skill)
        logger.info("Unregistered skill %s", name)
        return True

    async def reload(self, skills: Iterable[Skill]) -> None:
        """Swap in the whole skill set, shut removed skills down, initialize new ones if started."""
        new = tuple(skills)
        old = self._skills
        self._skills = new
        kept = {id(s) for s in new}
        for skill in old:
            if id(skill) not in kept:
                await self._shutdown_skill(skill)
        if self._started:
            for skill in new:
                if not skill.initialized:
                    await self._initialize_skill(skill)
        logger.info("Reloaded registry: %d skill(s)", len(new))

    def get(self, name: str) -> Skill | None:
        return next((s for s in self._skills if s.name == name), None)

    def __contains__(self, name: object) -> bool:
        return any(s.name == name for s in self._skills)

    def __len__(self) -> int:
        return len(self._skills)

    # -- introspection ------------------------------------------------------

    def list_skills(self) -> list[Skill]:
        """Snapshot sorted by descending priority; ties keep registration order."""
        return sorted(self._skills, key=lambda s: -s.priority)

    def find_matching(self, command: str) -> list[Skill]:
        normalized = (command or "").strip()
        if not normalized:
            return []
        return [s for s in self.list_skills() if _safe_can_handle(s, normalized)]

    def command_patterns(self) -> list[re.Pattern[str]]:
        return [spec.pattern for s in self._skills for spec in s.commands()]

    def command_usages(self) -> list[str]:
        return [spec.usage for s in self._skills for spec in s.commands() if spec.usage]

    def skill_docs(self, per_skill: int = 3) -> str:
        """Human-readable command list, highest priority skill first."""
        skills = self.list_skills()
        if not skills:
            return "No skills loaded."
        lines: list[str] = []
        for skill in skills:
            for spec in skill.commands()[:per_skill]:
                usage = spec.usage or spec.pattern.pattern.strip("^$")
                lines.append(f'- "{usage}" - {spec.description or skill.description}')
        return "\n".join(lines)

    # -- conflicts ----------------------------------------------------------

    def subscribe(self, listener: ConflictListener) -> Callable[[], None]:
        """Register a conflict listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def recent_conflicts(self) -> list[SkillConflict]:
        return list(self._conflicts)

    async def _report_conflict(self, command: str, matching: list[Skill], trace_id: str | None) -> None:
        conflict = SkillConflict(
            command=command,
            matching_skills=[s.name for s in matching],
            priorities=[s.priority for s in matching],
        )
        logger.warning(
            "%d skills match %r: %s",
            len(matching),
            command[:50],
            ", ".join(f"{s.name}(p{s.priority})" for s in matching),
        )
        self._conflicts.append(conflict)
        for listener in list(self._listeners):
            try:
                listener(conflict)
            except Exception:
                logger.exception("Conflict listener %r failed", listener)
        if self._trace and trace_id:
            await self._trace.emit(ConflictTrace(
                trace_id=trace_id,
                command=command,
                matching_skills=conflict.matching_skills,
                priorities=conflict.priorities,
            ))

    # -- lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        for skill in self._skills:
            if not skill.initialized:
                await self._initialize_skill(skill)
        self._started = True

    async def stop(self) -> None:
        for skill in self._skills:
            await self._shutdown_skill(skill)
        self._started = False

    @staticmethod
    async def _initialize_skill(skill: Skill) -> None:
        try:
            await skill.initialize()
        except Exception:
            logger.exception("Failed to initialize skill %s", skill.name)

    @staticmethod
    async def _shutdown_skill(skill: Skill) -> None:
        try:
            await skill.shutdown()
        except Exception:
            logger.exception("Error shutting down skill %s", skill.name)

    def status(self) -> dict[str, Any]:
        return {
            "started": self._started,
            "skill_count": len(self._skills),
            "skills": [s.name for s in self._skills],
            "recent_conflicts": len(self._conflicts),
        }

    # -- dispatch -----------------------------------------------------------

    async def dispatch(
        self,
        command: str,
        context: RouteContext | None = None,
        trace_id: str | None = None,
    ) -> DispatchResult:
        normalized = command.strip() if isinstance(command, str) else ""
        if not normalized:
            return DispatchResult(status=DispatchStatus.UNHANDLED, message="Invalid command")

        ctx = context or RouteContext()
        matching = self.find_matching(normalized)
        names = [s.name for s in matching]
        if len(matching) > 1:
            await self._report_conflict(normalized, matching, trace_id)

        if not matching:
            logger.info("No skill handles %r", normalized[:50])
            result = DispatchResult(
                status=DispatchStatus.UNHANDLED,
                message="No skill available to handle this command",
            )
            await self._trace_dispatch(trace_id, normalized, result, 0.0)
            return result

        skill = matching[0]
        t0 = time.time()
        try:
            if not skill.initialized:
                logger.warning("Skill %s not initialized, initializing now", skill.name)
                await skill.initialize()
            outcome = await skill.execute(normalized, ctx)
        except Exception as exc:
            logger.exception("Error executing skill %s", skill.name)
            result = DispatchResult(
                status=DispatchStatus.FAILED,
                skill=skill.name,
                message=f"Error executing command: {exc}",
                error_kind=type(exc).__name__,
                matching_skills=names,
            )
        else:
            result = DispatchResult(
                status=DispatchStatus.HANDLED if outcome.success else DispatchStatus.FAILED,
                skill=skill.name,
                message=outcome.message,
                data=outcome.data,
                error_kind=None if outcome.success else "skill_error",
                matching_skills=names,
            )
        await self._trace_dispatch(trace_id, normalized, result, time.time() - t0)
        return result

    async def _trace_dispatch(
        self, trace_id: str | None, command: str, result: DispatchResult, latency: float
    ) -> None:
        if not (self._trace and trace_id):
            return
        await self._trace.emit(DispatchTrace(
            trace_id=trace_id,
            command=command,
            status=result.status,
            skill=result.skill,
            error_kind=result.error_kind,
            matching_skills=result.matching_skills,
            latency_ms=round(latency * 1000, 2),
        ))


def _safe_can_handle(skill: Skill, command: str) -> bool:
    try:
        return skill.can_handle(command)
    except Exception:
        logger.exception("can_handle raised in skill %s", skill.name)
        return False
