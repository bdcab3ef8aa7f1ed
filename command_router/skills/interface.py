"""Skill ABC — declares command patterns, a priority, and an async executor."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from command_router.engine.models import RouteContext, SkillResult
from command_router.routing.patterns import PatternRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandSpec:
    pattern: re.Pattern[str]
    description: str = ""
    usage: str | None = None


def command(pattern: str, description: str = "", usage: str | None = None) -> CommandSpec:
    return CommandSpec(re.compile(pattern, re.IGNORECASE), description, usage)


class Skill(ABC):
    """A registered handler for one or more command shapes.

    Higher ``priority`` is consulted first by the dispatcher.
    """

    def __init__(self) -> None:
        self._initialized = False

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    def priority(self) -> int:
        return 0

    @property
    def description(self) -> str:
        return ""

    @abstractmethod
    def commands(self) -> list[CommandSpec]: ...

    @abstractmethod
    async def execute(self, command: str, context: RouteContext) -> SkillResult: ...

    def can_handle(self, command: str) -> bool:
        if not command:
            return False
        normalized = command.strip().lower()
        return any(spec.pattern.search(normalized) for spec in self.commands())

    def routing_rules(self) -> list[PatternRule]:
        """Natural-language rules this skill contributes to the pattern matcher."""
        return []

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        self._initialized = True
        logger.info("Skill %s initialized", self.name)

    async def shutdown(self) -> None:
        self._initialized = False
        logger.info("Skill %s shut down", self.name)
