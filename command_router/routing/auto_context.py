"""Auto-context injector — complete bare commands with the caller's default target."""

from __future__ import annotations

import logging
import re
from typing import Mapping, Sequence

from command_router.engine.models import RouteContext

logger = logging.getLogger(__name__)

# Target kind → command shapes that need that target. Shapes match the whole
# command, so "deploy judo" never matches the bare "deploy" shape.
DEFAULT_SHAPES: dict[str, tuple[str, ...]] = {
    "repo": (
        r"deploy",
        r"run tests?",
        r"logs",
        r"restart",
        r"build",
        r"install",
        r"project status",
        r"readme",
        r"project files",
    ),
    "company": (
        r"deadlines",
        r"company",
        r"expenses",
    ),
}


class AutoContextInjector:
    def __init__(self, shapes: Mapping[str, Sequence[str]] | None = None) -> None:
        table = shapes if shapes is not None else DEFAULT_SHAPES
        # dict order decides which kind wins when a shape appears twice
        self._shapes: list[tuple[str, tuple[re.Pattern[str], ...]]] = [
            (kind, tuple(re.compile(rf"^{s}$", re.IGNORECASE) for s in patterns))
            for kind, patterns in table.items()
        ]

    def inject(self, command: str, context: RouteContext | None) -> str:
        if context is None or not context.has_default_target:
            return command
        bare = command.strip().lower()
        for kind, patterns in self._shapes:
            default = (context.default_for(kind) or "").strip()
            if not default:
                continue
            if any(p.match(bare) for p in patterns):
                enhanced = f"{command} {default}"
                logger.info("Auto-context: %r -> %r", command, enhanced)
                return enhanced
        return command

    def needs_target(self, command: str) -> str | None:
        """Return the target kind a bare command needs, if any."""
        bare = command.strip().lower()
        for kind, patterns in self._shapes:
            if any(p.match(bare) for p in patterns):
                return kind
        return None
