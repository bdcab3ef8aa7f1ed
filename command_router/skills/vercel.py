"""vercel skill — production and preview deploys for web repos."""

from __future__ import annotations

import re

from command_router.engine.models import RouteContext, SkillResult
from command_router.routing.patterns import PatternRule, rule
from command_router.skills.interface import CommandSpec, Skill, command

_VERCEL_RE = re.compile(r"^vercel\s+(deploy|preview)(?:\s+(\S+))?", re.IGNORECASE)


class VercelSkill(Skill):
    @property
    def name(self) -> str:
        return "vercel"

    @property
    def priority(self) -> int:
        return 30

    @property
    def description(self) -> str:
        return "Deploy to Vercel"

    def commands(self) -> list[CommandSpec]:
        return [
            command(r"^vercel\s+deploy\b", "Production deploy", "vercel deploy <repo>"),
            command(r"^vercel\s+preview\b", "Preview deploy", "vercel preview <repo>"),
        ]

    def routing_rules(self) -> list[PatternRule]:
        return [
            rule(r"^ship\s+(\S+)\s+to\s+vercel", lambda g: f"vercel deploy {g[1]}", "vercel",
                 examples=("ship judo to vercel",)),
        ]

    async def execute(self, command: str, context: RouteContext) -> SkillResult:
        m = _VERCEL_RE.match(command.strip())
        if not m:
            return SkillResult(success=False, message=f"Cannot parse command: {command}")
        mode = m.group(1).lower()
        target = m.group(2) or context.active_repo
        if not target:
            return SkillResult(success=False, message=f"Which repo should I {mode} on Vercel?")
        url = f"https://{target.lower()}{'-preview' if mode == 'preview' else ''}.vercel.app"
        return SkillResult(
            message=f"[dry run] vercel {mode} {target} -> {url}",
            data={"mode": mode, "target": target, "url": url},
        )
