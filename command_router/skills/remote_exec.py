"""remote_exec skill — repo actions (deploy, tests, logs, restart, build, install).

Runs in dry-run mode: it reports the action it would take instead of
executing anything, which is enough for routing demos and tests.
"""

from __future__ import annotations

import logging
import re

from command_router.engine.models import RouteContext, SkillResult
from command_router.skills.interface import CommandSpec, Skill, command

logger = logging.getLogger(__name__)

_ACTION_RE = re.compile(r"^(deploy|run\s+tests?|logs|restart|build|install)(?:\s+(.+))?$", re.IGNORECASE)


class RemoteExecSkill(Skill):
    def __init__(self, allowed_repos: list[str] | None = None) -> None:
        super().__init__()
        self._allowed = {r.lower() for r in allowed_repos} if allowed_repos else None
        self.executed: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "remote_exec"

    @property
    def priority(self) -> int:
        return 20

    @property
    def description(self) -> str:
        return "Run repo actions on the build host"

    def commands(self) -> list[CommandSpec]:
        return [
            command(r"^deploy\s+\S+", "Deploy a repo", "deploy <repo>"),
            command(r"^run\s+tests?\s+\S+", "Run a repo's test suite", "run tests <repo>"),
            command(r"^logs\s+\S+", "Tail a repo's logs", "logs <repo>"),
            command(r"^restart\s+\S+", "Restart a repo's service", "restart <repo>"),
            command(r"^build\s+\S+", "Build a repo", "build <repo>"),
            command(r"^install\s+\S+", "Install a repo's dependencies", "install <repo>"),
        ]

    async def execute(self, command: str, context: RouteContext) -> SkillResult:
        m = _ACTION_RE.match(command.strip())
        if not m:
            return SkillResult(success=False, message=f"Cannot parse command: {command}")
        action = " ".join(m.group(1).lower().split())
        if action.startswith("run"):
            action = "run tests"
        target = (m.group(2) or context.active_repo or "").strip()
        if not target:
            return SkillResult(success=False, message=f"Which repo should I {action}?")
        if self._allowed is not None and target.lower() not in self._allowed:
            return SkillResult(success=False, message=f"Unknown repo: {target}")

        self.executed.append((action, target))
        logger.info("remote_exec action=%s target=%s (dry run)", action, target)
        return SkillResult(
            message=f"[dry run] {action} {target}",
            data={"action": action, "target": target, "dry_run": True},
        )
