"""help skill — lists the commands every registered skill declares."""

from __future__ import annotations

import re

from command_router.engine.models import RouteContext, SkillResult
from command_router.skills.interface import CommandSpec, Skill, command
from command_router.skills.registry import SkillRegistry

_HELP_TOPIC_RE = re.compile(r"^help\s+(.+)$", re.IGNORECASE)


class HelpSkill(Skill):
    def __init__(self, registry: SkillRegistry) -> None:
        super().__init__()
        self._registry = registry

    @property
    def name(self) -> str:
        return "help"

    @property
    def priority(self) -> int:
        return 100

    @property
    def description(self) -> str:
        return "Show available commands"

    def commands(self) -> list[CommandSpec]:
        return [
            command(r"^help$", "List all commands", "help"),
            command(r"^help\s+(.+)$", "Show commands for one skill", "help <skill-name>"),
            command(r"^commands$", "List all commands", "commands"),
            command(r"^skills$", "List registered skills", "skills"),
        ]

    async def execute(self, command: str, context: RouteContext) -> SkillResult:
        normalized = command.strip()
        if normalized.lower() == "skills":
            names = [s.name for s in self._registry.list_skills()]
            return SkillResult(message="Skills: " + ", ".join(names), data={"skills": names})

        m = _HELP_TOPIC_RE.match(normalized)
        if m:
            skill = self._registry.get(m.group(1).strip().lower())
            if skill is None:
                return SkillResult(success=False, message=f"Unknown skill: {m.group(1).strip()}")
            lines = [f"{skill.name}: {skill.description}", f"  Priority: {skill.priority}"]
            lines += [f"  {spec.usage} - {spec.description}" for spec in skill.commands() if spec.usage]
            return SkillResult(message="\n".join(lines), data={"skill": skill.name})

        return SkillResult(message=self._registry.skill_docs())
