"""Generative fallback — last-resort routing through a completion model.

The model only routes. For conversation it is told to echo the message
back, and anything that does not look like a bare command is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Iterable

from command_router.engine.llm import CompletionClient
from command_router.engine.models import RouteContext
from command_router.engine.sanitizer import sanitize
from command_router.routing.auto_context import AutoContextInjector

if TYPE_CHECKING:
    from command_router.skills.registry import SkillRegistry

logger = logging.getLogger(__name__)

BUILTIN_USAGES: tuple[str, ...] = (
    "deadlines, deadlines <COMPANY_CODE>",
    "companies, company <CODE>, company number <CODE>",
    "expenses, summary, pending receipts",
    "list repos, analyze <repo>, create new project <name>",
    "can I <action>?, governance <topic>",
    "intercompany, loans, ic balance",
    "workflows, workflows pending",
    "help, status",
    "project status <repo>, readme <repo>, project files <repo>",
    "my repos, switch to <repo>, active project",
    "run tests <repo>, deploy <repo>, logs <repo>",
    "restart <repo>, build <repo>, install <repo>",
    "vercel deploy <repo>, vercel preview <repo>",
    "agent session <task>",
)

_INSTRUCTIONS = (
    "Convert this natural language to a bot command. Reply with ONLY the command, "
    "nothing else. If it doesn't match any command, reply with the original message exactly.\n"
    "\n"
    "IMPORTANT: If the message is a conversational question, follow-up, or acknowledgment "
    "(not a command), return the ORIGINAL message unchanged. Do NOT force it into a command. "
    'Examples of conversational messages that should be returned unchanged: "How long will it take?", '
    '"What about the other one?", "Can you explain more?", "Sounds good", "Thanks".'
)


class GenerativeFallback:
    """Single timed ``complete()`` call that maps free text to a command."""

    def __init__(
        self,
        client: CompletionClient,
        registry: SkillRegistry | None = None,
        timeout: float = 5.0,
        max_length: int = 100,
        max_usages: int = 30,
        companies: Iterable[str] = (),
        injector: AutoContextInjector | None = None,
    ) -> None:
        self._client = client
        self._registry = registry
        self._timeout = timeout
        self._max_length = max_length
        self._max_usages = max_usages
        self._companies = [c.upper() for c in companies]
        self._injector = injector or AutoContextInjector()

    # -- prompt -------------------------------------------------------------

    def skill_usages(self) -> list[str]:
        """Usages declared by live skills, deduplicated in registration order."""
        if self._registry is None:
            return []
        seen: dict[str, None] = {}
        for usage in self._registry.command_usages():
            if "(" in usage:
                continue
            seen.setdefault(usage, None)
        return list(seen)[: self._max_usages]

    def build_prompt(self, message: str, context: RouteContext | None = None) -> str:
        usages = [*BUILTIN_USAGES, *self.skill_usages()]
        lines = [_INSTRUCTIONS, "", "Available commands:"]
        lines.extend(f"- {u}" for u in usages)
        if self._companies:
            lines.append("")
            lines.append(f"Company codes: {', '.join(self._companies)}")

        hint = _context_hint(context)
        if hint:
            lines.append("")
            lines.append(hint)

        lines.append("")
        lines.append(f'User message: "{message}"')
        lines.append("")
        lines.append("Command:")
        return "\n".join(lines)

    # -- resolution ---------------------------------------------------------

    async def resolve(self, message: str, context: RouteContext | None = None) -> str | None:
        """Return a command, or ``None`` when the model gave nothing usable.

        An echo of ``message`` (case and spacing aside) means "not a command"; the
        check runs on the unsanitized output.
        """
        prompt = self.build_prompt(message, context)
        try:
            raw = await asyncio.wait_for(self._client.complete(prompt), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Fallback routing timed out after %.1fs, passing through", self._timeout)
            return None
        except Exception as exc:
            logger.error("Fallback routing failed: %s", exc)
            return None

        candidate = (raw or "").strip()
        if not candidate:
            return None
        if _normalize(candidate) == _normalize(message):
            logger.debug("Fallback echoed the message, not a command")
            return None
        if len(candidate) > self._max_length or "\n" in candidate:
            logger.info("Discarding fallback output (%d chars)", len(candidate))
            return None

        command = sanitize(candidate)
        if not command:
            return None
        return self._injector.inject(command, context)


def _context_hint(context: RouteContext | None) -> str:
    if context is None:
        return ""
    if context.active_repo:
        return (
            f'Note: The user is in the context of repo "{context.active_repo}". '
            f'If the command needs a repo and none is specified, use "{context.active_repo}".'
        )
    if context.active_company:
        return (
            f'Note: The user is in the context of company "{context.active_company}". '
            f'If the command needs a company and none is specified, use "{context.active_company}".'
        )
    return ""


def _normalize(text: str) -> str:
    return " ".join(text.strip().strip('"').lower().split())
