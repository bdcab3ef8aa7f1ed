"""Guard chain — cheap predicates that keep conversation out of the command path.

The router applies them in a fixed order around the pattern matcher::

    question → pattern match → passthrough → conversational build
             → structured command → coding instruction → agent delegation

Pattern matching deliberately runs before the passthrough guard: short
commands such as "what are the deadlines" would otherwise be swallowed by the
WH-question rule.
"""

from __future__ import annotations

import re
from typing import Iterable

_QUESTION_RE = re.compile(r"\?\s*$")

PASSTHROUGH_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        # greetings and social
        r"^(hey|hi|hello|yo|sup|hiya|morning|evening|afternoon|good\s+(morning|evening|afternoon|night))(\s|!|,|\.)*$",
        r"^(thanks|thank you|cheers|ta|thx|ty)(\s|!|\.)*$",
        r"^(ok|okay|sure|cool|nice|great|awesome|perfect|got it|understood|alright|no worries)(\s|!|\.)*$",
        r"^(yes|no|yeah|nah|yep|nope|yea|na)(\s|!|\.)*$",
        # WH-questions and requests
        r"^(where|what|when|who|how|why|which)\s",
        r"^(can you|could you|would you|will you|do you|are you|is there|is it|are there)\s",
        r"^(tell me|show me|send me|give me|find me|get me)\s",
        # follow-ups
        r"^(how long|when will|what about|what if|why not|why is|how come|how do i|how can i)\s",
        r"^(will it|is it|does it|can it|should i|do i need)\s",
        r"^(and |but |also |so |then |what about )",
        # scope discussion
        r"^(what about|how about|instead of|rather than|maybe we|maybe just)\s",
        r"^(for now|to start|initially|first|as a v1|as an mvp)\b",
    )
)

_BUILD_OPENER_RE = re.compile(
    r"^(hey|hi|let's|lets|i want|i'd like|i need|can you|could you|we should|shall we)\b",
    re.IGNORECASE,
)
_BUILD_VERB_RE = re.compile(
    r"\b(build|create|make|develop|implement|design|plan|scaffold|setup|start|prototype)\b",
    re.IGNORECASE,
)

CODING_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^add (a |the |an )?",
        r"^(make|change|update|modify|improve|refactor|redesign)",
        r"^(fix|debug|resolve|patch|repair)",
        r"^(remove|delete|hide|disable) (the |a |an )?",
        r"^(implement|integrate|connect|wire|hook|set\s*up)",
        r"^(style|theme|color|design|layout|animate)",
        r"^(move|reorganize|restructure|split|merge|combine)",
        r"^(replace|swap|substitute|convert|migrate|upgrade)",
        r"^(optimize|speed up|improve performance|cache|lazy)",
        r"^(write|code|program|develop|scaffold)",
        r"\b(navigation|navbar|sidebar|header|footer|button|form|modal|page|component|feature)\b",
        r"\b(like|similar to|same as|copy from|based on)\b.*\b(app|project|repo|site)\b",
        r"^(build|create|start|scaffold)\s+(me\s+)?(a|an|the|some)\b",
        r"^(let's|lets|i want to|i'd like to)\s+(build|create|make|add|implement)",
    )
)

# Exact skill command shapes. Coding instructions ("create a feature") must not
# match, so remote-execution verbs require a target word after them.
COMMAND_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^(help|status|deadlines|expenses|companies|list repos)\b",
        r"^(review pr|search tasks?|read file|analyze\s+\S+$)",
        r"^(company|governance|intercompany|workflows|loans|ic balance)\b",
        r"^(summary|receipts|pending|due)\b",
        r"^(project status|readme|project files|switch to|my repos)\b",
        r"^run tests?\s+\S+",
        r"^deploy\s+\S+",
        r"^logs\s+\S+",
        r"^restart\s+\S+",
        r"^build\s+\S+$",
        r"^install\s+\S+",
        r"^exec\s+",
        r"^vercel\s+(deploy|preview)\b",
        r"^agent session\s+\S+",
        r"^(deploy|logs|restart|build|install|run tests?)$",
        r"^create new project\s+\w+$",
    )
)

_AGENT_MENTION_RE = re.compile(
    r"\b(?:coding\s+agent|use\s+the\s+agent|have\s+the\s+agent|ask\s+the\s+agent)\b",
    re.IGNORECASE,
)
_AGENT_TASK_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:use|ask)\s+the\s+(?:coding\s+)?agent\s+to\s+(.+)", re.IGNORECASE),
    re.compile(r"have\s+the\s+(?:coding\s+)?agent\s+(.+)", re.IGNORECASE),
    re.compile(r"coding\s+agent\s+(?:to\s+)?(.+)", re.IGNORECASE),
)


def is_question(message: str) -> bool:
    return bool(_QUESTION_RE.search(message))


def is_passthrough(message: str) -> bool:
    return any(p.search(message) for p in PASSTHROUGH_PATTERNS)


def is_conversational_build(message: str) -> bool:
    """First-person desire plus a build verb: a feature request, not a command."""
    return bool(_BUILD_OPENER_RE.search(message) and _BUILD_VERB_RE.search(message))


def is_coding_instruction(message: str) -> bool:
    return any(p.search(message) for p in CODING_PATTERNS)


def looks_like_command(message: str, extra_patterns: Iterable[re.Pattern[str]] = ()) -> bool:
    """Structured-command recognizer.

    ``extra_patterns`` are the command patterns declared by registered skills,
    so a newly added skill is recognized without touching this module.
    """
    stripped = message.strip()
    if any(p.search(stripped) for p in extra_patterns):
        return True
    return any(p.search(stripped) for p in COMMAND_PATTERNS)


def extract_agent_task(message: str) -> str | None:
    """Map "have the agent X" style delegation to ``agent session X``.

    Returns ``None`` when the message does not mention the agent at all and
    ``""`` when it mentions the agent without a task (treat as conversation).
    """
    if not _AGENT_MENTION_RE.search(message):
        return None
    for pattern in _AGENT_TASK_RES:
        m = pattern.search(message)
        if m and m.group(1).strip():
            return f"agent session {m.group(1).strip()}"
    return ""
