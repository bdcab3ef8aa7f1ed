"""Multi-intent parser — split compound messages into ordered intents.

Pattern-based only (no model calls), so it is cheap and deterministic::

    "run tests on JUDO and then deploy it"   -> 2 sequential intents
    "check deadlines and also show expenses" -> 2 independent intents
    "deploy JUDO but first run tests"        -> 2 intents, order reversed
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Iterable

from command_router.context.interface import IntentDecomposer
from command_router.engine.models import DecompositionResult, Intent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connector:
    pattern: re.Pattern[str]
    label: str
    sequential: bool
    reverse: bool = False
    requires_both_verbs: bool = False


def _connector(pattern: str, label: str, sequential: bool, **kwargs: bool) -> Connector:
    return Connector(re.compile(pattern, re.IGNORECASE), label, sequential, **kwargs)


# Most specific first. Plain "and"/"also" only split when every side has a verb.
CONNECTORS: tuple[Connector, ...] = (
    _connector(r"\s+but\s+first\s+", "but first", True, reverse=True),
    _connector(r"\s+and\s+then\s+", "and then", True),
    _connector(r"\s+and\s+also\s+", "and also", False),
    _connector(r"\s+(?:and\s+)?after\s+that\s+", "after that", True),
    _connector(r",\s*then\s+", ", then", True),
    _connector(r"\.\s+", ".", True),
    _connector(r"\s+then\s+", "then", True),
    _connector(r"\s+and\s+", "and", False, requires_both_verbs=True),
    _connector(r",?\s+also\s+", "also", False, requires_both_verbs=True),
)

COMMAND_VERBS: frozenset[str] = frozenset({
    "run", "deploy", "check", "show", "list", "create", "add", "remove",
    "delete", "update", "fix", "build", "test", "start", "stop", "restart",
    "install", "push", "pull", "merge", "review", "generate", "send",
    "get", "set", "enable", "disable", "configure", "backup", "restore",
    "monitor", "schedule", "cancel", "undo", "redo", "search", "find",
    "open", "close", "status", "help", "remind", "notify", "analyze",
    "compare", "export", "import", "reset", "verify", "validate",
    "publish", "browse", "screenshot", "research", "summarize",
})

# "and" inside these is part of a noun phrase, not a connector.
PROTECTED_AND_PHRASES: tuple[str, ...] = (
    "pros and cons", "back and forth", "up and running", "search and replace",
    "find and replace", "copy and paste", "cut and paste", "drag and drop",
    "trial and error", "rise and fall", "come and go", "more and more",
    "less and less", "again and again", "now and then", "here and there",
    "bread and butter", "black and white", "dos and donts", "bits and pieces",
    "null and void", "safe and sound", "sick and tired", "front and back",
    "frontend and backend", "left and right", "read and write",
    "input and output", "start and end", "begin and end", "name and email",
    "username and password", "questions and answers", "terms and conditions",
)

_GREETING_RES = (
    re.compile(r"^(hi|hello|hey|howdy|greetings|good\s+(morning|afternoon|evening))\b", re.IGNORECASE),
    re.compile(r"^(what'?s?\s+up|sup|yo)\b", re.IGNORECASE),
)
_QUESTION_RE = re.compile(r"\?\s*$")
_FIRST_RE = re.compile(r"^first\s+", re.IGNORECASE)
_PRONOUN_RES = tuple(re.compile(p, re.IGNORECASE) for p in (r"\bit\b", r"\bthem\b", r"\btheir\b", r"\bits\b", r"\bthat\b"))
_CAPITALIZED_RE = re.compile(r"\b([A-Z][A-Za-z0-9-]{1,})\b")
_QUOTED_RE = re.compile(r'"[^"]*"')


@dataclass
class _Segment:
    text: str
    connector: str | None = None
    sequential: bool = False
    reverse: bool = False


class MultiIntentParser(IntentDecomposer):
    def __init__(self, known_entities: Iterable[str] = ()) -> None:
        self._entities = [
            (re.compile(rf"\b{re.escape(e)}\b", re.IGNORECASE), e) for e in known_entities
        ]

    # -- public -------------------------------------------------------------

    def is_multi_intent(self, message: str) -> bool:
        """Quick gate; cheaper than ``decompose``."""
        if not message or not isinstance(message, str):
            return False
        trimmed = message.strip()
        if _QUESTION_RE.search(trimmed) or self._is_greeting(trimmed):
            return False
        for conn in CONNECTORS:
            if not conn.pattern.search(trimmed):
                continue
            parts = _split_outside_quotes(conn.pattern, trimmed)
            if len(parts) < 2:
                continue
            if not conn.requires_both_verbs:
                return True
            if self._contains_verb(parts[0]) and self._contains_verb(parts[-1]):
                return True
        return False

    def decompose(self, message: str) -> DecompositionResult:
        if not message or not isinstance(message, str):
            return self._single(message or "")
        trimmed = message.strip()
        if len(trimmed) < 3 or _QUESTION_RE.search(trimmed) or self._is_greeting(trimmed):
            return self._single(trimmed)

        lower = trimmed.lower()
        protected_and = any(phrase in lower for phrase in PROTECTED_AND_PHRASES)

        segments = [_Segment(text=trimmed)]
        for conn in CONNECTORS:
            if protected_and and conn.label == "and":
                continue
            segments = self._split(segments, conn)

        valid = [s for s in segments if len(s.text.split()) >= 2 or self._contains_verb(s.text)]
        if len(valid) <= 1:
            return self._single(trimmed)

        if _FIRST_RE.match(valid[0].text):
            valid[0].text = _FIRST_RE.sub("", valid[0].text).strip()
            for seg in valid[1:]:
                seg.sequential = True

        self._resolve_pronouns(valid)
        ordered = self._order(valid)
        any_sequential = any(s.sequential for s in ordered)
        intents = [
            Intent(
                text=seg.text.strip(),
                order=i,
                connector=seg.connector,
                is_sequential=any_sequential if i == 0 else seg.sequential,
            )
            for i, seg in enumerate(ordered)
        ]
        logger.debug("Decomposed %r into %d intents", trimmed, len(intents))
        return DecompositionResult(is_multi_intent=True, original_message=message, intents=intents)

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _single(text: str) -> DecompositionResult:
        return DecompositionResult(
            is_multi_intent=False,
            original_message=text,
            intents=[Intent(text=text.strip() or text)],
        )

    @staticmethod
    def _is_greeting(text: str) -> bool:
        return any(p.search(text) for p in _GREETING_RES)

    @staticmethod
    def _contains_verb(text: str) -> bool:
        return any(word in COMMAND_VERBS for word in text.lower().split())

    @staticmethod
    def _unbalanced_quotes(text: str) -> bool:
        return text.count('"') % 2 != 0 or text.count("'") % 2 != 0

    def _split(self, segments: list[_Segment], conn: Connector) -> list[_Segment]:
        result: list[_Segment] = []
        for seg in segments:
            if self._unbalanced_quotes(seg.text):
                result.append(seg)
                continue
            parts = _split_outside_quotes(conn.pattern, seg.text)
            if len(parts) < 2:
                result.append(seg)
                continue
            if conn.requires_both_verbs and any(p.strip() and not self._contains_verb(p) for p in parts):
                result.append(seg)
                continue
            parts = [p.strip() for p in parts if p.strip()]
            if len(parts) < 2:
                result.append(seg)
                continue
            result.append(replace(seg, text=parts[0]))
            result.extend(
                _Segment(text=p, connector=conn.label, sequential=conn.sequential, reverse=conn.reverse)
                for p in parts[1:]
            )
        return result

    def _extract_entity(self, text: str) -> str | None:
        for pattern, entity in self._entities:
            if pattern.search(text):
                return entity
        for m in _CAPITALIZED_RE.finditer(text):
            if m.group(1).lower() not in COMMAND_VERBS:
                return m.group(1)
        return None

    def _resolve_pronouns(self, segments: list[_Segment]) -> None:
        last_entity: str | None = None
        for i, seg in enumerate(segments):
            found = self._extract_entity(seg.text)
            if found:
                last_entity = found
            if i == 0 or not last_entity:
                continue
            entity = last_entity
            for pattern in _PRONOUN_RES:
                seg.text = pattern.sub(lambda _: entity, seg.text)

    @staticmethod
    def _order(segments: list[_Segment]) -> list[_Segment]:
        """Move each "but first" segment ahead of the one it was split from."""
        result: list[_Segment] = []
        for seg in segments:
            if seg.reverse and result:
                prev = result.pop()
                result.append(replace(seg, reverse=False, sequential=True))
                result.append(replace(prev, sequential=True))
            else:
                result.append(seg)
        return result


def _split_outside_quotes(pattern: re.Pattern[str], text: str) -> list[str]:
    """``pattern.split`` that ignores matches inside a double-quoted span."""
    spans = [m.span() for m in _QUOTED_RE.finditer(text)]
    parts: list[str] = []
    start = 0
    for m in pattern.finditer(text):
        if any(s < m.start() < e for s, e in spans):
            continue
        parts.append(text[start:m.start()])
        start = m.end()
    parts.append(text[start:])
    return parts
