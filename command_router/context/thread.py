"""Conversation thread — per-conversation entity tracking and pronoun resolution.

Example::

    thread.record("chat-1", "deploy judo")        # last repo = judo
    thread.resolve("chat-1", "now run tests on it")
    # -> "now run tests on judo"

State is partitioned by conversation id and never shared between
conversations. Threads expire after ``ttl`` seconds of inactivity and the
least recently used thread is evicted beyond ``max_threads``.
"""

from __future__ import annotations

import logging
import re
import time
from collections import OrderedDict, deque
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Mapping

from command_router.context.interface import PronounResolver

logger = logging.getLogger(__name__)

ACTION_VERBS: tuple[str, ...] = (
    "deploy", "test", "build", "run", "check", "fix", "review",
    "show", "list", "create", "delete", "update", "restart",
    "push", "pull", "merge", "revert", "rollback", "install",
)

_PRONOUN_VERBS = "deploy|test|build|run|check|fix|review|restart|push|pull|merge|revert|install"

_VERB_IT_RE = re.compile(rf"\b({_PRONOUN_VERBS})\s+it\b", re.IGNORECASE)
_PREP_IT_RE = re.compile(r"\b(on|to|for|with|in|from|about|against)\s+it\b", re.IGNORECASE)
_LEADING_IT_RE = re.compile(r"^it\b", re.IGNORECASE)
_PLURAL_RE = re.compile(r"\b(their|them|those|they)\b", re.IGNORECASE)
_THERE_RE = re.compile(r"\bthere\b", re.IGNORECASE)
_THAT_REPO_RE = re.compile(r"\b(?:that|this)\s+(?:repo|project|repository)\b", re.IGNORECASE)
_AGAIN_RE = re.compile(r"^(?:again|same(?:\s+thing)?)$", re.IGNORECASE)
_SAME_FOR_RE = re.compile(r"\b(?:do\s+the\s+)?same\s+for\s+(.+)$", re.IGNORECASE)
_OTHER_RE = re.compile(r"\bthe\s+other(?:\s+one)?\b", re.IGNORECASE)
_ENTITY_RE = re.compile(
    r"\b(?:check|fix|update|review|test|build|create|show|deploy)\s+(?:the\s+)?"
    r"([a-z][a-z0-9\s-]{2,30}?)(?:\s*$|\s+(?:on|for|in|to|from|with|and)\b)",
    re.IGNORECASE,
)

MENTION_KINDS = ("repo", "company", "action", "entity")


@dataclass
class Mention:
    kind: str
    value: str
    timestamp: float


@dataclass
class ThreadState:
    conversation_id: str
    updated_at: float
    last_repo: str | None = None
    last_company: str | None = None
    last_action: str | None = None
    last_entity: str | None = None
    mentions: deque[Mention] = field(default_factory=deque)


def _alias_table(names: Mapping[str, str] | Iterable[str]) -> list[tuple[re.Pattern[str], str]]:
    pairs = names.items() if isinstance(names, Mapping) else ((n, n) for n in names)
    return [(re.compile(rf"\b{re.escape(alias)}\b", re.IGNORECASE), canonical) for alias, canonical in pairs]


class ConversationThread(PronounResolver):
    """In-memory ``PronounResolver`` keyed by conversation id."""

    def __init__(
        self,
        known_repos: Mapping[str, str] | Iterable[str] = (),
        known_companies: Mapping[str, str] | Iterable[str] = (),
        ttl: float = 30 * 60,
        max_threads: int = 500,
        max_mentions: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repos = _alias_table(known_repos)
        self._companies = _alias_table(known_companies)
        self._known_lower = {c.lower() for _, c in self._repos + self._companies}
        self._ttl = ttl
        self._max_threads = max_threads
        self._max_mentions = max_mentions
        self._clock = clock
        self._threads: OrderedDict[str, ThreadState] = OrderedDict()
        self._total_mentions = 0
        self._total_resolutions = 0

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_mention(self, conversation_id: str, kind: str, value: str) -> None:
        if not conversation_id or not value:
            return
        if kind not in MENTION_KINDS:
            logger.warning("Unknown mention kind %r", kind)
            return
        state = self._get_or_create(str(conversation_id))
        now = self._clock()
        if kind == "action":
            value = value.lower()
        setattr(state, f"last_{kind}", value)
        state.mentions.append(Mention(kind=kind, value=value, timestamp=now))
        state.updated_at = now
        self._total_mentions += 1

    def record(self, conversation_id: str, message: str) -> None:
        self.detect_and_record(conversation_id, message)

    def detect_and_record(self, conversation_id: str, message: str) -> list[tuple[str, str]]:
        """Scan ``message`` for repos, companies, an action verb and an entity."""
        if not conversation_id or not message:
            return []
        detected: list[tuple[str, str]] = []

        for pattern, canonical in self._repos:
            if pattern.search(message):
                detected.append(("repo", canonical))
        for pattern, canonical in self._companies:
            if pattern.search(message):
                detected.append(("company", canonical))

        lower = message.lower()
        for verb in ACTION_VERBS:
            if re.search(rf"\b{verb}\b", lower):
                detected.append(("action", verb))
                break

        m = _ENTITY_RE.search(message)
        if m:
            entity = m.group(1).strip()
            if entity.lower() not in self._known_lower:
                detected.append(("entity", entity))

        for kind, value in detected:
            self.record_mention(conversation_id, kind, value)
        return detected

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, conversation_id: str, message: str) -> str:
        if not conversation_id or not message:
            return message
        state = self._live_state(str(conversation_id))
        if state is None:
            return message

        resolved = self._resolve_repeat(message, state)
        did_resolve = resolved != message

        if not did_resolve:
            resolved = self._resolve_other(resolved, state)
            did_resolve = resolved != message

        if not did_resolve or _THERE_RE.search(resolved) or _THAT_REPO_RE.search(resolved):
            before = resolved
            resolved = self._resolve_locational(resolved, state)
            did_resolve = did_resolve or resolved != before

        before = resolved
        resolved = self._resolve_plural(resolved, state)
        did_resolve = did_resolve or resolved != before

        before = resolved
        resolved = self._resolve_singular(resolved, state)
        did_resolve = did_resolve or resolved != before

        if did_resolve:
            self._total_resolutions += 1
            logger.info("Resolved %r -> %r (conversation=%s)", message, resolved, conversation_id)
        return resolved

    def _resolve_repeat(self, message: str, state: ThreadState) -> str:
        trimmed = message.strip()
        if _AGAIN_RE.match(trimmed):
            target = state.last_repo or state.last_entity
            if state.last_action and target:
                return f"{state.last_action} {target}"
            return message
        m = _SAME_FOR_RE.search(trimmed)
        if m and state.last_action:
            return f"{state.last_action} {m.group(1).strip()}"
        return message

    def _resolve_other(self, message: str, state: ThreadState) -> str:
        if not _OTHER_RE.search(message):
            return message
        repos = [m.value for m in reversed(state.mentions) if m.kind == "repo"]
        if len(repos) < 2:
            return message
        return _OTHER_RE.sub(lambda _: repos[1], message)

    def _resolve_locational(self, message: str, state: ThreadState) -> str:
        repo = state.last_repo
        if not repo:
            return message
        result = _THERE_RE.sub(lambda _: f"in {repo}", message)
        return _THAT_REPO_RE.sub(lambda _: repo, result)

    def _resolve_plural(self, message: str, state: ThreadState) -> str:
        company = state.last_company
        if not company:
            return message
        return _PLURAL_RE.sub(lambda _: company, message)

    def _resolve_singular(self, message: str, state: ThreadState) -> str:
        target = self._most_recent_singular(state)
        if not target:
            return message
        result = _VERB_IT_RE.sub(lambda m: f"{m.group(1)} {target}", message)
        result = _PREP_IT_RE.sub(lambda m: f"{m.group(1)} {target}", result)
        if len(result) > 2:
            result = _LEADING_IT_RE.sub(lambda _: target, result, count=1)
        return result

    @staticmethod
    def _most_recent_singular(state: ThreadState) -> str | None:
        for mention in reversed(state.mentions):
            if mention.kind in ("repo", "entity"):
                return mention.value
        return state.last_repo or state.last_entity

    # ------------------------------------------------------------------
    # Thread management
    # ------------------------------------------------------------------

    def get_state(self, conversation_id: str) -> ThreadState | None:
        state = self._live_state(str(conversation_id))
        if state is None:
            return None
        return replace(state, mentions=deque(state.mentions, maxlen=self._max_mentions))

    def clear(self, conversation_id: str) -> bool:
        existed = self._threads.pop(str(conversation_id), None) is not None
        if existed:
            logger.info("Cleared thread state for conversation %s", conversation_id)
        return existed

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, s in self._threads.items() if now - s.updated_at > self._ttl]
        for k in expired:
            del self._threads[k]
        if expired:
            logger.info("Cleaned up %d expired thread(s)", len(expired))
        return len(expired)

    def reset(self) -> None:
        self._threads.clear()

    def stats(self) -> dict[str, Any]:
        return {
            "active_threads": len(self._threads),
            "max_threads": self._max_threads,
            "total_mentions": self._total_mentions,
            "total_resolutions": self._total_resolutions,
            "ttl": self._ttl,
        }

    def _live_state(self, key: str) -> ThreadState | None:
        state = self._threads.get(key)
        if state is None:
            return None
        if self._clock() - state.updated_at > self._ttl:
            del self._threads[key]
            return None
        return state

    def _get_or_create(self, key: str) -> ThreadState:
        state = self._live_state(key)
        if state is not None:
            self._threads.move_to_end(key)
            return state
        if len(self._threads) >= self._max_threads:
            evicted, _ = self._threads.popitem(last=False)
            logger.info("LRU evicted thread for conversation %s", evicted)
        state = ThreadState(
            conversation_id=key,
            updated_at=self._clock(),
            mentions=deque(maxlen=self._max_mentions),
        )
        self._threads[key] = state
        return state
