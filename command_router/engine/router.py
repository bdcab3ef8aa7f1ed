"""SmartRouter — the natural-language to command pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
import weakref
from collections import OrderedDict
from typing import Any

from command_router.context.interface import IntentDecomposer, PronounResolver
from command_router.engine.cache import RouteCache
from command_router.engine.fallback import GenerativeFallback
from command_router.engine.models import (
    DispatchResult,
    DispatchStatus,
    IntentContinuation,
    ResolvedCommand,
    RouteContext,
    RouteMetrics,
    RouteResult,
    RouteSource,
)
from command_router.engine.sanitizer import sanitize
from command_router.routing import guards
from command_router.routing.patterns import PatternMatcher
from command_router.skills.registry import SkillRegistry
from command_router.tracing.events import RouteTrace
from command_router.tracing.interface import TraceCollector

logger = logging.getLogger(__name__)


class SmartRouter:
    """Public API: ``command = await router.route(message, context)``

    Stages, in order::

        pronouns → multi-intent → cache → question guard → patterns
          → passthrough guard → conversational build → structured command
          → coding instruction → agent delegation → generative fallback

    The first stage that reaches a decision ends the call. A passthrough
    returns the message itself, meaning "not a command".
    """

    def __init__(
        self,
        registry: SkillRegistry | None = None,
        matcher: PatternMatcher | None = None,
        cache: RouteCache | None = None,
        fallback: GenerativeFallback | None = None,
        pronoun_resolver: PronounResolver | None = None,
        intent_decomposer: IntentDecomposer | None = None,
        trace_collector: TraceCollector | None = None,
        max_continuations: int = 500,
    ) -> None:
        self._registry = registry
        self._base_matcher = matcher or PatternMatcher()
        self._matcher = self._base_matcher
        self._cache = cache or RouteCache()
        self._fallback = fallback
        self._pronouns = pronoun_resolver
        self._decomposer = intent_decomposer
        self._trace = trace_collector
        self._metrics = RouteMetrics()
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self._continuations: OrderedDict[str, IntentContinuation] = OrderedDict()
        self._max_continuations = max_continuations

    @property
    def registry(self) -> SkillRegistry | None:
        return self._registry

    @property
    def matcher(self) -> PatternMatcher:
        return self._matcher

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start skills and merge their routing rules into the matcher."""
        if self._registry is None:
            return
        await self._registry.start()
        extra = [r for skill in self._registry.list_skills() for r in skill.routing_rules()]
        self._matcher = self._base_matcher.extend(extra) if extra else self._base_matcher
        logger.info("Router started with %d rule(s)", len(self._matcher.rules))

    async def stop(self) -> None:
        if self._registry is not None:
            await self._registry.stop()
        self._cache.clear()
        self._continuations.clear()
        self._locks.clear()
        logger.info("Router stopped")

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    async def route(self, message: str, context: RouteContext | None = None) -> str:
        """Return the command for ``message``, or the message itself."""
        if not isinstance(message, str) or not message.strip():
            return message
        result = await self.route_detailed(message, context)
        return result.text

    async def route_detailed(self, message: str, context: RouteContext | None = None) -> RouteResult:
        ctx = context or RouteContext()
        if not isinstance(message, str) or not message.strip():
            text = message if isinstance(message, str) else ""
            return RouteResult(text=text, source=RouteSource.PASSTHROUGH, original_message=text)

        if ctx.conversation_id is None:
            return await self._route(message, ctx)
        lock = self._lock_for(ctx.conversation_id)
        async with lock:
            return await self._route(message, ctx)

    def last_continuation(self, conversation_id: str | None = None) -> IntentContinuation | None:
        """Intents queued by the most recent compound message in a conversation."""
        return self._continuations.get(conversation_id or "")

    def _store_continuation(self, key: str, continuation: IntentContinuation) -> None:
        """Keep the newest continuation per conversation, oldest conversations dropped first."""
        self._continuations.pop(key, None)
        self._continuations[key] = continuation
        while len(self._continuations) > self._max_continuations:
            evicted, _ = self._continuations.popitem(last=False)
            logger.debug("Dropped queued intents for conversation %r", evicted)

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    async def _route(self, message: str, ctx: RouteContext) -> RouteResult:
        t0 = time.time()
        text = message.strip()

        # 0. Pre-pass ----------------------------------------------------
        text = self._resolve_pronouns(text, ctx)
        text, continuation = self._split_intents(text)
        conv_key = ctx.conversation_id or ""
        if continuation is None:
            self._continuations.pop(conv_key, None)
        else:
            self._store_continuation(conv_key, continuation)
        # guard passthroughs hand back the untouched message unless it was split
        passthrough_text = text if continuation is not None else message

        def passthrough(reason: str, returned: str = passthrough_text) -> RouteResult:
            self._metrics.passthroughs += 1
            logger.info("Passthrough (%s): %r", reason, text[:50])
            return RouteResult(
                text=returned,
                source=RouteSource.PASSTHROUGH,
                continuation=continuation,
                original_message=message,
            )

        def command(cmd: str, source: RouteSource, cache_key: str | None) -> RouteResult:
            if cache_key is not None:
                self._cache.set(cache_key, cmd)
            resolved = ResolvedCommand.from_text(cmd, source=source)
            return RouteResult(
                text=cmd,
                source=source,
                command=resolved,
                continuation=continuation,
                original_message=message,
            )

        # 1. Cache -------------------------------------------------------
        key = self._cache.key(text, ctx)
        entry = self._cache.get(key)
        if entry is not None:
            self._metrics.cache_hits += 1
            logger.info("Cache hit: %r -> %r", text, entry.command)
            result = command(entry.command, RouteSource.CACHE, None)
            return await self._finish(result, t0)

        # 2. Question guard ----------------------------------------------
        if guards.is_question(text):
            return await self._finish(passthrough("question"), t0)

        # 3. Pattern matcher (before the passthrough guard) --------------
        matched = self._matcher.match(text, ctx)
        if matched:
            self._metrics.pattern_hits += 1
            logger.info("Pattern match: %r -> %r", text, matched)
            return await self._finish(command(matched, RouteSource.PATTERN, key), t0)

        # 4-5. Conversational guards -------------------------------------
        if guards.is_passthrough(text):
            return await self._finish(passthrough("conversational"), t0)
        if guards.is_conversational_build(text):
            return await self._finish(passthrough("build request"), t0)

        # 6. Structured command ------------------------------------------
        skill_patterns = self._registry.command_patterns() if self._registry else []
        if guards.looks_like_command(text, skill_patterns):
            structured = self._matcher.injector.inject(sanitize(text), ctx)
            if structured:
                self._metrics.pattern_hits += 1
                logger.info("Structured command: %r", structured)
                return await self._finish(command(structured, RouteSource.STRUCTURED, key), t0)

        # 7. Coding instruction ------------------------------------------
        if guards.is_coding_instruction(text):
            return await self._finish(passthrough("coding instruction"), t0)

        # 8. Agent delegation --------------------------------------------
        task = guards.extract_agent_task(text)
        if task:
            delegated = sanitize(task)
            self._metrics.pattern_hits += 1
            logger.info("Agent delegation: %r -> %r", text, delegated)
            return await self._finish(command(delegated, RouteSource.DELEGATION, key), t0)

        # 9. Generative fallback -----------------------------------------
        if self._fallback is not None:
            suggested = await self._fallback.resolve(text, ctx)
            if suggested and suggested not in (text, message):
                self._metrics.ai_hits += 1
                logger.info("Fallback route: %r -> %r", text, suggested)
                return await self._finish(command(suggested, RouteSource.FALLBACK, key), t0)

        return await self._finish(passthrough("no route", text), t0)

    # -- pre-pass -----------------------------------------------------------

    def _resolve_pronouns(self, text: str, ctx: RouteContext) -> str:
        if self._pronouns is None or not ctx.conversation_id:
            return text
        try:
            resolved = self._pronouns.resolve(ctx.conversation_id, text)
        except Exception:
            logger.exception("Pronoun resolution failed, continuing with original text")
            resolved = text
        if not isinstance(resolved, str) or not resolved.strip():
            resolved = text
        resolved = resolved.strip()
        # mentions in this message only serve later messages
        try:
            self._pronouns.record(ctx.conversation_id, resolved)
        except Exception:
            logger.exception("Recording mentions failed")
        if resolved == text:
            return text
        self._metrics.pronoun_resolutions += 1
        return resolved

    def _split_intents(self, text: str) -> tuple[str, IntentContinuation | None]:
        if self._decomposer is None:
            return text, None
        try:
            result = self._decomposer.decompose(text)
        except Exception:
            logger.exception("Multi-intent decomposition failed, routing whole message")
            return text, None
        if not result.is_multi_intent or len(result.intents) < 2:
            return text, None
        first, *rest = result.intents
        if not first.text.strip():
            return text, None
        self._metrics.multi_intents += 1
        logger.info(
            "Multi-intent: %d intents detected, routing first: %r",
            len(result.intents), first.text,
        )
        return first.text.strip(), IntentContinuation(
            total_intents=len(result.intents),
            remaining_intents=rest,
            is_sequential=any(i.is_sequential for i in result.intents),
            original_message=result.original_message,
        )

    # -- tracing ------------------------------------------------------------

    async def _finish(self, result: RouteResult, t0: float) -> RouteResult:
        if self._trace is None:
            return result
        trace_id = uuid.uuid4().hex
        await self._trace.emit(RouteTrace(
            trace_id=trace_id,
            source=result.source,
            cache_hit=result.source == RouteSource.CACHE,
            original_message=result.original_message,
            text=result.text,
            remaining_intents=len(result.continuation.remaining_intents) if result.continuation else 0,
            latency_ms=round((time.time() - t0) * 1000, 2),
        ))
        await self._trace.flush(trace_id)
        return result

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(
        self,
        command: str | ResolvedCommand,
        context: RouteContext | None = None,
    ) -> DispatchResult:
        """Hand a routed command to the skill registry."""
        text = str(command)
        if self._registry is None:
            return DispatchResult(status=DispatchStatus.UNHANDLED, message="No skill registry configured")
        trace_id = uuid.uuid4().hex if self._trace else None
        result = await self._registry.dispatch(text, context, trace_id=trace_id)
        if self._trace and trace_id:
            await self._trace.flush(trace_id)
        return result

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def get_metrics(self) -> RouteMetrics:
        return self._metrics.model_copy()

    def reset_metrics(self) -> None:
        self._metrics = RouteMetrics()

    def cache_stats(self) -> dict[str, Any]:
        return self._cache.stats()
