from command_router.engine.models import (
    DispatchResult,
    DispatchStatus,
    Intent,
    IntentContinuation,
    ResolvedCommand,
    RouteContext,
    RouteMetrics,
    RouteResult,
    RouteSource,
    SkillConflict,
    SkillResult,
)
from command_router.engine.sanitizer import sanitize
from command_router.engine.cache import CacheEntry, RouteCache
from command_router.engine.llm import (
    CompletionClient,
    DemoMockCompletionClient,
    MockCompletionClient,
    OpenAICompletionClient,
)

__all__ = [
    "CacheEntry",
    "CompletionClient",
    "DemoMockCompletionClient",
    "DispatchResult",
    "DispatchStatus",
    "Intent",
    "IntentContinuation",
    "MockCompletionClient",
    "OpenAICompletionClient",
    "ResolvedCommand",
    "RouteCache",
    "RouteContext",
    "RouteMetrics",
    "RouteResult",
    "RouteSource",
    "SkillConflict",
    "SkillResult",
    "sanitize",
]
