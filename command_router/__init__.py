"""command_router — natural-language command routing and skill dispatch.

Usage::

    from command_router import create_router
    from command_router.engine.models import RouteContext

    router = create_router()
    await router.start()
    command = await router.route("deploy judo to vercel", RouteContext())
    result = await router.dispatch(command)
"""

from __future__ import annotations

from dotenv import load_dotenv

load_dotenv()  # reads .env into os.environ (no-op if file missing)

from command_router.config import RouterSettings
from command_router.context.multi_intent import MultiIntentParser
from command_router.context.thread import ConversationThread
from command_router.engine.cache import RouteCache
from command_router.engine.fallback import GenerativeFallback
from command_router.engine.llm import CompletionClient, DemoMockCompletionClient, OpenAICompletionClient
from command_router.engine.models import RouteContext, RouteResult
from command_router.engine.router import SmartRouter
from command_router.routing.auto_context import AutoContextInjector
from command_router.routing.patterns import PatternMatcher, build_default_rules
from command_router.skills.help import HelpSkill
from command_router.skills.interface import Skill
from command_router.skills.registry import SkillRegistry
from command_router.skills.remote_exec import RemoteExecSkill
from command_router.skills.vercel import VercelSkill
from command_router.tracing.jsonl_tracer import JSONLTraceCollector

__all__ = [
    "RouteContext",
    "RouteResult",
    "RouterSettings",
    "SkillRegistry",
    "SmartRouter",
    "create_router",
]


def create_router(
    *,
    settings: RouterSettings | None = None,
    completion_client: CompletionClient | None = None,
    skills: list[Skill] | None = None,
    trace_dir: str | None = None,
    use_mock_llm: bool | None = None,
) -> SmartRouter:
    """Wire all components and return a ready-to-use SmartRouter.

    Settings come from the environment unless passed in (see
    ``RouterSettings.from_env``). ``skills`` replaces the built-in demo
    skills; the help skill is always registered.
    """
    settings = settings or RouterSettings.from_env()
    mock = use_mock_llm if use_mock_llm is not None else settings.use_mock_llm

    # -- components --
    trace_collector = JSONLTraceCollector(trace_dir or settings.trace_dir)
    registry = SkillRegistry(trace_collector=trace_collector)
    if skills is None:
        skills = [RemoteExecSkill(), VercelSkill()]
    registry.preload([HelpSkill(registry), *skills])

    injector = AutoContextInjector()
    matcher = PatternMatcher(build_default_rules(settings.companies), injector=injector)
    cache = RouteCache(ttl=settings.cache_ttl, max_size=settings.cache_max_size)

    if completion_client is None:
        if mock or not settings.openai_api_key:
            completion_client = DemoMockCompletionClient()
        else:
            completion_client = OpenAICompletionClient(
                api_key=settings.openai_api_key, model=settings.openai_model
            )
    fallback = GenerativeFallback(
        completion_client,
        registry=registry,
        timeout=settings.fallback_timeout,
        max_length=settings.fallback_max_length,
        companies=settings.companies,
        injector=injector,
    )

    known_companies = {
        alias: code
        for code, aliases in settings.companies.items()
        for alias in (code, *aliases)
    }
    return SmartRouter(
        registry=registry,
        matcher=matcher,
        cache=cache,
        fallback=fallback,
        pronoun_resolver=ConversationThread(
            known_repos=settings.known_repos,
            known_companies=known_companies,
        ),
        intent_decomposer=MultiIntentParser(
            known_entities=[*settings.known_repos, *settings.companies],
        ),
        trace_collector=trace_collector,
    )
