"""Tests for the generative fallback router and completion mocks."""

from __future__ import annotations

import logging

import pytest

from command_router.engine.fallback import BUILTIN_USAGES, GenerativeFallback
from command_router.engine.llm import DemoMockCompletionClient, MockCompletionClient
from command_router.engine.models import RouteContext


class TestPrompt:
    def test_prompt_shape(self):
        fallback = GenerativeFallback(MockCompletionClient([]), companies=["gmh", "GQCARS"])
        prompt = fallback.build_prompt("ship it", RouteContext(active_repo="judo"))
        for usage in BUILTIN_USAGES:
            assert f"- {usage}" in prompt
        assert "Company codes: GMH, GQCARS" in prompt
        assert 'context of repo "judo"' in prompt
        assert "ORIGINAL message unchanged" in prompt
        assert prompt.endswith('User message: "ship it"\n\nCommand:')

    def test_company_hint(self):
        fallback = GenerativeFallback(MockCompletionClient([]))
        prompt = fallback.build_prompt("x", RouteContext(active_company="GMH"))
        assert 'context of company "GMH"' in prompt
        assert "Company codes" not in prompt

    async def test_skill_usages_from_live_registry(self, registry, make_skill):
        await registry.register(make_skill("weather", patterns=[r"^weather\b", r"^forecast\b"]))
        fallback = GenerativeFallback(MockCompletionClient([]), registry=registry)
        assert fallback.skill_usages() == ["weather <arg>"]

        await registry.register(make_skill("news", patterns=[r"^news\b"]))
        assert "- news <arg>" in fallback.build_prompt("x")

    async def test_usages_with_parentheses_skipped_and_capped(self, registry, make_skill):
        class ManyUsages(make_skill):
            def commands(self):
                from command_router.skills.interface import command
                specs = [command(rf"^cmd{i}\b", usage=f"cmd{i} <x>") for i in range(40)]
                return specs + [command(r"^odd\b", usage="odd (optional)")]

        await registry.register(ManyUsages("many"))
        fallback = GenerativeFallback(MockCompletionClient([]), registry=registry)
        usages = fallback.skill_usages()
        assert len(usages) == 30
        assert "odd (optional)" not in usages


class TestResolve:
    async def test_returns_sanitized_command(self):
        fallback = GenerativeFallback(MockCompletionClient(["  deploy judo; rm -rf /  "]))
        assert await fallback.resolve("ship judo") == "deploy judo rm -rf /"

    async def test_applies_auto_context(self):
        fallback = GenerativeFallback(MockCompletionClient(["deploy"]))
        assert await fallback.resolve("ship it", RouteContext(active_repo="judo")) == "deploy judo"

    @pytest.mark.parametrize("response", ["x" * 101, "deploy judo\nbecause you asked", "", "   ", ";;"])
    async def test_malformed_output_discarded(self, response):
        fallback = GenerativeFallback(MockCompletionClient([response]))
        assert await fallback.resolve("ship judo") is None

    async def test_timeout_returns_none(self, caplog):
        client = MockCompletionClient(["deploy judo"], delay=1.0)
        fallback = GenerativeFallback(client, timeout=0.05)
        with caplog.at_level(logging.WARNING, logger="command_router.engine.fallback"):
            assert await fallback.resolve("ship judo") is None
        assert "timed out" in caplog.text
        assert client.call_count == 1

    async def test_client_error_returns_none(self, caplog):
        fallback = GenerativeFallback(MockCompletionClient([RuntimeError("quota exceeded")]))
        with caplog.at_level(logging.ERROR, logger="command_router.engine.fallback"):
            assert await fallback.resolve("ship judo") is None
        assert "quota exceeded" in caplog.text

    async def test_demo_client_echo_is_not_a_command(self):
        fallback = GenerativeFallback(DemoMockCompletionClient())
        assert await fallback.resolve("tell the team we shipped") is None

    @pytest.mark.parametrize(
        "echo",
        ["please pay me $50 & thanks a lot", "Please pay me $50 &  thanks a lot", '"please pay me $50 & thanks a lot"'],
    )
    async def test_echo_with_metacharacters_is_not_a_command(self, echo):
        fallback = GenerativeFallback(MockCompletionClient([echo]))
        assert await fallback.resolve("please pay me $50 & thanks a lot") is None
