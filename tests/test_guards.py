"""Tests for the guard predicates and the agent-delegation extractor."""

from __future__ import annotations

import re

import pytest

from command_router.routing import guards


class TestQuestionGuard:
    @pytest.mark.parametrize("msg", ["how do I deploy to vercel?", "deploy judo?  ", "?"])
    def test_questions(self, msg):
        assert guards.is_question(msg)

    def test_question_mark_mid_sentence(self):
        assert not guards.is_question("what? deploy judo")


class TestPassthroughGuard:
    @pytest.mark.parametrize("msg", [
        "hello",
        "good morning!",
        "thanks!",
        "got it",
        "nope",
        "what is the best framework",
        "can you explain that",
        "tell me a joke",
        "and then what",
        "for now keep it simple",
    ])
    def test_conversational(self, msg):
        assert guards.is_passthrough(msg)

    @pytest.mark.parametrize("msg", ["deploy judo", "list repos", "hello judo team deploy"])
    def test_not_conversational(self, msg):
        assert not guards.is_passthrough(msg)


class TestConversationalBuild:
    def test_desire_plus_build_verb(self):
        assert guards.is_conversational_build("I want to build a booking dashboard")
        assert guards.is_conversational_build("let's design the onboarding flow")

    def test_requires_both_parts(self):
        assert not guards.is_conversational_build("build judo")
        assert not guards.is_conversational_build("i want a coffee")


class TestCodingInstruction:
    @pytest.mark.parametrize("msg", [
        "add a navbar to the homepage",
        "fix the login redirect",
        "refactor the payment service",
        "make the header sticky",
    ])
    def test_dev_tasks(self, msg):
        assert guards.is_coding_instruction(msg)

    def test_command_is_not_coding(self):
        assert not guards.is_coding_instruction("deploy judo")


class TestStructuredCommand:
    @pytest.mark.parametrize("msg", [
        "help", "status", "list repos", "deploy judo", "run tests judo",
        "vercel deploy judo", "create new project shop", "agent session fix tests",
    ])
    def test_command_shapes(self, msg):
        assert guards.looks_like_command(msg)

    @pytest.mark.parametrize("msg", ["create a feature", "build me a website", "what is up"])
    def test_non_commands(self, msg):
        assert not guards.looks_like_command(msg)

    def test_skill_declared_patterns(self):
        assert not guards.looks_like_command("weather london")
        assert guards.looks_like_command("weather london", [re.compile(r"^weather\b", re.IGNORECASE)])


class TestAgentDelegation:
    @pytest.mark.parametrize("msg,expected", [
        ("use the agent to fix the flaky tests", "agent session fix the flaky tests"),
        ("have the agent refactor the auth module", "agent session refactor the auth module"),
        ("ask the coding agent to add docstrings", "agent session add docstrings"),
        ("coding agent to bump dependencies", "agent session bump dependencies"),
    ])
    def test_task_extracted(self, msg, expected):
        assert guards.extract_agent_task(msg) == expected

    def test_mention_without_task(self):
        assert guards.extract_agent_task("the coding agent") == ""

    def test_no_mention(self):
        assert guards.extract_agent_task("deploy judo") is None
