"""Tests for MultiIntentParser."""

from __future__ import annotations

import pytest

from command_router.context.multi_intent import MultiIntentParser


@pytest.fixture
def parser():
    return MultiIntentParser()


def texts(result):
    return [i.text for i in result.intents]


class TestDecompose:
    def test_sequential_with_pronoun(self, parser):
        result = parser.decompose("run tests on JUDO and then deploy it")
        assert result.is_multi_intent
        assert texts(result) == ["run tests on JUDO", "deploy JUDO"]
        assert all(i.is_sequential for i in result.intents)
        assert result.intents[1].connector == "and then"

    def test_independent(self, parser):
        result = parser.decompose("check deadlines and also show expenses")
        assert texts(result) == ["check deadlines", "show expenses"]
        assert not any(i.is_sequential for i in result.intents)

    def test_but_first_reverses(self, parser):
        result = parser.decompose("deploy JUDO but first run tests")
        assert texts(result) == ["run tests", "deploy JUDO"]
        assert [i.order for i in result.intents] == [0, 1]

    def test_three_intents_keep_order(self, parser):
        result = parser.decompose("upcoming deadlines, then show my expenses, then list my repos")
        assert texts(result) == ["upcoming deadlines", "show my expenses", "list my repos"]

    def test_leading_first_stripped(self, parser):
        result = parser.decompose("first build judo then deploy judo")
        assert texts(result) == ["build judo", "deploy judo"]

    def test_plain_and_needs_verbs_on_both_sides(self, parser):
        assert not parser.decompose("deploy judo and website").is_multi_intent
        assert texts(parser.decompose("build judo and deploy website")) == ["build judo", "deploy website"]

    def test_known_entity_used_for_pronouns(self):
        parser = MultiIntentParser(known_entities=["judo"])
        result = parser.decompose("build judo and then deploy it")
        assert texts(result) == ["build judo", "deploy judo"]

    @pytest.mark.parametrize("msg", [
        "show the pros and cons",
        "can you build and then deploy?",
        "hello and then some",
        'send "build and then deploy" to the team',
        "deploy",
        "",
    ])
    def test_single_intent(self, parser, msg):
        result = parser.decompose(msg)
        assert not result.is_multi_intent
        assert len(result.intents) == 1


class TestQuickCheck:
    def test_multi(self, parser):
        assert parser.is_multi_intent("build judo and then deploy it")

    def test_not_multi(self, parser):
        assert not parser.is_multi_intent("deploy judo and website")
        assert not parser.is_multi_intent("build judo and then deploy?")
        assert not parser.is_multi_intent('say "build and then deploy"')
