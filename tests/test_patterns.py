"""Tests for the ordered pattern matcher and its startup validation."""

from __future__ import annotations

import pytest

from command_router.engine.models import RouteContext
from command_router.routing.patterns import (
    PatternMatcher,
    RuleOrderError,
    build_default_rules,
    rule,
    validate_rule_order,
)

COMPANIES = {"GMH": ["holdings"], "GQCARS": ["gq cars", "gqcars"]}


class TestDefaultRules:
    def test_default_rules_pass_validation(self):
        validate_rule_order(build_default_rules())

    def test_company_rules_pass_validation(self):
        validate_rule_order(build_default_rules(COMPANIES))

    @pytest.mark.parametrize("msg,expected", [
        ("deploy judo to vercel", "vercel deploy judo"),
        ("deploy it to vercel", "vercel deploy"),
        ("push judo to vercel", "vercel deploy judo"),
        ("preview judo on vercel", "vercel preview judo"),
        ("deploy judo", "deploy judo"),
        ("deploy judo to production", "deploy judo"),
        ("run tests on judo", "run tests judo"),
        ("check logs for judo", "logs judo"),
        ("what are the deadlines", "deadlines"),
        ("anything due this week", "deadlines"),
        ("show intercompany balance", "ic balance"),
        ("show all companies", "companies"),
        ("show my expenses", "expenses"),
        ("how much have i spent", "summary"),
        ("list my repos", "list repos"),
        ("all my repos", "my repos"),
        ("what's left on judo", "project status judo"),
        ("switch to judo", "switch to judo"),
        ("what is the status of judo", "project status judo"),
        ("what should i work on", "project status"),
    ])
    def test_examples(self, matcher, msg, expected):
        assert matcher.match(msg) == expected

    def test_no_match(self, matcher):
        assert matcher.match("the weather is lovely") is None


class TestPrecedence:
    def test_platform_rule_before_generic_deploy(self, matcher):
        found = matcher.match_rule("deploy judo to vercel")
        assert found is not None
        matched_rule, command = found
        assert matched_rule.group == "vercel"
        assert command == "vercel deploy judo"

    def test_intercompany_not_swallowed_by_companies(self, matcher):
        assert matcher.match("list intercompany loan balances") == "ic balance"

    @pytest.mark.parametrize("msg,expected", [
        ("can i approve the budget", "can I approve?"),
        ("Can I SIGN this contract", "can I sign?"),
        ("who can approve expenses", "who can approve"),
        ("who signs the contracts", "who can sign"),
    ])
    def test_approval_questions(self, matcher, msg, expected):
        found = matcher.match_rule(msg)
        assert found is not None
        assert found[0].group == "governance"
        assert found[1] == expected

    def test_board_approval_before_can_i_approve(self, matcher):
        assert matcher.match("can i approve at the board meeting") == "governance board"

    def test_approval_rules_before_workflows(self, matcher):
        assert matcher.match("can i approve pending approvals") == "can I approve?"
        assert matcher.match("show pending approvals") == "workflows pending"

    def test_company_specific_deadlines_first(self):
        matcher = PatternMatcher(build_default_rules(COMPANIES))
        assert matcher.match("what deadlines are due for holdings") == "deadlines GMH"
        assert matcher.match("what is due for gq cars") == "deadlines GQCARS"
        assert matcher.match("what are the deadlines") == "deadlines"

    def test_company_number(self):
        matcher = PatternMatcher(build_default_rules(COMPANIES))
        assert matcher.match("company number for holdings") == "company number GMH"


class TestMatchBehaviour:
    def test_deterministic(self, matcher):
        ctx = RouteContext(active_repo="judo")
        for msg in ("deploy", "deploy judo to vercel", "restart the server; rm -rf /", "nothing here"):
            assert matcher.match(msg, ctx) == matcher.match(msg, ctx)

    def test_bare_verb_gets_active_repo(self, matcher):
        assert matcher.match("deploy") == "deploy"
        assert matcher.match("deploy", RouteContext(active_repo="judo")) == "deploy judo"
        assert matcher.match("Run Tests", RouteContext(active_repo="judo")) == "run tests judo"

    def test_company_default(self, matcher):
        assert matcher.match("what are the deadlines", RouteContext(active_company="GMH")) == "deadlines GMH"

    def test_captures_sanitized_slash_kept(self, matcher):
        assert matcher.match("restart the server; rm -rf /") == "restart the server rm -rf /"

    def test_captures_are_sanitized_before_template(self):
        seen = []

        def template(g):
            seen.extend(g)
            return f"echo {g[1]}"

        matcher = PatternMatcher([rule(r"^say (.+)$", template)])
        assert matcher.match("say $(id) | sh") == "echo (id)  sh"
        assert all("$" not in part and "|" not in part for part in seen)

    def test_unmatched_optional_group_is_empty(self):
        matcher = PatternMatcher([rule(r"^ping(?: (\S+))?$", lambda g: f"ping {g[1] or 'all'}")])
        assert matcher.match("ping") == "ping all"

    def test_empty_command_is_no_match(self):
        matcher = PatternMatcher([rule(r"^noop (.*)$", lambda g: g[1])])
        assert matcher.match("noop ;;") is None


class TestValidation:
    def test_shadowed_example_raises(self):
        rules = [
            rule(r"deploy (.+)", lambda g: f"deploy {g[1]}"),
            rule(r"deploy (\S+) to vercel", lambda g: f"vercel deploy {g[1]}",
                 examples=("deploy judo to vercel",)),
        ]
        with pytest.raises(RuleOrderError):
            PatternMatcher(rules)

    def test_unmatched_example_raises(self):
        with pytest.raises(RuleOrderError):
            validate_rule_order([rule(r"^status$", "status", examples=("show status",))])

    def test_validation_can_be_skipped(self):
        rules = [
            rule(r"deploy (.+)", lambda g: f"deploy {g[1]}"),
            rule(r"deploy (\S+) to vercel", "x", examples=("deploy judo to vercel",)),
        ]
        assert PatternMatcher(rules, validate=False).match("deploy judo to vercel") == "deploy judo to vercel"

    def test_extend_appends_and_validates(self, matcher):
        extended = matcher.extend([
            rule(r"^ship (\S+)$", lambda g: f"deploy {g[1]}", examples=("ship judo",)),
        ])
        assert extended.match("ship judo") == "deploy judo"
        assert matcher.match("ship judo") is None
        with pytest.raises(RuleOrderError):
            matcher.extend([rule(r"^deploy (\S+)$", "x", examples=("deploy judo",))])
