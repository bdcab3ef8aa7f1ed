"""Pattern matcher — ordered (regex, template) rules, first match wins.

Order is precedence. A narrower rule must come before any broader rule that
would also match its text: "deploy judo to vercel" has to hit the Vercel rule
before the generic deploy rule gets a chance. Rules may carry ``examples``;
``validate_rule_order`` checks at startup that each example is claimed by its
own rule and not shadowed by an earlier one.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Sequence, Union

from command_router.engine.models import RouteContext
from command_router.engine.sanitizer import sanitize
from command_router.routing.auto_context import AutoContextInjector

logger = logging.getLogger(__name__)

# Captures[0] is the whole match, Captures[n] is group n ("" when it did not
# participate). Every entry is already sanitized.
Captures = Sequence[str]
Template = Union[str, Callable[[Captures], str]]


class RuleOrderError(ValueError):
    """An example is matched first by a different rule than the one it documents."""


@dataclass(frozen=True)
class PatternRule:
    matcher: re.Pattern[str]
    template: Template
    group: str = "general"
    examples: tuple[str, ...] = field(default_factory=tuple)

    def render(self, m: re.Match[str]) -> str:
        if not callable(self.template):
            return self.template
        captures = [sanitize(m.group(0))] + [sanitize(g) for g in m.groups()]
        return self.template(captures)


def rule(
    pattern: str,
    template: Template,
    group: str = "general",
    examples: Iterable[str] = (),
) -> PatternRule:
    return PatternRule(
        matcher=re.compile(pattern, re.IGNORECASE),
        template=template,
        group=group,
        examples=tuple(examples),
    )


def _alias_pattern(code: str, aliases: Sequence[str]) -> str:
    names = {code.lower(), *(a.lower() for a in aliases)}
    # longest first so "gq cars" wins over "gq"
    escaped = [re.escape(n).replace(r"\ ", r"\s*") for n in sorted(names, key=len, reverse=True)]
    return "(?:" + "|".join(escaped) + ")"


def build_default_rules(companies: Mapping[str, Sequence[str]] | None = None) -> list[PatternRule]:
    """Return the built-in rule list.

    ``companies`` maps a company code (``"GMH"``) to the aliases users type
    for it (``["holdings"]``). Company-specific rules are placed ahead of the
    generic rule of the same group.
    """
    companies = companies or {}
    company_alias = {code: _alias_pattern(code, aliases) for code, aliases in companies.items()}

    rules: list[PatternRule] = []

    # -- deadlines ---------------------------------------------------------
    for code, alias in company_alias.items():
        rules.append(rule(rf"what.*(?:deadline|due).*\b{alias}\b", f"deadlines {code}", "deadlines"))
    rules += [
        rule(r"(upcoming|what).*(deadline|due)", "deadlines", "deadlines",
             examples=("upcoming deadlines", "what are the deadlines")),
        rule(r"anything\s+due", "deadlines", "deadlines", examples=("anything due this week",)),
    ]

    # -- intercompany (before companies: "intercompany" contains "compan") --
    rules += [
        rule(r"(show|list|what).*(intercompany|\bic)\s*(loan|balance)", "ic balance", "intercompany",
             examples=("show intercompany balance",)),
        rule(r"loan.*between", "intercompany loans", "intercompany"),
        rule(r"\bintercompany\b", "intercompany", "intercompany"),
    ]

    # -- companies ---------------------------------------------------------
    for code, alias in company_alias.items():
        rules.append(rule(rf"company\s*number.*\b{alias}\b", f"company number {code}", "companies"))
    rules.append(rule(r"(show|list|what).*(compan|entities)", "companies", "companies",
                      examples=("show all companies",)))
    for code, alias in company_alias.items():
        rules.append(rule(rf"tell me about.*\b{alias}\b", f"company {code}", "companies"))

    # -- expenses ----------------------------------------------------------
    rules += [
        rule(r"(show|list|what).*(expense|receipt|spending)", "expenses", "expenses",
             examples=("show my expenses",)),
        rule(r"expense\s*summary", "summary", "expenses", examples=("expense summary",)),
        rule(r"how much.*spent", "summary", "expenses", examples=("how much have i spent",)),
        rule(r"receipts?.*pending", "pending receipts", "expenses"),
        rule(r"^log\s+(an?\s+)?(expense|receipt)", "expenses", "expenses"),
    ]

    # -- repos -------------------------------------------------------------
    rules += [
        rule(r"all\s*(my)?\s*repos", "my repos", "repos", examples=("all my repos",)),
        rule(r"what\s*(repos?|projects?)\s+do\s+i\s+have", "my repos", "repos"),
        rule(r"(what|show|list).*(repo|project|repositories)", "list repos", "repos",
             examples=("list my repos",)),
        rule(r"my\s*(repo|project)s", "list repos", "repos", examples=("my projects",)),
        rule(r"^analyze\s+(\S+)$", lambda g: f"analyze {g[1]}", "repos"),
        rule(r"^create\s+(a\s+)?new\s+(project|repo)\s+(\S+)$", lambda g: f"create new project {g[3]}", "repos"),
        rule(r"^new\s+repo\s+(\S+)$", lambda g: f"create new project {g[1]}", "repos"),
    ]

    # -- governance --------------------------------------------------------
    rules += [
        rule(r"can\s*i\s*(pay|declare).*dividend", "can I declare dividend?", "governance"),
        rule(r"can\s*i\s*(hire|employ)", "can I hire employee?", "governance"),
        rule(r"can\s*i\s*(issue|create).*shares", "can I issue shares?", "governance"),
        rule(r"board\s*(approval|meeting)", "governance board", "governance"),
        rule(r"can\s*i\s*(approve|sign)", lambda g: f"can I {g[1].lower()}?", "governance",
             examples=("can i approve the budget", "can i sign this contract")),
        rule(r"who\s*(?:can\s*)?(approve|sign)s?\b", lambda g: f"who can {g[1].lower()}", "governance",
             examples=("who can approve expenses", "who signs the contracts")),
    ]

    # -- workflows ---------------------------------------------------------
    rules += [
        rule(r"(pending|active)\s*(workflow|task|approval)s?", "workflows pending", "workflows"),
        rule(r"workflow\s*status", "workflows", "workflows"),
    ]

    # -- help --------------------------------------------------------------
    rules += [
        rule(r"what\s*commands", "help", "help"),
        rule(r"show.*\bhelp\b", "help", "help"),
    ]

    # -- project context ---------------------------------------------------
    rules += [
        rule(r"what.*(left|remaining|todo).*\b(on|for|in)\s+(.+)", lambda g: f"project status {g[3]}",
             "project", examples=("what's left on judo",)),
        rule(r"project\s+status\s+(.+)", lambda g: f"project status {g[1]}", "project"),
        rule(r"(show|get).*\b(readme|about)\s+(?:for\s+|of\s+)?(.+)", lambda g: f"readme {g[3]}",
             "project", examples=("show the readme for judo",)),
        rule(r"what('?s| is)\s+(.+)\s+about", lambda g: f"readme {g[2]}", "project"),
        rule(r"(files|structure)\s+(in|of|for)\s+(.+)", lambda g: f"project files {g[3]}", "project"),
        rule(r"^switch\s+to\s+(.+)$", lambda g: f"switch to {g[1]}", "project",
             examples=("switch to judo",)),
        rule(r"^(?:let's\s+|lets\s+|i'?m\s+)?work(?:ing)?\s+on\s+(\S+)$", lambda g: f"switch to {g[1]}",
             "project"),
        rule(r"what('?s| is)\s+left(\s+to\s+do)?$", "project status", "project"),
        rule(r"todo\s+list$", "project status", "project"),
    ]

    # -- vercel (platform-specific, before the generic deploy rules) ------
    rules += [
        rule(r"^deploy\s+(?:this|it)\s+to\s+vercel", "vercel deploy", "vercel",
             examples=("deploy it to vercel",)),
        rule(r"deploy\s+(\S+)\s+to\s+vercel", lambda g: f"vercel deploy {g[1]}", "vercel",
             examples=("deploy judo to vercel",)),
        rule(r"vercel\s+deploy\s+(\S+)", lambda g: f"vercel deploy {g[1]}", "vercel"),
        rule(r"push\s+(\S+)\s+to\s+vercel", lambda g: f"vercel deploy {g[1]}", "vercel",
             examples=("push judo to vercel",)),
        rule(r"preview\s+(\S+)\s+on\s+vercel", lambda g: f"vercel preview {g[1]}", "vercel",
             examples=("preview judo on vercel",)),
        rule(r"^deploy\s+to\s+vercel", "vercel deploy", "vercel", examples=("deploy to vercel",)),
        rule(r"^vercel\s+deploy$", "vercel deploy", "vercel"),
        rule(r"^push\s+to\s+vercel", "vercel deploy", "vercel"),
    ]

    # -- remote execution --------------------------------------------------
    rules += [
        rule(r"\brun\s+tests?\s+(?:on\s+)?(.+)", lambda g: f"run tests {g[1]}", "remote",
             examples=("run tests on judo",)),
        rule(r"\btest\s+(.+)", lambda g: f"run tests {g[1]}", "remote", examples=("test judo",)),
        rule(r"\bdeploy\s+(.+?)(?:\s+to\s+prod(?:uction)?)?$", lambda g: f"deploy {g[1]}", "remote",
             examples=("deploy judo", "deploy judo to production")),
        rule(r"\bpush\s+(.+)\s+live", lambda g: f"deploy {g[1]}", "remote", examples=("push judo live",)),
        rule(r"\b(?:check|show|view)\s+logs?\s+(?:for\s+)?(.+)", lambda g: f"logs {g[1]}", "remote",
             examples=("check logs for judo",)),
        rule(r"\brestart\s+(.+)", lambda g: f"restart {g[1]}", "remote", examples=("restart judo",)),
        rule(r"\brebuild\s+(.+)", lambda g: f"build {g[1]}", "remote"),
        # bare verbs; the auto-context injector supplies the target
        rule(r"^(deploy|logs|restart|build|install|run\s+tests?)$", _bare_verb, "remote",
             examples=("deploy", "run tests")),
    ]

    # -- status queries ----------------------------------------------------
    rules += [
        rule(r"what\s+(?:do\s+i\s+)?need\s+to\s+do(?:\s+(?:for\s+)?(.+))?$",
             lambda g: f"project status {g[1]}" if g[1] else "project status", "status"),
        rule(r"what(?:'?s| is)\s+the\s+status(?:\s+of)?(?:\s+(.+))?$",
             lambda g: f"project status {g[1]}" if g[1] else "status", "status",
             examples=("what is the status of judo",)),
        rule(r"what\s+should\s+i\s+work\s+on", "project status", "status",
             examples=("what should i work on",)),
    ]

    return rules


def _bare_verb(g: Captures) -> str:
    verb = " ".join(g[1].lower().split())
    return "run tests" if verb.startswith("run") else verb


def validate_rule_order(rules: Sequence[PatternRule]) -> None:
    """Raise ``RuleOrderError`` if any rule's example is shadowed by an earlier rule."""
    for index, current in enumerate(rules):
        for example in current.examples:
            winner = next((i for i, r in enumerate(rules) if r.matcher.search(example)), None)
            if winner != index:
                shadow = rules[winner].matcher.pattern if winner is not None else None
                raise RuleOrderError(
                    f"Example {example!r} of rule {current.matcher.pattern!r} "
                    f"is matched first by {shadow!r}"
                )


class PatternMatcher:
    """Iterate the ordered rule list; the first match decides the command."""

    def __init__(
        self,
        rules: Sequence[PatternRule] | None = None,
        injector: AutoContextInjector | None = None,
        validate: bool = True,
    ) -> None:
        self._rules: tuple[PatternRule, ...] = tuple(rules if rules is not None else build_default_rules())
        self._injector = injector or AutoContextInjector()
        if validate:
            validate_rule_order(self._rules)

    @property
    def rules(self) -> tuple[PatternRule, ...]:
        return self._rules

    @property
    def injector(self) -> AutoContextInjector:
        return self._injector

    def match_rule(self, message: str) -> tuple[PatternRule, str] | None:
        """Return ``(rule, sanitized command)`` before auto-context, or ``None``."""
        for r in self._rules:
            m = r.matcher.search(message)
            if m:
                return r, sanitize(r.render(m))
        return None

    def match(self, message: str, context: RouteContext | None = None) -> str | None:
        found = self.match_rule(message)
        if found is None:
            return None
        _, command = found
        if not command:
            return None
        return self._injector.inject(command, context)

    def extend(self, rules: Iterable[PatternRule], validate: bool = True) -> PatternMatcher:
        """Return a new matcher with ``rules`` appended after the current ones."""
        return PatternMatcher([*self._rules, *rules], injector=self._injector, validate=validate)
