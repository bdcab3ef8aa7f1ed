from command_router.routing.auto_context import AutoContextInjector
from command_router.routing.patterns import (
    PatternMatcher,
    PatternRule,
    RuleOrderError,
    build_default_rules,
    rule,
    validate_rule_order,
)

__all__ = [
    "AutoContextInjector",
    "PatternMatcher",
    "PatternRule",
    "RuleOrderError",
    "build_default_rules",
    "rule",
    "validate_rule_order",
]
