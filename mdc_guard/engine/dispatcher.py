"""Run the actions of matched rules and collect findings."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Optional

from mdc_guard.engine.matcher import FilterMatcher
from mdc_guard.engine.models import Finding, MatchResult, Severity, Target
from mdc_guard.rules.models import (
    Action,
    ActionKind,
    Condition,
    ConditionTarget,
    Expectation,
    RuleDocument,
)
from mdc_guard.rules.patterns import compile_regex, infer_condition_target

logger = logging.getLogger(__name__)


def dispatch_order(rules: Iterable[RuleDocument]) -> list[RuleDocument]:
    """Category prefix ascending, then priority high to low, then name."""
    return sorted(rules, key=lambda rule: rule.sort_key)


class ActionDispatcher:
    def dispatch(self, rule: RuleDocument, target: Target) -> list[Finding]:
        findings: list[Finding] = []
        for action in rule.actions:
            findings.extend(self.run_action(rule, action, target))
        return findings

    def run_action(
        self, rule: RuleDocument, action: Action, target: Target
    ) -> list[Finding]:
        if action.kind == ActionKind.SUGGEST:
            return [
                Finding(
                    target=target.path,
                    rule=rule.name,
                    severity=Severity.INFO,
                    message=action.message,
                )
            ]

        findings: list[Finding] = []
        for condition in action.conditions:
            if self.violates(condition, action.default_expectation, target):
                findings.append(
                    Finding(
                        target=target.path,
                        rule=rule.name,
                        severity=Severity.ERROR,
                        message=condition.message,
                    )
                )
        return findings

    def violates(
        self, condition: Condition, default: Expectation, target: Target
    ) -> bool:
        text = self._condition_text(condition, target)
        if text is None:
            logger.debug(
                "Skipping content condition %r for %s (no content)",
                condition.pattern,
                target.path,
            )
            return False
        found = compile_regex(condition.pattern).search(text) is not None
        expect = condition.expect or default
        return found if expect == Expectation.ABSENT else not found

    @staticmethod
    def _condition_text(condition: Condition, target: Target) -> Optional[str]:
        kind = condition.target or infer_condition_target(condition.pattern)
        if kind == ConditionTarget.PATH:
            return target.path
        return target.content


def evaluate_target(
    registry: Mapping[str, RuleDocument],
    target: Target,
    matcher: Optional[FilterMatcher] = None,
    dispatcher: Optional[ActionDispatcher] = None,
) -> list[MatchResult]:
    matcher = matcher or FilterMatcher()
    dispatcher = dispatcher or ActionDispatcher()

    results: list[MatchResult] = []
    for rule in dispatch_order(registry.values()):
        if not matcher.matches(rule, target):
            results.append(MatchResult(rule=rule, target=target, matched=False))
            continue
        findings = dispatcher.dispatch(rule, target)
        results.append(
            MatchResult(
                rule=rule, target=target, matched=True, findings=tuple(findings)
            )
        )
    return results
