"""Aggregate findings into a report grouped by target and rule."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from mdc_guard.engine.models import Finding, MatchResult, Severity
from mdc_guard.engine.runner import RunResult


@dataclass(frozen=True)
class RuleGroup:
    rule: str
    findings: tuple[Finding, ...]


@dataclass(frozen=True)
class TargetGroup:
    target: str
    rules: tuple[RuleGroup, ...]

    @property
    def findings(self) -> list[Finding]:
        return [finding for group in self.rules for finding in group.findings]


@dataclass(frozen=True)
class Report:
    targets: tuple[TargetGroup, ...] = ()
    errors: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()

    @property
    def findings(self) -> list[Finding]:
        return [finding for group in self.targets for finding in group.findings]

    @property
    def error_count(self) -> int:
        return sum(1 for item in self.findings if item.severity == Severity.ERROR)

    @property
    def info_count(self) -> int:
        return sum(1 for item in self.findings if item.severity == Severity.INFO)

    @property
    def aborted(self) -> bool:
        return bool(self.skipped)

    def has_failures(self) -> bool:
        return self.error_count > 0 or bool(self.errors)

    def summary_line(self) -> str:
        return (
            f"{len(self.findings)} findings "
            f"({self.error_count} errors, {self.info_count} info)"
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "targets": [
                {
                    "target": group.target,
                    "rules": [
                        {
                            "rule": rule_group.rule,
                            "findings": [
                                {
                                    "severity": finding.severity.value,
                                    "message": finding.message,
                                }
                                for finding in rule_group.findings
                            ],
                        }
                        for rule_group in group.rules
                    ],
                }
                for group in self.targets
            ],
            "errors": list(self.errors),
            "skipped": list(self.skipped),
            "summary": {
                "findings": len(self.findings),
                "errors": self.error_count,
                "info": self.info_count,
            },
        }


def build_report(
    results: Iterable[MatchResult],
    errors: Iterable[object] = (),
    skipped: Iterable[str] = (),
) -> Report:
    grouped: dict[str, dict[str, list[Finding]]] = {}
    for result in results:
        for finding in result.findings:
            by_rule = grouped.setdefault(finding.target, {})
            by_rule.setdefault(finding.rule, []).append(finding)

    targets = tuple(
        TargetGroup(
            target=target,
            rules=tuple(
                RuleGroup(rule=rule, findings=tuple(findings))
                for rule, findings in by_rule.items()
            ),
        )
        for target, by_rule in grouped.items()
    )
    return Report(
        targets=targets,
        errors=tuple(str(item) for item in errors),
        skipped=tuple(skipped),
    )


def report_from_run(run: RunResult) -> Report:
    return build_report(
        run.results,
        errors=run.errors,
        skipped=[outcome.target for outcome in run.outcomes if outcome.skipped],
    )


def _indent(text: str, prefix: str) -> str:
    lines = text.rstrip("\n").splitlines() or [""]
    head, rest = lines[0], lines[1:]
    continuation = " " * len(prefix)
    return "\n".join([prefix + head] + [continuation + line for line in rest])


def render_text(report: Report) -> str:
    lines: list[str] = []
    for group in report.targets:
        lines.append(group.target)
        for rule_group in group.rules:
            lines.append(f"  {rule_group.rule}")
            for finding in rule_group.findings:
                lines.append(_indent(finding.message, f"    {finding.severity.value}: "))
        lines.append("")

    if report.errors:
        lines.append("errors:")
        lines.extend(f"  - {item}" for item in report.errors)
        lines.append("")
    if report.skipped:
        lines.append("skipped (aborted):")
        lines.extend(f"  - {item}" for item in report.skipped)
        lines.append("")

    lines.append(report.summary_line())
    return "\n".join(lines) + "\n"


def render_json(report: Report) -> str:
    return json.dumps(report.as_dict(), indent=2, sort_keys=False) + "\n"
