from collections import Counter

from rich.markup import escape
from rich.table import Column, Table

from mdc_guard.engine.models import Severity
from mdc_guard.reporter import Report, TargetGroup
from mdc_guard.rules.models import RuleDocument
from mdc_guard.tui.enums import PRIORITY_STYLE, SEVERITY_STYLE, UIStyle
from mdc_guard.utils import compact_home_path


class RulesTable:
    @staticmethod
    def rules_table(rules: list[RuleDocument]) -> Table:
        table = Table(
            Column(header="#", width=5, justify="right"),
            Column(header="Rule", no_wrap=True),
            Column(header="Priority", width=8),
            Column(header="Version", width=10),
            Column(header="Filters", overflow="ellipsis"),
            Column(header="Actions", overflow="ellipsis"),
            Column(header="Source", overflow="ellipsis", max_width=42),
            expand=True,
            header_style="bold",
        )
        for rule in rules:
            priority = rule.metadata.priority.value
            style = PRIORITY_STYLE.get(priority, UIStyle.WHITE.value)
            if rule.always_apply:
                filters = "always"
            else:
                filters = ", ".join(item.type.value for item in rule.filters) or "(none)"
            actions = Counter(action.kind.value for action in rule.actions)
            table.add_row(
                "-" if rule.category is None else str(rule.category),
                rule.name,
                f"[{style}]{priority}[/{style}]",
                rule.metadata.version,
                filters,
                "  ".join(f"{kind}={count}" for kind, count in sorted(actions.items()))
                or "none",
                escape(compact_home_path(rule.path)),
            )
        return table


class ReportTable:
    @staticmethod
    def summary_block(report: Report, targets: int):
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Targets", str(targets))
        table.add_row("Findings", str(len(report.findings)))
        table.add_row(
            "Severities",
            f"[{SEVERITY_STYLE[Severity.ERROR]}]error={report.error_count}[/]  "
            f"[{SEVERITY_STYLE[Severity.INFO]}]info={report.info_count}[/]",
        )
        if report.errors:
            table.add_row("Unreadable", str(len(report.errors)))
        if report.skipped:
            table.add_row("Skipped", str(len(report.skipped)))
        return table

    @staticmethod
    def findings_table(group: TargetGroup) -> Table:
        table = Table(
            Column(header="Rule", width=28, overflow="fold"),
            Column(header="Severity", width=8),
            Column(header="Message", overflow="fold"),
            expand=True,
            header_style="bold",
        )
        for rule_group in group.rules:
            for finding in rule_group.findings:
                style = SEVERITY_STYLE.get(finding.severity, UIStyle.WHITE.value)
                table.add_row(
                    rule_group.rule,
                    f"[{style}]{finding.severity.value}[/{style}]",
                    escape(finding.message.rstrip()),
                )
        return table
