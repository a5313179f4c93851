from rich.console import Console
from rich.markup import escape

from mdc_guard.engine.models import Severity
from mdc_guard.reporter import Report
from mdc_guard.rules.models import RuleDocument
from mdc_guard.rules.repository import LoadResult
from mdc_guard.tui.enums import UIStyle
from mdc_guard.tui.sections import UISection
from mdc_guard.tui.tables import ReportTable, RulesTable
from mdc_guard.utils import compact_home_path


class GuardConsoleUI:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_load_result(self, result: LoadResult, show_rules: bool = True) -> None:
        rules = list(result.registry.ordered())
        if show_rules:
            self.render_rules(rules)
        self.render_load_problems(result)

        summary_style = UIStyle.GREEN.value if result.is_valid() else UIStyle.RED.value
        self.console.print(
            UISection.note(
                "lint",
                f"{len(rules)} rule(s) loaded, {len(result.errors)} error(s), "
                f"{len(result.warnings)} warning(s)",
                style=summary_style,
            )
        )

    def render_load_problems(self, result: LoadResult) -> None:
        if result.errors:
            self.console.print(
                UISection.bullets("load errors", result.errors, style=UIStyle.RED.value)
            )
        if result.warnings:
            self.console.print(
                UISection.bullets(
                    "warnings", result.warnings, style=UIStyle.YELLOW.value
                )
            )

    def render_rules(self, rules: list[RuleDocument]) -> None:
        if not rules:
            self.console.print(
                UISection.note("rules", "No rules loaded.", style=UIStyle.YELLOW.value)
            )
            return
        self.console.print(
            UISection.wrap(
                "rules (dispatch order)",
                RulesTable.rules_table(rules),
                style=UIStyle.BLUE.value,
            )
        )

    def render_report(self, report: Report, targets: int) -> None:
        self.console.print(
            UISection.wrap(
                "check overview",
                ReportTable.summary_block(report, targets=targets),
                style=UIStyle.BLUE.value,
            )
        )

        for group in report.targets:
            has_errors = any(
                finding.severity == Severity.ERROR for finding in group.findings
            )
            self.console.print(
                UISection.wrap(
                    escape(compact_home_path(group.target)),
                    ReportTable.findings_table(group),
                    style=UIStyle.RED.value if has_errors else UIStyle.CYAN.value,
                )
            )

        if report.errors:
            self.console.print(
                UISection.bullets("unreadable targets", report.errors, style=UIStyle.RED.value)
            )
        if report.skipped:
            self.console.print(
                UISection.bullets(
                    "skipped (aborted)", report.skipped, style=UIStyle.YELLOW.value
                )
            )

        style = UIStyle.RED.value if report.has_failures() else UIStyle.GREEN.value
        self.console.print(UISection.note("summary", report.summary_line(), style=style))

    def render_fmt_result(self, changed: list[str], check: bool) -> None:
        if not changed:
            self.console.print(
                UISection.note(
                    "fmt", "All rule documents are formatted.", style=UIStyle.GREEN.value
                )
            )
            return
        title = "would reformat" if check else "reformatted"
        style = UIStyle.YELLOW.value if check else UIStyle.GREEN.value
        self.console.print(UISection.bullets(title, changed, style=style))
