"""Tests for the mdc-guard command line."""

import json
from pathlib import Path

from mdc_guard.__main__ import cli
from mdc_guard.constants import CONFIG_FILENAME


def test_lint_reports_loaded_rules(project: Path, write_rule, cli_runner) -> None:
    write_rule("001-front-matter.mdc", name="front_matter_required")
    result = cli_runner.invoke(cli, ["lint"])
    assert result.exit_code == 0
    assert "front_matter_required" in result.output
    assert "1 rule(s) loaded" in result.output


def test_lint_fails_on_parse_errors(project: Path, write_rule, cli_runner) -> None:
    write_rule("001-good.mdc", name="good")
    write_rule("002-bad.mdc", name="bad", drop=("metadata.version",))
    result = cli_runner.invoke(cli, ["lint"])
    assert result.exit_code == 1
    assert "metadata.version" in result.output
    assert "good" in result.output


def test_lint_missing_directory(project: Path, cli_runner) -> None:
    result = cli_runner.invoke(cli, ["lint", "nowhere"])
    assert result.exit_code != 0
    assert "Rules directory does not exist" in result.output


def test_list_shows_dispatch_order(project: Path, write_rule, cli_runner) -> None:
    write_rule("200-late.mdc", name="late_rule")
    write_rule("100-early.mdc", name="early_rule")
    result = cli_runner.invoke(cli, ["list"])
    assert result.exit_code == 0
    assert result.output.index("early_rule") < result.output.index("late_rule")


def test_list_empty(project: Path, rules_dir: Path, cli_runner) -> None:
    result = cli_runner.invoke(cli, ["list"])
    assert result.exit_code == 0
    assert "No rules loaded" in result.output


def test_check_text_scenario(project: Path, write_rule, cli_runner) -> None:
    write_rule("001-front-matter.mdc", name="front_matter_required")
    docs = project / "docs"
    docs.mkdir()
    (docs / "bad.mdc").write_text("# Title\n", encoding="utf-8")
    (docs / "app.ts").write_text("export {}\n", encoding="utf-8")

    result = cli_runner.invoke(cli, ["check", "docs", "--format", "text"])

    assert result.exit_code == 1
    assert result.output == (
        "docs/bad.mdc\n"
        "  front_matter_required\n"
        "    error: must start with front matter\n"
        "\n"
        "1 findings (1 errors, 0 info)\n"
    )


def test_check_clean_target_exits_zero(project: Path, write_rule, cli_runner) -> None:
    write_rule("001-front-matter.mdc", name="front_matter_required")
    (project / "ok.mdc").write_text("---\nx: y\n---\n", encoding="utf-8")
    result = cli_runner.invoke(cli, ["check", "ok.mdc", "--format", "text"])
    assert result.exit_code == 0
    assert result.output == "0 findings (0 errors, 0 info)\n"


def test_check_info_only_exits_zero(project: Path, write_rule, cli_runner) -> None:
    write_rule(
        "001-tip.mdc",
        name="tip",
        actions=[{"type": "suggest", "message": "Prefer small rules."}],
    )
    (project / "a.mdc").write_text("---\n", encoding="utf-8")
    result = cli_runner.invoke(cli, ["check", "a.mdc", "--format", "json"])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["summary"] == {"findings": 1, "errors": 0, "info": 1}


def test_check_event_filter(project: Path, write_rule, cli_runner) -> None:
    write_rule(
        "001-on-create.mdc",
        name="on_create",
        filters=[{"type": "event", "pattern": "file_create"}],
        actions=[{"type": "suggest", "message": "New file created."}],
    )
    (project / "a.mdc").write_text("x", encoding="utf-8")

    static = cli_runner.invoke(cli, ["check", "a.mdc", "--format", "text"])
    on_event = cli_runner.invoke(
        cli, ["check", "a.mdc", "--format", "text", "--event", "file_create"]
    )

    assert "0 findings" in static.output
    assert "New file created." in on_event.output


def test_check_duplicate_names_refuses_matching(
    project: Path, write_rule, cli_runner
) -> None:
    write_rule("001-a.mdc", name="same")
    write_rule("002-b.mdc", name="same")
    (project / "a.mdc").write_text("x", encoding="utf-8")
    result = cli_runner.invoke(cli, ["check", "a.mdc", "--format", "text"])
    assert result.exit_code != 0
    assert "Duplicate rule name 'same'" in result.output
    assert "findings" not in result.output


def test_check_missing_target_is_reported(project: Path, write_rule, cli_runner) -> None:
    write_rule("001-front-matter.mdc", name="front_matter_required")
    (project / "ok.mdc").write_text("---\n", encoding="utf-8")
    result = cli_runner.invoke(
        cli, ["check", "ok.mdc", "ghost.mdc", "--format", "text"]
    )
    assert result.exit_code == 1
    assert "ghost.mdc" in result.output
    assert "0 findings" in result.output


def test_check_rich_output(project: Path, write_rule, cli_runner) -> None:
    write_rule("001-front-matter.mdc", name="front_matter_required")
    (project / "bad.mdc").write_text("nope", encoding="utf-8")
    result = cli_runner.invoke(cli, ["check", "bad.mdc"])
    assert result.exit_code == 1
    assert "must start with front matter" in result.output
    assert "1 findings (1 errors, 0 info)" in result.output


def test_check_rich_output_keeps_bracketed_paths(
    project: Path, write_rule, cli_runner
) -> None:
    write_rule("001-front-matter.mdc", name="front_matter_required")
    route = project / "app" / "[id]"
    route.mkdir(parents=True)
    (route / "page.mdc").write_text("nope", encoding="utf-8")
    result = cli_runner.invoke(cli, ["check", "app"])
    assert result.exit_code == 1
    assert "app/[id]/page.mdc" in result.output


def test_check_uses_config_file(project: Path, cli_runner, rule_text) -> None:
    custom = project / "guard-rules"
    custom.mkdir()
    (custom / "001-front-matter.mdc").write_text(rule_text(), encoding="utf-8")
    (project / CONFIG_FILENAME).write_text(
        json.dumps({"rules_dir": "guard-rules", "format": "text"}), encoding="utf-8"
    )
    (project / "bad.mdc").write_text("nope", encoding="utf-8")

    result = cli_runner.invoke(cli, ["check", "bad.mdc"])

    assert result.exit_code == 1
    assert "    error: must start with front matter" in result.output


def test_invalid_config_is_fatal(project: Path, cli_runner) -> None:
    (project / CONFIG_FILENAME).write_text(json.dumps({"format": "xml"}), encoding="utf-8")
    result = cli_runner.invoke(cli, ["lint"])
    assert result.exit_code != 0
    assert "Invalid config schema" in result.output


def test_fmt_rewrites_documents(project: Path, rules_dir: Path, cli_runner) -> None:
    path = rules_dir / "001-loose.mdc"
    path.write_text(
        "---\n"
        "description: Loose formatting\n"
        "globs:\n"
        "alwaysApply: true\n"
        "---\n"
        "<rule>\n"
        "name:   loose_rule\n"
        "description: Loosely written\n"
        "filters: []\n"
        "actions:\n"
        "  - type: suggest\n"
        "    message: Tidy up.\n"
        "examples:\n"
        "  - {input: a, output: b}\n"
        "metadata: {priority: low, version: 0.1.0}\n"
        "</rule>\n",
        encoding="utf-8",
    )

    check_before = cli_runner.invoke(cli, ["fmt", "--check"])
    assert check_before.exit_code == 1
    assert "001-loose.mdc" in check_before.output

    rewrite = cli_runner.invoke(cli, ["fmt"])
    assert rewrite.exit_code == 0
    assert "name: loose_rule" in path.read_text(encoding="utf-8")

    check_after = cli_runner.invoke(cli, ["fmt", "--check"])
    assert check_after.exit_code == 0
    assert "All rule documents are formatted" in check_after.output
