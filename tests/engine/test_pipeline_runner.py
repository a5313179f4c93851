"""Tests for target collection and the concurrent pipeline runner."""

import threading
from pathlib import Path

import pytest

from mdc_guard.engine.models import Severity, Target
from mdc_guard.engine.runner import PipelineRunner, run_pipeline
from mdc_guard.engine.targets import collect_target_paths, read_target
from mdc_guard.errors import MatchError
from mdc_guard.reporter import render_text, report_from_run
from mdc_guard.rules.repository import load_rules


@pytest.fixture
def registry(rules_dir: Path, write_rule):
    write_rule("001-front-matter.mdc", name="front_matter_required")
    write_rule(
        "002-reminder.mdc",
        name="rule_reminder",
        priority="low",
        actions=[{"type": "suggest", "message": "Keep rules short."}],
    )
    return load_rules(rules_dir).registry


def test_collect_expands_directories_and_skips_excluded(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "b.mdc").write_text("b", encoding="utf-8")
    (tmp_path / "src" / "a.mdc").write_text("a", encoding="utf-8")
    (tmp_path / "node_modules" / "pkg").mkdir(parents=True)
    (tmp_path / "node_modules" / "pkg" / "c.mdc").write_text("c", encoding="utf-8")

    paths = collect_target_paths([tmp_path])

    assert paths == [tmp_path / "src" / "a.mdc", tmp_path / "src" / "b.mdc"]


def test_collect_keeps_missing_files_and_dedupes(tmp_path: Path) -> None:
    missing = tmp_path / "missing.mdc"
    existing = tmp_path / "x.mdc"
    existing.write_text("x", encoding="utf-8")
    assert collect_target_paths([missing, existing, tmp_path]) == [missing, existing]


def test_read_target_uses_relative_posix_path(tmp_path: Path) -> None:
    path = tmp_path / "docs" / "a.mdc"
    path.parent.mkdir()
    path.write_text("---\n", encoding="utf-8")
    target = read_target(path, root=tmp_path, event="file_create")
    assert target == Target(path="docs/a.mdc", content="---\n", event="file_create")


def test_read_target_missing_file(tmp_path: Path) -> None:
    with pytest.raises(MatchError, match="not found"):
        read_target(tmp_path / "ghost.mdc")


def test_read_target_rejects_binary(tmp_path: Path) -> None:
    path = tmp_path / "blob.mdc"
    path.write_bytes(b"\xff\xfe\x00\x81")
    with pytest.raises(MatchError, match="UTF-8"):
        read_target(path)


def test_unreadable_target_does_not_stop_others(tmp_path: Path, registry) -> None:
    good = tmp_path / "good.mdc"
    good.write_text("# no front matter\n", encoding="utf-8")
    missing = tmp_path / "missing.mdc"

    run = run_pipeline(registry, [missing, good], root=tmp_path, workers=2)

    assert [outcome.target for outcome in run.outcomes] == ["missing.mdc", "good.mdc"]
    assert len(run.errors) == 1
    assert run.errors[0].path == missing
    messages = [finding.message for result in run.results for finding in result.findings]
    assert messages == ["must start with front matter", "Keep rules short."]


def test_results_keep_target_input_order(tmp_path: Path, registry) -> None:
    paths = []
    for index in range(12):
        path = tmp_path / f"file_{index:02d}.mdc"
        path.write_text("body\n", encoding="utf-8")
        paths.append(path)

    run = run_pipeline(registry, list(reversed(paths)), root=tmp_path, workers=4)

    assert [outcome.target for outcome in run.outcomes] == [
        path.name for path in reversed(paths)
    ]


def test_in_memory_targets_receive_event(registry) -> None:
    runner = PipelineRunner(registry, workers=1)
    run = runner.run([Target(path="a.mdc", content="---\n")], event="file_create")
    assert run.outcomes[0].results[0].target.event == "file_create"


def test_abort_skips_unstarted_targets(tmp_path: Path, registry) -> None:
    abort = threading.Event()
    abort.set()
    target = Target(path="a.mdc", content="body")

    run = run_pipeline(registry, [target, target], abort=abort)

    assert run.aborted
    assert all(outcome.skipped for outcome in run.outcomes)
    assert run.results == []
    report = report_from_run(run)
    assert report.skipped == ("a.mdc", "a.mdc")


def test_empty_target_list() -> None:
    run = run_pipeline({}, [])
    assert run.outcomes == []
    assert not run.aborted


def test_finding_count_is_conserved(tmp_path: Path, registry) -> None:
    targets = [
        Target(path="a.mdc", content="# missing front matter"),
        Target(path="b.mdc", content="---\nok\n"),
        Target(path="c.ts", content="const x = 1;"),
    ]
    run = run_pipeline(registry, targets, workers=3)
    report = report_from_run(run)

    dispatched = sum(len(result.findings) for result in run.results)
    assert len(report.findings) == dispatched == 3
    assert report.error_count == 1
    assert report.info_count == 2
    assert all(
        finding.severity in (Severity.ERROR, Severity.INFO) for finding in report.findings
    )


def test_pipeline_is_idempotent(tmp_path: Path, rules_dir: Path, registry) -> None:
    for name in ("one.mdc", "two.mdc", "three.mdc"):
        (tmp_path / name).write_text("text\n", encoding="utf-8")
    targets = collect_target_paths([tmp_path])

    first = render_text(report_from_run(run_pipeline(registry, targets, root=tmp_path)))
    reloaded = load_rules(rules_dir).registry
    second = render_text(report_from_run(run_pipeline(reloaded, targets, root=tmp_path)))

    assert first == second
