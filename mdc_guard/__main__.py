import logging
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from mdc_guard.config import OUTPUT_FORMATS, ProjectConfig, load_config
from mdc_guard.engine.runner import run_pipeline
from mdc_guard.engine.targets import collect_target_paths
from mdc_guard.errors import MdcGuardError, RulesDirectoryNotFoundError
from mdc_guard.reporter import render_json, render_text, report_from_run
from mdc_guard.rules.parser import serialize_rule_document
from mdc_guard.rules.repository import LoadResult, RuleLoader
from mdc_guard.tui.renderers import GuardConsoleUI
from mdc_guard.utils import display_path, write_text_if_changed


def _configure_logging(verbose: bool) -> None:
    package_logger = logging.getLogger("mdc_guard")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _config_from_obj(obj: Dict[str, Any], **overrides: Any) -> ProjectConfig:
    return obj["config"].with_overrides(**overrides)


def _load_rules(config: ProjectConfig) -> LoadResult:
    loader = RuleLoader(
        config.rules_dir,
        suffixes=config.rule_suffixes,
        max_description_length=config.max_description_length,
    )
    try:
        return loader.load()
    except RulesDirectoryNotFoundError as exc:
        raise click.ClickException(f"Fatal: {exc}")


def _rules_dir_argument():
    return click.argument(
        "rules_dir", required=False, type=click.Path(path_type=Path), default=None
    )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Config file (defaults to ./.mdc-guard.json when present).",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """Lint Cursor rule documents and check files against them."""
    _configure_logging(verbose)
    try:
        config = load_config(config_path)
    except MdcGuardError as exc:
        raise click.ClickException(f"Fatal: {exc}")
    ctx.obj = {"config": config}


@cli.command(help="Load rule documents and report parse errors.")
@_rules_dir_argument()
@click.pass_obj
def lint(obj: Dict[str, Any], rules_dir: Optional[Path]) -> None:
    ui = GuardConsoleUI(Console())
    config = _config_from_obj(obj, rules_dir=rules_dir)
    result = _load_rules(config)
    ui.render_load_result(result)
    if not result.is_valid():
        raise click.exceptions.Exit(1)


@cli.command("list", help="List loaded rules in dispatch order.")
@_rules_dir_argument()
@click.pass_obj
def list_rules(obj: Dict[str, Any], rules_dir: Optional[Path]) -> None:
    ui = GuardConsoleUI(Console())
    config = _config_from_obj(obj, rules_dir=rules_dir)
    result = _load_rules(config)
    ui.render_rules(list(result.registry.ordered()))


@cli.command(help="Check files against the loaded rules.")
@click.argument("paths", nargs=-1, type=click.Path(path_type=Path))
@click.option(
    "--rules-dir", type=click.Path(path_type=Path), default=None, help="Rules directory."
)
@click.option("--event", default=None, help="Event name supplied to event filters.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
    default=None,
    help="Report format.",
)
@click.option(
    "--workers", type=click.IntRange(min=1), default=None, help="Parallel workers."
)
@click.pass_obj
def check(
    obj: Dict[str, Any],
    paths: tuple[Path, ...],
    rules_dir: Optional[Path],
    event: Optional[str],
    output_format: Optional[str],
    workers: Optional[int],
) -> None:
    config = _config_from_obj(
        obj,
        rules_dir=rules_dir,
        format=output_format.lower() if output_format else None,
        workers=workers,
    )
    ui = GuardConsoleUI(Console())
    load_result = _load_rules(config)

    if config.format == "rich":
        ui.render_load_problems(load_result)
    else:
        for item in load_result.errors:
            click.echo(f"load error: {item}", err=True)

    if not load_result.matchable:
        raise click.ClickException(
            "Matching refused until duplicate rule names are resolved."
        )

    targets = collect_target_paths(paths or (Path("."),), exclude=config.exclude)
    run = run_pipeline(
        load_result.registry, targets, event=event, workers=config.workers
    )
    report = report_from_run(run)

    if config.format == "json":
        click.echo(render_json(report), nl=False)
    elif config.format == "text":
        click.echo(render_text(report), nl=False)
    else:
        ui.render_report(report, targets=len(targets))

    if report.has_failures() or not load_result.is_valid():
        raise click.exceptions.Exit(1)


@cli.command(help="Rewrite rule documents in canonical form.")
@_rules_dir_argument()
@click.option("--check", "check_only", is_flag=True, help="Only report changes.")
@click.pass_obj
def fmt(obj: Dict[str, Any], rules_dir: Optional[Path], check_only: bool) -> None:
    ui = GuardConsoleUI(Console())
    config = _config_from_obj(obj, rules_dir=rules_dir)
    result = _load_rules(config)
    ui.render_load_problems(result)

    changed: list[str] = []
    for rule in result.registry.ordered():
        text = serialize_rule_document(rule)
        if check_only:
            if rule.path.read_text(encoding="utf-8") != text:
                changed.append(display_path(rule.path))
        elif write_text_if_changed(rule.path, text):
            changed.append(display_path(rule.path))

    ui.render_fmt_result(changed, check=check_only)
    if (check_only and changed) or not result.is_valid():
        raise click.exceptions.Exit(1)


def main() -> int:
    try:
        cli(standalone_mode=False)
    except click.exceptions.Exit as exc:
        code = exc.exit_code
        return code if isinstance(code, int) else 1
    except click.ClickException as exc:
        exc.show()
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
