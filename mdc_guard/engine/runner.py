"""Evaluate many targets against a loaded registry."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from mdc_guard.engine.dispatcher import ActionDispatcher, evaluate_target
from mdc_guard.engine.matcher import FilterMatcher
from mdc_guard.engine.models import MatchResult, Target
from mdc_guard.engine.targets import read_target
from mdc_guard.errors import MatchError
from mdc_guard.rules.models import RuleDocument
from mdc_guard.utils import display_path

logger = logging.getLogger(__name__)

TargetRef = Union[Target, Path]


@dataclass
class TargetOutcome:
    target: str
    results: list[MatchResult] = field(default_factory=list)
    error: Optional[MatchError] = None
    skipped: bool = False


@dataclass
class RunResult:
    outcomes: list[TargetOutcome]

    @property
    def results(self) -> list[MatchResult]:
        return [result for outcome in self.outcomes for result in outcome.results]

    @property
    def errors(self) -> list[MatchError]:
        return [outcome.error for outcome in self.outcomes if outcome.error is not None]

    @property
    def aborted(self) -> bool:
        return any(outcome.skipped for outcome in self.outcomes)


def _label(ref: TargetRef, root: Optional[Path]) -> str:
    if isinstance(ref, Target):
        return ref.path
    return display_path(ref, root)


class PipelineRunner:
    def __init__(
        self,
        registry: Mapping[str, RuleDocument],
        workers: Optional[int] = None,
        root: Optional[Path] = None,
        matcher: Optional[FilterMatcher] = None,
        dispatcher: Optional[ActionDispatcher] = None,
    ) -> None:
        self.registry = registry
        self.workers = max(1, workers or os.cpu_count() or 1)
        self.root = root
        self.matcher = matcher or FilterMatcher()
        self.dispatcher = dispatcher or ActionDispatcher()

    def run(
        self,
        targets: Sequence[TargetRef],
        event: Optional[str] = None,
        abort: Optional[threading.Event] = None,
    ) -> RunResult:
        if not targets:
            return RunResult(outcomes=[])
        with ThreadPoolExecutor(max_workers=min(self.workers, len(targets))) as pool:
            futures = [
                pool.submit(self._evaluate_one, ref, event, abort) for ref in targets
            ]
            outcomes = [future.result() for future in futures]
        return RunResult(outcomes=outcomes)

    def _evaluate_one(
        self,
        ref: TargetRef,
        event: Optional[str],
        abort: Optional[threading.Event],
    ) -> TargetOutcome:
        label = _label(ref, self.root)
        if abort is not None and abort.is_set():
            logger.info("Skipping %s (aborted)", label)
            return TargetOutcome(target=label, skipped=True)

        if isinstance(ref, Target):
            target = ref
            if event is not None and ref.event is None:
                target = Target(path=ref.path, content=ref.content, event=event)
        else:
            try:
                target = read_target(ref, root=self.root, event=event)
            except MatchError as exc:
                logger.info("Cannot evaluate %s: %s", label, exc.detail)
                return TargetOutcome(target=label, error=exc)

        results = evaluate_target(
            self.registry, target, matcher=self.matcher, dispatcher=self.dispatcher
        )
        return TargetOutcome(target=label, results=results)


def run_pipeline(
    registry: Mapping[str, RuleDocument],
    targets: Sequence[TargetRef],
    event: Optional[str] = None,
    workers: Optional[int] = None,
    abort: Optional[threading.Event] = None,
    root: Optional[Path] = None,
) -> RunResult:
    return PipelineRunner(registry, workers=workers, root=root).run(
        targets, event=event, abort=abort
    )
