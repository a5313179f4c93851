"""Rule loader: reads a directory of rule documents into an immutable registry."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Union

from mdc_guard.constants import DEFAULT_RULE_SUFFIXES, MAX_DESCRIPTION_LENGTH
from mdc_guard.errors import (
    DuplicateNameError,
    MdcGuardError,
    ParseError,
    RulesDirectoryNotFoundError,
)
from mdc_guard.rules.models import RuleDocument
from mdc_guard.rules.parser import parse_rule_document

logger = logging.getLogger(__name__)

_ParseOutcome = Union[RuleDocument, MdcGuardError]


class RuleRegistry(Mapping[str, RuleDocument]):
    """Read-only mapping of rule name to document, iterated in dispatch order."""

    def __init__(self, rules: Iterable[RuleDocument] = ()) -> None:
        ordered = sorted(rules, key=lambda rule: rule.sort_key)
        self._ordered = tuple(ordered)
        self._by_name = MappingProxyType({rule.name: rule for rule in ordered})

    def __getitem__(self, name: str) -> RuleDocument:
        return self._by_name[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)

    def ordered(self) -> tuple[RuleDocument, ...]:
        return self._ordered


@dataclass(frozen=True)
class LoadResult:
    registry: RuleRegistry
    errors: list[Exception] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def is_valid(self) -> bool:
        return not self.errors

    @property
    def matchable(self) -> bool:
        return not any(isinstance(item, DuplicateNameError) for item in self.errors)


class RuleLoader:
    def __init__(
        self,
        rules_dir: Path,
        suffixes: Iterable[str] = DEFAULT_RULE_SUFFIXES,
        max_description_length: int = MAX_DESCRIPTION_LENGTH,
    ) -> None:
        self._rules_dir = rules_dir
        self._suffixes = tuple(suffixes)
        self._max_description_length = max_description_length
        self._cache: dict[Path, tuple[tuple[int, int], _ParseOutcome]] = {}

    @property
    def rules_dir(self) -> Path:
        return self._rules_dir

    def discover(self) -> list[Path]:
        if not self._rules_dir.is_dir():
            raise RulesDirectoryNotFoundError(self._rules_dir)
        paths: list[Path] = []
        for path in sorted(self._rules_dir.rglob("*")):
            relative = path.relative_to(self._rules_dir)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if path.is_file() and path.suffix in self._suffixes:
                paths.append(path)
        return paths

    def load(self) -> LoadResult:
        errors: list[Exception] = []
        warnings: list[str] = []
        documents: list[RuleDocument] = []

        paths = self.discover()
        for stale in set(self._cache) - set(paths):
            del self._cache[stale]

        for path in paths:
            outcome = self._load_one(path)
            if isinstance(outcome, RuleDocument):
                documents.append(outcome)
                warnings.extend(f"{path}: {item}" for item in outcome.warnings)
            else:
                errors.append(outcome)

        by_name: dict[str, list[RuleDocument]] = defaultdict(list)
        for document in documents:
            by_name[document.name].append(document)

        unique: list[RuleDocument] = []
        for name, group in by_name.items():
            if len(group) > 1:
                logger.info("Rule name %s declared %d times", name, len(group))
                errors.append(DuplicateNameError(name, [item.path for item in group]))
                continue
            unique.append(group[0])

        logger.debug(
            "Loaded %d rule(s) from %s with %d error(s)",
            len(unique),
            self._rules_dir,
            len(errors),
        )
        return LoadResult(registry=RuleRegistry(unique), errors=errors, warnings=warnings)

    def _load_one(self, path: Path) -> _ParseOutcome:
        try:
            stat = path.stat()
        except OSError as exc:
            return ParseError(path, f"Cannot read rule document ({exc})")
        stamp = (stat.st_mtime_ns, stat.st_size)

        cached = self._cache.get(path)
        if cached is not None and cached[0] == stamp:
            return cached[1]

        outcome: _ParseOutcome
        try:
            outcome = parse_rule_document(
                path, max_description_length=self._max_description_length
            )
        except MdcGuardError as exc:
            logger.info("Rejected rule document %s: %s", path, exc)
            outcome = exc
        except (OSError, UnicodeDecodeError) as exc:
            outcome = ParseError(path, f"Cannot read rule document ({exc})")
        self._cache[path] = (stamp, outcome)
        return outcome


def load_rules(rules_dir: Path, **kwargs) -> LoadResult:
    return RuleLoader(rules_dir, **kwargs).load()
