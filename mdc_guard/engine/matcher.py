"""Decide whether a rule applies to a target."""

from __future__ import annotations

import fnmatch
from pathlib import PurePosixPath

from mdc_guard.engine.models import Target
from mdc_guard.rules.models import Filter, FilterType, RuleDocument
from mdc_guard.rules.patterns import compile_regex, is_glob


def _match_extension(item: Filter, target: Target) -> bool:
    return compile_regex(item.pattern).search(target.extension) is not None


def _match_content(item: Filter, target: Target) -> bool:
    if target.content is None:
        return False
    return compile_regex(item.pattern).search(target.content) is not None


def _match_directory(item: Filter, target: Target) -> bool:
    directory = target.directory
    if is_glob(item.pattern):
        return fnmatch.fnmatchcase(directory, item.pattern)
    prefix = PurePosixPath(item.pattern.rstrip("/") or "/")
    candidate = PurePosixPath(directory)
    return candidate == prefix or prefix in candidate.parents


def _match_event(item: Filter, target: Target) -> bool:
    if target.event is None:
        return False
    if target.event == item.pattern:
        return True
    return compile_regex(item.pattern).fullmatch(target.event) is not None


_FILTER_HANDLERS = {
    FilterType.FILE_EXTENSION: _match_extension,
    FilterType.CONTENT: _match_content,
    FilterType.DIRECTORY: _match_directory,
    FilterType.EVENT: _match_event,
}


class FilterMatcher:
    def filter_matches(self, item: Filter, target: Target) -> bool:
        return _FILTER_HANDLERS[item.type](item, target)

    def matches(self, rule: RuleDocument, target: Target) -> bool:
        if rule.always_apply:
            return True
        if not rule.filters:
            return False
        return all(self.filter_matches(item, target) for item in rule.filters)
