"""Pattern compilation shared by the loader, matcher and dispatcher."""

from __future__ import annotations

import fnmatch
import functools
import re

from mdc_guard.rules.models import ConditionTarget, FilterType

_GLOB_CHARS = frozenset("*?[")
# `\.ext$`, `\.(ts|tsx)$`, `\.[jt]sx?$` and friends
_EXTENSION_ANCHOR_RE = re.compile(r"\\\.(?:\w+|\([\w|]+\)|\[[^\]]+\][\w?]*)\??\)?\$$")
# markup, comments and URLs contain "/" too
_CONTENT_TOKENS = ("<", ">", "//", " ", r"\s", r"\n", "\t")


@functools.lru_cache(maxsize=1024)
def compile_regex(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def is_glob(pattern: str) -> bool:
    return any(char in _GLOB_CHARS for char in pattern)


def check_pattern(pattern: str, filter_type: FilterType | None = None) -> str | None:
    """Return a problem description, or None when ``pattern`` is usable."""
    if not isinstance(pattern, str) or not pattern:
        return "pattern must be a non-empty string"
    try:
        if filter_type == FilterType.DIRECTORY:
            if is_glob(pattern):
                re.compile(fnmatch.translate(pattern))
            return None
        compile_regex(pattern)
    except re.error as exc:
        return str(exc)
    return None


def infer_condition_target(pattern: str) -> ConditionTarget:
    if _EXTENSION_ANCHOR_RE.search(pattern):
        return ConditionTarget.PATH
    if "/" in pattern and not any(token in pattern for token in _CONTENT_TOKENS):
        return ConditionTarget.PATH
    return ConditionTarget.CONTENT
