"""Rule document data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class FilterType(str, Enum):
    FILE_EXTENSION = "file_extension"
    CONTENT = "content"
    EVENT = "event"
    DIRECTORY = "directory"


class ActionKind(str, Enum):
    VALIDATE = "validate"
    REJECT = "reject"
    SUGGEST = "suggest"


class Expectation(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class ConditionTarget(str, Enum):
    PATH = "path"
    CONTENT = "content"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


@dataclass(frozen=True)
class FrontMatter:
    description: str
    globs: str = ""
    always_apply: bool = False

    @property
    def glob_patterns(self) -> tuple[str, ...]:
        return tuple(item.strip() for item in self.globs.split(",") if item.strip())


@dataclass(frozen=True)
class Filter:
    type: FilterType
    pattern: str


@dataclass(frozen=True)
class Condition:
    pattern: str
    message: str
    expect: Optional[Expectation] = None
    target: Optional[ConditionTarget] = None


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    conditions: tuple[Condition, ...] = ()
    message: str = ""

    @property
    def default_expectation(self) -> Expectation:
        if self.kind == ActionKind.REJECT:
            return Expectation.ABSENT
        return Expectation.PRESENT


@dataclass(frozen=True)
class Example:
    input: str
    output: str


@dataclass(frozen=True)
class RuleMetadata:
    priority: Priority
    version: str
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class RuleDocument:
    path: Path
    name: str
    description: str
    front_matter: FrontMatter
    filters: tuple[Filter, ...]
    actions: tuple[Action, ...]
    examples: tuple[Example, ...]
    metadata: RuleMetadata
    category: Optional[int] = None
    prose_before: str = ""
    prose_after: str = ""
    warnings: tuple[str, ...] = field(default=(), compare=False)

    @property
    def always_apply(self) -> bool:
        return self.front_matter.always_apply

    @property
    def sort_key(self) -> tuple[int, int, int, str]:
        has_category = 0 if self.category is not None else 1
        return (
            has_category,
            self.category or 0,
            self.metadata.priority.rank,
            self.name,
        )
