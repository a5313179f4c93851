from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Optional

from mdc_guard.rules.models import RuleDocument


class Severity(str, Enum):
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Target:
    path: str
    content: Optional[str] = None
    event: Optional[str] = None

    @property
    def extension(self) -> str:
        """Everything from the first dot of the file name: `.d.ts`, `.gitignore`."""
        name = PurePosixPath(self.path).name
        index = name.find(".")
        return name[index:] if index >= 0 else ""

    @property
    def directory(self) -> str:
        return str(PurePosixPath(self.path).parent)


@dataclass(frozen=True)
class Finding:
    target: str
    rule: str
    severity: Severity
    message: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "rule": self.rule,
            "severity": self.severity.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class MatchResult:
    rule: RuleDocument
    target: Target
    matched: bool
    findings: tuple[Finding, ...] = field(default=())

    @property
    def messages(self) -> list[str]:
        return [finding.message for finding in self.findings]
