from pathlib import Path
from typing import Optional, Sequence


class MdcGuardError(Exception):
    """Base user-facing application error."""


class RuleFileError(MdcGuardError):
    def __init__(
        self, path: Path, message: str, location: Optional[str] = None
    ) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {location or path}")


class ParseError(RuleFileError):
    def __init__(self, path: Path, message: str, line: Optional[int] = None) -> None:
        self.line = line
        location = f"{path}:{line}" if line is not None else None
        super().__init__(path=path, message=message, location=location)


class PatternError(RuleFileError):
    def __init__(
        self, path: Path, rule: str, field: str, pattern: str, detail: str
    ) -> None:
        self.rule = rule
        self.field = field
        self.pattern = pattern
        self.detail = detail
        super().__init__(
            path=path,
            message=(
                f"Invalid pattern {pattern!r} in rule '{rule}' at {field} ({detail})"
            ),
        )


class MatchError(RuleFileError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Cannot read target ({detail})")


class DuplicateNameError(MdcGuardError):
    def __init__(self, name: str, paths: Sequence[Path]) -> None:
        self.name = name
        self.paths = tuple(paths)
        joined = ", ".join(str(path) for path in self.paths)
        super().__init__(f"Duplicate rule name '{name}' declared in: {joined}")


class RulesDirectoryNotFoundError(RuleFileError):
    def __init__(self, path: Path) -> None:
        super().__init__(path=path, message="Rules directory does not exist")


class InvalidJsonFormatError(RuleFileError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Invalid JSON format ({detail})")


class InvalidConfigSchemaError(RuleFileError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Invalid config schema ({detail})")
