"""Project configuration read from ``.mdc-guard.json``."""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from jsonschema import Draft202012Validator

from mdc_guard.constants import (
    CONFIG_FILENAME,
    DEFAULT_RULE_SUFFIXES,
    DEFAULT_RULES_DIR,
    MAX_DESCRIPTION_LENGTH,
    TARGET_IGNORED_NAMES,
)
from mdc_guard.errors import InvalidConfigSchemaError, InvalidJsonFormatError
from mdc_guard.utils import read_json


OUTPUT_FORMATS = ("rich", "text", "json")

CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "rules_dir": {"type": "string", "minLength": 1},
        "rule_suffixes": {
            "type": "array",
            "items": {"type": "string", "pattern": r"^\.[A-Za-z0-9_.-]+$"},
            "minItems": 1,
        },
        "exclude": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "workers": {"type": ["integer", "null"], "minimum": 1},
        "format": {"enum": list(OUTPUT_FORMATS)},
        "max_description_length": {"type": "integer", "minimum": 1},
    },
}


def format_schema_error(error: Any) -> str:
    path = ".".join([str(part) for part in error.path])
    return f"{error.message} at {path}" if path else str(error.message)


@dataclass(frozen=True)
class ProjectConfig:
    rules_dir: Path = Path(DEFAULT_RULES_DIR)
    rule_suffixes: tuple[str, ...] = DEFAULT_RULE_SUFFIXES
    exclude: tuple[str, ...] = TARGET_IGNORED_NAMES
    workers: Optional[int] = None
    format: str = "rich"
    max_description_length: int = MAX_DESCRIPTION_LENGTH
    source: Optional[Path] = field(default=None, compare=False)

    def with_overrides(self, **overrides: Any) -> "ProjectConfig":
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)


def load_config(path: Optional[Path] = None, cwd: Optional[Path] = None) -> ProjectConfig:
    """Load the explicit config ``path`` or the one found in ``cwd``.

    A missing implicit config yields defaults; a missing explicit one is an error.
    """
    base = cwd or Path.cwd()
    config_path = path or base / CONFIG_FILENAME
    if path is None and not config_path.exists():
        return ProjectConfig()

    try:
        payload = read_json(config_path)
    except FileNotFoundError:
        raise InvalidJsonFormatError(config_path, "file not found")
    except ValueError as exc:
        raise InvalidJsonFormatError(config_path, str(exc))

    error = next(iter(Draft202012Validator(CONFIG_SCHEMA).iter_errors(payload)), None)
    if error is not None:
        raise InvalidConfigSchemaError(config_path, format_schema_error(error))

    config_root = config_path.parent
    rules_dir = Path(payload.get("rules_dir", DEFAULT_RULES_DIR))
    if not rules_dir.is_absolute():
        rules_dir = config_root / rules_dir

    return ProjectConfig(
        rules_dir=rules_dir,
        rule_suffixes=tuple(payload.get("rule_suffixes", DEFAULT_RULE_SUFFIXES)),
        exclude=tuple(payload.get("exclude", TARGET_IGNORED_NAMES)),
        workers=payload.get("workers"),
        format=payload.get("format", "rich"),
        max_description_length=payload.get(
            "max_description_length", MAX_DESCRIPTION_LENGTH
        ),
        source=config_path,
    )
