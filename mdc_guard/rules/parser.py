"""Parse and serialize rule documents (YAML frontmatter + <rule> block)."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Optional

import yaml

from mdc_guard.constants import FRONTMATTER_KEYS, MAX_DESCRIPTION_LENGTH, RULE_BLOCK_KEYS
from mdc_guard.errors import ParseError, PatternError
from mdc_guard.rules.models import (
    Action,
    ActionKind,
    Condition,
    ConditionTarget,
    Example,
    Expectation,
    Filter,
    FilterType,
    FrontMatter,
    Priority,
    RuleDocument,
    RuleMetadata,
)
from mdc_guard.rules.patterns import check_pattern

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\n(.*?)^---[ \t]*$\n?", re.DOTALL | re.MULTILINE)
_RULE_BLOCK_RE = re.compile(r"^<rule>[ \t]*\n(.*?)^</rule>[ \t]*$", re.DOTALL | re.MULTILINE)
_FENCE_RE = re.compile(
    r"^ {0,3}(`{3,}|~{3,})[^\n]*\n.*?(?:^ {0,3}\1[ \t]*$|\Z)", re.DOTALL | re.MULTILINE
)
_GLOBS_LINE_RE = re.compile(
    r"^(globs[ \t]*:[ \t]*)(?!(?:null|Null|NULL|~)[ \t]*$)([^\s\"'\[#~-].*?)[ \t]*$", re.MULTILINE
)
_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*$")
_CATEGORY_RE = re.compile(r"^(\d+)[-_]")
_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


def _line_at(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _quote_plain_globs(raw: str) -> str:
    """Cursor writes ``globs: *.mdc`` unquoted; a leading ``*`` would be a YAML alias."""
    return _GLOBS_LINE_RE.sub(
        lambda match: match.group(1) + "'" + match.group(2).replace("'", "''") + "'", raw
    )


def category_from_filename(path: Path) -> Optional[int]:
    match = _CATEGORY_RE.match(path.name)
    return int(match.group(1)) if match else None


class _DocumentParser:
    def __init__(self, path: Path, text: str, max_description_length: int) -> None:
        self.path = path
        self.text = text
        self.max_description_length = max_description_length
        self.warnings: list[str] = []
        self._block_offset = 0
        self._rule_name = ""

    def fail(self, message: str, line: Optional[int] = None) -> ParseError:
        return ParseError(self.path, message, line)

    def key_line(self, *keys: str) -> int:
        """Best-effort line of a (nested) key inside the rule block."""
        offset = self._block_offset
        for key in keys:
            match = re.compile(rf"^[ \t-]*{re.escape(key)}[ \t]*:", re.MULTILINE).search(
                self.text, offset
            )
            if match is None:
                break
            offset = match.start()
        return _line_at(self.text, offset)

    def load_yaml(self, raw: str, first_line: int, section: str) -> Any:
        try:
            return yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            mark = getattr(exc, "problem_mark", None)
            line = first_line + mark.line if mark is not None else first_line
            problem = getattr(exc, "problem", None) or str(exc)
            raise self.fail(f"Invalid YAML in {section} ({problem})", line) from exc

    def parse(self) -> RuleDocument:
        front_matter, body_start = self.parse_front_matter()

        blocks = self.find_rule_blocks(body_start)
        if not blocks:
            raise self.fail("Missing <rule> block", _line_at(self.text, body_start))
        if len(blocks) > 1:
            raise self.fail(
                "Expected a single <rule> block", _line_at(self.text, blocks[1].start())
            )
        block = blocks[0]
        self._block_offset = block.start(1)

        raw = self.load_yaml(block.group(1), _line_at(self.text, block.start(1)), "rule block")
        if not isinstance(raw, dict):
            raise self.fail("Rule block must be a mapping", _line_at(self.text, block.start()))
        for key in RULE_BLOCK_KEYS:
            if key not in raw:
                raise self.fail(
                    f"Rule block missing required field '{key}'",
                    _line_at(self.text, block.start()),
                )
        for key in raw:
            if key not in RULE_BLOCK_KEYS:
                self.warnings.append(f"Unknown rule block field '{key}' ignored")

        name = self.parse_name(raw["name"])
        self._rule_name = name
        return RuleDocument(
            path=self.path,
            name=name,
            description=self.require_text(raw["description"], "description"),
            front_matter=front_matter,
            filters=self.parse_filters(raw["filters"]),
            actions=self.parse_actions(raw["actions"]),
            examples=self.parse_examples(raw["examples"]),
            metadata=self.parse_metadata(raw["metadata"]),
            category=category_from_filename(self.path),
            prose_before=self.text[body_start : block.start()].strip(),
            prose_after=self.text[block.end() :].strip(),
            warnings=tuple(self.warnings),
        )

    def find_rule_blocks(self, start: int) -> list[re.Match[str]]:
        """Top-level ``<rule>`` blocks; examples inside code fences are prose."""
        fences = [match.span() for match in _FENCE_RE.finditer(self.text, start)]
        return [
            block
            for block in _RULE_BLOCK_RE.finditer(self.text, start)
            if not any(begin <= block.start() < end for begin, end in fences)
        ]

    def parse_front_matter(self) -> tuple[FrontMatter, int]:
        match = _FRONTMATTER_RE.match(self.text)
        if match is None:
            raise self.fail("Missing front matter block", 1)
        raw = self.load_yaml(_quote_plain_globs(match.group(1)), 2, "front matter") or {}
        if not isinstance(raw, dict):
            raise self.fail("Front matter must be a mapping", 1)

        for key in FRONTMATTER_KEYS:
            if key not in raw:
                raise self.fail(f"Front matter missing required field '{key}'", 1)
        for key in raw:
            if key not in FRONTMATTER_KEYS:
                raise self.fail(f"Unknown front matter field '{key}'", 1)

        description = raw["description"]
        if not isinstance(description, str) or not description.strip():
            raise self.fail("Front matter 'description' must be a non-empty string", 1)
        if len(description) > self.max_description_length:
            self.warnings.append(
                f"Front matter description exceeds {self.max_description_length} characters"
            )

        globs = raw["globs"]
        if globs is None:
            globs = ""
        elif isinstance(globs, list) and all(isinstance(item, str) for item in globs):
            globs = ",".join(globs)
        elif not isinstance(globs, str):
            raise self.fail("Front matter 'globs' must be a string", 1)

        always_apply = raw["alwaysApply"]
        if not isinstance(always_apply, bool):
            raise self.fail("Front matter 'alwaysApply' must be a boolean", 1)

        front_matter = FrontMatter(
            description=description, globs=globs, always_apply=always_apply
        )
        return front_matter, match.end()

    def parse_name(self, value: Any) -> str:
        if not isinstance(value, str) or not _NAME_RE.fullmatch(value):
            raise self.fail(
                f"Invalid rule name {value!r} (expected snake_case)",
                self.key_line("name"),
            )
        return value

    def require_text(self, value: Any, field: str, *keys: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise self.fail(
                f"Field '{field}' must be a non-empty string",
                self.key_line(*(keys or (field.rsplit(".", 1)[-1],))),
            )
        return value

    def require_list(self, value: Any, field: str, allow_empty: bool = True) -> list:
        if value is None and allow_empty:
            return []
        if not isinstance(value, list):
            raise self.fail(f"Field '{field}' must be a list", self.key_line(field))
        if not value and not allow_empty:
            raise self.fail(f"Field '{field}' must not be empty", self.key_line(field))
        return value

    def check(self, pattern: Any, field: str, filter_type: FilterType | None = None) -> str:
        problem = check_pattern(pattern, filter_type)
        if problem is not None:
            raise PatternError(self.path, self._rule_name, field, str(pattern), problem)
        return pattern

    def parse_filters(self, value: Any) -> tuple[Filter, ...]:
        filters: list[Filter] = []
        for index, item in enumerate(self.require_list(value, "filters")):
            field = f"filters[{index}]"
            if not isinstance(item, dict):
                raise self.fail(f"{field} must be a mapping", self.key_line("filters"))
            try:
                filter_type = FilterType(item.get("type"))
            except ValueError:
                raise self.fail(
                    f"{field}.type must be one of "
                    f"{', '.join(member.value for member in FilterType)}",
                    self.key_line("filters"),
                )
            pattern = self.check(item.get("pattern"), f"{field}.pattern", filter_type)
            filters.append(Filter(type=filter_type, pattern=pattern))
        return tuple(filters)

    def parse_actions(self, value: Any) -> tuple[Action, ...]:
        actions: list[Action] = []
        for index, item in enumerate(self.require_list(value, "actions")):
            field = f"actions[{index}]"
            if not isinstance(item, dict):
                raise self.fail(f"{field} must be a mapping", self.key_line("actions"))
            try:
                kind = ActionKind(item.get("type", item.get("kind")))
            except ValueError:
                raise self.fail(
                    f"{field}.type must be one of "
                    f"{', '.join(member.value for member in ActionKind)}",
                    self.key_line("actions"),
                )

            if kind == ActionKind.SUGGEST:
                message = self.require_text(item.get("message"), f"{field}.message", "actions", "message")
                actions.append(Action(kind=kind, message=message))
                continue

            raw_conditions = item.get("conditions")
            if not isinstance(raw_conditions, list) or not raw_conditions:
                raise self.fail(
                    f"{field} ({kind.value}) requires at least one condition",
                    self.key_line("actions", "conditions"),
                )
            conditions = tuple(
                self.parse_condition(condition, f"{field}.conditions[{position}]")
                for position, condition in enumerate(raw_conditions)
            )
            actions.append(Action(kind=kind, conditions=conditions))
        return tuple(actions)

    def parse_condition(self, item: Any, field: str) -> Condition:
        if not isinstance(item, dict):
            raise self.fail(f"{field} must be a mapping", self.key_line("conditions"))
        pattern = self.check(item.get("pattern"), f"{field}.pattern")
        message = self.require_text(item.get("message"), f"{field}.message", "conditions", "message")
        try:
            expect = Expectation(item["expect"]) if item.get("expect") is not None else None
            target = ConditionTarget(item["target"]) if item.get("target") is not None else None
        except ValueError as exc:
            raise self.fail(f"{field}: {exc}", self.key_line("conditions")) from exc
        return Condition(pattern=pattern, message=message, expect=expect, target=target)

    def parse_examples(self, value: Any) -> tuple[Example, ...]:
        examples: list[Example] = []
        for index, item in enumerate(self.require_list(value, "examples", allow_empty=False)):
            field = f"examples[{index}]"
            if not isinstance(item, dict):
                raise self.fail(f"{field} must be a mapping", self.key_line("examples"))
            examples.append(
                Example(
                    input=self.require_text(item.get("input"), f"{field}.input", "examples", "input"),
                    output=self.require_text(item.get("output"), f"{field}.output", "examples", "output"),
                )
            )
        return tuple(examples)

    def parse_metadata(self, value: Any) -> RuleMetadata:
        if not isinstance(value, dict):
            raise self.fail("Field 'metadata' must be a mapping", self.key_line("metadata"))
        for key in ("priority", "version"):
            if key not in value:
                raise self.fail(
                    f"Rule block missing required field 'metadata.{key}'",
                    self.key_line("metadata"),
                )
        try:
            priority = Priority(value["priority"])
        except ValueError:
            raise self.fail(
                f"Field 'metadata.priority' must be one of high, medium, low "
                f"(got {value['priority']!r})",
                self.key_line("metadata", "priority"),
            )

        version = value["version"]
        if not isinstance(version, str) or not _SEMVER_RE.match(version):
            raise self.fail(
                f"Field 'metadata.version' must be a semantic version string "
                f"(got {version!r})",
                self.key_line("metadata", "version"),
            )

        tags = value.get("tags") or []
        if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
            raise self.fail(
                "Field 'metadata.tags' must be a list of strings",
                self.key_line("metadata", "tags"),
            )
        return RuleMetadata(priority=priority, version=version, tags=tuple(tags))


def parse_rule_document(
    path: Path,
    text: str | None = None,
    max_description_length: int = MAX_DESCRIPTION_LENGTH,
) -> RuleDocument:
    if text is None:
        text = path.read_text(encoding="utf-8")
    return _DocumentParser(path, text, max_description_length).parse()


class _BlockDumper(yaml.SafeDumper):
    pass


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    style = "|" if "\n" in data else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)


_BlockDumper.add_representer(str, _represent_str)


def _dump(payload: dict) -> str:
    return yaml.dump(
        payload,
        Dumper=_BlockDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=4096,
    ).rstrip()


def _action_payload(action: Action) -> dict:
    if action.kind == ActionKind.SUGGEST:
        return {"type": action.kind.value, "message": action.message}
    conditions: list[dict] = []
    for condition in action.conditions:
        item: dict = {"pattern": condition.pattern, "message": condition.message}
        if condition.expect is not None:
            item["expect"] = condition.expect.value
        if condition.target is not None:
            item["target"] = condition.target.value
        conditions.append(item)
    return {"type": action.kind.value, "conditions": conditions}


def serialize_rule_document(document: RuleDocument) -> str:
    fm = {
        "description": document.front_matter.description,
        "globs": document.front_matter.globs,
        "alwaysApply": document.front_matter.always_apply,
    }
    metadata: dict = {
        "priority": document.metadata.priority.value,
        "version": document.metadata.version,
    }
    if document.metadata.tags:
        metadata["tags"] = list(document.metadata.tags)
    block = {
        "name": document.name,
        "description": document.description,
        "filters": [
            {"type": item.type.value, "pattern": item.pattern}
            for item in document.filters
        ],
        "actions": [_action_payload(action) for action in document.actions],
        "examples": [
            {"input": example.input, "output": example.output}
            for example in document.examples
        ],
        "metadata": metadata,
    }

    parts: list[str] = ["---", _dump(fm), "---", ""]
    if document.prose_before:
        parts.append(document.prose_before)
        parts.append("")
    parts.append("<rule>")
    parts.append(_dump(block))
    parts.append("</rule>")
    if document.prose_after:
        parts.append("")
        parts.append(document.prose_after)
    parts.append("")
    return "\n".join(parts)
