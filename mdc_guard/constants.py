from typing import Final


CONFIG_FILENAME: Final[str] = ".mdc-guard.json"
DEFAULT_RULES_DIR: Final[str] = ".cursor/rules"
DEFAULT_RULE_SUFFIXES: Final[tuple[str, ...]] = (".mdc",)

FRONTMATTER_KEYS: Final[tuple[str, ...]] = ("description", "globs", "alwaysApply")
RULE_BLOCK_KEYS: Final[tuple[str, ...]] = (
    "name",
    "description",
    "filters",
    "actions",
    "examples",
    "metadata",
)
MAX_DESCRIPTION_LENGTH: Final[int] = 120

TARGET_IGNORED_NAMES: Final[tuple[str, ...]] = (
    ".git",
    "node_modules",
    ".venv",
)
