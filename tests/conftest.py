import sys
from pathlib import Path
from typing import Any, Optional

import pytest
import yaml
from click.testing import CliRunner


def _ensure_repo_on_path() -> None:
    repo_root = Path(__file__).resolve().parent.parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_ensure_repo_on_path()


FRONT_MATTER_FILTERS = [{"type": "file_extension", "pattern": r"\.mdc$"}]
FRONT_MATTER_ACTIONS = [
    {
        "type": "validate",
        "conditions": [{"pattern": "^---", "message": "must start with front matter"}],
    }
]


def build_rule_text(
    name: str = "front_matter_required",
    filters: Optional[list[dict]] = None,
    actions: Optional[list[dict]] = None,
    always_apply: bool = False,
    priority: str = "high",
    version: Any = "1.0.0",
    description: str = "Rule files must start with front matter",
    globs: str = "",
    examples: Optional[list[dict]] = None,
    drop: tuple[str, ...] = (),
    prose: str = "",
) -> str:
    block: dict[str, Any] = {
        "name": name,
        "description": description,
        "filters": FRONT_MATTER_FILTERS if filters is None else filters,
        "actions": FRONT_MATTER_ACTIONS if actions is None else actions,
        "examples": examples
        if examples is not None
        else [{"input": "# Title only", "output": "Rejected: no front matter"}],
        "metadata": {"priority": priority, "version": version},
    }
    for key in drop:
        if key.startswith("metadata."):
            block["metadata"].pop(key.split(".", 1)[1])
        else:
            block.pop(key)
    front_matter = {
        "description": description,
        "globs": globs,
        "alwaysApply": always_apply,
    }
    parts = [
        "---",
        yaml.safe_dump(front_matter, sort_keys=False).rstrip(),
        "---",
        "",
    ]
    if prose:
        parts.extend([prose, ""])
    parts.extend(["<rule>", yaml.safe_dump(block, sort_keys=False).rstrip(), "</rule>", ""])
    return "\n".join(parts)


@pytest.fixture
def rule_text():
    return build_rule_text


@pytest.fixture
def rules_dir(tmp_path: Path) -> Path:
    path = tmp_path / ".cursor" / "rules"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def write_rule(rules_dir: Path):
    def _write(filename: str, **kwargs: Any) -> Path:
        path = rules_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(build_rule_text(**kwargs), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    class WideCliRunner(CliRunner):
        def invoke(self, cli: Any, args: Any = None, **kwargs: Any):  # type: ignore[override]
            env = dict(kwargs.pop("env", {}) or {})
            env.setdefault("COLUMNS", "200")
            kwargs["env"] = env
            return super().invoke(cli, args=args, **kwargs)

    return WideCliRunner()
