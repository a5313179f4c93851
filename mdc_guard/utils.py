import json
from pathlib import Path
from typing import Any


def read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def write_text_if_changed(path: Path, text: str) -> bool:
    if path.exists() and path.read_text(encoding="utf-8") == text:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return True


def is_under(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
        return True
    except ValueError:
        return False


def display_path(path: Path, root: Path | None = None) -> str:
    """Posix form of ``path``, relative to ``root`` when it lives inside it."""
    base = root or Path.cwd()
    if path.is_absolute() and is_under(path, base):
        return path.resolve().relative_to(base.resolve()).as_posix()
    return path.as_posix()


def compact_home_path(path: str | Path) -> str:
    text = str(path)
    home = str(Path.home())
    if text == home:
        return "~"
    home_prefix = f"{home}/"
    if text.startswith(home_prefix):
        return f"~/{text[len(home_prefix):]}"
    return text


def compact_home_paths_in_text(text: str) -> str:
    home = str(Path.home())
    if text == home:
        return "~"
    return text.replace(f"{home}/", "~/")
