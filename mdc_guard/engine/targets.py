import fnmatch
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

from mdc_guard.constants import TARGET_IGNORED_NAMES
from mdc_guard.engine.models import Target
from mdc_guard.errors import MatchError
from mdc_guard.utils import display_path


def _is_excluded(relative: Path, exclude: Iterable[str]) -> bool:
    patterns = tuple(exclude)
    return any(
        fnmatch.fnmatchcase(part, pattern)
        for part in relative.parts
        for pattern in patterns
    )


def collect_target_paths(
    paths: Iterable[Path], exclude: Iterable[str] = TARGET_IGNORED_NAMES
) -> list[Path]:
    """Expand directories into their files; plain paths are kept even if missing."""
    exclude = tuple(exclude)
    collected: list[Path] = []
    seen: set[Path] = set()
    for path in paths:
        if path.is_dir():
            candidates = [
                child
                for child in sorted(path.rglob("*"))
                if child.is_file()
                and not _is_excluded(child.relative_to(path), exclude)
            ]
        else:
            candidates = [path]
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                collected.append(candidate)
    return collected


def read_target(
    path: Path, root: Optional[Path] = None, event: Optional[str] = None
) -> Target:
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise MatchError(path, "not found") from exc
    except PermissionError as exc:
        raise MatchError(path, "permission denied") from exc
    except IsADirectoryError as exc:
        raise MatchError(path, "is a directory") from exc
    except UnicodeDecodeError as exc:
        raise MatchError(path, f"not valid UTF-8 ({exc.reason})") from exc
    except OSError as exc:
        raise MatchError(path, exc.strerror or str(exc)) from exc
    return Target(path=display_path(path, root), content=content, event=event)
