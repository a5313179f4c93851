from collections.abc import Iterable
from typing import Optional

from rich.markup import escape
from rich.panel import Panel

from mdc_guard.tui.enums import UIStyle
from mdc_guard.utils import compact_home_paths_in_text


class UISection:
    @staticmethod
    def wrap(title: str, body, style: str = UIStyle.BLUE.value, subtitle: Optional[str] = None) -> Panel:
        return Panel(body, title=title, subtitle=subtitle, border_style=style, padding=(0, 1))

    @staticmethod
    def note(title: str, body: str, style: str) -> Panel:
        return Panel(body, title=title, border_style=style, padding=(0, 1))

    @staticmethod
    def bullets(title: str, items: Iterable[object], style: str) -> Panel:
        """Panel listing ``items`` one per line; item text is never read as markup."""
        text = "\n".join(
            f"- {escape(compact_home_paths_in_text(str(item)))}" for item in items
        )
        return Panel(text, title=title, border_style=style, padding=(0, 1))
