from enum import Enum

from mdc_guard.engine.models import Severity


class UIStyle(str, Enum):
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    CYAN = "cyan"
    MAGENTA = "magenta"
    DIM = "dim"
    WHITE = "white"


SEVERITY_STYLE = {
    Severity.ERROR: UIStyle.RED.value,
    Severity.INFO: UIStyle.CYAN.value,
}

PRIORITY_STYLE = {
    "high": UIStyle.RED.value,
    "medium": UIStyle.YELLOW.value,
    "low": UIStyle.DIM.value,
}
