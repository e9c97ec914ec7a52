"""Severity vocabulary and terminal styles.

Provides:
- Severity: Enum of the severity levels the scanner reports
- SEVERITY_COLORS: Severity -> foreground color lookup
- SUBTLE_STYLE: De-emphasized style for supplementary text
- severity_style: Style for a raw severity string (None if unrecognized)
- render_severity: Severity badge as styled rich Text
"""

from enum import Enum

from rich.style import Style
from rich.text import Text


class Severity(str, Enum):
    """Severity levels, lowest to highest."""

    NEGLIGIBLE = "Negligible"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


SEVERITY_COLORS: dict[Severity, str] = {
    Severity.NEGLIGIBLE: "#999999",
    Severity.LOW: "#00ff00",
    Severity.MEDIUM: "#ffff00",
    Severity.HIGH: "#ff9900",
    Severity.CRITICAL: "#ff0000",
}

SUBTLE_STYLE = Style(color="#999999")

_SEVERITY_STYLES: dict[str, Style] = {
    severity.value: Style(color=color) for severity, color in SEVERITY_COLORS.items()
}


def severity_style(severity: str) -> Style | None:
    """Look up the style for a severity string.

    Matching is exact: "high" is not "High" and renders unstyled.

    Args:
        severity: Severity as reported by the scanner

    Returns:
        Style for one of the known levels, None for anything else
    """
    return _SEVERITY_STYLES.get(severity)


def render_severity(severity: str) -> Text:
    """Render the literal severity text, colored when the level is known."""
    style = severity_style(severity)
    if style is None:
        return Text(severity)
    return Text(severity, style=style)
