"""Terminal hyperlink (OSC 8) capability detection.

Run once at startup; the result is stored on Config and handed to the
renderer. Detection is environment based since terminals cannot be
queried for OSC 8 support.
"""

import os
import sys
from collections.abc import Mapping
from typing import TextIO

_ALWAYS_SUPPORTED = ("WT_SESSION", "DOMTERM", "KONSOLE_VERSION")
_NEVER_SUPPORTED = ("CI", "TEAMCITY_VERSION")

# TERM_PROGRAM -> minimum (major, minor) version, None for any version
_TERM_PROGRAMS: dict[str, tuple[int, int] | None] = {
    "iTerm.app": (3, 1),
    "WezTerm": None,
    "vscode": (1, 72),
    "ghostty": None,
}

_MIN_VTE_VERSION = 5000


def _parse_version(value: str) -> tuple[int, int]:
    parts = []
    for part in value.split(".")[:2]:
        digits = "".join(ch for ch in part if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    while len(parts) < 2:
        parts.append(0)
    return parts[0], parts[1]


def supports_hyperlinks(
    stream: TextIO | None = None, env: Mapping[str, str] | None = None
) -> bool:
    """Return whether the terminal behind stream renders OSC 8 hyperlinks.

    Args:
        stream: Output stream (default: sys.stdout)
        env: Environment mapping (default: os.environ)

    Returns:
        True if hyperlinks should be emitted
    """
    env = os.environ if env is None else env
    stream = sys.stdout if stream is None else stream

    forced = env.get("FORCE_HYPERLINK")
    if forced is not None:
        return forced.strip().lower() not in ("0", "false")

    isatty = getattr(stream, "isatty", None)
    if isatty is None or not isatty():
        return False

    if any(name in env for name in _ALWAYS_SUPPORTED):
        return True
    if any(name in env for name in _NEVER_SUPPORTED):
        return False

    program = env.get("TERM_PROGRAM", "")
    if program in _TERM_PROGRAMS:
        minimum = _TERM_PROGRAMS[program]
        if minimum is None:
            return True
        return _parse_version(env.get("TERM_PROGRAM_VERSION", "")) >= minimum

    vte_version = env.get("VTE_VERSION", "")
    if vte_version.isdigit() and int(vte_version) >= _MIN_VTE_VERSION:
        return True

    return env.get("TERM") == "xterm-kitty"
