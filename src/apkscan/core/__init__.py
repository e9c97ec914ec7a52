"""Core apkscan functionality.

Provides:
- Finding data model (Package, Vulnerability, Finding)
- Severity styling and identifier/hyperlink policy
- Configuration and terminal capability detection
"""

from .config import Config, load_config
from .links import render_vulnerability_id, vulnerability_url
from .models import Finding, Package, Vulnerability
from .severity import Severity, render_severity
from .terminal import supports_hyperlinks

__all__ = [
    "Config",
    "load_config",
    "render_vulnerability_id",
    "vulnerability_url",
    "Finding",
    "Package",
    "Vulnerability",
    "Severity",
    "render_severity",
    "supports_hyperlinks",
]
