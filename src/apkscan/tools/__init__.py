"""Scanner tool wrappers.

Provides:
- Base tool protocol and infrastructure
- GrypeTool for vulnerability scanning of package files
"""

from .base import (
    ScanError,
    Tool,
    ToolResult,
    ToolStatus,
    check_binary,
    run_subprocess,
    run_with_retry,
)
from .grype import GrypeTool, parse_grype_output

__all__ = [
    "ScanError",
    "Tool",
    "ToolResult",
    "ToolStatus",
    "check_binary",
    "run_subprocess",
    "run_with_retry",
    "GrypeTool",
    "parse_grype_output",
]
