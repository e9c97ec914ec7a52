"""Shared infrastructure for scanner tool wrappers.

Provides:
- Tool protocol for consistent scanner interface
- ToolResult dataclass for structured scanner output
- ScanError for scanner output that cannot be interpreted
- Helpers for binary checking and subprocess execution with retries
"""

import asyncio
import shutil
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import structlog

logger = structlog.get_logger()

# grype downloads its vulnerability database on first use; these show up
# in stderr when that download hiccups.
TRANSIENT_MARKERS = ("connection", "timeout", "temporary", "unavailable", "failed to load vulnerability db")
PERMANENT_MARKERS = ("not found", "permission denied", "no such file")


class ScanError(Exception):
    """Raised when scanner output cannot be turned into findings."""


class ToolStatus(str, Enum):
    """Tool execution status."""
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"
    NOT_INSTALLED = "not_installed"


@dataclass
class ToolResult:
    """Structured result from a scanner run."""
    status: ToolStatus
    data: dict[str, Any] = field(default_factory=dict)
    raw_output: str = ""
    error: str = ""
    duration_seconds: float = 0.0


@runtime_checkable
class Tool(Protocol):
    """Protocol for scanner wrappers."""
    name: str
    binary_name: str

    async def run(self, target: str, **kwargs) -> ToolResult:
        """Scan target artifact."""
        ...

    def is_available(self) -> bool:
        """Check if scanner binary is available."""
        ...


def check_binary(binary_name: str) -> bool:
    """Check if binary exists on PATH."""
    return shutil.which(binary_name) is not None


def _matches(text: str, markers: tuple[str, ...]) -> bool:
    text = text.lower()
    return any(marker in text for marker in markers)


async def run_subprocess(cmd: list[str], timeout: int = 300) -> tuple[str, str, int]:
    """Run command without a shell, killing it on timeout.

    Args:
        cmd: Command and arguments as list
        timeout: Timeout in seconds

    Returns:
        Tuple of (stdout, stderr, returncode)

    Raises:
        asyncio.TimeoutError: If command exceeds timeout
    """
    log = logger.bind(cmd=cmd[0], timeout=timeout)

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    log.debug("subprocess_started", pid=process.pid)

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        log.warning("subprocess_timeout", pid=process.pid)
        process.kill()
        await process.communicate()
        raise

    stdout = stdout_bytes.decode("utf-8", errors="replace")
    stderr = stderr_bytes.decode("utf-8", errors="replace")
    returncode = process.returncode or 0
    log.debug("subprocess_completed", returncode=returncode, stdout_len=len(stdout))
    return stdout, stderr, returncode


async def run_with_retry(
    cmd: list[str], max_retries: int = 3, timeout: int = 300
) -> tuple[str, str, int]:
    """Run command, retrying transient failures with exponential backoff.

    Timeouts and stderr mentioning a transient condition are retried after
    1s, 2s, 4s... Permanent failures (missing file, permissions) return or
    raise immediately.

    Args:
        cmd: Command and arguments as list
        max_retries: Maximum number of attempts
        timeout: Timeout per attempt in seconds

    Returns:
        Tuple of (stdout, stderr, returncode) of the last attempt

    Raises:
        asyncio.TimeoutError: If the final attempt times out
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    log = logger.bind(cmd=cmd[0], max_retries=max_retries)

    for attempt in range(max_retries):
        last_attempt = attempt == max_retries - 1
        backoff = 2 ** attempt

        try:
            stdout, stderr, returncode = await run_subprocess(cmd, timeout=timeout)
        except asyncio.TimeoutError:
            if last_attempt:
                raise
            log.warning("retry_after_timeout", attempt=attempt + 1, backoff_seconds=backoff)
            await asyncio.sleep(backoff)
            continue

        if returncode == 0 or last_attempt:
            return stdout, stderr, returncode
        if _matches(stderr, PERMANENT_MARKERS) or not _matches(stderr, TRANSIENT_MARKERS):
            return stdout, stderr, returncode

        log.warning(
            "retry_after_transient_error",
            attempt=attempt + 1,
            stderr=stderr[:100],
            backoff_seconds=backoff,
        )
        await asyncio.sleep(backoff)
