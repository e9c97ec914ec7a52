"""Grype wrapper turning an artifact scan into findings.

Runs grype against a package file and converts its JSON report into
Finding models for the report tree.
"""

import asyncio
import json
import time
from typing import Any

import structlog

from apkscan.core.models import Finding, Package, Vulnerability

from .base import ScanError, ToolResult, ToolStatus, check_binary, run_with_retry

logger = structlog.get_logger()


def _aliases(match: dict[str, Any]) -> list[str]:
    vuln = match.get("vulnerability") or {}
    candidates = [
        *(vuln.get("aliases") or []),
        *(related.get("id", "") for related in match.get("relatedVulnerabilities") or []),
    ]
    aliases: list[str] = []
    for alias in candidates:
        if alias and alias not in aliases:
            aliases.append(alias)
    return aliases


def _fixed_version(vuln: dict[str, Any]) -> str:
    fix = vuln.get("fix") or {}
    if fix.get("state") != "fixed":
        return ""
    versions = fix.get("versions") or []
    return str(versions[0]) if versions and versions[0] else ""


def _finding_from_match(match: dict[str, Any]) -> Finding:
    artifact = match.get("artifact") or {}
    vuln = match.get("vulnerability") or {}
    locations = artifact.get("locations") or []

    package = Package(
        id=artifact.get("id", ""),
        name=artifact.get("name", ""),
        version=artifact.get("version", ""),
        type=artifact.get("type", ""),
        location=locations[0].get("path", "") if locations else "",
    )
    vulnerability = Vulnerability(
        id=vuln.get("id", ""),
        aliases=_aliases(match),
        severity=vuln.get("severity", ""),
        fixed_version=_fixed_version(vuln),
    )
    return Finding(package=package, vulnerability=vulnerability)


def parse_grype_output(stdout: str) -> list[Finding]:
    """Convert grype's JSON report into findings.

    Args:
        stdout: Output of `grype <target> -o json`

    Returns:
        One Finding per match, in report order

    Raises:
        ScanError: If the output is not a grype JSON report
    """
    if not stdout.strip():
        return []

    try:
        data = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise ScanError(f"invalid JSON output from grype: {e}") from e

    if not isinstance(data, dict):
        raise ScanError("unexpected grype output: top-level value is not an object")

    return [_finding_from_match(match) for match in data.get("matches") or []]


class GrypeTool:
    """Wrapper for the grype vulnerability scanner.

    Handles a missing binary gracefully with install instructions.
    """

    name = "grype"

    def __init__(self, binary_name: str = "grype", timeout: int = 300):
        """Initialize grype wrapper.

        Args:
            binary_name: grype executable name or path
            timeout: Timeout in seconds for one scan (default: 300)
        """
        self.binary_name = binary_name
        self.timeout = timeout
        self.log = logger.bind(tool=self.name)

    def is_available(self) -> bool:
        return check_binary(self.binary_name)

    async def run(self, target: str, **kwargs) -> ToolResult:
        """Scan a package file.

        Runs: grype <target> -o json --quiet

        Args:
            target: Path to the artifact (e.g. an .apk file)
            **kwargs: Additional arguments (currently unused)

        Returns:
            ToolResult with data:
                findings: list[Finding] - one per grype match
                count: int              - number of findings
        """
        start_time = time.time()
        self.log.info("grype_start", target=target)

        if not self.is_available():
            self.log.warning("binary_not_found", binary=self.binary_name)
            return ToolResult(
                status=ToolStatus.NOT_INSTALLED,
                error=(
                    f"{self.binary_name} not installed. "
                    "Install: curl -sSfL https://raw.githubusercontent.com/anchore/grype/main/install.sh"
                    " | sh -s -- -b /usr/local/bin"
                ),
                duration_seconds=time.time() - start_time,
            )

        cmd = [self.binary_name, target, "-o", "json", "--quiet"]

        try:
            stdout, stderr, returncode = await run_with_retry(cmd, timeout=self.timeout)
        except asyncio.TimeoutError:
            self.log.error("grype_timeout", target=target, timeout=self.timeout)
            return ToolResult(
                status=ToolStatus.TIMEOUT,
                error=f"grype timed out after {self.timeout}s",
                duration_seconds=time.time() - start_time,
            )
        except OSError as e:
            self.log.error("grype_exception", error=str(e))
            return ToolResult(
                status=ToolStatus.ERROR,
                error=f"grype execution error: {e}",
                duration_seconds=time.time() - start_time,
            )

        if returncode != 0:
            self.log.error("grype_failed", returncode=returncode, stderr=stderr)
            return ToolResult(
                status=ToolStatus.ERROR,
                error=f"grype failed with code {returncode}: {stderr}",
                raw_output=stdout,
                duration_seconds=time.time() - start_time,
            )

        try:
            findings = parse_grype_output(stdout)
        except ScanError as e:
            self.log.error("grype_parse_failed", error=str(e))
            return ToolResult(
                status=ToolStatus.ERROR,
                error=str(e),
                raw_output=stdout,
                duration_seconds=time.time() - start_time,
            )

        duration = time.time() - start_time
        self.log.info("grype_complete", target=target, count=len(findings), duration=duration)

        return ToolResult(
            status=ToolStatus.SUCCESS,
            data={"findings": findings, "count": len(findings)},
            raw_output=stdout,
            duration_seconds=duration,
        )
