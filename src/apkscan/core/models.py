"""Finding data model shared by the scanner adapter and the report tree.

Provides:
- Package: A package instance detected at a location inside an artifact
- Vulnerability: A vulnerability record with aliases and fix information
- Finding: One (package, vulnerability) detection produced by a scan
"""

from pydantic import BaseModel, ConfigDict, Field


class Package(BaseModel):
    """Package detected inside a scanned artifact.

    Attributes:
        id: Identifier unique to this package instance within a scan
        name: Human-readable package name
        version: Package version as detected
        type: Ecosystem/format tag (e.g. "apk", "python"), display only
        location: Path inside the scanned input where the package was found
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = ""
    version: str = ""
    type: str = ""
    location: str = ""


class Vulnerability(BaseModel):
    """Vulnerability record as reported by the scanner.

    Attributes:
        id: Scanner's native identifier (may or may not be a CVE)
        aliases: Alternate identifiers for the same vulnerability, in no
            particular order
        severity: Negligible, Low, Medium, High, Critical or anything else
        fixed_version: Version resolving the vulnerability, empty if unknown
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""
    aliases: list[str] = Field(default_factory=list)
    severity: str = ""
    fixed_version: str = ""


class Finding(BaseModel):
    """A package affected by a vulnerability."""

    model_config = ConfigDict(frozen=True)

    package: Package
    vulnerability: Vulnerability
