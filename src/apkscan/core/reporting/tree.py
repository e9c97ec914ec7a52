"""Findings tree: grouping by location and package, and tree rendering.

Findings are grouped first by the location where the package was found,
then by package ID. Rendering walks the grouping in a canonical order so
that output is identical regardless of the order the scanner reported
findings in:

    ├── 📄 /lib/apk/db/installed
    │       📦 busybox 1.36.1-r0 (apk)
    │           High CVE-2023-42363 GHSA-xxxx-yyyy-zzzz fixed in 1.36.1-r1
    │
    └── 📄 /usr/lib/python3.11/site-packages
            📦 requests 2.30.0 (python)
                Medium GHSA-j8r2-6x86-q33q
"""

from collections.abc import Iterable, Iterator

import structlog
from rich.text import Text

from apkscan.core.links import render_fixed_in, render_vulnerability_id
from apkscan.core.models import Finding, Package
from apkscan.core.severity import SUBTLE_STYLE, render_severity

logger = structlog.get_logger()

BRANCH = "├── "
LAST_BRANCH = "└── "
VERTICAL = "│"
LAST_VERTICAL = " "

PACKAGE_INDENT = " " * 7
FINDING_INDENT = " " * 11


class FindingsTree:
    """Findings grouped by location, then by package ID.

    Build with `FindingsTree.from_findings`. Stored buckets keep insertion
    order; every accessor returning an ordering sorts explicitly.
    """

    def __init__(self) -> None:
        self.findings_by_package_by_location: dict[str, dict[str, list[Finding]]] = {}
        self.packages_by_id: dict[str, Package] = {}

    @classmethod
    def from_findings(cls, findings: Iterable[Finding]) -> "FindingsTree":
        """Group findings by (package location, package ID).

        Args:
            findings: Findings in any order, possibly empty

        Returns:
            Populated FindingsTree
        """
        tree = cls()
        for finding in findings:
            tree.add(finding)
        return tree

    def add(self, finding: Finding) -> None:
        package = finding.package
        by_package = self.findings_by_package_by_location.setdefault(package.location, {})
        by_package.setdefault(package.id, []).append(finding)

        known = self.packages_by_id.setdefault(package.id, package)
        if (known.name, known.version, known.type) != (package.name, package.version, package.type):
            logger.debug(
                "package_metadata_mismatch",
                package_id=package.id,
                kept=known.name,
                ignored=package.name,
            )

    def __len__(self) -> int:
        return sum(len(findings) for _, _, findings in self.buckets())

    def locations(self) -> list[str]:
        """All distinct locations, sorted lexicographically."""
        return sorted(self.findings_by_package_by_location)

    def package(self, package_id: str) -> Package:
        return self.packages_by_id[package_id]

    def packages_at(self, location: str) -> list[Package]:
        """Packages found at a location, sorted by name.

        Package IDs are put in order first so packages sharing a name still
        come out in the same order on every run.
        """
        package_ids = sorted(self.findings_by_package_by_location.get(location, {}))
        packages = [self.packages_by_id[package_id] for package_id in package_ids]
        return sorted(packages, key=lambda pkg: pkg.name)

    def findings_for(self, location: str, package_id: str) -> list[Finding]:
        """Findings for one package at one location, sorted by vulnerability ID."""
        findings = self.findings_by_package_by_location.get(location, {}).get(package_id, [])
        return sorted(findings, key=lambda f: f.vulnerability.id)

    def buckets(self) -> Iterator[tuple[str, str, list[Finding]]]:
        """Yield (location, package ID, findings) for every bucket, unsorted."""
        for location, by_package in self.findings_by_package_by_location.items():
            for package_id, findings in by_package.items():
                yield location, package_id, findings


def build_tree(findings: Iterable[Finding]) -> FindingsTree:
    return FindingsTree.from_findings(findings)


class TreeRenderer:
    """Render a FindingsTree as an indented, severity-colored tree.

    Attributes:
        hyperlinks: Wrap CVE and GHSA identifiers in terminal hyperlinks.
            Decided once by the caller (see apkscan.core.terminal) and
            passed in, never detected here.
    """

    def __init__(self, hyperlinks: bool = False):
        self.hyperlinks = hyperlinks

    def render(self, tree: FindingsTree) -> Text:
        """Render the whole tree as a single newline-joined Text.

        Args:
            tree: Non-empty findings tree

        Returns:
            Styled Text; use `.plain` for the unstyled string
        """
        return Text("\n").join(self.render_lines(tree))

    def render_lines(self, tree: FindingsTree) -> list[Text]:
        lines: list[Text] = []
        locations = tree.locations()

        for i, location in enumerate(locations):
            if i == len(locations) - 1:
                stem, vertical = LAST_BRANCH, LAST_VERTICAL
            else:
                stem, vertical = BRANCH, VERTICAL

            lines.append(Text(f"{stem}📄 {location}"))

            for pkg in tree.packages_at(location):
                lines.append(self._package_line(vertical, pkg))

                for finding in tree.findings_for(location, pkg.id):
                    lines.append(self._finding_line(vertical, finding))

            lines.append(Text(vertical))

        return lines

    def _package_line(self, vertical: str, pkg: Package) -> Text:
        return Text.assemble(
            f"{vertical}{PACKAGE_INDENT}📦 {pkg.name} {pkg.version} ",
            (f"({pkg.type})", SUBTLE_STYLE),
        )

    def _finding_line(self, vertical: str, finding: Finding) -> Text:
        vuln = finding.vulnerability
        return Text.assemble(
            f"{vertical}{FINDING_INDENT}",
            render_severity(vuln.severity),
            " ",
            render_vulnerability_id(vuln, self.hyperlinks),
            render_fixed_in(vuln),
        )
