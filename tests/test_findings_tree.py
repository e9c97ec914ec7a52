"""Tests for findings grouping and tree rendering."""

import itertools

import pytest
import structlog.testing
from rich.style import Style

from apkscan.core.models import Finding, Package, Vulnerability
from apkscan.core.reporting import FindingsTree, TreeRenderer, build_tree


def make_finding(
    vuln_id: str,
    *,
    name: str = "busybox",
    version: str = "1.36.1-r0",
    pkg_type: str = "apk",
    location: str = "/lib/apk/db/installed",
    package_id: str | None = None,
    aliases: list[str] | None = None,
    severity: str = "High",
    fixed_version: str = "",
) -> Finding:
    return Finding(
        package=Package(
            id=package_id if package_id is not None else f"{name}@{location}",
            name=name,
            version=version,
            type=pkg_type,
            location=location,
        ),
        vulnerability=Vulnerability(
            id=vuln_id,
            aliases=aliases or [],
            severity=severity,
            fixed_version=fixed_version,
        ),
    )


def span_styles(text, fragment: str) -> list[Style]:
    """Styles of all spans fully covering the first occurrence of fragment."""
    start = text.plain.index(fragment)
    end = start + len(fragment)
    return [span.style for span in text.spans if span.start <= start and span.end >= end]


@pytest.fixture
def mixed_findings():
    """Findings spread over two locations and three packages."""
    return [
        make_finding("CVE-2023-0002", name="zlib", location="/usr/lib"),
        make_finding("GHSA-aaaa-bbbb-cccc", name="requests", pkg_type="python", location="/app"),
        make_finding("CVE-2023-0001", name="zlib", location="/usr/lib"),
        make_finding("CVE-2023-0003", name="openssl", location="/usr/lib"),
        make_finding("CVE-2023-0004", name="requests", pkg_type="python", location="/app"),
    ]


# Aggregation


def test_empty_findings_build_empty_tree():
    tree = FindingsTree.from_findings([])

    assert len(tree) == 0
    assert tree.locations() == []
    assert list(tree.buckets()) == []


def test_every_finding_lands_in_its_own_bucket(mixed_findings):
    """Total findings across buckets equals the input, keyed by location and package ID."""
    tree = build_tree(mixed_findings)

    assert len(tree) == len(mixed_findings)

    seen = []
    for location, package_id, findings in tree.buckets():
        for finding in findings:
            assert finding.package.location == location
            assert finding.package.id == package_id
            seen.append(finding)

    assert sorted(f.vulnerability.id for f in seen) == sorted(
        f.vulnerability.id for f in mixed_findings
    )


def test_same_package_at_same_location_collapses():
    findings = [
        make_finding("CVE-2023-0001", package_id="pkg-1"),
        make_finding("CVE-2023-0002", package_id="pkg-1"),
    ]
    tree = build_tree(findings)

    assert tree.locations() == ["/lib/apk/db/installed"]
    assert [pkg.id for pkg in tree.packages_at("/lib/apk/db/installed")] == ["pkg-1"]
    assert len(tree.findings_for("/lib/apk/db/installed", "pkg-1")) == 2


def test_duplicate_vulnerability_ids_are_kept():
    findings = [
        make_finding("CVE-2023-0001", package_id="pkg-1", severity="High"),
        make_finding("CVE-2023-0001", package_id="pkg-1", severity="Low"),
    ]
    tree = build_tree(findings)

    bucket = tree.findings_for("/lib/apk/db/installed", "pkg-1")
    assert [f.vulnerability.severity for f in bucket] == ["High", "Low"]


def test_first_seen_package_metadata_wins():
    findings = [
        make_finding("CVE-2023-0001", package_id="pkg-1", name="first"),
        make_finding("CVE-2023-0002", package_id="pkg-1", name="second"),
    ]
    tree = build_tree(findings)

    assert tree.package("pkg-1").name == "first"
    assert len(tree) == 2


def test_same_package_at_two_locations_is_not_a_mismatch():
    findings = [
        make_finding("CVE-2023-0001", package_id="pkg-1", location="/usr/lib"),
        make_finding("CVE-2023-0002", package_id="pkg-1", location="/lib"),
    ]

    with structlog.testing.capture_logs() as logs:
        tree = build_tree(findings)

    assert tree.locations() == ["/lib", "/usr/lib"]
    assert not [entry for entry in logs if entry["event"] == "package_metadata_mismatch"]


def test_differing_package_metadata_is_logged():
    findings = [
        make_finding("CVE-2023-0001", package_id="pkg-1", version="1.0"),
        make_finding("CVE-2023-0002", package_id="pkg-1", version="2.0"),
    ]

    with structlog.testing.capture_logs() as logs:
        tree = build_tree(findings)

    assert tree.package("pkg-1").version == "1.0"
    mismatches = [entry for entry in logs if entry["event"] == "package_metadata_mismatch"]
    assert len(mismatches) == 1
    assert mismatches[0]["package_id"] == "pkg-1"


def test_empty_keys_are_legal():
    finding = make_finding("", name="", location="", package_id="")
    tree = build_tree([finding])

    assert tree.locations() == [""]
    assert tree.findings_for("", "") == [finding]


def test_sorting_does_not_mutate_buckets():
    findings = [
        make_finding("CVE-2023-0009", package_id="pkg-1"),
        make_finding("CVE-2023-0001", package_id="pkg-1"),
    ]
    tree = build_tree(findings)

    tree.findings_for("/lib/apk/db/installed", "pkg-1")

    stored = tree.findings_by_package_by_location["/lib/apk/db/installed"]["pkg-1"]
    assert [f.vulnerability.id for f in stored] == ["CVE-2023-0009", "CVE-2023-0001"]


# Ordering


def test_locations_sorted_regardless_of_input_order(mixed_findings):
    renderer = TreeRenderer()
    outputs = set()

    for permutation in itertools.permutations(mixed_findings):
        tree = build_tree(permutation)
        assert tree.locations() == ["/app", "/usr/lib"]
        outputs.add(renderer.render(tree).plain)

    assert len(outputs) == 1


def test_packages_sorted_by_name_not_id():
    findings = [
        make_finding("CVE-2023-0001", name="foo", version="v2", package_id="a-id"),
        make_finding("CVE-2023-0002", name="bar", version="v1", package_id="z-id"),
    ]

    for ordering in (findings, list(reversed(findings))):
        tree = build_tree(ordering)
        names = [pkg.name for pkg in tree.packages_at("/lib/apk/db/installed")]
        assert names == ["bar", "foo"]

        plain = TreeRenderer().render(tree).plain
        assert plain.index("📦 bar v1") < plain.index("📦 foo v2")


def test_vulnerabilities_sorted_by_id():
    findings = [
        make_finding("GHSA-zzzz-zzzz-zzzz", package_id="pkg-1"),
        make_finding("CVE-2023-0002", package_id="pkg-1"),
        make_finding("CVE-2023-0001", package_id="pkg-1"),
    ]
    tree = build_tree(findings)

    ids = [f.vulnerability.id for f in tree.findings_for("/lib/apk/db/installed", "pkg-1")]
    assert ids == ["CVE-2023-0001", "CVE-2023-0002", "GHSA-zzzz-zzzz-zzzz"]


# Rendering


def test_end_to_end_single_location():
    findings = [
        make_finding(
            "CVE-2024-0002", name="PackageB", version="2.0", location="/bin/a",
            severity="Low",
        ),
        make_finding(
            "CVE-2024-0001", name="PackageA", version="1.0", location="/bin/a",
            severity="High", fixed_version="1.1",
        ),
    ]
    text = TreeRenderer().render(build_tree(findings))

    assert text.plain.split("\n") == [
        "└── 📄 /bin/a",
        "        📦 PackageA 1.0 (apk)",
        "            High CVE-2024-0001 fixed in 1.1",
        "        📦 PackageB 2.0 (apk)",
        "            Low CVE-2024-0002",
        " ",
    ]
    assert span_styles(text, "High")[0].color.triplet.hex == "#ff9900"
    assert span_styles(text, "Low")[0].color.triplet.hex == "#00ff00"


def test_tree_connectors_for_multiple_locations(mixed_findings):
    lines = TreeRenderer().render(build_tree(mixed_findings)).plain.split("\n")

    assert lines[0] == "├── 📄 /app"
    assert lines[1] == "│       📦 requests 1.36.1-r0 (python)"
    assert lines[2] == "│           High CVE-2023-0004"
    assert lines[3] == "│           High GHSA-aaaa-bbbb-cccc"
    assert lines[4] == "│"
    assert lines[5] == "└── 📄 /usr/lib"
    assert lines[6] == "        📦 openssl 1.36.1-r0 (apk)"
    assert lines[-1] == " "
    assert all(line.startswith(" ") for line in lines[6:])


def test_package_type_is_subtle():
    text = TreeRenderer().render(build_tree([make_finding("CVE-2023-0001")]))

    styles = span_styles(text, "(apk)")
    assert styles
    assert styles[0].color.triplet.hex == "#999999"


def test_fix_annotation_only_when_fixed_version_present():
    findings = [
        make_finding("CVE-2023-0001", package_id="pkg-1", fixed_version="1.2.3"),
        make_finding("CVE-2023-0002", package_id="pkg-1"),
    ]
    lines = TreeRenderer().render(build_tree(findings)).plain.split("\n")

    assert lines[2].endswith("CVE-2023-0001 fixed in 1.2.3")
    assert lines[3].endswith("CVE-2023-0002")
    assert "fixed in" not in lines[3]


def test_cve_alias_rendered_first():
    finding = make_finding("GHSA-xxxx", aliases=["GHSA-xxxx", "CVE-2023-0001"])
    text = TreeRenderer().render(build_tree([finding]))

    line = text.plain.split("\n")[2]
    assert line.endswith("High CVE-2023-0001 GHSA-xxxx")
    assert span_styles(text, "GHSA-xxxx")[0].color.triplet.hex == "#999999"


def test_unknown_severity_rendered_plain():
    text = TreeRenderer().render(build_tree([make_finding("CVE-2023-0001", severity="Unknown")]))

    assert "Unknown CVE-2023-0001" in text.plain
    assert span_styles(text, "Unknown") == []


def test_hyperlinks_only_when_enabled():
    tree = build_tree([make_finding("CVE-2023-0001")])

    plain = TreeRenderer(hyperlinks=False).render(tree)
    assert "CVE-2023-0001" in plain.plain
    assert not any(isinstance(s.style, Style) and s.style.link for s in plain.spans)

    linked = TreeRenderer(hyperlinks=True).render(tree)
    links = [s.style.link for s in linked.spans if isinstance(s.style, Style) and s.style.link]
    assert links == ["https://nvd.nist.gov/vuln/detail/CVE-2023-0001"]
    assert linked.plain == plain.plain
