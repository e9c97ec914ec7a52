"""Vulnerability identifier display and hyperlink policy.

Provides:
- LINK_TEMPLATES: Identifier prefix -> advisory URL template
- vulnerability_url: Advisory URL for an identifier, if its prefix is known
- render_identifier: Identifier as Text, optionally hyperlinked
- primary_cve: First CVE alias of a vulnerability
- render_vulnerability_id: CVE-first identifier rendering
- render_fixed_in: " fixed in <version>" annotation
"""

from rich.style import Style
from rich.text import Text

from apkscan.core.models import Vulnerability
from apkscan.core.severity import SUBTLE_STYLE

CVE_PREFIX = "CVE-"

LINK_TEMPLATES: dict[str, str] = {
    CVE_PREFIX: "https://nvd.nist.gov/vuln/detail/{id}",
    "GHSA-": "https://github.com/advisories/{id}",
}


def vulnerability_url(vuln_id: str) -> str | None:
    """Return the advisory URL for an identifier.

    Args:
        vuln_id: Identifier such as "CVE-2023-0001" or "GHSA-abcd-efgh-ijkl"

    Returns:
        URL for a known prefix, None otherwise

    Example:
        >>> vulnerability_url("CVE-2023-0001")
        'https://nvd.nist.gov/vuln/detail/CVE-2023-0001'
        >>> vulnerability_url("ALPINE-13661") is None
        True
    """
    for prefix, template in LINK_TEMPLATES.items():
        if vuln_id.startswith(prefix):
            return template.format(id=vuln_id)
    return None


def render_identifier(
    vuln_id: str, hyperlinks: bool, style: Style | None = None
) -> Text:
    """Render an identifier, linking it when the terminal supports it.

    Args:
        vuln_id: Identifier to render
        hyperlinks: Whether the output terminal understands OSC 8 links
        style: Optional base style (e.g. subtle) applied to the identifier

    Returns:
        Text holding the identifier; linked only if hyperlinks is set and
        the prefix has a known advisory URL
    """
    url = vulnerability_url(vuln_id) if hyperlinks else None
    if url is not None:
        link = Style(link=url)
        style = style + link if style is not None else link

    if style is None:
        return Text(vuln_id)
    return Text(vuln_id, style=style)


def primary_cve(vuln: Vulnerability) -> str | None:
    """Return the first CVE alias in alias order, if any."""
    for alias in vuln.aliases:
        if alias.startswith(CVE_PREFIX):
            return alias
    return None


def render_vulnerability_id(vuln: Vulnerability, hyperlinks: bool = False) -> Text:
    """Render the identifier column of a vulnerability line.

    A CVE alias takes precedence: it is shown first, followed by the
    scanner's native ID in the subtle style. Without a CVE alias only the
    native ID is shown, unstyled.
    """
    cve_id = primary_cve(vuln)
    if cve_id is None:
        return render_identifier(vuln.id, hyperlinks)

    return Text.assemble(
        render_identifier(cve_id, hyperlinks),
        " ",
        render_identifier(vuln.id, hyperlinks, style=SUBTLE_STYLE),
    )


def render_fixed_in(vuln: Vulnerability) -> Text:
    if not vuln.fixed_version:
        return Text()
    return Text(f" fixed in {vuln.fixed_version}")
