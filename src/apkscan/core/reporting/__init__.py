"""Findings report: grouping and tree rendering.

Provides:
- FindingsTree: Findings grouped by location, then package
- TreeRenderer: Deterministic, severity-colored tree output
- build_tree: Shorthand for FindingsTree.from_findings
"""

from .tree import FindingsTree, TreeRenderer, build_tree

__all__ = ["FindingsTree", "TreeRenderer", "build_tree"]
