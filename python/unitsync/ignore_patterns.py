"""
Gitignore-style path filtering for the source tree.

Uses pathspec library for GitIgnore-compliant pattern matching.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from pathspec import PathSpec

logger = logging.getLogger("unitsync.ignore_patterns")

# Default ignore patterns (always applied)
DEFAULT_IGNORES = [
    # ═══════════════════════════════════════════
    # Version Control / hidden directories
    # ═══════════════════════════════════════════
    ".git/",
    ".svn/",
    ".hg/",
    ".*/",
    # ═══════════════════════════════════════════
    # Editor temp and backup files
    # ═══════════════════════════════════════════
    "*.tmp",
    "*.tmp.*",
    "*~",
    "*.swp",
    "*.swo",
    ".#*",
]


def build_ignore_spec(extra_patterns: Optional[Iterable[str]] = None) -> PathSpec:
    """
    Combine default ignores with configured patterns.

    Args:
        extra_patterns: Additional gitignore-style patterns from the config

    Returns:
        PathSpec object for matching root-relative paths
    """
    patterns = DEFAULT_IGNORES.copy()
    if extra_patterns:
        patterns.extend(p for p in extra_patterns if p.strip() and not p.strip().startswith("#"))
    return PathSpec.from_lines("gitwildmatch", patterns)


def relative_posix(file_path: Path, root: Path) -> Optional[str]:
    """
    Root-relative path with forward slashes, or None if outside the root.
    """
    try:
        relative = file_path.relative_to(root)
    except ValueError:
        return None
    return relative.as_posix()


def is_ignored(rel_path: str, spec: Optional[PathSpec], is_dir: bool = False) -> bool:
    """Check a root-relative path against the spec (directories need a trailing slash)."""
    if spec is None:
        return False
    if is_dir and not rel_path.endswith("/"):
        rel_path = f"{rel_path}/"
    return spec.match_file(rel_path)
