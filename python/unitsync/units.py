"""
Unit discovery for the source tree.

A unit is a top-level directory of the source root that holds at least one
managed file. Files directly in the root are shared by every unit.

Uses os.walk() with directory pruning so ignored subtrees are skipped before
descending into them.
"""

import logging
import os
from pathlib import Path
from typing import Iterator, Optional

from pathspec import PathSpec

from unitsync.ignore_patterns import is_ignored

logger = logging.getLogger("unitsync.units")


def _walk_managed(
    directory: Path, root: Path, extension: str, ignore_spec: Optional[PathSpec]
) -> Iterator[tuple[Path, str]]:
    """
    Yield (file_path, rel_str) for managed files under directory, pruning ignored dirs.
    """
    root_str = str(root)

    for current, dirs, files in os.walk(directory):
        if current == root_str:
            rel_root = ""
        else:
            rel_root = os.path.relpath(current, root).replace("\\", "/")

        # Prune IN-PLACE so ignored subtrees are never entered
        dirs[:] = sorted(
            d
            for d in dirs
            if not is_ignored(f"{rel_root}/{d}" if rel_root else d, ignore_spec, is_dir=True)
        )

        for f in sorted(files):
            if not f.lower().endswith(extension):
                continue
            rel_str = f"{rel_root}/{f}" if rel_root else f
            if is_ignored(rel_str, ignore_spec):
                continue
            yield Path(current) / f, rel_str


def discover_units(
    root: Path, extension: str = ".lua", ignore_spec: Optional[PathSpec] = None
) -> list[str]:
    """
    Find unit directories under the source root.

    Args:
        root: Source root
        extension: Managed file extension (with leading dot)
        ignore_spec: Optional ignore patterns

    Returns:
        Sorted unit names; stable for an unchanged tree
    """
    units = []
    with os.scandir(root) as entries:
        for entry in entries:
            if not entry.is_dir(follow_symlinks=False):
                continue
            if is_ignored(entry.name, ignore_spec, is_dir=True):
                continue
            unit_dir = Path(entry.path)
            if next(_walk_managed(unit_dir, root, extension, ignore_spec), None) is not None:
                units.append(entry.name)
    return sorted(units)


def discover_modules(
    unit: str, root: Path, extension: str = ".lua", ignore_spec: Optional[PathSpec] = None
) -> list[Path]:
    """Sorted managed files belonging to one unit (recursive)."""
    unit_dir = root / unit
    if not unit_dir.is_dir():
        return []
    return [path for path, _ in _walk_managed(unit_dir, root, extension, ignore_spec)]


def shared_files(
    root: Path, extension: str = ".lua", ignore_spec: Optional[PathSpec] = None
) -> list[Path]:
    """Sorted managed files that live directly in the source root."""
    shared = []
    for path in sorted(root.iterdir()):
        if not path.is_file() or not path.name.lower().endswith(extension):
            continue
        if is_ignored(path.name, ignore_spec):
            continue
        shared.append(path)
    return shared


def summarize_units(
    units: list[str], root: Path, extension: str = ".lua", ignore_spec: Optional[PathSpec] = None
) -> str:
    """One-line startup summary, e.g. "druid: 4 modules, mage: 2 modules"."""
    return ", ".join(
        f"{unit}: {len(discover_modules(unit, root, extension, ignore_spec))} modules"
        for unit in units
    )
