"""
Destination generation: merge unit segments into the destination file.

Each unit owns one delimited segment of the destination:

    -- >>> unitsync:mage
    -- file: core.lua
    ...shared file content...
    -- file: mage/arcane.lua
    ...unit file content...
    -- <<< unitsync:mage

Syncing a set of units regenerates exactly those segments. Existing segments
are replaced where they are, new ones are appended in request order, and any
text outside segments (written by the consuming application) is kept as-is.
Identical inputs always produce byte-identical output.
"""

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from pathspec import PathSpec

from unitsync.config import Config
from unitsync.errors import SyncError
from unitsync.ignore_patterns import build_ignore_spec
from unitsync.units import discover_modules, shared_files

logger = logging.getLogger("unitsync.build")

BEGIN_TAG = ">>> unitsync:"
END_TAG = "<<< unitsync:"


@dataclass
class Segment:
    """A unit-owned block of the destination, markers included."""

    unit: str
    text: str


Chunk = Union[str, Segment]


def begin_marker(prefix: str, unit: str) -> str:
    return f"{prefix} {BEGIN_TAG}{unit}"


def end_marker(prefix: str, unit: str) -> str:
    return f"{prefix} {END_TAG}{unit}"


def render_segment(
    config: Config,
    unit: str,
    ignore_spec: Optional[PathSpec] = None,
    shared: Optional[list[Path]] = None,
) -> str:
    """
    Render one unit's segment: shared files first, then the unit's modules.

    A unit whose directory was deleted renders as an empty segment; units are
    never dropped while the watcher runs. Callers rendering several units
    pass ignore_spec and shared so the root is only scanned once.

    Raises:
        SyncError: If a source file cannot be read
    """
    root = config.source_root
    prefix = config.comment_prefix
    if not (root / unit).is_dir():
        logger.warning(f"Unit directory {unit}/ is missing - writing an empty segment")
        return f"{begin_marker(prefix, unit)}\n{end_marker(prefix, unit)}\n"

    if ignore_spec is None:
        ignore_spec = build_ignore_spec(config.ignore)
    if shared is None:
        shared = shared_files(root, config.extension, ignore_spec)
    files = shared + discover_modules(unit, root, config.extension, ignore_spec)

    lines = [begin_marker(prefix, unit)]
    for path in files:
        rel = path.relative_to(root).as_posix()
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SyncError(f"cannot read {rel}: {e}") from e
        lines.append(f"{prefix} file: {rel}")
        lines.append(content.rstrip("\n"))
    lines.append(end_marker(prefix, unit))
    return "\n".join(lines) + "\n"


def split_segments(text: str, prefix: str) -> list[Chunk]:
    """
    Split destination text into plain chunks and unit segments.

    An unterminated begin marker is treated as plain text.
    """
    begin_re = re.compile(rf"^{re.escape(prefix)} {re.escape(BEGIN_TAG)}(.+?)[ \t]*$", re.M)
    chunks: list[Chunk] = []
    pos = 0

    while True:
        match = begin_re.search(text, pos)
        if match is None:
            break
        unit = match.group(1)
        end_re = re.compile(
            rf"^{re.escape(end_marker(prefix, unit))}[ \t]*(?:\n|$)", re.M
        )
        end = end_re.search(text, match.end())
        if end is None:
            break
        if match.start() > pos:
            chunks.append(text[pos : match.start()])
        segment_text = text[match.start() : end.end()]
        if not segment_text.endswith("\n"):
            segment_text += "\n"
        chunks.append(Segment(unit=unit, text=segment_text))
        pos = end.end()

    if pos < len(text):
        chunks.append(text[pos:])
    return chunks


def merge_segments(existing: str, rendered: dict[str, str], prefix: str) -> str:
    """Replace or append the rendered segments, keeping foreign text untouched."""
    chunks = split_segments(existing, prefix)
    remaining = dict(rendered)

    out: list[str] = []
    for chunk in chunks:
        if isinstance(chunk, Segment):
            if chunk.unit in remaining:
                out.append(remaining.pop(chunk.unit))
            elif chunk.unit in rendered:
                # duplicate segment for a unit we already wrote: drop it
                continue
            else:
                out.append(chunk.text)
        else:
            out.append(chunk)

    if remaining:
        if out and not out[-1].endswith("\n"):
            out.append("\n")
        out.extend(remaining.values())

    return "".join(out)


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="\n") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def sync_units(config: Config, unit_names: Sequence[str]) -> None:
    """
    Regenerate the named units' segments in the destination file.

    Args:
        config: Watcher configuration
        unit_names: Units to regenerate, in the order new segments are appended

    Raises:
        SyncError: If a unit cannot be rendered
        OSError: If the destination cannot be read or written
    """
    if not unit_names:
        return

    ignore_spec = build_ignore_spec(config.ignore)
    shared = shared_files(config.source_root, config.extension, ignore_spec)

    rendered: dict[str, str] = {}
    for unit in unit_names:
        if unit not in rendered:
            rendered[unit] = render_segment(config, unit, ignore_spec, shared)

    destination = config.destination
    existing: Optional[str] = None
    if destination.exists():
        existing = destination.read_text(encoding="utf-8", errors="surrogateescape")

    merged = merge_segments(existing or "", rendered, config.comment_prefix)
    if merged == existing:
        logger.debug(f"Destination already up to date for {len(rendered)} unit(s)")
        return

    _atomic_write(destination, merged)
    logger.info(f"Synced {len(rendered)} unit(s) to {destination.name}: {', '.join(rendered)}")
