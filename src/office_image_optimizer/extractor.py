"""Streaming extraction of an archive into a working tree."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

from .archive import ArchiveEntry, ArchiveReader, CODEC_ERRORS, copy_stream
from .common import is_within
from .errors import CorruptedArchiveError, ExtractionError


@dataclass
class ExtractionSummary:
    """Outcome of one extraction."""
    files: int = 0
    directories: int = 0
    skipped: List[str] = field(default_factory=list)  # Entry names not written
    directory_names: Set[str] = field(default_factory=set)  # As "dir/", relative to the tree

    @property
    def total(self) -> int:
        return self.files + self.directories


def _tree_name(dest_root: Path, target: Path) -> Optional[str]:
    """Return the packed name of directory ``target``, or None outside the tree."""
    try:
        relative = target.resolve().relative_to(dest_root.resolve())
    except ValueError:
        return None
    if relative == Path("."):
        return None
    return relative.as_posix() + "/"


def _ensure_directory(path: Path) -> None:
    """Create ``path`` and its parents, tolerating existing directories.

    Raises:
        ExtractionError: If the directory cannot be created
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExtractionError(f"Failed to create directory {path}: {e}", path=str(path)) from e


def extract(
    reader: ArchiveReader,
    dest_root: Path,
    *,
    allow_unsafe_paths: bool = False,
    logger: Optional[logging.Logger] = None,
) -> ExtractionSummary:
    """Extract every readable entry of ``reader`` below ``dest_root``.

    Entries are processed one at a time in archive order. Entries the codec
    cannot decode are skipped; entries whose names would land outside
    ``dest_root`` are skipped unless ``allow_unsafe_paths`` is set.

    Args:
        reader: Opened archive
        dest_root: Existing directory to extract into
        allow_unsafe_paths: Write entries with ``..`` or absolute names as-is
        logger: Optional logger

    Returns:
        Summary of written and skipped entries

    Raises:
        ExtractionError: If a directory or file cannot be created
        CorruptedArchiveError: If entry data fails to decode mid-stream
    """
    logger = logger or logging.getLogger(__name__)
    dest_root = Path(dest_root)
    summary = ExtractionSummary()

    for entry in reader.entries():
        if not entry.readable:
            logger.warning(f"Skipping unreadable entry: {entry.name}")
            summary.skipped.append(entry.name)
            continue

        target = dest_root / entry.name
        if not allow_unsafe_paths and not is_within(dest_root, target):
            logger.warning(f"Skipping unsafe path: {entry.name}")
            summary.skipped.append(entry.name)
            continue

        if entry.is_dir:
            _ensure_directory(target)
            summary.directories += 1
            name = _tree_name(dest_root, target)
            if name is not None:
                summary.directory_names.add(name)
            logger.debug(f"Created directory {entry.name}")
            continue

        _ensure_directory(target.parent)
        _extract_file(reader, entry, target)
        summary.files += 1
        logger.debug(f"Extracted {entry.name}")

    logger.info(
        f"Extracted {summary.files} file(s) and {summary.directories} directory(ies) "
        f"({len(summary.skipped)} skipped)"
    )
    return summary


def _extract_file(reader: ArchiveReader, entry: ArchiveEntry, target: Path) -> None:
    try:
        with reader.open(entry) as source, open(target, 'wb') as out:
            copy_stream(source, out)
    except CODEC_ERRORS as e:
        raise CorruptedArchiveError(
            f"Failed to read entry {entry.name}: {e}", entry=entry.name
        ) from e
    except OSError as e:
        raise ExtractionError(
            f"Failed to write {target}: {e}", entry=entry.name, path=str(target)
        ) from e
