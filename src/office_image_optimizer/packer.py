"""Re-archiving of a working tree into a zip stream."""

import logging
import zipfile
from pathlib import Path
from typing import AbstractSet, BinaryIO, Iterable, List, Optional, Tuple

from .archive import copy_stream

# Earliest timestamp a zip entry can carry
REPRODUCIBLE_DATE_TIME = (1980, 1, 1, 0, 0, 0)

# ODF readers sniff the media type from an uncompressed first entry
DEFAULT_LEADING_ENTRIES = ("mimetype",)


def archive_name(source_root: Path, path: Path) -> str:
    """Return the zip entry name of ``path`` relative to ``source_root``.

    Directories get a trailing slash, as zip requires.
    """
    name = path.relative_to(source_root).as_posix()
    if path.is_dir():
        name += "/"
    return name


def _wanted(name: str, path: Path, directories: Optional[AbstractSet[str]]) -> bool:
    if directories is None or not path.is_dir():
        return True
    # Empty directories only exist in the tree because an entry named them
    return name in directories or not any(path.iterdir())


def collect_entries(
    source_root: Path,
    leading_entries: Iterable[str] = DEFAULT_LEADING_ENTRIES,
    directories: Optional[AbstractSet[str]] = None,
) -> List[Tuple[str, Path]]:
    """List every file and directory below ``source_root`` in write order.

    Names are sorted lexicographically; files named in ``leading_entries``
    are moved to the front in the order given. The root itself has an empty
    name and is not listed.

    When ``directories`` is given, only the directories it names (as
    ``"dir/"``) and empty directories are listed. Directories that merely
    hold files are then left implicit, as in the archive they came from.
    """
    entries = sorted(
        (name, path)
        for name, path in (
            (archive_name(source_root, path), path) for path in source_root.rglob("*")
        )
        if _wanted(name, path, directories)
    )

    leading = []
    for name in leading_entries:
        for item in entries:
            if item[0] == name and item[1].is_file():
                leading.append(item)
                break

    return leading + [item for item in entries if item not in leading]


def pack(
    source_root: Path,
    out_stream: BinaryIO,
    *,
    reproducible: bool = True,
    leading_entries: Iterable[str] = DEFAULT_LEADING_ENTRIES,
    directories: Optional[AbstractSet[str]] = None,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Write the tree below ``source_root`` into ``out_stream`` as a zip archive.

    Args:
        source_root: Directory to archive
        out_stream: Writable binary stream; flushed but not closed
        reproducible: Give every entry the same fixed timestamp
        leading_entries: File names written first and stored uncompressed
        directories: Directory names to write explicitly; ``None`` writes all
        logger: Optional logger

    Returns:
        Number of entries written
    """
    logger = logger or logging.getLogger(__name__)
    source_root = Path(source_root)
    leading_entries = tuple(leading_entries)

    entries = collect_entries(source_root, leading_entries, directories)
    logger.debug(f"Packing {len(entries)} entries from {source_root}")

    with zipfile.ZipFile(out_stream, 'w', zipfile.ZIP_DEFLATED) as zip_out:
        for name, path in entries:
            info = zipfile.ZipInfo.from_file(path, name)
            if reproducible:
                info.date_time = REPRODUCIBLE_DATE_TIME

            if info.is_dir():
                # mkdir only fills these in when given a plain name
                info.CRC = 0
                info.compress_size = 0
                info.compress_type = zipfile.ZIP_STORED
                zip_out.mkdir(info)
                continue

            if name in leading_entries:
                info.compress_type = zipfile.ZIP_STORED
            else:
                info.compress_type = zipfile.ZIP_DEFLATED

            with open(path, 'rb') as source, zip_out.open(info, 'w') as target:
                copy_stream(source, target)

    out_stream.flush()
    logger.info(f"Packed {len(entries)} entries")
    return len(entries)
