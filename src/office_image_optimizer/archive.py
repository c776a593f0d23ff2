"""Archive codec adapters.

Readers wrap the stdlib ``zipfile`` and ``tarfile`` modules behind one small
interface so the extractor never has to know which container it is reading.
"""

import logging
import tarfile
import zipfile
import zlib
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Iterator, Optional

from .errors import CorruptedArchiveError, UnsupportedArchiveError

# 8KB keeps memory flat across thousands of entries
COPY_BUFFER_SIZE = 8192

# Compression methods zipfile can decode
SUPPORTED_ZIP_METHODS = frozenset({
    zipfile.ZIP_STORED,
    zipfile.ZIP_DEFLATED,
    zipfile.ZIP_BZIP2,
    zipfile.ZIP_LZMA,
})

# Errors a codec raises while decoding entry data
CODEC_ERRORS = (zipfile.BadZipFile, tarfile.TarError, zlib.error, EOFError)


def copy_stream(source: BinaryIO, target: BinaryIO, buffer_size: int = COPY_BUFFER_SIZE) -> int:
    """Copy ``source`` into ``target`` in fixed-size chunks.

    Returns:
        Number of bytes copied
    """
    copied = 0
    while True:
        chunk = source.read(buffer_size)
        if not chunk:
            break
        target.write(chunk)
        copied += len(chunk)
    return copied


@dataclass(frozen=True)
class ArchiveEntry:
    """One named record of an archive."""
    name: str  # Slash-separated, relative to the archive root
    is_dir: bool
    readable: bool = True  # False when the codec cannot decode the data
    size: Optional[int] = None
    member: Any = field(default=None, compare=False, repr=False)  # Codec-native record

    def __str__(self) -> str:
        kind = "dir" if self.is_dir else "file"
        return f"{self.name} ({kind})"


class ArchiveReader:
    """Sequential access to the entries of an opened archive."""

    format_name = "unknown"

    def entries(self) -> Iterator[ArchiveEntry]:
        raise NotImplementedError

    def open(self, entry: ArchiveEntry) -> BinaryIO:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class ZipArchiveReader(ArchiveReader):
    """Reader for zip containers (ODF, OOXML, plain .zip)."""

    format_name = "zip"

    def __init__(self, stream: BinaryIO):
        try:
            self._zip = zipfile.ZipFile(stream, 'r')
        except zipfile.BadZipFile as e:
            raise CorruptedArchiveError(f"Invalid zip archive: {e}") from e

    @staticmethod
    def can_read_entry_data(info: zipfile.ZipInfo) -> bool:
        """Check whether zipfile can decode the data of ``info``."""
        if info.flag_bits & 0x1:
            # Encrypted
            return False
        return info.compress_type in SUPPORTED_ZIP_METHODS

    def entries(self) -> Iterator[ArchiveEntry]:
        for info in self._zip.infolist():
            yield ArchiveEntry(
                name=info.filename,
                is_dir=info.is_dir(),
                readable=self.can_read_entry_data(info),
                size=info.file_size,
                member=info,
            )

    def open(self, entry: ArchiveEntry) -> BinaryIO:
        return self._zip.open(entry.member, 'r')

    def close(self) -> None:
        self._zip.close()


class TarArchiveReader(ArchiveReader):
    """Reader for tar archives, compressed or not."""

    format_name = "tar"

    def __init__(self, stream: BinaryIO):
        try:
            self._tar = tarfile.open(fileobj=stream, mode='r:*')
        except tarfile.TarError as e:
            raise UnsupportedArchiveError(f"Not a readable tar archive: {e}") from e

    @staticmethod
    def can_read_entry_data(member: tarfile.TarInfo) -> bool:
        """Only regular files and directories carry extractable content."""
        return member.isfile() or member.isdir()

    def entries(self) -> Iterator[ArchiveEntry]:
        # Iterating the TarFile reads headers lazily
        for member in self._tar:
            yield ArchiveEntry(
                name=member.name,
                is_dir=member.isdir(),
                readable=self.can_read_entry_data(member),
                size=member.size,
                member=member,
            )

    def open(self, entry: ArchiveEntry) -> BinaryIO:
        source = self._tar.extractfile(entry.member)
        if source is None:
            raise CorruptedArchiveError(f"No data for tar entry: {entry.name}", entry=entry.name)
        return source

    def close(self) -> None:
        self._tar.close()


def open_archive(stream: BinaryIO, logger: Optional[logging.Logger] = None) -> ArchiveReader:
    """Detect the container format from the stream header and open it.

    Zip is tried first; anything ``tarfile`` recognises (plain, gzip, bzip2,
    xz) is accepted as a fallback.

    Args:
        stream: Seekable binary stream positioned anywhere
        logger: Optional logger

    Returns:
        Reader for the detected format

    Raises:
        UnsupportedArchiveError: If no supported format matches
        CorruptedArchiveError: If the zip central directory cannot be parsed
    """
    logger = logger or logging.getLogger(__name__)

    stream.seek(0)
    if zipfile.is_zipfile(stream):
        stream.seek(0)
        logger.debug("Detected zip archive")
        return ZipArchiveReader(stream)

    stream.seek(0)
    reader = TarArchiveReader(stream)
    logger.debug("Detected tar archive")
    return reader
