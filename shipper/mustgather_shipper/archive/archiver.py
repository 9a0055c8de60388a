"""
Directory archiver for the must-gather shipper.

The archiver walks a source directory and streams every regular file into a
gzip-compressed tar archive written to a caller-owned sink.

Archive format:
    gzip( tar( entry* end-of-archive ) )

Each entry is a PAX tar header (relative path, size, permission bits,
modification time) followed by the file's raw bytes. Directories are walked
but never written as entries.

Invariants:
    - Entry names are relative to the root, use "/" separators and never
      start with "/" or contain ".." segments
    - Only regular files are archived; symlinks, fifos, sockets and devices
      are skipped and reported in the summary
    - File bytes are copied incrementally, never buffered whole
    - The tar writer is finalized before the gzip writer, which is
      finalized before the sink is flushed
    - Any error aborts the walk and truncates the sink back to where the
      archive started, so no readable archive is left behind

How to change safely:
    - Keep the finalization order when adding layers
    - The sink is owned by the caller; never close it here
"""

from __future__ import annotations

import gzip
import logging
import os
import stat
import tarfile
import zlib
from collections.abc import Iterator
from contextlib import closing
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import BinaryIO

from ..errors import ArchiveError, ArchiveIOError, ShipperError, SourceNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ArchiveSummary:
    """Outcome of a successful archive run.

    Attributes:
        root: Directory that was archived
        file_count: Number of entries written
        total_bytes: Sum of uncompressed entry sizes
        compressed_bytes: Bytes written to the sink
        skipped: Relative paths of non-regular files that were left out
    """

    root: str
    file_count: int = 0
    total_bytes: int = 0
    compressed_bytes: int = 0
    skipped: list[str] = field(default_factory=list)


class DirectoryArchiver:
    """Streams a directory tree into a tar.gz sink.

    Attributes:
        root: Directory to archive
        compresslevel: gzip compression level (0-9)

    Example:
        >>> with open("must-gather.tar.gz", "w+b") as sink:
        ...     summary = DirectoryArchiver("./must-gather").archive(sink)
        >>> print(summary.file_count)
    """

    def __init__(self, root: str | os.PathLike[str], compresslevel: int = 9) -> None:
        self.root = Path(root)
        self.compresslevel = compresslevel

    def archive(self, sink: BinaryIO) -> ArchiveSummary:
        """Write the archive of the whole tree to sink.

        Args:
            sink: Writable binary file object, positioned where the archive starts

        Returns:
            ArchiveSummary describing what was written

        Raises:
            SourceNotFoundError: If the root is missing or not a directory
            ArchiveIOError: If a source read or sink write fails
            ArchiveError: If the tar or gzip writer fails
        """
        if not self.root.is_dir():
            raise SourceNotFoundError(
                f"Source directory not found: {self.root}", path=str(self.root)
            )

        summary = ArchiveSummary(root=str(self.root))
        logger.info("Archiving directory", extra={"root": str(self.root)})

        start: int | None = None
        try:
            start = sink.tell()
            with gzip.GzipFile(fileobj=sink, mode="wb", compresslevel=self.compresslevel) as gz:
                with tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
                    with closing(self._walk(summary)) as files:
                        for path in files:
                            self._add_file(tar, path, summary)
            sink.flush()
            summary.compressed_bytes = sink.tell() - start
        except ShipperError:
            self._discard(sink, start)
            raise
        except OSError as e:
            self._discard(sink, start)
            raise ArchiveIOError(
                f"Archiving {self.root} failed: {e}", path=getattr(e, "filename", None)
            ) from e
        except ValueError as e:
            self._discard(sink, start)
            # file objects raise ValueError for I/O on a closed file
            if getattr(sink, "closed", False):
                raise ArchiveIOError(f"Archive sink is closed: {e}") from e
            raise ArchiveError(f"Archive writer failed: {e}") from e
        except (tarfile.TarError, zlib.error) as e:
            self._discard(sink, start)
            raise ArchiveError(f"Archive writer failed: {e}") from e

        logger.info(
            "Directory archived",
            extra={
                "root": summary.root,
                "files": summary.file_count,
                "total_bytes": summary.total_bytes,
                "compressed_bytes": summary.compressed_bytes,
                "skipped": len(summary.skipped),
            },
        )
        return summary

    def _walk(self, summary: ArchiveSummary) -> Iterator[Path]:
        """Yield candidate files depth-first, sorted within each directory."""

        def _raise(error: OSError) -> None:
            raise error

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_raise):
            # os.walk does not descend into symlinked directories, report them instead
            for name in list(dirnames):
                if os.path.islink(os.path.join(dirpath, name)):
                    dirnames.remove(name)
                    self._skip(Path(dirpath) / name, "symlink", summary)
            dirnames.sort()

            for name in sorted(filenames):
                yield Path(dirpath) / name

    def _add_file(self, tar: tarfile.TarFile, path: Path, summary: ArchiveSummary) -> None:
        """Append one file to the archive if it is a regular file."""
        st = os.lstat(path)
        if not stat.S_ISREG(st.st_mode):
            self._skip(path, _file_kind(st.st_mode), summary)
            return

        info = tarfile.TarInfo(name=self.relative_name(path))
        info.size = st.st_size
        info.mode = stat.S_IMODE(st.st_mode)
        info.mtime = int(st.st_mtime)

        with self._open_entry(path) as f:
            tar.addfile(info, f)

        summary.file_count += 1
        summary.total_bytes += info.size
        logger.debug("Archived file", extra={"entry": info.name, "size": info.size})

    def _open_entry(self, path: Path) -> BinaryIO:
        return open(path, "rb")

    def _discard(self, sink: BinaryIO, start: int | None) -> None:
        """Drop partial output so a failed run leaves no readable archive."""
        if start is None:
            return
        try:
            sink.seek(start)
            sink.truncate()
        except (OSError, ValueError) as e:
            logger.warning("Could not discard partial archive", extra={"error": str(e)})

    def _skip(self, path: Path, kind: str, summary: ArchiveSummary) -> None:
        name = self.relative_name(path)
        summary.skipped.append(name)
        logger.warning("Skipping non-regular file", extra={"entry": name, "kind": kind})

    def relative_name(self, path: Path) -> str:
        """Archive name of path: relative to the root with "/" separators.

        Raises:
            ArchiveError: If the path does not lie under the root
        """
        name = PurePath(os.path.relpath(path, self.root)).as_posix()
        if name.startswith("/") or name == ".." or name.startswith("../"):
            raise ArchiveError(f"Path escapes archive root: {path}", path=str(path))
        return name


def archive_directory(root: str | os.PathLike[str], sink: BinaryIO) -> ArchiveSummary:
    """Archive every regular file under root into sink as tar.gz.

    Args:
        root: Directory to archive
        sink: Writable binary file object

    Returns:
        ArchiveSummary for the run
    """
    return DirectoryArchiver(root).archive(sink)


def _file_kind(mode: int) -> str:
    if stat.S_ISLNK(mode):
        return "symlink"
    if stat.S_ISFIFO(mode):
        return "fifo"
    if stat.S_ISSOCK(mode):
        return "socket"
    if stat.S_ISCHR(mode) or stat.S_ISBLK(mode):
        return "device"
    return "other"
