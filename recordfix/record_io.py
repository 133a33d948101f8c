"""
Record File — the single owned handle on the data file.

Every read and write of record data goes through here:
  1. Opened once per run: "r+b" in update mode, "rb" in report-only mode.
  2. read_at() seeks and reads exactly one record; short reads raise.
  3. write_at() seeks back and overwrites in place; short writes raise.
  4. Closed once at run end (context manager).

One caller at a time. The read → seek back → write pattern is only safe
because nothing else touches the handle in between.
"""

import os
import logging
from typing import BinaryIO

from .errors import FileOpenError, SeekError, ShortReadError, ShortWriteError

logger = logging.getLogger(__name__)


class RecordFile:
    """
    Fixed-length record access on a binary file.

    Usage:
        with RecordFile.open(path, writable=True) as rf:
            data = rf.read_at(offset, record_size)
            rf.write_at(offset, repaired)
    """

    def __init__(self, fd: BinaryIO, path: str = "", writable: bool = False):
        self._fd = fd
        self._path = path
        self._writable = writable

    @classmethod
    def open(cls, path: str, writable: bool = False) -> "RecordFile":
        mode = "r+b" if writable else "rb"
        try:
            fd = open(path, mode)
        except OSError as e:
            raise FileOpenError(path, e.strerror or str(e)) from e
        logger.info("Opened %s (%s, %d bytes)", path,
                    "update" if writable else "report only",
                    os.fstat(fd.fileno()).st_size)
        return cls(fd, path, writable)

    @property
    def path(self) -> str:
        return self._path

    @property
    def writable(self) -> bool:
        return self._writable

    @property
    def closed(self) -> bool:
        return self._fd is None

    def size(self) -> int:
        """Current file size in bytes."""
        return os.fstat(self._fd.fileno()).st_size

    def seek(self, offset: int, record_size: int) -> None:
        try:
            self._fd.seek(offset, os.SEEK_SET)
        except (OSError, ValueError, OverflowError) as e:
            raise SeekError(offset, record_size, str(e)) from e

    def read_at(self, offset: int, record_size: int) -> bytes:
        """
        Read exactly `record_size` bytes at `offset`.

        Raises SeekError if the seek fails, ShortReadError if fewer bytes
        come back (eof tells whether end of file was the cause).
        """
        self.seek(offset, record_size)
        try:
            data = self._fd.read(record_size)
        except OSError as e:
            logger.debug("Read failed at %d: %s", offset, e)
            eof = offset >= self.size()
            raise ShortReadError(offset, record_size, 0, eof=eof) from e

        if len(data) != record_size:
            eof = offset + len(data) >= self.size()
            raise ShortReadError(offset, record_size, len(data), eof=eof)
        return data

    def write_at(self, offset: int, data: bytes) -> int:
        """
        Overwrite `len(data)` bytes at `offset`.

        Raises ShortWriteError if the write does not transfer every byte.
        Returns the number of bytes written.
        """
        size = len(data)
        self.seek(offset, size)
        try:
            written = self._fd.write(data)
            self._fd.flush()
        except OSError as e:
            raise ShortWriteError(offset, size, 0, e.strerror or str(e)) from e
        if written is None:
            written = 0
        if written != size:
            raise ShortWriteError(offset, size, written)
        return written

    def close(self):
        if self._fd is not None:
            try:
                self._fd.close()
            finally:
                self._fd = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def record_count(file_size: int, record_size: int) -> tuple[int, int]:
    """(complete records, trailing bytes) for a file of `file_size` bytes."""
    return divmod(file_size, record_size)
