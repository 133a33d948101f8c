"""
Error taxonomy for record repair runs.

Two tiers:
  • Structural — ConfigurationError, OffsetListError, FileOpenError.
    Raised before any record I/O; the run aborts.
  • Operational — SeekError, ShortReadError, ShortWriteError.
    Raised per record; the coordinator logs them and moves on.

ExternalHookError sits outside both tiers: the post-run re-index failed,
but the repairs already made stand.
"""

from __future__ import annotations

from typing import Optional


class RecordFixError(Exception):
    """Base class for every error raised by recordfix."""


class ConfigurationError(RecordFixError):
    """Missing/conflicting options or an out-of-range value."""


class OffsetListError(RecordFixError):
    """A line in the offset list is not a non-negative integer."""

    def __init__(self, path: str, line_number: int, text: str):
        self.path = path
        self.line_number = line_number
        self.text = text
        super().__init__(
            f"Input file position ({text!r}) is invalid: "
            f"{path} line {line_number}")


class FileOpenError(RecordFixError):
    """The data file or the offset list could not be opened."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot open {path}: {reason}")


class RecordIOError(RecordFixError):
    """Per-record I/O failure. The affected record is skipped."""

    def __init__(self, message: str, offset: int, record_size: int):
        self.offset = offset
        self.record_size = record_size
        super().__init__(message)

    @property
    def record_index(self) -> int:
        return self.offset // self.record_size if self.record_size else 0


class SeekError(RecordIOError):
    def __init__(self, offset: int, record_size: int,
                 reason: Optional[str] = None):
        msg = f"Cannot seek to offset {offset} (record {offset // record_size})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, offset, record_size)


class ShortReadError(RecordIOError):
    """Fewer than record_size bytes came back from a read."""

    def __init__(self, offset: int, expected: int, actual: int, eof: bool):
        self.expected = expected
        self.actual = actual
        self.eof = eof
        cause = "Hit end of file (EOF)" if eof else \
            "An unknown error interrupted read"
        super().__init__(
            f"{actual} bytes of {expected} read at offset {offset} "
            f"(record {offset // expected}). {cause}",
            offset, expected,
        )


class ShortWriteError(RecordIOError):
    """Fewer than record_size bytes were written back."""

    def __init__(self, offset: int, expected: int, actual: int,
                 reason: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        msg = (f"{actual} bytes of {expected} written at offset {offset} "
               f"(record {offset // expected})")
        if reason:
            msg += f": {reason}"
        super().__init__(msg, offset, expected)


WriteError = ShortWriteError


class ExternalHookError(RecordFixError):
    """The post-run re-index command failed or is unavailable."""
