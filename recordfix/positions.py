"""
Position Sources — where the next record offset comes from.

  • SingleSource      one caller-supplied byte offset
  • ListSource        one offset per line of a text file
  • ChainedSource     single offset first, then the list
  • SequentialSource  every record in the file, 0, rs, 2rs, ...

A list with a non-numeric line aborts the whole run: validate() reads the
list up front so nothing is touched before the bad line is found.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .errors import FileOpenError, OffsetListError

logger = logging.getLogger(__name__)


class PositionSource:
    """Base class. Iterate to get byte offsets."""

    # Sequential scans end at the first short read instead of skipping it
    stops_on_short_read = False

    def validate(self) -> None:
        """Check the source before any record I/O. Fatal errors raise."""

    def __iter__(self) -> Iterator[int]:
        raise NotImplementedError

    def describe(self) -> str:
        return self.__class__.__name__


class SingleSource(PositionSource):
    def __init__(self, offset: int):
        self.offset = offset

    def __iter__(self) -> Iterator[int]:
        yield self.offset

    def describe(self) -> str:
        return f"position {self.offset}"


def parse_offset(text: str) -> Optional[int]:
    """Parse a non-negative decimal offset; None if the text is not one."""
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


class ListSource(PositionSource):
    """Offsets read from a text file, one per line, in file order."""

    def __init__(self, path: str):
        self.path = path
        self._offsets: Optional[list[int]] = None

    def _read_lines(self) -> list[str]:
        try:
            with open(self.path, "r", encoding="ascii",
                      errors="replace", newline=None) as f:
                return f.read().splitlines()
        except OSError as e:
            raise FileOpenError(self.path, e.strerror or str(e)) from e

    def validate(self) -> None:
        offsets = []
        for line_number, line in enumerate(self._read_lines(), start=1):
            value = parse_offset(line)
            if value is None:
                raise OffsetListError(self.path, line_number, line)
            offsets.append(value)
        self._offsets = offsets
        logger.info("Input file %s: %d record position(s)",
                    self.path, len(offsets))

    @property
    def offsets(self) -> list[int]:
        if self._offsets is None:
            self.validate()
        return list(self._offsets)

    def __iter__(self) -> Iterator[int]:
        yield from self.offsets

    def describe(self) -> str:
        return f"input file {self.path}"


class ChainedSource(PositionSource):
    """Drain each source in turn (single position before the list)."""

    def __init__(self, *sources: PositionSource):
        self.sources = list(sources)

    def validate(self) -> None:
        for src in self.sources:
            src.validate()

    def __iter__(self) -> Iterator[int]:
        for src in self.sources:
            yield from src

    def describe(self) -> str:
        return " + ".join(s.describe() for s in self.sources)


class SequentialSource(PositionSource):
    """
    Every record boundary from `start` onwards, up to `end` if given.

    Without an `end` the iterator never stops on its own; the caller ends
    the scan when a read comes back short.
    """

    stops_on_short_read = True

    def __init__(self, record_size: int, start: int = 0,
                 end: Optional[int] = None):
        if record_size < 1:
            raise ValueError("record_size must be >= 1")
        self.record_size = record_size
        self.start = start
        self.end = end

    def __iter__(self) -> Iterator[int]:
        offset = self.start
        while self.end is None or offset < self.end:
            yield offset
            offset += self.record_size

    def describe(self) -> str:
        if self.end is None:
            return f"all records from {self.start}"
        return f"records in [{self.start}, {self.end})"


def build_position_source(config) -> PositionSource:
    """Pick the source variant for a validated RepairConfig."""
    if config.full_detection or config.zero_detection:
        return SequentialSource(config.record_size)

    sources: list[PositionSource] = []
    if config.position is not None:
        sources.append(SingleSource(config.position))
    if config.offset_list:
        sources.append(ListSource(config.offset_list))
    if len(sources) == 1:
        return sources[0]
    return ChainedSource(*sources)
