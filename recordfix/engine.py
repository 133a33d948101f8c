"""
Record Repair Engine — check one record and, in update mode, fix it in place.

Per record:
  1. Seek + read exactly record_size bytes (short read → outcome.error)
  2. Classify every byte and patch a working copy
  3. Zero-detection: more nulls than the threshold → wipe record to 0xFF
  4. Unchanged record → never written, whatever the mode
  5. Update mode + changed → seek back and overwrite (short write → error)

This is the only place that writes to the data file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .classifier import (
    DELETE_NULL_THRESHOLD,
    DetectionPolicy,
    classify,
)
from .errors import RecordIOError
from .record_io import RecordFile

logger = logging.getLogger(__name__)


@dataclass
class RepairOutcome:
    """Result of checking (and maybe rewriting) a single record."""
    offset: int
    record_size: int
    bytes_changed: int = 0
    nulls_replaced: int = 0
    whole_record_deleted: bool = False
    changed: bool = False
    written: bool = False
    original: Optional[bytes] = None
    repaired: Optional[bytes] = None
    error: Optional[RecordIOError] = None

    @property
    def record_index(self) -> int:
        return self.offset // self.record_size

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def summary(self) -> str:
        if self.error is not None:
            return f"Record {self.record_index}: {self.error}"
        if not self.changed:
            return f"Record {self.record_index}: clean"
        parts = [f"{self.bytes_changed} invalid byte(s)"]
        if self.nulls_replaced:
            parts.append(f"{self.nulls_replaced} null(s)")
        if self.whole_record_deleted:
            parts.append("record blanked")
        parts.append("written" if self.written else "not written")
        return f"Record {self.record_index}: " + ", ".join(parts)


def _fmt_byte(value: int) -> str:
    ch = chr(value) if 32 <= value <= 126 else "."
    return f"'{ch}' (hex: {value:x}; dec: {value})"


def repair_buffer(
    record: bytes,
    policy: DetectionPolicy,
    delete_null_threshold: int = DELETE_NULL_THRESHOLD,
    offset: int = 0,
) -> tuple[bytearray, int, int, bool]:
    """
    Compute the repaired form of `record` without any I/O.

    Returns:
        (repaired, bytes_changed, nulls_replaced, whole_record_deleted)
    """
    size = len(record)
    repaired = bytearray(record)
    bytes_changed = 0
    nulls_replaced = 0

    for i, value in enumerate(record):
        verdict = classify(value, i, size, policy)
        if verdict.is_valid:
            continue
        if not verdict.replaces:
            logger.debug("Invalid byte %d: %s left as is (%s mode)",
                         i, _fmt_byte(value), policy.name)
            continue
        if bytes_changed == 0:
            logger.info("Record: %d; Position: %d", offset // size, offset)
        repaired[i] = verdict.replacement
        bytes_changed += 1
        if verdict.is_null_fill(policy):
            nulls_replaced += 1
        logger.debug("Changing %s to %s. Offset: %d",
                     _fmt_byte(value), _fmt_byte(verdict.replacement), i)

    deleted = False
    if policy.zero_detection:
        if nulls_replaced > 0:
            logger.info("%d occurrences of 0x00 characters found.",
                        nulls_replaced)
        if nulls_replaced > delete_null_threshold:
            repaired[:] = bytes([policy.null_fill_value]) * size
            deleted = True
            logger.info("Record %d exceeds %d nulls, blanking whole record",
                        offset // size, delete_null_threshold)

    return repaired, bytes_changed, nulls_replaced, deleted


def repair_record(
    record_file: RecordFile,
    offset: int,
    record_size: int,
    policy: DetectionPolicy,
    commit: bool = False,
    delete_null_threshold: int = DELETE_NULL_THRESHOLD,
) -> RepairOutcome:
    """Check the record at `offset` and, if `commit`, write its repair back.

    Args:
        record_file: Open data file.
        offset: Byte offset of the record.
        record_size: Record length, terminator included.
        policy: Active detection policy.
        commit: Write changed records back (update mode).
        delete_null_threshold: Null count above which the record is wiped.

    Returns:
        RepairOutcome. I/O failures are returned in `error`, not raised.
    """
    outcome = RepairOutcome(offset=offset, record_size=record_size)

    try:
        original = record_file.read_at(offset, record_size)
    except RecordIOError as e:
        outcome.error = e
        return outcome

    repaired, changed, nulls, deleted = repair_buffer(
        original, policy, delete_null_threshold, offset)

    outcome.original = original
    outcome.repaired = bytes(repaired)
    outcome.bytes_changed = changed
    outcome.nulls_replaced = nulls
    outcome.whole_record_deleted = deleted
    outcome.changed = outcome.repaired != original

    if commit and outcome.changed:
        try:
            record_file.write_at(offset, outcome.repaired)
        except RecordIOError as e:
            outcome.error = e
            return outcome
        outcome.written = True
        logger.info("File updated.")

    return outcome
