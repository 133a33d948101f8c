"""
Run Coordinator — drive a position source through the repair engine.

Fatal (abort before touching the file):
  • invalid configuration
  • malformed offset list
  • data file cannot be opened

Recoverable (log, count, move on):
  • short read / short write / seek failure on one record
  • a short read at end of file ends a sequential scan; any other
    short read is counted and the scan moves to the next record

The re-index hook runs exactly once, after the last record.
"""

from __future__ import annotations

import time
import logging
from dataclasses import dataclass, field
from typing import Optional

from .config import RepairConfig
from .engine import RepairOutcome, repair_record
from .errors import ExternalHookError, ShortReadError, ShortWriteError
from .positions import PositionSource, build_position_source
from .record_io import RecordFile, record_count
from .reindex import ReindexHook

logger = logging.getLogger(__name__)


@dataclass
class RunStatistics:
    """Counters for one run. Nothing is persisted."""
    data_file: str = ""
    mode: str = ""
    update: bool = False
    start_time: float = 0.0
    end_time: float = 0.0
    records_checked: int = 0
    invalid_bytes: int = 0
    nulls_replaced: int = 0
    records_changed: int = 0
    records_written: int = 0
    records_deleted: int = 0
    read_errors: int = 0
    write_errors: int = 0
    errors: list[str] = field(default_factory=list)
    hook_ran: bool = False
    hook_error: str = ""

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def io_errors(self) -> int:
        return self.read_errors + self.write_errors

    def record(self, outcome: RepairOutcome) -> None:
        """Fold one record's outcome into the totals."""
        if outcome.original is None:
            # Never read: nothing to count but the error
            self._record_error(outcome)
            return
        self.records_checked += 1
        self.invalid_bytes += outcome.bytes_changed
        self.nulls_replaced += outcome.nulls_replaced
        if outcome.changed:
            self.records_changed += 1
        if outcome.whole_record_deleted:
            self.records_deleted += 1
        if outcome.written:
            self.records_written += 1
        if outcome.error is not None:
            self._record_error(outcome)

    def _record_error(self, outcome: RepairOutcome) -> None:
        if isinstance(outcome.error, ShortWriteError):
            self.write_errors += 1
        else:
            self.read_errors += 1
        self.errors.append(str(outcome.error))

    def merge(self, other: "RunStatistics") -> None:
        self.records_checked += other.records_checked
        self.invalid_bytes += other.invalid_bytes
        self.nulls_replaced += other.nulls_replaced
        self.records_changed += other.records_changed
        self.records_written += other.records_written
        self.records_deleted += other.records_deleted
        self.read_errors += other.read_errors
        self.write_errors += other.write_errors
        self.errors.extend(other.errors)

    @property
    def summary(self) -> str:
        lines = [
            f"Number of invalid characters processed: {self.invalid_bytes}",
            f"Records checked: {self.records_checked}  "
            f"changed: {self.records_changed}  "
            f"written: {self.records_written}  "
            f"blanked: {self.records_deleted}",
        ]
        if self.nulls_replaced:
            lines.append(f"0x00 characters replaced: {self.nulls_replaced}")
        if self.io_errors:
            lines.append(f"I/O errors: {self.read_errors} read, "
                         f"{self.write_errors} write")
        if self.hook_error:
            lines.append(f"Re-index failed: {self.hook_error}")
        elif self.hook_ran:
            lines.append("Re-index completed")
        if not self.update and self.records_changed:
            lines.append("(Report only: no changes written. Use -u to update.)")
        return "\n".join(lines)


class RunCoordinator:
    """Run one repair pass over a data file."""

    def __init__(self, config: RepairConfig,
                 hook: Optional[ReindexHook] = None,
                 source: Optional[PositionSource] = None):
        self.config = config.validate()
        self.policy = config.policy
        self.hook = hook
        self.source = source or build_position_source(config)
        self.stats = RunStatistics(
            data_file=config.data_file,
            mode=config.mode_name,
            update=config.update,
        )

    def run(self) -> RunStatistics:
        """
        Process every offset the source yields.

        Raises OffsetListError / FileOpenError before any record is read.
        """
        cfg = self.config
        self.source.validate()

        self.stats.start_time = time.time()
        with RecordFile.open(cfg.data_file, writable=cfg.update) as rf:
            if self.source.stops_on_short_read:
                records, trailing = record_count(rf.size(), cfg.record_size)
                logger.info("Scanning %d record(s) of %d bytes (%s mode)",
                            records, cfg.record_size, self.policy.name)
                if trailing:
                    logger.warning(
                        "File size is not a multiple of %d; last %d byte(s) "
                        "do not form a full record", cfg.record_size, trailing)
            self._process(rf)
        self.stats.end_time = time.time()

        logger.info("Number of invalid characters processed: %d",
                    self.stats.invalid_bytes)

        if self.hook is not None:
            self._run_hook()
        return self.stats

    def _process(self, rf: RecordFile) -> None:
        cfg = self.config
        for offset in self.source:
            if not self.source.stops_on_short_read:
                logger.info("Record position: %d", offset)
                if offset % cfg.record_size:
                    logger.warning(
                        "Position %d is not a multiple of record size %d",
                        offset, cfg.record_size)

            outcome = repair_record(
                rf, offset, cfg.record_size, self.policy,
                commit=cfg.update,
                delete_null_threshold=cfg.delete_null_threshold,
            )

            err = outcome.error
            if isinstance(err, ShortReadError) and err.eof and \
                    self.source.stops_on_short_read:
                if err.actual > 0:
                    logger.error("ERROR: %s", err)
                    self.stats.record(outcome)
                else:
                    logger.debug("End of file at offset %d", offset)
                break

            if err is not None:
                logger.error("ERROR: %s", err)
            self.stats.record(outcome)

    def _run_hook(self) -> None:
        try:
            self.hook.trigger(self.config.data_file)
            self.stats.hook_ran = True
        except ExternalHookError as e:
            logger.error("Re-index failed: %s", e)
            self.stats.hook_error = str(e)


def run_repair(config: RepairConfig,
               hook: Optional[ReindexHook] = None) -> RunStatistics:
    """Validate `config` and run it (in parallel when workers > 1)."""
    config.validate()
    if config.workers > 1:
        from .parallel import run_parallel
        return run_parallel(config, hook)
    return RunCoordinator(config, hook).run()
