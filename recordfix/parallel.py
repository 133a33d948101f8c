"""
Parallel Full-File Scan — multiprocessing over record-aligned ranges.

Only for full/zero detection. Positional runs stay single-process.

Architecture:
  • Split the file into N non-overlapping ranges on record boundaries.
  • Each worker process opens its OWN handle and scans its range with the
    same coordinator/engine as a single-process run.
  • No two workers ever address the same [offset, offset + record_size)
    span, so writes never collide.
  • Results come back on a multiprocessing Queue and are merged.
  • The re-index hook runs once, in the parent, after every worker joined.
"""

from __future__ import annotations

import os
import time
import queue
import logging
import multiprocessing as mp
from dataclasses import dataclass
from typing import Optional

from .config import RepairConfig
from .coordinator import RunCoordinator, RunStatistics
from .errors import ConfigurationError, ExternalHookError
from .positions import SequentialSource
from .record_io import RecordFile
from .reindex import ReindexHook

logger = logging.getLogger(__name__)

# Below this many records per worker, extra processes are not worth it
MIN_RECORDS_PER_WORKER = 1024

# Seconds to wait on the result queue between dead-worker checks
RESULT_POLL_SECONDS = 1.0


@dataclass
class WorkerResult:
    """Result from a single worker process."""
    worker_id: int
    range_start: int
    range_end: int
    stats: Optional[RunStatistics] = None
    elapsed: float = 0.0
    error: str = ""


def split_record_ranges(
    file_size: int,
    record_size: int,
    num_workers: int,
    min_records: int = MIN_RECORDS_PER_WORKER,
) -> list[tuple[int, int]]:
    """
    Split [0, file_size) into at most `num_workers` record-aligned ranges.

    The last range runs to file_size so a trailing partial record is still
    seen (and reported) by exactly one worker.
    """
    if record_size < 1:
        raise ValueError("record_size must be >= 1")
    records = file_size // record_size
    if num_workers <= 1 or records == 0:
        return [(0, file_size)]

    num_workers = min(num_workers, max(1, records // max(1, min_records)))
    if num_workers <= 1:
        return [(0, file_size)]

    per_worker, extra = divmod(records, num_workers)
    ranges = []
    start = 0
    for i in range(num_workers):
        count = per_worker + (1 if i < extra else 0)
        end = start + count * record_size
        if i == num_workers - 1:
            end = file_size
        ranges.append((start, end))
        start = end
    return ranges


def _worker_scan(
    worker_id: int,
    config: RepairConfig,
    range_start: int,
    range_end: int,
    result_queue,
):
    """Worker process: scan one range and push a WorkerResult."""
    start_time = time.time()
    try:
        source = SequentialSource(config.record_size, range_start, range_end)
        stats = RunCoordinator(config.with_changes(workers=1),
                               source=source).run()
        result_queue.put(WorkerResult(
            worker_id=worker_id,
            range_start=range_start,
            range_end=range_end,
            stats=stats,
            elapsed=time.time() - start_time,
        ))
    except Exception as e:
        logger.error("Worker %d failed: %s", worker_id, e, exc_info=True)
        result_queue.put(WorkerResult(
            worker_id=worker_id,
            range_start=range_start,
            range_end=range_end,
            elapsed=time.time() - start_time,
            error=str(e),
        ))


def collect_worker_results(
    processes: list,
    ranges: list[tuple[int, int]],
    result_queue,
    poll: float = RESULT_POLL_SECONDS,
) -> list[WorkerResult]:
    """
    Gather one WorkerResult per process.

    A worker that dies without reporting gets an error result instead of
    blocking the parent forever.
    """
    results: dict[int, WorkerResult] = {}

    def drain(block: bool) -> bool:
        try:
            result = result_queue.get(timeout=poll) if block \
                else result_queue.get_nowait()
        except queue.Empty:
            return False
        results[result.worker_id] = result
        return True

    while len(results) < len(processes):
        if drain(block=True):
            continue
        for i, p in enumerate(processes):
            if i in results or p.is_alive():
                continue
            # It may have reported just before exiting
            while drain(block=False):
                pass
            if i in results:
                continue
            start, end = ranges[i]
            logger.error("Worker %d exited with code %s before reporting",
                         i, p.exitcode)
            results[i] = WorkerResult(
                worker_id=i,
                range_start=start,
                range_end=end,
                error=f"Worker exited with code {p.exitcode} "
                      f"before reporting",
            )
    return [results[i] for i in sorted(results)]


def run_parallel(config: RepairConfig,
                 hook: Optional[ReindexHook] = None,
                 min_records: int = MIN_RECORDS_PER_WORKER) -> RunStatistics:
    """Full/zero detection across `config.workers` processes."""
    config.validate()
    if not config.scan_mode:
        raise ConfigurationError(
            "Parallel workers are only supported with -x / -y")

    # Fail fast on an unopenable file before any process starts
    with RecordFile.open(config.data_file, writable=config.update) as rf:
        file_size = rf.size()

    ranges = split_record_ranges(file_size, config.record_size,
                                 config.workers, min_records)
    stats = RunStatistics(data_file=config.data_file,
                          mode=config.mode_name, update=config.update)
    stats.start_time = time.time()

    if len(ranges) == 1:
        logger.info("File too small to split; scanning in one process")
        single = RunCoordinator(config.with_changes(workers=1)).run()
        stats.merge(single)
    else:
        logger.info("Parallel scan: %d workers over %d bytes",
                    len(ranges), file_size)
        result_queue = mp.Queue()
        processes = [
            mp.Process(
                target=_worker_scan,
                args=(i, config, start, end, result_queue),
                daemon=True,
            )
            for i, (start, end) in enumerate(ranges)
        ]
        for p in processes:
            p.start()

        results = collect_worker_results(processes, ranges, result_queue)
        for p in processes:
            p.join()

        for result in sorted(results, key=lambda r: r.worker_id):
            if result.stats is None:
                stats.read_errors += 1
                stats.errors.append(
                    f"Worker {result.worker_id} "
                    f"[{result.range_start}, {result.range_end}): "
                    f"{result.error}")
                continue
            logger.info("Worker %d complete: %d records in %.1fs",
                        result.worker_id, result.stats.records_checked,
                        result.elapsed)
            stats.merge(result.stats)

    stats.end_time = time.time()
    logger.info("Number of invalid characters processed: %d",
                stats.invalid_bytes)

    if hook is not None:
        try:
            hook.trigger(config.data_file)
            stats.hook_ran = True
        except ExternalHookError as e:
            logger.error("Re-index failed: %s", e)
            stats.hook_error = str(e)
    return stats


def default_worker_count() -> int:
    return min(os.cpu_count() or 2, 8)
