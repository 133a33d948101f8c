# recordfix — Invalid Character Repair for Fixed-Length Record Files
# Reports and corrects non-printable bytes and stray 0x00s in place.
#
# Architecture (bottom → top):
#   errors       — Fatal vs. per-record error taxonomy
#   classifier   — Pure byte classification under a detection policy
#   record_io    — Owned file handle: read/write one record at an offset
#   engine       — Repair one record, write back only if it changed
#   positions    — Offset sources (single, list, sequential)
#   config       — Immutable, validated run configuration
#   reindex      — Post-run ITEST / re-index hook
#   coordinator  — Drive positions through the engine, collect statistics
#   parallel     — Multiprocessing full-file scan on record-aligned ranges
#   cli          — argparse front end

__version__ = "1.1.0"

from .classifier import DetectionPolicy, Verdict, classify
from .config import RepairConfig
from .coordinator import RunCoordinator, RunStatistics, run_repair
from .engine import RepairOutcome, repair_record
from .errors import (
    ConfigurationError,
    ExternalHookError,
    FileOpenError,
    OffsetListError,
    RecordFixError,
    SeekError,
    ShortReadError,
    ShortWriteError,
    WriteError,
)
