"""
Run configuration — built once from the command line, never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .classifier import (
    DEFAULT_FILL_VALUE,
    DELETE_NULL_THRESHOLD,
    VALID_END,
    VALID_START,
    DetectionPolicy,
)
from .errors import ConfigurationError


@dataclass(frozen=True)
class RepairConfig:
    """Everything a repair run needs to know."""
    data_file: str = ""
    record_size: int = 0
    position: Optional[int] = None
    offset_list: Optional[str] = None
    full_detection: bool = False
    zero_detection: bool = False
    fill_value: int = DEFAULT_FILL_VALUE
    update: bool = False
    verbose: bool = False
    reindex: bool = False
    delete_null_threshold: int = DELETE_NULL_THRESHOLD
    workers: int = 1

    @property
    def scan_mode(self) -> bool:
        return self.full_detection or self.zero_detection

    @property
    def positional_mode(self) -> bool:
        return self.position is not None or bool(self.offset_list)

    @property
    def mode_name(self) -> str:
        if self.scan_mode:
            return self.policy.name
        return "positional"

    @property
    def policy(self) -> DetectionPolicy:
        if self.scan_mode:
            return DetectionPolicy.scan_mode(
                self.full_detection, self.zero_detection, self.fill_value)
        return DetectionPolicy.positional_mode(self.fill_value)

    def validate(self) -> "RepairConfig":
        """Raise ConfigurationError on the first problem found."""
        if not self.data_file:
            raise ConfigurationError("No data file provided (-d)")
        if self.record_size < 1:
            raise ConfigurationError(
                f"Record size must be at least 1 (got {self.record_size})")
        if not (self.scan_mode or self.positional_mode):
            raise ConfigurationError(
                "One of -p position, -i input file, -x or -y is required")
        if self.scan_mode and self.positional_mode:
            raise ConfigurationError(
                "Full/zero detection cannot be combined with a record "
                "position or input file")
        if not VALID_START <= self.fill_value <= VALID_END:
            raise ConfigurationError(
                f"Invalid fill value specified: {self.fill_value} "
                f"(must be {VALID_START}-{VALID_END})")
        if self.position is not None and self.position < 0:
            raise ConfigurationError(
                f"Invalid record position: {self.position}")
        if self.delete_null_threshold < 1:
            raise ConfigurationError(
                f"Null threshold must be at least 1 "
                f"(got {self.delete_null_threshold})")
        if self.workers < 1:
            raise ConfigurationError(
                f"Worker count must be at least 1 (got {self.workers})")
        if self.workers > 1 and not self.scan_mode:
            raise ConfigurationError(
                "Parallel workers are only supported with -x / -y")
        return self

    def with_changes(self, **changes) -> "RepairConfig":
        return replace(self, **changes)

    @classmethod
    def from_args(cls, args) -> "RepairConfig":
        """Build and validate a config from an argparse Namespace."""
        return cls(
            data_file=args.data_file or "",
            record_size=args.length if args.length is not None else 0,
            position=args.position,
            offset_list=args.input_file or None,
            full_detection=args.full_detection,
            zero_detection=args.zero_detection,
            fill_value=args.fill,
            update=args.update,
            verbose=args.verbose,
            reindex=args.itest,
            delete_null_threshold=args.null_threshold,
            workers=args.workers,
        ).validate()
