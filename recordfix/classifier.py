"""
Byte Classifier — decide whether a byte inside a record is valid.

Valid bytes are printable ASCII [32, 126]. The last byte of a record is the
terminator slot: 0xFA (record divider) or 0x0A (newline) there is always
left alone. The same values anywhere else in the record are corruption.

Detection policies:
  • positional — any invalid byte becomes the fill value
  • full       — non-null invalid bytes become the fill value
  • zero       — null bytes become 0xFF (deliberately blanked)
  • full+zero  — both of the above in one pass, except that 0xFF is left
    alone. Strict full-detection would rewrite it to the fill value, but
    0xFF is what zero-detection writes, so a second combined run would
    otherwise undo the first one's blanking before ITEST sees it.

The classifier is pure: no I/O, no counters. Null counting and the
whole-record wipe live in the engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional

from .errors import ConfigurationError

VALID_START = 32
VALID_END = 126

END_OF_RECORD = 0xFA
END_OF_RECORD_LF = 0x0A
TERMINATORS = (END_OF_RECORD, END_OF_RECORD_LF)

NULL_VALUE = 0x00
DEFAULT_FILL_VALUE = 32
NULL_FILL_VALUE = 0xFF

# More nulls than this in one record and the record is wiped to 0xFF
DELETE_NULL_THRESHOLD = 10

VALID = "valid"
REPLACE = "replace"
IGNORED = "ignored"


def is_valid_byte(value: int) -> bool:
    return VALID_START <= value <= VALID_END


@dataclass(frozen=True)
class DetectionPolicy:
    """Which invalid bytes get replaced, and with what."""
    full_detection: bool = False
    zero_detection: bool = False
    fill_value: int = DEFAULT_FILL_VALUE
    null_fill_value: int = NULL_FILL_VALUE
    terminators: tuple = TERMINATORS

    def __post_init__(self):
        if not is_valid_byte(self.fill_value):
            raise ConfigurationError(
                f"Invalid fill value specified: {self.fill_value} "
                f"(must be {VALID_START}-{VALID_END})")

    @classmethod
    def positional_mode(cls, fill_value: int = DEFAULT_FILL_VALUE):
        return cls(fill_value=fill_value)

    @classmethod
    def scan_mode(cls, full: bool, zero: bool,
                  fill_value: int = DEFAULT_FILL_VALUE):
        if not (full or zero):
            raise ConfigurationError(
                "Scan mode needs full-detection, zero-detection or both")
        return cls(full_detection=full, zero_detection=zero,
                   fill_value=fill_value)

    @property
    def positional(self) -> bool:
        return not (self.full_detection or self.zero_detection)

    @property
    def name(self) -> str:
        if self.positional:
            return "positional"
        if self.full_detection and self.zero_detection:
            return "full+zero"
        return "full" if self.full_detection else "zero"


class Verdict(NamedTuple):
    action: str
    replacement: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        return self.action == VALID

    @property
    def is_invalid(self) -> bool:
        return self.action != VALID

    @property
    def replaces(self) -> bool:
        return self.action == REPLACE

    def is_null_fill(self, policy: DetectionPolicy) -> bool:
        return (policy.zero_detection and self.action == REPLACE
                and self.replacement == policy.null_fill_value)


_VALID = Verdict(VALID)
_IGNORED = Verdict(IGNORED)


def classify(byte_value: int, offset: int, record_size: int,
             policy: DetectionPolicy) -> Verdict:
    """Classify one byte of a record.

    Args:
        byte_value: The byte (0-255).
        offset: Position of the byte inside the record.
        record_size: Record length, terminator included.
        policy: Active detection policy.

    Returns:
        Verdict: VALID, REPLACE with a replacement byte, or IGNORED for an
        invalid byte the policy does not touch.
    """
    if offset == record_size - 1 and byte_value in policy.terminators:
        return _VALID
    if VALID_START <= byte_value <= VALID_END:
        return _VALID

    if policy.positional:
        return Verdict(REPLACE, policy.fill_value)

    if byte_value == NULL_VALUE:
        if policy.zero_detection:
            return Verdict(REPLACE, policy.null_fill_value)
        return _IGNORED

    if policy.full_detection:
        # 0xFF is the zero-detection blank marker; leave it for ITEST
        if policy.zero_detection and byte_value == policy.null_fill_value:
            return _IGNORED
        return Verdict(REPLACE, policy.fill_value)
    return _IGNORED


def find_invalid(record: bytes, policy: DetectionPolicy) -> list[int]:
    """Offsets inside `record` that the policy would replace."""
    size = len(record)
    return [i for i, b in enumerate(record)
            if classify(b, i, size, policy).replaces]
