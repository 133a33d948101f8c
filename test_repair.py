"""
Test the record repair engine and record file I/O against small synthetic
data files: null patching, the whole-record blank threshold, report-only
vs. update mode, and short reads.
"""
import os
import tempfile
import shutil

from recordfix.classifier import DetectionPolicy, NULL_FILL_VALUE
from recordfix.engine import repair_record, repair_buffer
from recordfix.errors import FileOpenError, ShortReadError, ShortWriteError
from recordfix.record_io import RecordFile, record_count

ZERO = DetectionPolicy.scan_mode(full=False, zero=True)
FULL = DetectionPolicy.scan_mode(full=True, zero=False, fill_value=0x20)

# 10-byte record: nulls at offsets 2 and 5, terminator 0xFA at offset 9
SCENARIO = b"AB\x00CD\x00EFG\xFA"


def _write(tmpdir, name, data):
    path = os.path.join(tmpdir, name)
    with open(path, "wb") as f:
        f.write(data)
    return path


def _read(path):
    with open(path, "rb") as f:
        return f.read()


def main():
    print("=" * 60)
    print("  Record Repair Engine — Test Suite")
    print("=" * 60)
    test_zero_detection_scenario()
    test_full_detection_scenario()
    test_report_only_never_writes()
    test_threshold_boundary()
    test_clean_record_not_written()
    test_short_read()
    test_record_file_open_errors()
    test_short_write_reported()
    print("  ALL TESTS PASSED ✅")


def test_zero_detection_scenario():
    print("── Test: zero detection ──")
    tmpdir = tempfile.mkdtemp(prefix="test_zero_")
    try:
        path = _write(tmpdir, "data.txt", SCENARIO)
        with RecordFile.open(path, writable=True) as rf:
            out = repair_record(rf, 0, 10, ZERO, commit=True,
                                delete_null_threshold=5)
        assert out.ok
        assert out.bytes_changed == 2
        assert out.nulls_replaced == 2
        assert not out.whole_record_deleted
        assert out.written
        assert _read(path) == b"AB\xFFCD\xFFEFG\xFA"
        print("  ✅ zero detection: PASS")
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


def test_full_detection_scenario():
    """Nulls are not touched by full detection; other junk is."""
    print("── Test: full detection ──")
    repaired, changed, nulls, deleted = repair_buffer(SCENARIO, FULL)
    assert bytes(repaired) == SCENARIO
    assert changed == 0 and nulls == 0 and not deleted

    rec = b"AB\x00C\x1B\x00E\xFAG\xFA"
    repaired, changed, nulls, deleted = repair_buffer(rec, FULL)
    assert bytes(repaired) == b"AB\x00C \x00E G\xFA"
    assert changed == 2
    print("  ✅ full detection: PASS")


def test_report_only_never_writes():
    print("── Test: report only ──")
    tmpdir = tempfile.mkdtemp(prefix="test_report_")
    try:
        path = _write(tmpdir, "data.txt", SCENARIO)
        with RecordFile.open(path, writable=False) as rf:
            assert not rf.writable
            out = repair_record(rf, 0, 10, ZERO, commit=False)
        assert out.changed and not out.written
        assert out.bytes_changed == 2
        assert _read(path) == SCENARIO
        print("  ✅ report only: PASS")
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


def test_threshold_boundary():
    """Exactly T nulls are patched; T + 1 blanks the whole record."""
    print("── Test: null threshold ──")
    t = 5
    at_threshold = b"\x00" * t + b"ABCD" + b"\xFA"
    over = b"\x00" * (t + 1) + b"ABC" + b"\xFA"

    repaired, changed, nulls, deleted = repair_buffer(at_threshold, ZERO, t)
    assert not deleted and nulls == t
    assert bytes(repaired) == b"\xFF" * t + b"ABCD\xFA"

    repaired, changed, nulls, deleted = repair_buffer(over, ZERO, t)
    assert deleted and nulls == t + 1 and changed == t + 1
    assert bytes(repaired) == bytes([NULL_FILL_VALUE]) * 10

    # Full detection alone never blanks a record
    _, _, _, deleted = repair_buffer(over, FULL, t)
    assert not deleted
    print("  ✅ null threshold: PASS")


def test_clean_record_not_written():
    print("── Test: clean record ──")
    tmpdir = tempfile.mkdtemp(prefix="test_clean_")
    try:
        path = _write(tmpdir, "data.txt", b"ABCDEFGHI\xFA")
        before = os.stat(path).st_mtime_ns
        with RecordFile.open(path, writable=True) as rf:
            out = repair_record(rf, 0, 10, FULL, commit=True)
        assert out.ok and not out.changed and not out.written
        assert os.stat(path).st_mtime_ns == before
        assert "clean" in out.summary
        print("  ✅ clean record: PASS")
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


def test_short_read():
    print("── Test: short read ──")
    tmpdir = tempfile.mkdtemp(prefix="test_short_")
    try:
        path = _write(tmpdir, "data.txt", b"ABCDEFGHI\xFA" + b"XYZ")
        with RecordFile.open(path) as rf:
            out = repair_record(rf, 10, 10, FULL)
            assert isinstance(out.error, ShortReadError)
            assert out.error.actual == 3 and out.error.expected == 10
            assert out.error.eof
            assert out.error.record_index == 1
            assert "3 bytes of 10" in str(out.error)
            assert out.original is None and out.bytes_changed == 0

            out = repair_record(rf, 100, 10, FULL)
            assert isinstance(out.error, ShortReadError)
            assert out.error.actual == 0
        assert record_count(13, 10) == (1, 3)
        print("  ✅ short read: PASS")
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


def test_record_file_open_errors():
    print("── Test: open errors ──")
    tmpdir = tempfile.mkdtemp(prefix="test_open_")
    try:
        missing = os.path.join(tmpdir, "missing.txt")
        try:
            RecordFile.open(missing)
        except FileOpenError as e:
            assert e.path == missing
        else:
            raise AssertionError("missing file opened")
        print("  ✅ open errors: PASS")
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


class _ShortWriter:
    """File stand-in whose writes only ever land half the bytes."""

    def __init__(self, data):
        self.data = bytearray(data)
        self.pos = 0

    def seek(self, offset, whence=0):
        self.pos = offset
        return offset

    def read(self, n):
        chunk = bytes(self.data[self.pos:self.pos + n])
        self.pos += len(chunk)
        return chunk

    def write(self, data):
        return len(data) // 2

    def flush(self):
        pass

    def close(self):
        pass


def test_short_write_reported():
    print("── Test: short write ──")
    rf = RecordFile(_ShortWriter(SCENARIO), "mem", writable=True)
    out = repair_record(rf, 0, 10, ZERO, commit=True)
    assert isinstance(out.error, ShortWriteError)
    assert out.error.expected == 10 and out.error.actual == 5
    assert out.changed and not out.written
    print("  ✅ short write: PASS")


if __name__ == "__main__":
    main()
