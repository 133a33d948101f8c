"""
Test the position sources: single offset, offset list (including the
abort-on-bad-line rule), chaining, and sequential record walking.
"""
import os
import tempfile
import shutil
from itertools import islice

from recordfix.config import RepairConfig
from recordfix.errors import FileOpenError, OffsetListError
from recordfix.positions import (
    ChainedSource, ListSource, SequentialSource, SingleSource,
    build_position_source, parse_offset,
)


def main():
    print("=" * 60)
    print("  Position Sources — Test Suite")
    print("=" * 60)
    test_single_source()
    test_parse_offset()
    test_list_source_order()
    test_list_source_bad_line()
    test_list_source_missing_file()
    test_chained_source()
    test_sequential_source()
    test_build_position_source()
    print("  ALL TESTS PASSED ✅")


def test_single_source():
    print("── Test: single source ──")
    assert list(SingleSource(1290)) == [1290]
    print("  ✅ single source: PASS")


def test_parse_offset():
    print("── Test: parse_offset ──")
    assert parse_offset("10") == 10
    assert parse_offset(" 20 \r") == 20
    assert parse_offset("0") == 0
    for bad in ("XYZ", "", "-5", "1.5", "0x10"):
        assert parse_offset(bad) is None, bad
    print("  ✅ parse_offset: PASS")


def test_list_source_order():
    """File order, duplicates kept."""
    print("── Test: list order ──")
    tmpdir = tempfile.mkdtemp(prefix="test_list_")
    try:
        path = os.path.join(tmpdir, "positions.txt")
        with open(path, "w") as f:
            f.write("30\n10\n30\n0\n")
        src = ListSource(path)
        src.validate()
        assert list(src) == [30, 10, 30, 0]
        print("  ✅ list order: PASS")
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


def test_list_source_bad_line():
    """'10\\nXYZ\\n20' fails validation before anything is yielded."""
    print("── Test: list bad line ──")
    tmpdir = tempfile.mkdtemp(prefix="test_list_bad_")
    try:
        path = os.path.join(tmpdir, "positions.txt")
        with open(path, "w") as f:
            f.write("10\nXYZ\n20")
        src = ListSource(path)
        try:
            src.validate()
        except OffsetListError as e:
            assert e.line_number == 2
            assert e.text == "XYZ"
            assert "XYZ" in str(e)
        else:
            raise AssertionError("bad line accepted")

        # Iterating without validate() raises before the first offset too
        yielded = []
        try:
            for off in ListSource(path):
                yielded.append(off)
        except OffsetListError:
            pass
        assert yielded == []
        print("  ✅ list bad line: PASS")
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


def test_list_source_missing_file():
    print("── Test: list missing file ──")
    src = ListSource("/nonexistent/positions.txt")
    try:
        src.validate()
    except FileOpenError as e:
        assert e.path == "/nonexistent/positions.txt"
    else:
        raise AssertionError("missing list accepted")
    print("  ✅ list missing file: PASS")


def test_chained_source():
    print("── Test: chained source ──")
    tmpdir = tempfile.mkdtemp(prefix="test_chain_")
    try:
        path = os.path.join(tmpdir, "positions.txt")
        with open(path, "w") as f:
            f.write("20\n40\n")
        src = ChainedSource(SingleSource(0), ListSource(path))
        src.validate()
        assert list(src) == [0, 20, 40]
        assert "position 0" in src.describe()
        print("  ✅ chained source: PASS")
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


def test_sequential_source():
    print("── Test: sequential source ──")
    src = SequentialSource(10)
    assert src.stops_on_short_read
    assert list(islice(src, 4)) == [0, 10, 20, 30]
    assert list(SequentialSource(10, 20, 50)) == [20, 30, 40]
    assert list(SequentialSource(10, 0, 25)) == [0, 10, 20]
    try:
        SequentialSource(0)
    except ValueError:
        pass
    else:
        raise AssertionError("record size 0 accepted")
    print("  ✅ sequential source: PASS")


def test_build_position_source():
    print("── Test: build_position_source ──")
    base = RepairConfig(data_file="x", record_size=10)
    assert isinstance(
        build_position_source(base.with_changes(zero_detection=True)),
        SequentialSource)
    assert isinstance(
        build_position_source(base.with_changes(position=5)), SingleSource)
    assert isinstance(
        build_position_source(base.with_changes(offset_list="p.txt")),
        ListSource)
    chained = build_position_source(
        base.with_changes(position=5, offset_list="p.txt"))
    assert isinstance(chained, ChainedSource)
    assert isinstance(chained.sources[0], SingleSource)
    print("  ✅ build_position_source: PASS")


if __name__ == "__main__":
    main()
