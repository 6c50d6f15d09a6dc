import pytest

from tracefile import (MalformedRecord, TraceRecord, TraceUnavailable, format_record,
                       open_trace, parse_record, read_trace)


@pytest.mark.parametrize("line, expected", [
    (" L 10,1\n", TraceRecord("L", 0x10, 1)),
    ("I 0400d7d4,8", TraceRecord("I", 0x400D7D4, 8)),
    (" M 7ff000388,4  \n", TraceRecord("M", 0x7FF000388, 4)),
    ("S ffffffffffffffff,8", TraceRecord("S", (1 << 64) - 1, 8)),
    (" X 10,1", TraceRecord("X", 0x10, 1)),
])
def test_parse_record(line, expected):
    assert parse_record(line) == expected


@pytest.mark.parametrize("line", [
    "L10,1",
    " L 10",
    " L 0x10,1",
    " L zz,1",
    " L 10,1 trailing",
    "==1234== valgrind banner",
    " L 10000000000000000,1",
])
def test_parse_record_rejects(line):
    with pytest.raises(MalformedRecord):
        parse_record(line)


def test_malformed_record_carries_line_number():
    with pytest.raises(MalformedRecord) as exc_info:
        parse_record("garbage\n", lineno=7)
    assert exc_info.value.lineno == 7
    assert "line 7" in str(exc_info.value)


def test_format_record():
    assert format_record(TraceRecord("M", 0x7FF0, 8)) == "M 7ff0,8"


def test_scanner_reads_records_in_order(tmp_path):
    path = tmp_path / "t.trace"
    path.write_text("I 400,4\n L 10,1\n\n M 20,1\n")
    with open_trace(path) as trace:
        records = list(trace)
    assert [r.kind for r in records] == ["I", "L", "M"]
    assert trace.records_read == 3
    assert trace.stopped_at is None


def test_scanner_stops_at_first_malformed_line(tmp_path):
    path = tmp_path / "t.trace"
    path.write_text(" L 10,1\n L 20,1\nnot a record\n L 30,1\n")
    with open_trace(path) as trace:
        records = list(trace)
    assert [r.address for r in records] == [0x10, 0x20]
    assert trace.stopped_at == 3
    assert isinstance(trace.error, MalformedRecord)


def test_missing_trace_is_unavailable(tmp_path):
    with pytest.raises(TraceUnavailable):
        open_trace(tmp_path / "nope.trace")
    assert issubclass(TraceUnavailable, OSError)


def test_directory_is_unavailable(tmp_path):
    with pytest.raises(TraceUnavailable):
        open_trace(tmp_path)


def test_read_trace_generator(tmp_path):
    path = tmp_path / "t.trace"
    path.write_text(" S 18,1\n")
    assert list(read_trace(path)) == [TraceRecord("S", 0x18, 1)]


def test_binary_garbage_stops_scanning(tmp_path):
    path = tmp_path / "t.trace"
    path.write_bytes(b" L 10,1\n\xff\xfe\x00\x01\n L 20,1\n")
    assert [r.address for r in read_trace(path)] == [0x10]
