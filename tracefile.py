# tracefile.py
import re
from typing import NamedTuple, Optional

# " L 10,1" -- optional leading space, kind, hex address, decimal size
RECORD_RE = re.compile(r"^\s*(\S)\s+([0-9a-fA-F]+),(\d+)\s*$")
MAX_ADDRESS = (1 << 64) - 1

INSTRUCTION = "I"
LOAD = "L"
STORE = "S"
MODIFY = "M"


class TraceUnavailable(OSError):
    """The trace file could not be opened or read."""


class MalformedRecord(ValueError):
    def __init__(self, line, lineno=None):
        self.line = line
        self.lineno = lineno
        where = f"line {lineno}: " if lineno is not None else ""
        super().__init__(f"{where}malformed trace record {line.rstrip()!r}")


class TraceRecord(NamedTuple):
    kind: str
    address: int
    size: int


def parse_record(line: str, lineno: Optional[int] = None) -> TraceRecord:
    m = RECORD_RE.match(line)
    if not m:
        raise MalformedRecord(line, lineno)
    kind, addr, size = m.groups()
    address = int(addr, 16)
    if address > MAX_ADDRESS:
        raise MalformedRecord(line, lineno)
    return TraceRecord(kind, address, int(size))


def format_record(record: TraceRecord) -> str:
    return f"{record.kind} {record.address:x},{record.size}"


class TraceScanner:
    """
    Iterates the records of a valgrind-style trace file in order.

    Scanning stops at the first line that is not a record; `stopped_at`
    and `error` say where and why. Blank lines are skipped.
    Use as a context manager so the file is closed on every exit path.
    """

    def __init__(self, path):
        self.path = str(path)
        self.records_read = 0
        self.stopped_at = None
        self.error = None
        try:
            self._fh = open(self.path, "r", errors="replace")
        except OSError as e:
            raise TraceUnavailable(f"cannot open trace {self.path}: {e.strerror or e}") from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __iter__(self):
        if self._fh is None:
            raise TraceUnavailable(f"trace {self.path} is closed")
        lineno = 0
        while True:
            try:
                line = self._fh.readline()
            except OSError as e:
                raise TraceUnavailable(f"cannot read trace {self.path}: {e}") from e
            if not line:
                return
            lineno += 1
            if not line.strip():
                continue
            try:
                record = parse_record(line, lineno)
            except MalformedRecord as e:
                self.stopped_at = lineno
                self.error = e
                return
            self.records_read += 1
            yield record


def open_trace(path) -> TraceScanner:
    return TraceScanner(path)


def read_trace(path):
    """Yield the well-formed prefix of a trace file."""
    with open_trace(path) as trace:
        yield from trace
