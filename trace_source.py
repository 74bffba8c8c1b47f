# trace_source.py
import csv
from collections import namedtuple

from errors import TraceFormatError

AccessRecord = namedtuple("AccessRecord", ["address", "reference_id", "reuse_interval"])


def _hex_field(row, idx, name, source, line_no):
    try:
        value = int(row[idx].strip(), 16)
    except (IndexError, ValueError):
        raise TraceFormatError(f"bad {name} field in {row!r}", source, line_no) from None
    if value < 0:
        raise TraceFormatError(f"negative {name} in {row!r}", source, line_no)
    return value


def read_trace(stream, source=None):
    """
    Lazily yield AccessRecords from a trace CSV stream.

    The first row is a header. Columns are reference, reuse_interval, address,
    all hex. A row that can't be parsed raises TraceFormatError instead of
    ending the trace early.
    """
    reader = csv.reader(stream)
    try:
        next(reader, None)
        for row in reader:
            if not row or not "".join(row).strip():
                continue
            line_no = reader.line_num
            if len(row) < 3:
                raise TraceFormatError(f"expected 3 fields, got {len(row)}", source, line_no)
            yield AccessRecord(
                address=_hex_field(row, 2, "address", source, line_no),
                reference_id=_hex_field(row, 0, "reference", source, line_no),
                reuse_interval=_hex_field(row, 1, "reuse interval", source, line_no),
            )
    except (csv.Error, UnicodeDecodeError) as exc:
        # unreadable bytes or an oversized field, not the end of the trace
        raise TraceFormatError(str(exc), source, reader.line_num) from exc


class Trace:
    """
    Single-pass iterator over a trace file. The file is opened on the first
    next() and closed when the trace runs out (or on close()).
    """

    def __init__(self, path):
        self.path = path
        self._handle = None
        self._records = None
        self._done = False

    def __iter__(self):
        return self

    def __next__(self):
        if self._done:
            raise StopIteration
        if self._records is None:
            self._handle = open(self.path, "r", newline="", encoding="utf-8")
            self._records = read_trace(self._handle, source=self.path)
        try:
            return next(self._records)
        except StopIteration:
            self.close()
            raise
        except TraceFormatError:
            self.close()
            raise

    def close(self):
        self._done = True
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
