# lease_table.py
import csv
from collections import namedtuple

from errors import ConfigurationError

LeaseEntry = namedtuple("LeaseEntry", ["short_lease", "long_lease", "short_probability"])


def _parse_hex(text, what):
    try:
        return int(text.strip(), 16)
    except ValueError:
        raise ConfigurationError(f"cannot parse {what} {text!r} as hex") from None


def _parse_prob(text):
    try:
        return float(text.strip())
    except ValueError:
        raise ConfigurationError(f"cannot parse short probability {text!r}") from None


def make_entry(short_lease, long_lease, short_probability):
    if short_lease < 1 or long_lease < 1:
        raise ConfigurationError(
            f"leases must be >= 1 (short={short_lease}, long={long_lease})"
        )
    if not 0.0 <= short_probability <= 1.0:
        raise ConfigurationError(f"short probability {short_probability} is outside [0, 1]")
    return LeaseEntry(int(short_lease), int(long_lease), float(short_probability))


def assign_lease(entry, rng):
    """
    One Bernoulli trial: short lease with probability `short_probability`,
    long lease otherwise. Called again for every access.
    """
    if rng.random() < entry.short_probability:
        return entry.short_lease
    return entry.long_lease


class LeaseTable:
    """
    Read-only mapping of reference id -> LeaseEntry.
    """

    def __init__(self, entries=None):
        self._table = {}
        for ref, entry in (entries or {}).items():
            self._table[int(ref)] = make_entry(*entry)

    def __len__(self):
        return len(self._table)

    def __contains__(self, reference_id):
        return reference_id in self._table

    def lookup(self, reference_id):
        return self._table.get(reference_id)

    def query(self, reference_id):
        entry = self._table.get(reference_id)
        if entry is None:
            raise ConfigurationError(
                f"reference id {reference_id:#x} is not in the lease table"
            )
        return entry

    def assign(self, reference_id, rng):
        return assign_lease(self.query(reference_id), rng)

    @classmethod
    def from_txt(cls, path):
        """
        Text lease table: two header lines, then rows of
        `phase, reference, short_lease, long_lease, short_probability`
        with everything but the probability in hex.
        """
        table = cls()
        line_no = 0
        with open(path, "r", encoding="utf-8") as f:
            try:
                for line_no, line in enumerate(f, start=1):
                    if line_no <= 2 or not line.strip():
                        continue
                    parts = line.split(",")
                    if len(parts) < 5:
                        raise ConfigurationError(f"{path}:{line_no}: expected 5 fields, got {len(parts)}")
                    try:
                        ref = _parse_hex(parts[1], "reference")
                        table._table[ref] = make_entry(
                            _parse_hex(parts[2], "short lease"),
                            _parse_hex(parts[3], "long lease"),
                            _parse_prob(parts[4]),
                        )
                    except ConfigurationError as exc:
                        raise ConfigurationError(f"{path}:{line_no}: {exc}") from None
            except UnicodeDecodeError as exc:
                raise ConfigurationError(f"{path}: unreadable after line {line_no}: {exc}") from exc
        return table

    @classmethod
    def from_csv(cls, path):
        """CSV lease table with a header row: reference, short, long, probability."""
        table = cls()
        with open(path, "r", newline="", encoding="utf-8") as f:
            reader = csv.reader(f)
            try:
                next(reader, None)
                for row in reader:
                    if not row or not "".join(row).strip():
                        continue
                    line_no = reader.line_num
                    if len(row) < 4:
                        raise ConfigurationError(f"{path}:{line_no}: expected 4 fields, got {len(row)}")
                    try:
                        ref = _parse_hex(row[0], "reference")
                        table._table[ref] = make_entry(
                            _parse_hex(row[1], "short lease"),
                            _parse_hex(row[2], "long lease"),
                            _parse_prob(row[3]),
                        )
                    except ConfigurationError as exc:
                        raise ConfigurationError(f"{path}:{line_no}: {exc}") from None
            except (csv.Error, UnicodeDecodeError) as exc:
                raise ConfigurationError(f"{path}:{reader.line_num}: {exc}") from exc
        return table


def load_lease_table(path, fmt=None):
    if fmt is None:
        fmt = "csv" if str(path).endswith(".csv") else "txt"
    if fmt == "csv":
        return LeaseTable.from_csv(path)
    if fmt == "txt":
        return LeaseTable.from_txt(path)
    raise ConfigurationError(f"unknown lease table format {fmt!r}")
