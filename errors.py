# errors.py


class SimulationError(Exception):
    """Base class for everything the simulator raises on purpose."""


class ConfigurationError(SimulationError, ValueError):
    """
    The run, the lease table and the trace don't agree with each other
    (unknown reference id, set index out of range, bad bit widths, ...).
    Never recoverable mid-run.
    """


class TraceFormatError(ConfigurationError):
    def __init__(self, message, source=None, line_no=None):
        self.source = source
        self.line_no = line_no
        where = ""
        if source is not None:
            where = f"{source}:{line_no}: " if line_no is not None else f"{source}: "
        super().__init__(where + message)


class InvariantViolation(SimulationError, AssertionError):
    """Counters no longer add up."""
