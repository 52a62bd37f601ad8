"""
Error taxonomy for proximity-monitor.

Only ScannerFailure crosses the aggregation boundary. Sampler-level
problems (CommandError inside a sampler) degrade to absent data and are
never re-raised to the scheduler or subscribers.
"""


class ProximityError(Exception):
    """Base class for all proximity-monitor errors."""


class ScannerFailure(ProximityError):
    """The external signal scanner failed, timed out, or emitted bad output."""


class CommandError(ProximityError):
    """An external command could not be run to completion."""

    def __init__(self, message: str, returncode=None, stdout: str = ''):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout


class InvalidAddressError(ProximityError, ValueError):
    """An on-demand query was given something other than an IPv4 literal."""
