"""Exception taxonomy for the history tracker.

Only construction-time problems and (opt-in) strict-mode backend failures
ever reach callers; everything else is best-effort.
"""
from __future__ import annotations


class TrackerError(Exception):
    """Base class for tracker errors."""


class InvalidKeyPartError(TrackerError, ValueError):
    """A key part was empty while building a collection key."""


class BackendUnavailableError(TrackerError):
    """The remote store could not serve a request (strict mode only)."""

    def __init__(self, op: str, key: str, err: BaseException):
        super().__init__(f"{op} on {key!r} failed: {err}")
        self.op = op
        self.key = key
