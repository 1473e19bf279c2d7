from __future__ import annotations


class InputError(ValueError):
    """Bad or missing data. Never retried."""


class TransientBackendError(RuntimeError):
    """Network or backend failure. Retried a bounded number of times by the server."""


class UserActionConflict(RuntimeError):
    """A user action that the current state does not allow, e.g. changing language mid-session."""
