"""Failure types surfaced by the debate engine.

Not-found is never an exception: lookups return ``None``.
"""


class DebateError(Exception):
    """Base for all engine failures."""


class ValidationError(DebateError):
    """A precondition failed. Raised before any side effect."""


class ServiceFailure(DebateError):
    """An external service call failed or returned an invalid shape."""

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f"[{service}] {message}")


class StaleWriteError(DebateError):
    """A write would overwrite state that must stay fixed (e.g. a share id)."""


class StoreError(DebateError):
    """A stored record could not be read back."""
