from __future__ import annotations


class CultureError(Exception):
    """Base class for culture engine errors."""


class UnknownConditionId(CultureError, KeyError):
    """A registry reference that is not (or no longer) registered."""

    def __init__(self, condition_id: str) -> None:
        super().__init__(condition_id)
        self.condition_id = condition_id

    def __str__(self) -> str:
        return f"Unknown condition id: {self.condition_id!r}"


class MalformedPersistedState(CultureError, ValueError):
    """Saved culture data is missing or has an invalid shape."""


class InternalInvariantViolation(CultureError, RuntimeError):
    """The pending/fulfilled partition is broken; the session cannot continue."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(
            f"Internal error: {detail}. "
            "Culture progress cannot be tracked safely; please reset the game."
        )
