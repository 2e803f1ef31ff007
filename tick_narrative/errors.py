"""Error taxonomy and the Outcome result value."""
from __future__ import annotations

from dataclasses import dataclass


class NarrativeError(Exception):
    """Base class for narrative engine errors."""


class AuthoringError(NarrativeError):
    """A malformed event definition, found when the catalogue is loaded."""

    def __init__(self, event_id: str, reason: str) -> None:
        self.event_id = event_id
        self.reason = reason
        super().__init__(f"{event_id}: {reason}")


class InsufficientResources(NarrativeError):
    """A choice requirement could not be paid."""

    def __init__(self, kind: str, required: int, available: int) -> None:
        self.kind = kind
        self.required = required
        self.available = available
        super().__init__(f"need {required} {kind}, have {available}")


class UnknownChoice(NarrativeError, ValueError):
    """A choice id outside the pending event's choices."""

    def __init__(self, event_id: str, choice_id: int) -> None:
        self.event_id = event_id
        self.choice_id = choice_id
        super().__init__(f"unknown choice {choice_id} for event {event_id!r}")


class CollaboratorUnavailable(NarrativeError):
    """A collaborator the operation needs was not supplied."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"collaborator {name!r} is not available")


class SnapshotError(NarrativeError):
    """Raised on restore failures (version mismatch, malformed data)."""


class EngineStateError(NarrativeError):
    """Raised when the host drives the engine out of order."""


@dataclass(frozen=True)
class Outcome:
    """Structured result of an operation that must not halt the day pipeline."""

    ok: bool
    error: NarrativeError | None = None
    detail: str = ""

    @classmethod
    def success(cls, detail: str = "") -> Outcome:
        return cls(ok=True, detail=detail)

    @classmethod
    def skipped(cls, detail: str) -> Outcome:
        return cls(ok=True, detail=f"skipped: {detail}")

    @classmethod
    def failure(cls, error: NarrativeError) -> Outcome:
        return cls(ok=False, error=error, detail=str(error))

    def __bool__(self) -> bool:
        return self.ok
