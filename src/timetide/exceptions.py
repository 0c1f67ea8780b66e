"""Failure kinds surfaced to callers of the session and progress services."""

from __future__ import annotations


class TimetideError(Exception):
    """Base class for all service-level failures."""


class NotFound(TimetideError):
    """The user or session does not exist (or belongs to another user)."""

    def __init__(self, kind: str, identifier: object) -> None:
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class StoreUnavailable(TimetideError):
    """A read or write against the database failed. Nothing was committed."""


class ConflictRetriesExhausted(TimetideError):
    """Concurrent updates kept winning the per-user race; the caller may retry."""

    def __init__(self, operation: str, user_id: int, attempts: int) -> None:
        super().__init__(f"{operation} for user {user_id} gave up after {attempts} conflicting attempts")
        self.operation = operation
        self.user_id = user_id
        self.attempts = attempts
