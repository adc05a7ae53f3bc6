"""Exceptions for stats acquisition, persistence and lookups.

Provider errors are raised inside the adapters and converted into structured
results before they reach callers. Persistence and lookup errors propagate to
the operation that triggered them.
"""

from __future__ import annotations

from typing import Optional


class StatsError(Exception):
    """Base exception with an optional user-facing message."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


class ProviderError(StatsError):
    """A provider call did not produce usable data."""


class ProviderUnreachable(ProviderError):
    """Network failure or timeout talking to a provider."""

    def __init__(self, endpoint: str, details: str, label: Optional[str] = None):
        super().__init__(
            f"{label or endpoint} unreachable: {details}",
            "Provider temporarily unavailable",
        )
        self.endpoint = endpoint


class ProviderRejected(ProviderError):
    """The provider answered with an explicit error payload."""

    def __init__(self, endpoint: str, details: str):
        super().__init__(details, f"Provider rejected the request: {details}")
        self.endpoint = endpoint


class AllEndpointsFailed(ProviderError):
    """Every mirror endpoint failed."""

    def __init__(self, errors: list[str]):
        super().__init__(f"All LeetCode APIs failed. Errors: {'; '.join(errors)}")
        self.errors = list(errors)


class UnsupportedOperation(ProviderError):
    """The accurate method cannot be resolved for this account."""


class PersistenceFailure(StatsError):
    """The room or user store could not write a document."""

    def __init__(self, operation: str, details: str = ""):
        super().__init__(
            f"Persistence error during {operation}: {details}",
            "Could not save stats. Please try again later.",
        )
        self.operation = operation


class RoomNotFound(StatsError, LookupError):
    def __init__(self, room_id: str):
        super().__init__(f"Room '{room_id}' not found", "Room not found")
        self.room_id = room_id


class ParticipantNotFound(StatsError, LookupError):
    def __init__(self, room_id: str, user_id: str):
        super().__init__(
            f"User '{user_id}' is not a participant in room '{room_id}'",
            "User is not a participant in this room",
        )


class UserNotFound(StatsError, LookupError):
    def __init__(self, user_id: str):
        super().__init__(f"User '{user_id}' not found", "User not found")
