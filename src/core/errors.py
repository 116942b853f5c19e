"""Core error types shared by the reconciler and adapters."""

from __future__ import annotations


class EntityResolutionError(RuntimeError):
    """Raised when a tracked channel name does not resolve to a user id."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Could not resolve channel {name!r}")
        self.name = name


class MessageNotFoundError(RuntimeError):
    """Raised by dispatchers when the target message no longer exists."""

    def __init__(self, destination_id: int, message_id: int) -> None:
        super().__init__(f"Message {message_id} not found in chat {destination_id}")
        self.destination_id = destination_id
        self.message_id = message_id


class StateStoreError(RuntimeError):
    """Raised when the persisted snapshot cannot be read."""
