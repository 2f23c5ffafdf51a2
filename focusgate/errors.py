from __future__ import annotations


class FocusGateError(Exception):
    """Base class for errors raised by FocusGate."""


class InvalidConfigError(FocusGateError, ValueError):
    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class PersistenceError(FocusGateError):
    """Reading or writing the state store failed."""


class NotificationError(FocusGateError):
    """The notification or speech sink could not deliver a message."""
