# src/tasknote/core/errors.py

"""
Error taxonomy shared by the dialogue engine, services and stores.

Every error carries a short human-readable `user_message`. Connectors show only
that text; internal details stay in the logs.
"""

from __future__ import annotations


class TaskNoteError(Exception):
    """Base class for all expected application errors."""

    default_message = "Something went wrong."

    def __init__(self, user_message: str | None = None) -> None:
        self.user_message = user_message or self.default_message
        super().__init__(self.user_message)


class ValidationError(TaskNoteError):
    default_message = "Invalid input."


class UnrecognizedTimeFormat(ValidationError):
    default_message = "Unsupported time format."


class NotFoundError(TaskNoteError):
    default_message = "Not found."


class OwnershipError(TaskNoteError):
    default_message = "This item belongs to another user."


class PersistenceError(TaskNoteError):
    default_message = "Storage error, please try again later."
