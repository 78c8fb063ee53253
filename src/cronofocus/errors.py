# src/cronofocus/errors.py

"""
Error taxonomy shared by the store, entity operations and backup code.

Nothing here retries: every error is surfaced to the caller, which decides.
"""

from __future__ import annotations


class CronoFocusError(Exception):
    """Base class for every error raised on purpose by this package."""


class StoreUnavailable(CronoFocusError):
    """The local store could not be opened (permission denied, corrupt file, ...)."""


class ConstraintViolation(CronoFocusError):
    """A primary key or unique index collision on insert/update."""

    def __init__(self, message: str, *, collection: str | None = None) -> None:
        super().__init__(message)
        self.collection = collection


class ValidationError(CronoFocusError):
    """Malformed input rejected before it reaches the store."""


class IllegalTransition(ValidationError):
    """A task status change that the transition table does not allow."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move task from {current!r} to {target!r}")
        self.current = current
        self.target = target


class NotFound(CronoFocusError):
    """An entity operation expected a record that is absent."""

    def __init__(self, collection: str, key: object) -> None:
        super().__init__(f"{collection} record not found: {key!r}")
        self.collection = collection
        self.key = key


class ImportFormatError(CronoFocusError):
    """A backup snapshot is unreadable, or its metadata is missing or mismatched."""


# ---- precondition violations (programming errors) ----


class UnknownCollection(CronoFocusError, KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown collection: {self.name!r}"


class ScopeError(CronoFocusError, RuntimeError):
    """A transaction touched a collection outside its scope, or wrote in read mode."""
