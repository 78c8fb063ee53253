# src/cronofocus/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) the core consumes from collaborators.

Authentication owns password hashing; the store only needs a yes/no answer.
"""

from typing import Protocol


class PasswordVerifier(Protocol):
    """Checks a plain password against a stored hash."""

    def __call__(self, password: str, password_hash: str) -> bool: ...
