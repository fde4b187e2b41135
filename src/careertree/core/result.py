"""
Result type for explicit success/failure handling.

Validators in careertree are pure functions.  Rather than raising on the
first problem, they return ``Ok(value)`` or ``Err(error)`` so callers can
inspect failures or turn them into exceptions with :meth:`unwrap` at the
boundary where raising is the right behavior.

Manifesto:
    - **Explicit outcomes:** The return type says a call can fail
    - **Raise at the edge:** Pure code returns Err, service code unwraps
    - **Typed errors:** The Err payload is always an exception instance

Examples:
    >>> Ok(3).unwrap()
    3
    >>> Err(ValueError("bad")).is_err()
    True
    >>> Err(ValueError("bad")).to_dict()["error"]["message"]
    'bad'

Tags:
    result-type, error-handling, functional, careertree
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from careertree.core.errors import CareerTreeError


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result containing an exception."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when raising is the intended behavior."""
        raise self.error

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, CareerTreeError):
            return {"ok": False, "error": self.error.to_dict()}
        return {
            "ok": False,
            "error": {
                "error_type": type(self.error).__name__,
                "message": str(self.error),
            },
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


__all__ = ["Ok", "Err", "Result"]
