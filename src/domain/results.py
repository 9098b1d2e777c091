"""
Typed operation results.

Orchestration calls return ``Ok(value)`` or ``Err(kind, message)``
instead of raising, so callers can branch on the error kind rather
than on message text.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from .exceptions import OnboardingError
from .ports import ConflictKind, ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def success(self) -> bool:
        return True

    def to_envelope(self) -> dict[str, Any]:
        return {"success": True, "error": None, "errorKind": None, "data": _plain(self.value)}


@dataclass(frozen=True)
class Err:
    """Failed outcome with a machine-readable kind and a user-facing message."""

    kind: ErrorKind
    message: str
    conflict: ConflictKind | None = None

    @property
    def success(self) -> bool:
        return False

    def to_envelope(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": self.message,
            "errorKind": self.kind.value,
            "data": None,
        }

    @classmethod
    def from_exception(cls, exc: OnboardingError) -> "Err":
        return cls(kind=exc.kind, message=exc.message, conflict=getattr(exc, "conflict", None))


Result = Union[Ok[T], Err]


def _plain(value: Any) -> Any:
    # Domain values expose to_dict(); everything else is passed through
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value
