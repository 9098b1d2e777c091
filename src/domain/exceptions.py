"""
Domain exceptions - Semantic error types for onboarding.

Adapters raise these; the orchestrators catch them at the operation
boundary and convert them into ``Err`` results, so nothing escapes
to the presentation layer.
"""

from .ports import ConflictKind, ErrorKind


class OnboardingError(Exception):
    """Base class for onboarding domain errors."""

    kind: ErrorKind = ErrorKind.BACKEND

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(OnboardingError):
    """Local validation rejected the input before any network call."""

    kind = ErrorKind.VALIDATION


class GatewayError(OnboardingError):
    """The backend (or the transport to it) reported a failure."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.BACKEND,
        conflict: ConflictKind | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.conflict = conflict
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        return self.kind == ErrorKind.TRANSIENT
