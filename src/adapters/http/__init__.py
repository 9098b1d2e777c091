"""HTTP backend adapter."""

from .client import BackendClient

__all__ = ["BackendClient"]
