"""Nomic error taxonomy.

Each error carries the HTTP status it maps to. User-facing command problems
(bad usage, no active proposal) are not errors; they are normal responses.
"""

from __future__ import annotations


class NomicError(Exception):
    """Base exception for request-level failures."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthError(NomicError):
    """Bad, missing or stale request signature."""

    status_code = 401

    def __init__(self, message: str = "Invalid signature") -> None:
        super().__init__(message)


class MethodError(NomicError):
    """HTTP verb not supported by the endpoint."""

    status_code = 405

    def __init__(self, method: str = "") -> None:
        super().__init__("Method not allowed")
        self.method = method


class StoreError(NomicError):
    """State storage unavailable or holding unreadable data."""

    status_code = 500


class BroadcastDeliveryError(NomicError):
    """Public broadcast to the response_url could not be delivered."""

    status_code = 502

    def __init__(self, message: str, response_url: str = "") -> None:
        super().__init__(message)
        self.response_url = response_url
