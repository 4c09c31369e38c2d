"""Error types raised by the API client, the controller and the dashboard."""

from __future__ import annotations

from typing import Any


class DashboardError(Exception):
    """Base class for every recoverable dashboard failure."""

    code = "dashboard_error"


class TransportError(DashboardError):
    """The product API could not be reached (DNS, connect, timeout...)."""

    code = "transport_error"


class ApiStatusError(DashboardError):
    """The product API answered with a non-success status."""

    code = "api_error"

    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload

    def __str__(self) -> str:
        return f"HTTP {self.status_code}: {self.message}"


class AuthenticationRequired(ApiStatusError):
    """Missing, expired or rejected bearer token."""

    code = "authentication_required"

    def __init__(self, message: str = "Sign in to continue.", status_code: int = 401):
        super().__init__(status_code, message)


class MissingParametersError(DashboardError, ValueError):
    code = "missing_parameters"


class EmptySelectionError(DashboardError, ValueError):
    code = "empty_selection"


class ConfirmationRequired(DashboardError):
    code = "confirmation_required"


class InvalidCredentialsError(DashboardError, ValueError):
    """Login or signup was refused by the product API."""

    code = "invalid_credentials"
