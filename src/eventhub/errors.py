"""Application error hierarchy.

Services raise these exceptions; the API layer renders them as JSON
responses of the form ``{"success": false, "message": ...}`` with the
status code carried by the exception class.
"""

from __future__ import annotations

from typing import Any


class EventHubError(Exception):
    """Base exception for errors that map onto an HTTP response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        reason: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.reason = reason
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "message": self.message}
        if self.reason:
            body["reason"] = self.reason
        if self.details:
            body["errors"] = self.details
        return body


class UnauthenticatedError(EventHubError):
    """No credential, or an invalid or expired one."""

    status_code = 401
    default_message = "Access denied. No token provided."


class InvalidCredentialsError(EventHubError):
    """Login failed. Deliberately does not say which part was wrong."""

    status_code = 401
    default_message = "Invalid email or password"


class BadRequestError(EventHubError):
    status_code = 400
    default_message = "Bad request"


class ConflictError(BadRequestError):
    """Duplicate email, username or favorite."""

    default_message = "Resource already exists"


class ForbiddenError(EventHubError):
    status_code = 403
    default_message = "You are not authorized to perform this action"


class NotFoundError(EventHubError):
    status_code = 404
    default_message = "Not found"


class ProvisioningFailedError(EventHubError):
    """OAuth account could not be created within the allowed attempts."""

    status_code = 500
    default_message = "Failed to create user after multiple retries"


class ServiceUnavailableError(EventHubError):
    status_code = 503
    default_message = "Service is not configured"


class WebhookError(EventHubError):
    """An external workflow webhook failed or answered with an error."""

    status_code = 502
    default_message = "Workflow webhook request failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        status: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_body = response_body
