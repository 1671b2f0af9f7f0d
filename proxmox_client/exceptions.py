"""Exception types raised by the Proxmox VE client."""
from typing import Any, Dict, Optional


class ProxmoxError(Exception):
    """Base exception for all client errors."""


class ResponseErrorMixin:
    """Keeps the details of the response that caused an error.

    :param message: Human readable description
    :param status_code: HTTP status code, None when no response was received
    :param body: Raw response body text
    :param errors: Field errors from the response envelope
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None,
                 errors: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.errors = errors or {}


class ProxmoxAPIError(ResponseErrorMixin, ProxmoxError):
    """The API answered with an error, or could not be reached at all."""


class ProxmoxAuthError(ResponseErrorMixin, ProxmoxError):
    """Credentials were rejected or no usable credentials were configured.

    Not a ProxmoxAPIError: retrying the same request cannot help, new
    credentials are needed.
    """


class ProxmoxConnectionError(ProxmoxAPIError):
    """The request failed before a response was received."""


class TaskTimeoutError(ProxmoxError, TimeoutError):
    """A task did not finish within the allowed time."""

    def __init__(self, upid: str, timeout: float):
        super().__init__(f"Task {upid} timed out after {timeout} seconds")
        self.upid = upid
        self.timeout = timeout


class ProxmoxValidationError(ProxmoxError, ValueError):
    """A caller supplied argument is missing or malformed."""


class ProxmoxConfigError(ProxmoxError, ValueError):
    """The connection configuration could not be loaded."""
