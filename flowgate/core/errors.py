# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Custom exceptions for flowgate.

All exceptions inherit from FlowgateError for consistent error handling.
"""

import re
from typing import Optional


# Bearer tokens and OpenAI / Resend style keys
_SECRET_PATTERN = re.compile(r"(Bearer |\bsk-|\bre_)[A-Za-z0-9_\-]{8,}")


class FlowgateError(Exception):
    """Base exception for all flowgate errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        """
        Initialize flowgate error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code a caller may map this error to
            details: Additional error details
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for API response."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details
        }


class NotFoundError(FlowgateError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        """
        Initialize not found error.

        Args:
            resource: Type of resource (e.g., "Approval", "Node")
            identifier: Resource identifier
            details: Additional error details
        """
        message = f"{resource} not found: {identifier}"
        super().__init__(message, status_code=404, details=details)
        self.resource = resource
        self.identifier = identifier


class ValidationError(FlowgateError):
    """Validation failed."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=400, details=details)
        self.field = field


class ConfigurationError(FlowgateError):
    """Configuration error, e.g. a missing API key."""

    def __init__(self, message: str, config_key: Optional[str] = None, details: Optional[dict] = None):
        """
        Initialize configuration error.

        Args:
            message: Configuration error message
            config_key: Setting or environment variable that is missing/invalid
            details: Additional error details
        """
        super().__init__(message, status_code=500, details=details)
        self.config_key = config_key


class ExecutionError(FlowgateError):
    """Execution error."""

    def __init__(self, message: str, run_id: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=500, details=details)
        self.run_id = run_id


class ConflictError(FlowgateError):
    """Resource conflict."""

    def __init__(self, message: str, resource: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=409, details=details)
        self.resource = resource


class ServiceUnavailableError(FlowgateError):
    """An external service answered with an error or could not be reached."""

    def __init__(self, message: str, service: Optional[str] = None, details: Optional[dict] = None):
        """
        Initialize service unavailable error.

        Args:
            message: Error message
            service: Service that is unavailable (e.g. "resend", "firecrawl")
            details: Additional error details
        """
        super().__init__(message, status_code=503, details=details)
        self.service = service


# Error Message Utilities

def sanitize_error_for_user(error: Exception, include_type: bool = True) -> str:
    """
    Sanitize error messages for user display.

    Strips API keys that upstream clients sometimes echo back and
    truncates very long messages.

    Args:
        error: The exception to sanitize
        include_type: Whether to include exception type

    Returns:
        User-friendly error message without stack trace
    """
    error_msg = str(error).strip()
    error_msg = _SECRET_PATTERN.sub(lambda m: m.group(1) + "***", error_msg)

    # Limit message length
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."

    if include_type:
        return f"{error.__class__.__name__}: {error_msg}"

    return error_msg
