"""
Custom Exception Hierarchy for es-sync

This module provides the exception hierarchy used by the resolution and
synchronization core, carrying error codes, context and the underlying cause
so that the host pipeline can report failures without losing detail.
"""

from typing import Any, Dict, Optional

import httpx


class EsSyncError(Exception):
    """
    Base exception class for all es-sync related errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions. ``str()`` yields the message verbatim;
    use ``describe()`` for the decorated form.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = dict(context or {})
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        return self.message

    def describe(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


# Configuration-related exceptions
class ConfigurationError(EsSyncError):
    """Raised when no usable configuration (e.g. endpoint) can be determined."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "INVALID_CONFIG")
        super().__init__(message, **kwargs)


class CredentialsError(ConfigurationError):
    """Raised when request-signing credentials cannot be obtained."""

    def __init__(
        self, message: str, profile: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = dict(kwargs.get("context") or {})
        if profile:
            context["profile"] = profile
        kwargs["context"] = context
        kwargs.setdefault("error_code", "AWS_CREDENTIALS_MISSING")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check ~/.aws/credentials or set AWS_PROFILE to a configured profile",
        )
        super().__init__(message, **kwargs)


class ResourceFileError(ConfigurationError):
    """Raised when a resource body file cannot be read or parsed."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        context = dict(kwargs.get("context") or {})
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "RESOURCE_FILE_UNREADABLE")
        super().__init__(message, **kwargs)


# Stack export lookups
class ExportLookupError(EsSyncError, LookupError):
    """Base class for CloudFormation export lookup errors."""

    pass


class ExportNotFoundError(ExportLookupError):
    """Raised when a named export was expected but the stack does not publish it."""

    def __init__(
        self, message: str, export_name: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = dict(kwargs.get("context") or {})
        if export_name:
            context["export_name"] = export_name
        kwargs["context"] = context
        kwargs.setdefault("error_code", "EXPORT_NOT_FOUND")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check that the stack has been deployed and exports the value",
        )
        super().__init__(message, **kwargs)


class ExportLookupTransportError(ExportLookupError):
    """Raised when the CloudFormation API call itself fails."""

    def __init__(
        self, message: str, stack_name: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = dict(kwargs.get("context") or {})
        if stack_name:
            context["stack_name"] = stack_name
        kwargs["context"] = context
        kwargs.setdefault("error_code", "EXPORT_LOOKUP_FAILED")
        super().__init__(message, **kwargs)


# Validation-related exceptions
class ResourceValidationError(EsSyncError):
    """Raised when a resource entry lacks a required field."""

    def __init__(
        self, message: str, resource_kind: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = dict(kwargs.get("context") or {})
        if resource_kind:
            context["resource_kind"] = resource_kind
        kwargs["context"] = context
        kwargs.setdefault("error_code", "RESOURCE_VALIDATION_FAILED")
        super().__init__(message, **kwargs)


# Remote (cluster) exceptions
class RemoteError(EsSyncError):
    """
    Raised when a PUT against the cluster fails.

    ``body`` holds the parsed JSON error document returned by Elasticsearch
    when there is one; ``error_type`` is its ``error.type`` field.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Any = None,
        **kwargs: Any,
    ) -> None:
        context = dict(kwargs.get("context") or {})
        if url:
            context["url"] = url
        if status_code is not None:
            context["status_code"] = status_code
        kwargs["context"] = context
        kwargs.setdefault("error_code", "REMOTE_REQUEST_FAILED")
        super().__init__(message, **kwargs)
        self.url = url
        self.status_code = status_code
        self.body = body

    @property
    def error_type(self) -> Optional[str]:
        """Remote error code, e.g. ``resource_already_exists_exception``."""
        if not isinstance(self.body, dict):
            return None
        error = self.body.get("error")
        if isinstance(error, dict):
            return error.get("type")
        return None


class RemoteConflictError(RemoteError):
    """
    An index that already exists on the cluster.

    Only index creation classifies the conflict this way; for every other
    resource it stays a plain RemoteError.
    """

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "RESOURCE_ALREADY_EXISTS")
        super().__init__(message, **kwargs)

    @classmethod
    def from_remote_error(cls, error: RemoteError) -> "RemoteConflictError":
        return cls(
            f"Resource at {error.url} already exists",
            url=error.url,
            status_code=error.status_code,
            body=error.body,
            cause=error.cause,
        )


ALREADY_EXISTS_ERROR_TYPE = "resource_already_exists_exception"


# Utility functions for exception handling
def wrap_http_exception(exc: httpx.HTTPError, url: str) -> RemoteError:
    """
    Wrap an httpx exception in our custom exception hierarchy.

    Args:
        exc: The original exception
        url: The URL the request was sent to

    Returns:
        RemoteError: Wrapped exception carrying the status code and parsed body
    """
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text
        return RemoteError(
            f"PUT {url} failed with status {response.status_code}",
            url=url,
            status_code=response.status_code,
            body=body,
            cause=exc,
        )

    return RemoteError(f"PUT {url} failed: {exc}", url=url, cause=exc)
