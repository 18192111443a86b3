"""Structured exception hierarchy for federation sharding.

Every error raised by the router, the DDL generator and the configuration
loaders derives from ShardingError so callers can catch one type and still
get rich context. Errors raised by the database driver itself are never
wrapped; they reach the caller unchanged.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "ShardingError",
    "ConfigurationError",
    "TransactionActiveError",
    "InvalidDistributionValueError",
    "ShardingNotImplementedError",
]


class ShardingError(Exception):
    """Base exception for all sharding errors.

    Carries the federation it relates to, free-form details and an
    optional hint on how to fix the problem.
    """

    def __init__(
        self,
        message: str,
        *,
        federation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.message = message
        self.federation = federation
        self.details = details or {}
        self.suggestion = suggestion

        parts = [f"[{federation}] {message}" if federation else message]

        if details:
            parts.append("\nDetails:")
            parts.extend(f"  {k}: {v}" for k, v in details.items())

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "federation": self.federation,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ConfigurationError(ShardingError):
    """Invalid or incomplete sharding configuration.

    Raised when the connection parameters lack the federation name or
    distribution key, and when a federated table misses its distribution
    metadata. Always fatal: fix the configuration and start over.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value

        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message, details=details, **kwargs)


class TransactionActiveError(ShardingError):
    """A partition switch was attempted inside an open transaction."""

    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        suggestion = kwargs.pop("suggestion", None) or (
            "Commit or roll back the current transaction before switching "
            "federation members."
        )
        super().__init__(
            message or "Cannot switch partition during an active transaction.",
            suggestion=suggestion,
            **kwargs,
        )


class InvalidDistributionValueError(ShardingError):
    """The distribution value is null, a boolean or not a scalar."""

    def __init__(self, value: Any, **kwargs: Any) -> None:
        self.value = value

        details = kwargs.pop("details", {})
        details["value"] = repr(value)
        details["value_type"] = type(value).__name__

        super().__init__(
            "A string, integer or GUID is required as the partition "
            "distribution value.",
            details=details,
            **kwargs,
        )


class ShardingNotImplementedError(ShardingError, NotImplementedError):
    """The requested sharding operation is not supported."""

    def __init__(self, operation: str, **kwargs: Any) -> None:
        self.operation = operation
        super().__init__(f"{operation} is not implemented.", **kwargs)
