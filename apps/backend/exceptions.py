"""
Custom exception hierarchy for the offer search backend.

All exceptions inherit from a base PriceCompareError class for easy catching
and logging.

Exception Hierarchy:
    PriceCompareError (base)
    ├── ValidationError
    └── ExternalServiceError
        └── ProviderError
            └── ProviderConfigError

Usage:
    from exceptions import ValidationError, ProviderError

    raise ValidationError("Invalid page size", detail={"page_size": 500})
    raise ProviderError("Upstream returned HTML", kind="parse_error", provider="realstore")
"""

from typing import Optional, Dict, Any, Literal

ProviderErrorKind = Literal[
    "timeout",
    "network_error",
    "http_error",
    "parse_error",
    "config_missing",
    "unknown",
]


class PriceCompareError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        detail: Optional dict with additional error context
        status_code: Suggested HTTP status code (for API errors)
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for JSON serialization."""
        result = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        return result


class ValidationError(PriceCompareError):
    """
    Raised when a search request is malformed.

    Examples:
        raise ValidationError("Query is too long")
        raise ValidationError("Invalid sort", detail={"sort": "random"})
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message, detail=detail, status_code=400)


class ExternalServiceError(PriceCompareError):
    """
    Base exception for external service failures.
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        service_name: Optional[str] = None,
    ):
        if service_name and detail is None:
            detail = {"service": service_name}
        elif service_name and detail:
            detail["service"] = service_name

        super().__init__(message, detail=detail, status_code=502)


class ProviderError(ExternalServiceError):
    """
    Raised by a provider adapter when its upstream fails.

    Examples:
        raise ProviderError("Token endpoint returned no access_token", kind="http_error")
        raise ProviderError("Unexpected payload", kind="parse_error", provider="dummyjson")
    """

    def __init__(
        self,
        message: str,
        *,
        kind: ProviderErrorKind = "unknown",
        detail: Optional[Dict[str, Any]] = None,
        provider: Optional[str] = None,
    ):
        if provider and detail is None:
            detail = {"provider": provider}
        elif provider and detail:
            detail["provider"] = provider

        super().__init__(message, detail=detail, service_name="search_provider")
        self.kind = kind
        self.provider = provider


class ProviderConfigError(ProviderError):
    """Raised when an adapter is enabled but missing credentials or endpoints."""

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(message, kind="config_missing", detail=detail, provider=provider)
