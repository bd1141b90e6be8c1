"""Provider adapter contract, error classification and the OAuth token cache."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Tuple

import httpx
from pydantic import ValidationError as PydanticValidationError

from exceptions import ProviderError, ProviderErrorKind
from providers.models import NormalizedListing, ProviderFailure, ProviderSearchResult

logger = logging.getLogger(__name__)


def classify_error(exc: BaseException) -> ProviderErrorKind:
    """Map an exception raised while talking to an upstream to an error kind."""
    if isinstance(exc, ProviderError):
        return exc.kind
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return "timeout"
    if isinstance(exc, httpx.HTTPStatusError):
        return "http_error"
    if isinstance(exc, httpx.RequestError):
        return "network_error"
    if isinstance(exc, (json.JSONDecodeError, PydanticValidationError, ValueError, KeyError, TypeError)):
        return "parse_error"
    return "unknown"


def describe_error(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code} from {exc.request.url.host}"
    message = str(exc) or type(exc).__name__
    return message[:200]


class ProviderAdapter(ABC):
    """Fetches listings from one upstream and normalizes them.

    Subclasses implement ``_fetch``. ``search`` never raises: any failure is
    returned as ``ProviderSearchResult.error`` with a classified kind.
    """

    name: str = "provider"

    def __init__(self, *, enabled: bool = True):
        self.enabled = enabled

    async def search(self, query: str) -> ProviderSearchResult:
        try:
            listings, payload_count = await self._fetch(query)
        except Exception as exc:
            kind = classify_error(exc)
            logger.warning(f"[{self.__class__.__name__}] search failed ({kind}): {describe_error(exc)}")
            return ProviderSearchResult(
                error=ProviderFailure(kind=kind, message=describe_error(exc)),
            )
        return ProviderSearchResult(listings=listings, payload_count=payload_count)

    @abstractmethod
    async def _fetch(self, query: str) -> Tuple[List[NormalizedListing], int]:
        """Return (listings, number of upstream items seen)."""

    def _build_listings(self, items: list, convert: Callable[[dict], List[NormalizedListing]]) -> List[NormalizedListing]:
        """Convert upstream items, dropping the ones that fail to normalize."""
        listings: List[NormalizedListing] = []
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                continue
            try:
                listings.extend(convert(item))
            except (PydanticValidationError, ValueError, KeyError, TypeError) as exc:
                logger.info(f"[{self.__class__.__name__}] skipping malformed item #{index}: {exc}")
                continue
        return listings


class HttpProviderAdapter(ProviderAdapter):
    """Adapter backed by an HTTP API.

    A shared ``httpx.AsyncClient`` can be injected; otherwise a short-lived
    client is opened per request.
    """

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 8.0,
        enabled: bool = True,
    ):
        super().__init__(enabled=enabled)
        self._client = client
        self.timeout_seconds = timeout_seconds

    async def _request_json(self, method: str, url: str, **kwargs) -> Any:
        if self._client is not None:
            response = await self._client.request(method, url, timeout=self.timeout_seconds, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response.json()


@dataclass
class TokenCache:
    """Bearer token held by one adapter instance, refreshed when close to expiry."""

    refresh_margin_seconds: float = 60.0
    value: Optional[str] = None
    expires_at: float = 0.0

    def is_valid(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return bool(self.value) and now < (self.expires_at - self.refresh_margin_seconds)

    def store(self, value: str, expires_in: Optional[float], now: Optional[float] = None) -> None:
        now = time.time() if now is None else now
        self.value = value
        self.expires_at = now + float(expires_in or 1800)

    def invalidate(self) -> None:
        self.value = None
        self.expires_at = 0.0

    async def get(self, refresh: Callable[[], Awaitable[Tuple[str, Optional[float]]]]) -> str:
        if self.is_valid():
            return self.value  # type: ignore[return-value]
        token, expires_in = await refresh()
        self.store(token, expires_in)
        return token
