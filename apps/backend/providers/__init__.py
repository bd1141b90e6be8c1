"""Provider adapters and the factory that builds the injected adapter list."""

from typing import List, Optional

import httpx

from config import Settings
from providers.affiliate_feed import AffiliateFeedAdapter
from providers.base import HttpProviderAdapter, ProviderAdapter, TokenCache, classify_error
from providers.dummyjson import DummyJsonAdapter
from providers.executors import run_adapter_with_outcome
from providers.models import (
    NormalizedListing,
    ProviderCallOutcome,
    ProviderFailure,
    ProviderSearchResult,
)
from providers.realstore import RealStoreAdapter
from providers.static_catalog import StaticCatalogAdapter


def build_adapters(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> List[ProviderAdapter]:
    """Construct every known adapter once per process.

    Disabled adapters stay in the list so the response can report them as
    ``disabled``; the orchestrator never calls them.
    """
    timeout = settings.provider_timeout_seconds
    return [
        StaticCatalogAdapter(enabled=settings.static_enabled),
        DummyJsonAdapter(
            settings.dummyjson_base_url,
            client=client,
            timeout_seconds=timeout,
            enabled=settings.dummyjson_enabled,
        ),
        RealStoreAdapter(
            settings.realstore_api_key,
            api_host=settings.realstore_api_host,
            country=settings.realstore_country,
            client=client,
            timeout_seconds=timeout,
            enabled=settings.realstore_enabled,
        ),
        AffiliateFeedAdapter(
            feed_url=settings.affiliate_feed_url,
            token_url=settings.affiliate_token_url,
            client_id=settings.affiliate_client_id,
            client_secret=settings.affiliate_client_secret,
            network=settings.affiliate_network,
            client=client,
            timeout_seconds=timeout,
            enabled=settings.affiliate_enabled,
        ),
    ]


__all__ = [
    "AffiliateFeedAdapter",
    "DummyJsonAdapter",
    "HttpProviderAdapter",
    "NormalizedListing",
    "ProviderAdapter",
    "ProviderCallOutcome",
    "ProviderFailure",
    "ProviderSearchResult",
    "RealStoreAdapter",
    "StaticCatalogAdapter",
    "TokenCache",
    "build_adapters",
    "classify_error",
    "run_adapter_with_outcome",
]
