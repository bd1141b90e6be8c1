"""Runtime settings for the offer search backend.

All values come from environment variables (optionally loaded from ``.env`` by
``main.py``). ``Settings.from_env()`` is called once per process and the
resulting object is handed to the components that need it.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"[Settings] Invalid float for {name}={raw!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"[Settings] Invalid int for {name}={raw!r}, using {default}")
        return default


def _env_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name) or ""
    return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class RankingWeights:
    """Weights for the best-overall offer score."""

    price: float = 0.6
    store: float = 0.25
    rating: float = 0.15


@dataclass(frozen=True)
class Settings:
    # Enrichment
    enrich_threshold: int = 10
    max_products_per_provider: int = 20
    provider_timeout_seconds: float = 8.0
    enrich_deadline_seconds: float = 15.0

    # Catalog reads
    store_timeout_seconds: float = 5.0
    max_candidates: int = 200
    default_page_size: int = 10
    max_page_size: int = 50

    # Deals / freshness
    stale_after_days: int = 14
    great_deal_threshold_percent: float = 15.0

    ranking_weights: RankingWeights = field(default_factory=RankingWeights)
    disabled_networks: Tuple[str, ...] = ()

    # Provider toggles and credentials
    static_enabled: bool = True
    dummyjson_enabled: bool = True
    dummyjson_base_url: str = "https://dummyjson.com"
    realstore_enabled: bool = False
    realstore_api_key: Optional[str] = None
    realstore_api_host: str = "real-time-product-search.p.rapidapi.com"
    realstore_country: str = "us"
    affiliate_enabled: bool = False
    affiliate_network: str = "profitshare"
    affiliate_feed_url: Optional[str] = None
    affiliate_token_url: Optional[str] = None
    affiliate_client_id: Optional[str] = None
    affiliate_client_secret: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            enrich_threshold=_env_int("SEARCH_ENRICH_THRESHOLD", 10),
            max_products_per_provider=_env_int("SEARCH_MAX_PRODUCTS_PER_PROVIDER", 20),
            provider_timeout_seconds=_env_float("SEARCH_PROVIDER_TIMEOUT_SECONDS", 8.0),
            enrich_deadline_seconds=_env_float("SEARCH_ENRICH_DEADLINE_SECONDS", 15.0),
            store_timeout_seconds=_env_float("SEARCH_STORE_TIMEOUT_SECONDS", 5.0),
            max_candidates=_env_int("SEARCH_MAX_CANDIDATES", 200),
            default_page_size=_env_int("SEARCH_DEFAULT_PAGE_SIZE", 10),
            max_page_size=_env_int("SEARCH_MAX_PAGE_SIZE", 50),
            stale_after_days=_env_int("DEAL_STALE_AFTER_DAYS", 14),
            great_deal_threshold_percent=_env_float("DEAL_GREAT_THRESHOLD_PERCENT", 15.0),
            ranking_weights=RankingWeights(
                price=_env_float("RANK_WEIGHT_PRICE", 0.6),
                store=_env_float("RANK_WEIGHT_STORE", 0.25),
                rating=_env_float("RANK_WEIGHT_RATING", 0.15),
            ),
            disabled_networks=_env_list("DISABLED_AFFILIATE_NETWORKS"),
            static_enabled=_env_flag("PROVIDER_STATIC_ENABLED", True),
            dummyjson_enabled=_env_flag("PROVIDER_DUMMYJSON_ENABLED", True),
            dummyjson_base_url=_env_str("DUMMYJSON_BASE_URL", "https://dummyjson.com"),
            realstore_enabled=_env_flag("PROVIDER_REALSTORE_ENABLED", False),
            realstore_api_key=_env_str("REALSTORE_API_KEY"),
            realstore_api_host=_env_str(
                "REALSTORE_API_HOST", "real-time-product-search.p.rapidapi.com"
            ),
            realstore_country=_env_str("REALSTORE_COUNTRY", "us"),
            affiliate_enabled=_env_flag("PROVIDER_AFFILIATE_ENABLED", False),
            affiliate_network=_env_str("AFFILIATE_NETWORK", "profitshare"),
            affiliate_feed_url=_env_str("AFFILIATE_FEED_URL"),
            affiliate_token_url=_env_str("AFFILIATE_TOKEN_URL"),
            affiliate_client_id=_env_str("AFFILIATE_CLIENT_ID"),
            affiliate_client_secret=_env_str("AFFILIATE_CLIENT_SECRET"),
        )
