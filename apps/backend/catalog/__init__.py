from catalog.ingestion import IngestionEngine, merge_key_for
from catalog.schemas import (
    CatalogFilter,
    CatalogSearchResult,
    OfferView,
    PricePointView,
    ProductView,
    RowError,
    UpsertResult,
)
from catalog.store import CatalogStore
from catalog.visibility import VisibilityPolicy

__all__ = [
    "CatalogFilter",
    "CatalogSearchResult",
    "CatalogStore",
    "IngestionEngine",
    "OfferView",
    "PricePointView",
    "ProductView",
    "RowError",
    "UpsertResult",
    "VisibilityPolicy",
    "merge_key_for",
]
