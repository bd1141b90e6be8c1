"""Persisted product catalog: filtered reads and idempotent upserts."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, not_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from catalog.ingestion import IngestionEngine
from catalog.schemas import (
    CatalogFilter,
    CatalogSearchResult,
    OfferView,
    PricePointView,
    ProductView,
    UpsertResult,
)
from catalog.visibility import VisibilityPolicy
from models.catalog import Offer, PriceHistoryPoint, Product
from providers.models import NormalizedListing

logger = logging.getLogger(__name__)

FAST_DELIVERY_MAX_DAYS = 2

TEXT_COLUMNS = (
    Product.name,
    Product.display_name,
    Product.brand,
    Product.description,
    Product.category,
)


class CatalogStore:
    """Reads never raise: persistence failures come back as ``error`` on the result."""

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        visibility: Optional[VisibilityPolicy] = None,
        timeout_seconds: float = 5.0,
    ):
        self.session_factory = session_factory
        self.visibility = visibility or VisibilityPolicy()
        self.timeout_seconds = timeout_seconds
        self.ingestion = IngestionEngine(session_factory)

    async def search(self, filters: CatalogFilter) -> CatalogSearchResult:
        try:
            products, total = await asyncio.wait_for(self._search(filters), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"[CatalogStore] search timed out after {self.timeout_seconds}s")
            return CatalogSearchResult(error="catalog search timed out")
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"[CatalogStore] search failed: {type(exc).__name__}: {exc}")
            return CatalogSearchResult(error=f"{type(exc).__name__}: {str(exc)[:200]}")
        return CatalogSearchResult(products=products, total=total)

    async def upsert(self, listings: Sequence[NormalizedListing]) -> UpsertResult:
        """Bounded like ``search``: a stalled database comes back as ``error`` on the result.

        Rows committed before the timeout stay committed.
        """
        if not listings:
            return UpsertResult()
        try:
            return await asyncio.wait_for(self.ingestion.ingest(listings), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"[CatalogStore] upsert of {len(listings)} listings timed out after {self.timeout_seconds}s")
            return UpsertResult(error="catalog upsert timed out")

    # ------------------------------------------------------------------

    @staticmethod
    def _offer_conditions(filters: CatalogFilter) -> list:
        conditions = []
        if filters.store:
            store = filters.store.strip().lower()
            conditions.append(
                or_(
                    func.lower(Offer.store_id) == store,
                    func.lower(Offer.store_name).contains(store, autoescape=True),
                )
            )
        if filters.fast_only:
            conditions.append(
                or_(Offer.fast_delivery.is_(True), Offer.delivery_days <= FAST_DELIVERY_MAX_DAYS)
            )
        return conditions

    def _visible_offer_clause(self):
        """SQL form of ``VisibilityPolicy.is_visible``; None when no network is disabled."""
        hidden = []
        for network in self.visibility.disabled:
            for column, needles in (
                (Offer.provider, network.provider),
                (Offer.affiliate_program, network.program),
                (Offer.url, network.url_includes),
            ):
                for needle in needles:
                    hidden.append(func.lower(func.coalesce(column, "")).contains(needle.lower(), autoescape=True))
        if not hidden:
            return None
        return not_(or_(*hidden))

    async def _search(self, filters: CatalogFilter) -> Tuple[List[ProductView], int]:
        statement = select(Product)
        for term in filters.text_terms:
            needle = term.strip().lower()
            if not needle:
                continue
            statement = statement.where(
                or_(*(func.lower(column).contains(needle, autoescape=True) for column in TEXT_COLUMNS))
            )
        if filters.category_hint:
            statement = statement.where(
                func.lower(Product.category).contains(filters.category_hint.lower(), autoescape=True)
            )

        offer_conditions = self._offer_conditions(filters)
        visible_clause = self._visible_offer_clause()
        if offer_conditions:
            matching = offer_conditions + ([visible_clause] if visible_clause is not None else [])
            statement = statement.where(Product.id.in_(select(Offer.product_id).where(*matching)))
        elif visible_clause is not None:
            # Products with no offers at all stay listed; products whose offers are all hidden do not
            statement = statement.where(
                or_(
                    Product.id.in_(select(Offer.product_id).where(visible_clause)),
                    ~Product.id.in_(select(Offer.product_id)),
                )
            )

        count_statement = select(func.count()).select_from(statement.subquery())
        statement = statement.order_by(Product.created_at.desc(), Product.id.desc()).offset(filters.offset)
        if filters.limit:
            statement = statement.limit(filters.limit)

        async with self.session_factory() as session:
            total = (await session.exec(count_statement)).one()
            products = list((await session.exec(statement)).all())
            if not products:
                return [], total
            ids = [p.id for p in products]
            offers_by_product = await self._load_offers(session, ids, offer_conditions)
            history_by_product = await self._load_history(session, ids)

        views: List[ProductView] = []
        for product in products:
            stored = offers_by_product.get(product.id, [])
            visible = [o for o in stored if self.visibility.is_visible(o)]
            if stored and not visible:
                continue
            if offer_conditions and not visible:
                continue
            view = ProductView.model_validate(product)
            view.offers = [OfferView.model_validate(o) for o in visible]
            view.price_history = [PricePointView.model_validate(p) for p in history_by_product.get(product.id, [])]
            views.append(view)
        return views, total

    async def _load_offers(self, session: AsyncSession, ids: List[int], conditions: list) -> Dict[int, List[Offer]]:
        statement = select(Offer).where(Offer.product_id.in_(ids), *conditions).order_by(Offer.id)
        grouped: Dict[int, List[Offer]] = defaultdict(list)
        for offer in (await session.exec(statement)).all():
            grouped[offer.product_id].append(offer)
        return grouped

    async def _load_history(self, session: AsyncSession, ids: List[int]) -> Dict[int, List[PriceHistoryPoint]]:
        statement = (
            select(PriceHistoryPoint)
            .where(PriceHistoryPoint.product_id.in_(ids))
            .order_by(PriceHistoryPoint.recorded_at)
        )
        grouped: Dict[int, List[PriceHistoryPoint]] = defaultdict(list)
        for point in (await session.exec(statement)).all():
            grouped[point.product_id].append(point)
        return grouped
