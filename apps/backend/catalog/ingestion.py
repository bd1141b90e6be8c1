"""Merge normalized provider listings into the catalog without duplicating rows.

Every listing is merged in its own transaction:

1. Resolve the product by ``(source, external_id)``; listings without an
   external id get a deterministic title-derived key. A GTIN match is tried
   before a new product is created.
2. Resolve the offer by ``(product_id, store_name, url)`` (store name compared
   case-insensitively) and update it in place, or create it.
3. Append a price-history point when an existing offer's price changed, plus
   any explicit history points the listing carries that are not stored yet.

A concurrent writer can insert the same product or offer between our lookup
and our insert; the unique constraints then raise ``IntegrityError`` and the
row is retried once, which finds and updates the winner's row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from models.catalog import Offer, PriceHistoryPoint, Product, as_utc, utc_now
from observability.metrics import catalog_ingested_rows_total
from providers.models import NormalizedListing
from providers.utils import title_merge_key
from catalog.schemas import RowError, UpsertResult

logger = logging.getLogger(__name__)

MAX_ROW_ATTEMPTS = 2


def merge_key_for(listing: NormalizedListing) -> Tuple[str, str]:
    return listing.source, listing.external_id or title_merge_key(listing.title, listing.brand)


@dataclass
class RowOutcome:
    product_id: int
    product_created: bool
    offer_created: bool
    history_points: int


class IngestionEngine:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def ingest(self, listings: Sequence[NormalizedListing]) -> UpsertResult:
        result = UpsertResult()
        seen_products: set = set()

        for index, listing in enumerate(listings):
            try:
                outcome = await self._ingest_row(listing)
            except Exception as exc:
                logger.warning(
                    f"[IngestionEngine] row {index} failed: {type(exc).__name__}: {exc}",
                    extra={"source": listing.source, "store": listing.store_name},
                )
                catalog_ingested_rows_total.labels(result="failed").inc()
                result.errors.append(RowError(index=index, message=f"{type(exc).__name__}: {str(exc)[:200]}"))
                continue

            result.count += 1
            result.history_points += outcome.history_points
            if outcome.offer_created:
                result.offers_created += 1
            else:
                result.offers_updated += 1
            catalog_ingested_rows_total.labels(result="created" if outcome.offer_created else "updated").inc()

            if outcome.product_id not in seen_products:
                seen_products.add(outcome.product_id)
                result.product_ids.append(outcome.product_id)
                if outcome.product_created:
                    result.products_created += 1
                else:
                    result.products_matched += 1

        logger.info(
            f"[IngestionEngine] ingested={result.count} failed={len(result.errors)} "
            f"offers_created={result.offers_created} offers_updated={result.offers_updated}"
        )
        return result

    async def _ingest_row(self, listing: NormalizedListing) -> RowOutcome:
        for attempt in range(1, MAX_ROW_ATTEMPTS + 1):
            async with self.session_factory() as session:
                try:
                    product, product_created = await self._resolve_product(session, listing)
                    offer_created, price_changed = await self._upsert_offer(session, product, listing)
                    points = await self._append_history(session, product, listing, price_changed)
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    if attempt == MAX_ROW_ATTEMPTS:
                        raise
                    logger.info("[IngestionEngine] unique conflict, retrying row against the existing record")
                    continue
                return RowOutcome(
                    product_id=product.id,
                    product_created=product_created,
                    offer_created=offer_created,
                    history_points=points,
                )
        raise RuntimeError("unreachable")

    async def _find_product(self, session: AsyncSession, source: str, external_id: str) -> Optional[Product]:
        statement = select(Product).where(Product.source_name == source, Product.external_id == external_id)
        return (await session.exec(statement)).first()

    async def _resolve_product(self, session: AsyncSession, listing: NormalizedListing) -> Tuple[Product, bool]:
        source, external_id = merge_key_for(listing)
        product = await self._find_product(session, source, external_id)
        if product is None and listing.gtin:
            product = (await session.exec(select(Product).where(Product.gtin == listing.gtin))).first()

        if product is not None:
            self._refresh_product(product, listing)
            session.add(product)
            return product, False

        product = Product(
            source_name=source,
            external_id=external_id,
            name=listing.title,
            display_name=listing.title,
            brand=listing.brand,
            category=listing.category,
            description=listing.description,
            image_url=listing.image_url,
            gtin=listing.gtin,
        )
        session.add(product)
        await session.flush()
        return product, True

    @staticmethod
    def _refresh_product(product: Product, listing: NormalizedListing) -> None:
        # Refresh, never clear: only non-empty incoming values overwrite
        changed = False
        for attr, value in (
            ("name", listing.title),
            ("brand", listing.brand),
            ("category", listing.category),
            ("description", listing.description),
            ("image_url", listing.image_url),
            ("gtin", listing.gtin),
        ):
            if value and getattr(product, attr) != value:
                setattr(product, attr, value)
                changed = True
        if changed:
            product.updated_at = utc_now()

    async def _upsert_offer(self, session: AsyncSession, product: Product, listing: NormalizedListing) -> Tuple[bool, bool]:
        url = listing.url or ""
        statement = select(Offer).where(
            Offer.product_id == product.id,
            func.lower(Offer.store_name) == listing.store_name.lower(),
            Offer.url == url,
        )
        offer = (await session.exec(statement)).first()
        seen_at = as_utc(listing.last_seen_at) or utc_now()

        if offer is None:
            offer = Offer(product_id=product.id, store_name=listing.store_name, url=url, source=listing.source, price=listing.price)
            created = True
            price_changed = False
        else:
            created = False
            price_changed = offer.price != listing.price

        offer.price = listing.price
        offer.currency = listing.currency
        offer.shipping_cost = listing.shipping_cost
        offer.delivery_days = listing.delivery_days
        offer.fast_delivery = listing.fast_delivery
        offer.in_stock = listing.in_stock
        offer.last_seen_at = seen_at
        for attr in ("store_id", "rating", "review_count", "location", "provider", "affiliate_program"):
            value = getattr(listing, attr)
            if value is not None:
                setattr(offer, attr, value)
        if not created:
            offer.updated_at = utc_now()

        session.add(offer)
        await session.flush()
        return created, price_changed

    async def _append_history(
        self,
        session: AsyncSession,
        product: Product,
        listing: NormalizedListing,
        price_changed: bool,
    ) -> int:
        points: List[PriceHistoryPoint] = []
        if price_changed:
            points.append(
                PriceHistoryPoint(
                    product_id=product.id,
                    price=listing.price,
                    currency=listing.currency,
                    store_name=listing.store_name,
                )
            )

        for historical in listing.price_history:
            recorded_at = as_utc(historical.recorded_at)
            store_name = historical.store_name or listing.store_name
            existing = (
                await session.exec(
                    select(PriceHistoryPoint.id).where(
                        PriceHistoryPoint.product_id == product.id,
                        PriceHistoryPoint.recorded_at == recorded_at,
                        PriceHistoryPoint.price == historical.price,
                        PriceHistoryPoint.store_name == store_name,
                    )
                )
            ).first()
            if existing is None and not any(
                p.recorded_at == recorded_at and p.price == historical.price and p.store_name == store_name
                for p in points
            ):
                points.append(
                    PriceHistoryPoint(
                        product_id=product.id,
                        recorded_at=recorded_at,
                        price=historical.price,
                        currency=historical.currency,
                        store_name=store_name,
                    )
                )

        for point in points:
            session.add(point)
        return len(points)
