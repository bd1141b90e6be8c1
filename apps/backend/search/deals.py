"""Deal (discount vs. price history) and freshness signals per product."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Literal, Optional, Sequence

from pydantic import BaseModel

from catalog.schemas import OfferView, PricePointView
from models.catalog import as_utc, utc_now

Freshness = Literal["fresh", "stale", "unknown"]

STALE_AFTER_DAYS = 14
GREAT_DEAL_THRESHOLD_PERCENT = 15.0


class DealInfo(BaseModel):
    discount_percent: Optional[float] = None
    is_great_deal: bool = False
    label: Optional[str] = None
    best_price: Optional[float] = None
    avg_historical_price: Optional[float] = None
    freshness: Freshness = "unknown"


class DealEvaluator:
    def __init__(
        self,
        *,
        stale_after_days: int = STALE_AFTER_DAYS,
        great_deal_threshold_percent: float = GREAT_DEAL_THRESHOLD_PERCENT,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.stale_after = timedelta(days=stale_after_days)
        self.great_deal_threshold_percent = great_deal_threshold_percent
        self.clock = clock or utc_now

    def evaluate(
        self,
        offers: Sequence[OfferView],
        history: Sequence[PricePointView],
        current_price: Optional[float] = None,
    ) -> DealInfo:
        """``current_price`` defaults to the cheapest offer total."""
        info = DealInfo(freshness=self.freshness(offers))

        if current_price is None and offers:
            current_price = min(o.total_price for o in offers)
        if current_price is None or current_price <= 0:
            return info
        info.best_price = round(current_price, 2)

        prices = [p.price for p in history if p.price > 0]
        if not prices:
            return info
        avg = sum(prices) / len(prices)
        info.avg_historical_price = round(avg, 2)

        discount = round((avg - current_price) / avg * 100, 2)
        if discount > 0:
            info.discount_percent = discount
            info.is_great_deal = discount >= self.great_deal_threshold_percent
            info.label = f"{round(discount)}% below usual price"
        return info

    def freshness(self, offers: Sequence[OfferView]) -> Freshness:
        stamps = [as_utc(o.last_seen_at) for o in offers if o.last_seen_at is not None]
        if not stamps:
            return "unknown"
        cutoff = as_utc(self.clock()) - self.stale_after
        if all(stamp < cutoff for stamp in stamps):
            return "stale"
        return "fresh"
