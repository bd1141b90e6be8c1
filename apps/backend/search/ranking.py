"""
Per-product best-offer selection.

Three picks per product, each ``None`` when no offer qualifies:
  - cheapest: lowest ``price + shipping_cost`` (missing shipping counts as 0)
  - fastest: lowest delivery days; an offer without days but flagged
    fast-delivery counts as 1 day, offers with neither are skipped
  - best_overall: weighted sum of
      price_score  = cheapest total / this total (0-1)
      store_score  = store preference for the requester's region (0-1),
                     plus a bonus when the offer's location matches
      rating_score = rating / 5 (0 when unrated)

Every pick breaks ties by higher store preference, then store name, then
offer id, so identical input always yields the same result.
"""

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel

from catalog.schemas import OfferView
from config import RankingWeights

logger = logging.getLogger(__name__)

FAST_DELIVERY_DAYS = 1
DEFAULT_STORE_PREFERENCE = 0.3
EXACT_LOCATION_BONUS = 0.25
PARTIAL_LOCATION_BONUS = 0.1

REGION_ALIASES: Dict[str, Tuple[str, ...]] = {
    "ro": ("ro", "romania", "bucharest", "bucuresti", "cluj", "cluj-napoca", "iasi", "timisoara"),
    "de": ("de", "germany", "deutschland", "berlin", "munich", "hamburg"),
    "gb": ("gb", "uk", "united kingdom", "england", "london"),
    "us": ("us", "usa", "united states", "new york", "california"),
    "fr": ("fr", "france", "paris"),
    "es": ("es", "spain", "madrid"),
}

STORE_PREFERENCES: Dict[str, Dict[str, float]] = {
    "ro": {"emag": 1.0, "altex": 0.9, "pc garage": 0.85, "flanco": 0.8, "notino": 0.8, "orange shop": 0.7},
    "de": {"amazon.de": 1.0, "mediamarkt": 0.9, "otto": 0.8, "notino": 0.7},
    "gb": {"amazon.co.uk": 1.0, "argos": 0.9, "currys": 0.85},
    "us": {"amazon": 1.0, "best buy": 0.9, "walmart": 0.85, "target": 0.8},
    "fr": {"amazon.fr": 1.0, "fnac": 0.9, "darty": 0.85},
    "es": {"amazon.es": 1.0, "el corte ingles": 0.9, "pccomponentes": 0.85},
    "global": {"amazon": 0.6, "ebay": 0.5},
}

_LOCATION_SPLIT = re.compile(r"[\s,/_]+")


class RankedOffer(BaseModel):
    offer_id: int
    store_name: str
    price: float
    currency: str
    shipping_cost: Optional[float] = None
    total_price: float
    delivery_days: Optional[int] = None
    store_preference: float = 0.0
    score: Optional[float] = None


class BestOffers(BaseModel):
    cheapest: Optional[RankedOffer] = None
    fastest: Optional[RankedOffer] = None
    best_overall: Optional[RankedOffer] = None


def resolve_region(location: Optional[str]) -> str:
    if not location:
        return "global"
    lowered = location.strip().lower()
    tokens = [t for t in _LOCATION_SPLIT.split(lowered) if t]
    # "ro-RO" / "en-GB" style locales
    if "-" in lowered and len(lowered) <= 5:
        tokens.append(lowered.split("-")[-1])
    for region, aliases in REGION_ALIASES.items():
        if lowered in aliases or any(token in aliases for token in tokens):
            return region
    return "global"


def effective_delivery_days(offer: OfferView) -> Optional[int]:
    if offer.delivery_days is not None:
        return offer.delivery_days
    if offer.fast_delivery:
        return FAST_DELIVERY_DAYS
    return None


def _location_bonus(offer_location: Optional[str], user_location: Optional[str]) -> float:
    if not offer_location or not user_location:
        return 0.0
    offer_loc = offer_location.lower()
    user_loc = user_location.lower().strip()
    if user_loc in offer_loc or offer_loc in user_loc:
        return EXACT_LOCATION_BONUS
    for token in _LOCATION_SPLIT.split(user_loc):
        if len(token) >= 3 and token in offer_loc:
            return PARTIAL_LOCATION_BONUS
    return 0.0


class BestOfferRanker:
    def __init__(
        self,
        weights: Optional[RankingWeights] = None,
        preferences: Optional[Mapping[str, Mapping[str, float]]] = None,
    ):
        self.weights = weights or RankingWeights()
        self.preferences = preferences if preferences is not None else STORE_PREFERENCES

    def store_preference(self, offer: OfferView, location: Optional[str]) -> float:
        region = resolve_region(location)
        store = offer.store_name.strip().lower()
        table = self.preferences.get(region, {})
        if store in table:
            base = table[store]
        elif store in self.preferences.get("global", {}):
            base = self.preferences["global"][store]
        else:
            base = DEFAULT_STORE_PREFERENCE
        return min(1.0, base + _location_bonus(offer.location, location))

    def rank(self, offers: Sequence[OfferView], location: Optional[str] = None) -> BestOffers:
        if not offers:
            return BestOffers()

        prefs = {offer.id: self.store_preference(offer, location) for offer in offers}

        def tie_break(offer: OfferView) -> Tuple[float, str, int]:
            return (-prefs[offer.id], offer.store_name.lower(), offer.id)

        cheapest = min(offers, key=lambda o: (o.total_price,) + tie_break(o))

        with_days = [o for o in offers if effective_delivery_days(o) is not None]
        fastest = (
            min(with_days, key=lambda o: (effective_delivery_days(o), o.total_price) + tie_break(o))
            if with_days
            else None
        )

        min_total = cheapest.total_price
        scores: Dict[int, float] = {}
        for offer in offers:
            scores[offer.id] = round(self._score(offer, min_total, prefs[offer.id]), 9)
        best = min(offers, key=lambda o: (-scores[o.id],) + tie_break(o))

        return BestOffers(
            cheapest=self._ranked(cheapest, prefs),
            fastest=self._ranked(fastest, prefs) if fastest else None,
            best_overall=self._ranked(best, prefs, score=scores[best.id]),
        )

    def _score(self, offer: OfferView, min_total: float, preference: float) -> float:
        total = offer.total_price
        if total <= 0:
            price_score = 1.0
        else:
            price_score = min_total / total
        rating_score = (offer.rating / 5.0) if offer.rating else 0.0
        return (
            self.weights.price * price_score
            + self.weights.store * preference
            + self.weights.rating * min(rating_score, 1.0)
        )

    @staticmethod
    def _ranked(offer: OfferView, prefs: Dict[int, float], score: Optional[float] = None) -> RankedOffer:
        return RankedOffer(
            offer_id=offer.id,
            store_name=offer.store_name,
            price=offer.price,
            currency=offer.currency,
            shipping_cost=offer.shipping_cost,
            total_price=round(offer.total_price, 2),
            delivery_days=effective_delivery_days(offer),
            store_preference=round(prefs[offer.id], 4),
            score=round(score, 4) if score is not None else None,
        )


def sort_key_for(sort: str, best: BestOffers, product_id: int) -> Tuple:
    """Ordering key for products in a response page."""
    cheapest_total = best.cheapest.total_price if best.cheapest else float("inf")
    fastest_days = best.fastest.delivery_days if best.fastest and best.fastest.delivery_days is not None else 10**6
    overall = best.best_overall.score if best.best_overall and best.best_overall.score is not None else -1.0
    if sort == "price":
        return (cheapest_total, -overall, product_id)
    if sort == "delivery":
        return (fastest_days, cheapest_total, product_id)
    return (-overall, cheapest_total, product_id)


def rank_offers_by_total(offers: Sequence[OfferView]) -> List[OfferView]:
    return sorted(offers, key=lambda o: (o.total_price, o.store_name.lower(), o.id))
