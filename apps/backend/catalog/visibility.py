"""Read-time visibility of offers from disabled affiliate networks.

Offers are never deleted when a network is switched off; they are filtered
out whenever the catalog is read, so re-enabling a network brings them back
without re-ingestion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, Tuple


class OfferProvenance(Protocol):
    source: str
    provider: Optional[str]
    affiliate_program: Optional[str]
    url: Optional[str]


@dataclass(frozen=True)
class NetworkPatterns:
    name: str
    provider: Tuple[str, ...] = ()
    program: Tuple[str, ...] = ()
    url_includes: Tuple[str, ...] = ()


KNOWN_NETWORKS = {
    "profitshare": NetworkPatterns(
        name="profitshare",
        provider=("profitshare",),
        program=("profitshare",),
        url_includes=("profitshare.ro", "l.profitshare"),
    ),
    "2performant": NetworkPatterns(
        name="2performant",
        provider=("2performant", "twoperformant"),
        program=("2performant",),
        url_includes=("event.2performant.com",),
    ),
}


def _contains_any(value: Optional[str], needles: Iterable[str]) -> bool:
    if not value:
        return False
    lowered = value.lower()
    return any(needle in lowered for needle in needles)


@dataclass(frozen=True)
class VisibilityPolicy:
    """Predicate over offer provenance: hidden when it matches a disabled network."""

    disabled: Tuple[NetworkPatterns, ...] = field(default_factory=tuple)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "VisibilityPolicy":
        patterns = []
        for name in names:
            key = name.strip().lower()
            if not key:
                continue
            patterns.append(KNOWN_NETWORKS.get(key) or NetworkPatterns(name=key, provider=(key,), program=(key,)))
        return cls(disabled=tuple(patterns))

    def is_hidden(self, offer: OfferProvenance) -> bool:
        for network in self.disabled:
            if _contains_any(offer.provider, network.provider):
                return True
            if _contains_any(offer.affiliate_program, network.program):
                return True
            if _contains_any(offer.url, network.url_includes):
                return True
        return False

    def is_visible(self, offer: OfferProvenance) -> bool:
        return not self.is_hidden(offer)
