"""Query canonicalization and fallback expansion.

``normalize_query`` lower-cases, trims and collapses whitespace, then folds
every token that belongs to a synonym group onto the group's canonical token
("phones", "Mobile", "smartphones" -> "smartphone"). Canonical tokens map to
themselves, so normalizing an already-normalized query is a no-op.

Fallback queries are broader variants tried in order when the primary query
finds nothing.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

SYNONYM_GROUPS: Dict[str, Tuple[str, ...]] = {
    "smartphone": ("phone", "phones", "smartphones", "mobile", "mobiles", "cellphone", "cellphones", "telefon"),
    "television": ("tv", "tvs", "televisions", "televizor"),
    "laptop": ("laptops", "notebook", "notebooks"),
    "headphones": ("headphone", "headset", "headsets"),
    "earbuds": ("earphones", "earphone", "earbud"),
    "perfume": ("perfumes", "fragrance", "fragrances", "parfum", "cologne"),
    "tablet": ("tablets",),
    "monitor": ("monitors", "display", "displays"),
    "smartwatch": ("smartwatches", "watch", "watches"),
    "camera": ("cameras",),
    "console": ("consoles",),
}

# Canonical token -> canonical category label used for filtering and fallbacks
CATEGORY_ALIASES: Dict[str, str] = {
    "smartphone": "smartphones",
    "television": "televisions",
    "laptop": "laptops",
    "headphones": "headphones",
    "earbuds": "headphones",
    "perfume": "fragrances",
    "tablet": "tablets",
    "monitor": "monitors",
    "smartwatch": "smartwatches",
    "camera": "cameras",
    "console": "gaming",
}

KNOWN_BRANDS = {
    "apple", "samsung", "sony", "xiaomi", "huawei", "dell", "hp", "lenovo", "asus",
    "acer", "lg", "bosch", "philips", "nike", "adidas", "dior", "chanel", "lancome",
}

_TOKEN_TO_CANONICAL: Dict[str, str] = {}
for _canonical, _variants in SYNONYM_GROUPS.items():
    _TOKEN_TO_CANONICAL[_canonical] = _canonical
    for _variant in _variants:
        _TOKEN_TO_CANONICAL[_variant] = _canonical

_TRAILING_NUMBER = re.compile(r"\s+\d+$")


class NormalizedQuery(BaseModel):
    raw: str
    normalized: str
    tokens: List[str] = Field(default_factory=list)
    category_hint: Optional[str] = None
    used_alias: bool = False
    is_vague: bool = True
    fallbacks: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.normalized


def canonical_token(token: str) -> str:
    return _TOKEN_TO_CANONICAL.get(token, token)


def category_for(value: Optional[str]) -> Optional[str]:
    """Resolve a free-form category or query token to its canonical label."""
    if not value:
        return None
    lowered = " ".join(value.lower().split())
    if lowered in CATEGORY_ALIASES.values():
        return lowered
    return CATEGORY_ALIASES.get(canonical_token(lowered), lowered)


def _is_vague(tokens: List[str]) -> bool:
    if not tokens:
        return True
    if len(tokens) > 3:
        return False
    if any(ch.isdigit() for token in tokens for ch in token):
        return False
    return not any(token in KNOWN_BRANDS for token in tokens)


def build_fallback_queries(normalized: str, tokens: List[str]) -> List[str]:
    candidates: List[str] = []

    dropped_number = _TRAILING_NUMBER.sub("", normalized).strip()
    if dropped_number != normalized:
        candidates.append(dropped_number)
    if len(tokens) >= 3:
        candidates.append(" ".join(tokens[:-1]))
        candidates.append(" ".join(tokens[:2]))
    if len(tokens) >= 2:
        candidates.append(tokens[0])

    # Synonym variants: swap each canonical token for its group members
    for index, token in enumerate(tokens):
        for variant in SYNONYM_GROUPS.get(token, ()):
            if " " in variant or len(variant) < 3:
                continue
            candidates.append(" ".join(tokens[:index] + [variant] + tokens[index + 1:]))
            break

    for token in tokens:
        label = CATEGORY_ALIASES.get(token)
        if label:
            candidates.append(label)

    if len(tokens) == 1:
        token = tokens[0]
        if token.endswith("s") and len(token) > 3:
            candidates.append(token[:-1])
        elif len(token) > 4:
            candidates.append(token[:-2])

    fallbacks: List[str] = []
    for candidate in candidates:
        if candidate and candidate != normalized and candidate not in fallbacks:
            fallbacks.append(candidate)

    # Last resort: a prefix of the first token. Only a one-character query ends up with none.
    if not fallbacks and tokens and len(tokens[0]) > 1:
        fallbacks.append(tokens[0][:-1])
    return fallbacks


def normalize_query(raw: Optional[str]) -> NormalizedQuery:
    raw = raw or ""
    lowered = " ".join(raw.lower().split())
    if not lowered:
        return NormalizedQuery(raw=raw, normalized="")

    source_tokens = lowered.split(" ")
    tokens = [canonical_token(token) for token in source_tokens]
    normalized = " ".join(tokens)

    category_hint = None
    for token in tokens:
        if token in CATEGORY_ALIASES:
            category_hint = CATEGORY_ALIASES[token]
            break

    return NormalizedQuery(
        raw=raw,
        normalized=normalized,
        tokens=tokens,
        category_hint=category_hint,
        used_alias=tokens != source_tokens,
        is_vague=_is_vague(tokens),
        fallbacks=build_fallback_queries(normalized, tokens),
    )


class QueryNormalizer:
    """Thin object wrapper so the normalizer can be injected like the other stages."""

    def normalize(self, raw: Optional[str]) -> NormalizedQuery:
        return normalize_query(raw)
