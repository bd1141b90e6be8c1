"""
Model exports.

- catalog.py: Product, Offer and PriceHistoryPoint tables
"""

from models.catalog import (
    Product,
    Offer,
    PriceHistoryPoint,
)

__all__ = [
    "Product",
    "Offer",
    "PriceHistoryPoint",
]
