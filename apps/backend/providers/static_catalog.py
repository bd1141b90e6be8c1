"""Curated static catalog adapter.

Serves a small hand-maintained product list so a fresh catalog has something
to show for common queries before any external provider is configured.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from providers.base import ProviderAdapter
from providers.models import NormalizedListing

STATIC_PRODUCTS: List[Dict[str, Any]] = [
    {
        "id": "static-laptop-xps13",
        "name": "Dell XPS 13 Laptop 13.4\" FHD+ Intel Core i7 16GB 512GB SSD",
        "brand": "Dell",
        "category": "laptops",
        "description": "Ultrabook laptop with InfinityEdge display",
        "image_url": "https://images.example-cdn.com/dell-xps13.jpg",
        "offers": [
            {"store_id": "emag", "store_name": "eMAG", "url": "https://www.emag.ro/dell-xps-13", "price": 6499.0,
             "currency": "RON", "shipping_cost": 0.0, "delivery_days": 1, "fast_delivery": True,
             "rating": 4.6, "review_count": 212, "location": "Bucharest"},
            {"store_id": "altex", "store_name": "Altex", "url": "https://altex.ro/dell-xps-13", "price": 6599.0,
             "currency": "RON", "shipping_cost": 29.0, "delivery_days": 3, "rating": 4.4, "review_count": 87,
             "location": "Cluj-Napoca"},
        ],
        "price_history": [
            {"recorded_at": "2024-01-10", "price": 7299.0, "currency": "RON", "store_name": "eMAG"},
            {"recorded_at": "2024-03-01", "price": 6999.0, "currency": "RON", "store_name": "eMAG"},
        ],
    },
    {
        "id": "static-laptop-macbook-air",
        "name": "Apple MacBook Air 13 M2 Laptop 8GB 256GB",
        "brand": "Apple",
        "category": "laptops",
        "description": "Thin and light laptop with Apple M2 chip",
        "image_url": "https://images.example-cdn.com/macbook-air-m2.jpg",
        "offers": [
            {"store_id": "emag", "store_name": "eMAG", "url": "https://www.emag.ro/macbook-air-m2", "price": 4999.0,
             "currency": "RON", "shipping_cost": 0.0, "fast_delivery": True, "rating": 4.8, "review_count": 1045},
            {"store_id": "pcgarage", "store_name": "PC Garage", "url": "https://www.pcgarage.ro/macbook-air-m2",
             "price": 4899.0, "currency": "RON", "shipping_cost": 25.0, "delivery_days": 2, "rating": 4.7,
             "review_count": 310},
        ],
        "price_history": [
            {"recorded_at": "2024-02-01", "price": 5299.0, "currency": "RON", "store_name": "eMAG"},
        ],
    },
    {
        "id": "static-laptop-thinkpad-e14",
        "name": "Lenovo ThinkPad E14 Gen 5 Business Laptop",
        "brand": "Lenovo",
        "category": "laptops",
        "description": "Business laptop, Ryzen 5, 16GB RAM",
        "image_url": "https://images.example-cdn.com/thinkpad-e14.jpg",
        "offers": [
            {"store_id": "flanco", "store_name": "Flanco", "url": "https://www.flanco.ro/thinkpad-e14",
             "price": 3799.0, "currency": "RON", "delivery_days": 4, "rating": 4.3, "review_count": 44},
        ],
        "price_history": [],
    },
    {
        "id": "static-phone-galaxy-s24",
        "name": "Samsung Galaxy S24 Smartphone 256GB",
        "brand": "Samsung",
        "category": "smartphones",
        "description": "Android smartphone with 6.2\" Dynamic AMOLED display",
        "image_url": "https://images.example-cdn.com/galaxy-s24.jpg",
        "offers": [
            {"store_id": "emag", "store_name": "eMAG", "url": "https://www.emag.ro/galaxy-s24", "price": 3899.0,
             "currency": "RON", "shipping_cost": 0.0, "delivery_days": 1, "fast_delivery": True, "rating": 4.7,
             "review_count": 530},
            {"store_id": "orange", "store_name": "Orange Shop", "url": "https://www.orange.ro/galaxy-s24",
             "price": 3949.0, "currency": "RON", "shipping_cost": 0.0, "delivery_days": 2},
        ],
        "price_history": [
            {"recorded_at": "2024-02-15", "price": 4599.0, "currency": "RON", "store_name": "eMAG"},
        ],
    },
    {
        "id": "static-phone-iphone-15",
        "name": "Apple iPhone 15 Smartphone 128GB",
        "brand": "Apple",
        "category": "smartphones",
        "description": "iPhone 15 with Dynamic Island and 48MP camera",
        "image_url": "https://images.example-cdn.com/iphone-15.jpg",
        "offers": [
            {"store_id": "altex", "store_name": "Altex", "url": "https://altex.ro/iphone-15", "price": 4299.0,
             "currency": "RON", "shipping_cost": 0.0, "delivery_days": 2, "rating": 4.8, "review_count": 980},
        ],
        "price_history": [],
    },
    {
        "id": "static-audio-wh1000xm5",
        "name": "Sony WH-1000XM5 Wireless Noise Cancelling Headphones",
        "brand": "Sony",
        "category": "headphones",
        "description": "Over-ear bluetooth headphones with active noise cancelling",
        "image_url": "https://images.example-cdn.com/sony-xm5.jpg",
        "offers": [
            {"store_id": "emag", "store_name": "eMAG", "url": "https://www.emag.ro/sony-wh-1000xm5", "price": 1499.0,
             "currency": "RON", "shipping_cost": 0.0, "fast_delivery": True, "rating": 4.7, "review_count": 760},
            {"store_id": "amazon-de", "store_name": "Amazon.de", "url": "https://www.amazon.de/dp/B09XS7JWHH",
             "price": 299.0, "currency": "EUR", "shipping_cost": 9.99, "delivery_days": 4, "location": "Germany"},
        ],
        "price_history": [
            {"recorded_at": "2024-01-20", "price": 1799.0, "currency": "RON", "store_name": "eMAG"},
            {"recorded_at": "2024-04-02", "price": 1649.0, "currency": "RON", "store_name": "eMAG"},
        ],
    },
    {
        "id": "static-audio-airpods-pro",
        "name": "Apple AirPods Pro 2 Wireless Earbuds",
        "brand": "Apple",
        "category": "headphones",
        "description": "In-ear earbuds with USB-C MagSafe case",
        "image_url": "https://images.example-cdn.com/airpods-pro-2.jpg",
        "offers": [
            {"store_id": "altex", "store_name": "Altex", "url": "https://altex.ro/airpods-pro-2", "price": 1199.0,
             "currency": "RON", "delivery_days": 2, "rating": 4.8, "review_count": 1520},
        ],
        "price_history": [],
    },
    {
        "id": "static-tv-lg-oled55",
        "name": "LG OLED55C3 55\" 4K Smart Television",
        "brand": "LG",
        "category": "televisions",
        "description": "OLED evo 4K smart TV, webOS",
        "image_url": "https://images.example-cdn.com/lg-oled55c3.jpg",
        "offers": [
            {"store_id": "flanco", "store_name": "Flanco", "url": "https://www.flanco.ro/lg-oled55c3", "price": 5999.0,
             "currency": "RON", "shipping_cost": 0.0, "delivery_days": 3, "rating": 4.6, "review_count": 133},
        ],
        "price_history": [
            {"recorded_at": "2024-03-12", "price": 6999.0, "currency": "RON", "store_name": "Flanco"},
        ],
    },
    {
        "id": "static-perfume-sauvage",
        "name": "Dior Sauvage Eau de Parfum 100ml",
        "brand": "Dior",
        "category": "fragrances",
        "description": "Men's perfume, eau de parfum",
        "image_url": "https://images.example-cdn.com/dior-sauvage.jpg",
        "offers": [
            {"store_id": "notino", "store_name": "Notino", "url": "https://www.notino.ro/dior/sauvage-edp",
             "price": 589.0, "currency": "RON", "shipping_cost": 15.0, "delivery_days": 2, "rating": 4.9,
             "review_count": 2204},
        ],
        "price_history": [],
    },
]


def _haystack(product: Dict[str, Any]) -> str:
    parts = (
        product.get("name"),
        product.get("display_name"),
        product.get("description"),
        product.get("category"),
        product.get("brand"),
    )
    return " ".join(part for part in parts if part).lower()


class StaticCatalogAdapter(ProviderAdapter):
    """Filters ``STATIC_PRODUCTS`` by keyword; every query token must appear."""

    name = "static"

    def __init__(self, products: Optional[Sequence[Dict[str, Any]]] = None, *, enabled: bool = True):
        super().__init__(enabled=enabled)
        self.products = list(STATIC_PRODUCTS if products is None else products)

    async def _fetch(self, query: str) -> Tuple[List[NormalizedListing], int]:
        tokens = query.lower().split()
        if not tokens:
            return [], 0

        matched = [p for p in self.products if all(token in _haystack(p) for token in tokens)]
        return self._build_listings(matched, self._to_listings), len(matched)

    def _to_listings(self, product: Dict[str, Any]) -> List[NormalizedListing]:
        history = [
            {**point, "recorded_at": datetime.fromisoformat(point["recorded_at"])}
            for point in product.get("price_history") or []
        ]
        return [
            NormalizedListing(
                source=self.name,
                external_id=product["id"],
                title=product["name"],
                brand=product.get("brand"),
                category=product.get("category"),
                description=product.get("description"),
                image_url=product.get("image_url"),
                price_history=history,
                **offer,
            )
            for offer in product.get("offers") or []
        ]
