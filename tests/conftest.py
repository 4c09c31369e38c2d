from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

from video2commerce.models import PendingChange, Product, ProductStatus


class FakeStore:
    """Records calls instead of talking to the product API."""

    def __init__(self, products: List[Product], fail_with: Optional[Exception] = None):
        self.products = list(products)
        self.fail_with = fail_with
        self.fetches = 0
        self.edits: List[Dict[str, PendingChange]] = []
        self.reviews: List[Dict[str, Any]] = []

    def fetch_products(self, youtube_url: str, store_url: str) -> List[Product]:
        self.fetches += 1
        return list(self.products)

    def bulk_review(self, product_ids, status, *, youtube_url, store_url, review_all=False):
        if self.fail_with:
            raise self.fail_with
        ids = list(product_ids)
        self.reviews.append({"ids": ids, "status": status, "review_all": review_all})
        self.products = [
            p.model_copy(update={"status": status}) if p.id in ids else p
            for p in self.products
        ]
        return {"success": True, "updated": len(ids)}

    def bulk_edit(self, changes, *, youtube_url, store_url):
        if self.fail_with:
            raise self.fail_with
        self.edits.append(dict(changes))
        self.products = [
            p.model_copy(update=changes[p.id].fields()) if p.id in changes else p
            for p in self.products
        ]
        return {"success": True, "updated": len(changes)}


@pytest.fixture
def three_products() -> List[Product]:
    return [
        Product(id="p1", name="Wireless Earbuds", price=Decimal("79.99"), status=ProductStatus.DRAFT),
        Product(id="p2", name="Pour-Over Set", price=Decimal("10"), status=ProductStatus.APPROVED),
        Product(id="p3", name="Throw Blanket", price=Decimal("58"), status=ProductStatus.REJECTED),
    ]


@pytest.fixture
def fake_store(three_products) -> FakeStore:
    return FakeStore(three_products)
