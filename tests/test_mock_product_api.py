import importlib.util
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from video2commerce.models import ProductStatus
from video2commerce.normalize import (
    normalize_collections_page,
    normalize_products,
    normalize_store,
)
from video2commerce.schema import validate_request

TOOL = Path(__file__).resolve().parents[1] / "tools" / "mock_product_api.py"
VIDEO = "https://www.youtube.com/watch?v=abc"
STORE = "https://shop.example.com"


def load_tool():
    spec = importlib.util.spec_from_file_location("mock_product_api", TOOL)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def api():
    client = TestClient(load_tool().create_mock_app())
    token = client.post("/api/v1/login", json={"username": "demo", "password": "demo"}).json()["token"]
    client.headers["Authorization"] = f"Bearer {token}"
    return client


def fetch(api):
    resp = api.get(
        "/api/v1/collections/by-youtube-url", params={"youtube_url": VIDEO, "store_url": STORE}
    )
    assert resp.status_code == 200
    return {p.id: p for p in normalize_products(resp.json())}


def test_rejects_bad_credentials_and_missing_token():
    client = TestClient(load_tool().create_mock_app())
    assert client.post("/api/v1/login", json={"username": "demo", "password": "x"}).json()["success"] is False
    assert client.get("/api/v1/store/my-store").status_code == 401


def test_full_review_round_trip(api):
    processed = api.post(
        "/process-video/",
        json=validate_request(
            {"youtube_url": VIDEO, "store_url": STORE, "auto_approve": False},
            "ProcessVideoRequest",
        ),
    ).json()
    assert processed["total_products"] == 3

    products = fetch(api)
    assert len(products) == 3
    assert all(p.status is ProductStatus.DRAFT for p in products.values())
    first, second, third = sorted(products)

    api.post(
        "/api/v1/collections/reject",
        json=validate_request(
            {"product_ids": [first], "status": "rejected", "review_all": False,
             "youtube_url": VIDEO, "store_url": STORE},
            "BulkReviewRequest",
        ),
    )
    api.post(
        "/api/v1/collections/products/bulk-update",
        json=validate_request(
            {"youtube_url": VIDEO, "store_url": STORE,
             "products": [{"id": second, "status": "approved", "price": 12.0}]},
            "BulkEditRequest",
        ),
    )

    products = fetch(api)
    assert products[first].status is ProductStatus.REJECTED
    assert products[second].status is ProductStatus.APPROVED
    assert str(products[second].price) == "12.00"
    assert products[third].status is ProductStatus.DRAFT


def test_bulk_update_with_unknown_product(api):
    api.post("/process-video/", json={"youtube_url": VIDEO, "store_url": STORE, "auto_approve": True})
    resp = api.post(
        "/api/v1/collections/products/bulk-update",
        json={"youtube_url": VIDEO, "store_url": STORE, "products": [{"id": "nope", "name": "X"}]},
    )
    assert resp.status_code == 404


def test_store_endpoints(api):
    api.post("/process-video/", json={"youtube_url": VIDEO, "store_url": STORE, "auto_approve": True})

    store = normalize_store(api.get("/api/v1/store/details", params={"store_url": STORE}).json())
    assert store.store_url == STORE
    assert store.collections_count == 1

    page = normalize_collections_page(
        api.get("/store/collections", params={"store_url": STORE}).json()
    )
    assert page.collections[0].video_url == VIDEO
    assert page.collections[0].approved_products == 1
    assert page.collections[0].draft_products == 2
