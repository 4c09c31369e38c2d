import json
from decimal import Decimal

import httpx
import pytest

from video2commerce.client import ProductStoreClient
from video2commerce.errors import ApiStatusError, AuthenticationRequired, TransportError
from video2commerce.models import PendingChange, ProductStatus

BASE = "https://api.example.com"
VIDEO = "https://youtu.be/abc"
STORE = "https://shop.example.com"


def make_client(handler, token="tok") -> ProductStoreClient:
    return ProductStoreClient(BASE, token, transport=httpx.MockTransport(handler))


def test_fetch_products_sends_token_and_normalizes():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={"products": [{"_id": "p1", "name": "Lamp", "review_status": "private"}]},
        )

    products = make_client(handler).fetch_products(VIDEO, STORE)

    assert seen["auth"] == "Bearer tok"
    assert seen["path"] == "/api/v1/collections/by-youtube-url"
    assert seen["params"] == {"youtube_url": VIDEO, "store_url": STORE}
    assert products[0].id == "p1"
    assert products[0].status is ProductStatus.REJECTED


def test_bulk_edit_sends_one_request_with_every_change():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/collections/products/bulk-update"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "updated": 2})

    ack = make_client(handler).bulk_edit(
        {
            "p1": PendingChange(status=ProductStatus.APPROVED),
            "p2": PendingChange(price=Decimal("12.5"), name="Set"),
        },
        youtube_url=VIDEO,
        store_url=STORE,
    )

    assert ack == {"success": True, "updated": 2}
    assert len(bodies) == 1
    assert bodies[0]["products"] == [
        {"id": "p1", "status": "approved"},
        {"id": "p2", "name": "Set", "price": 12.5},
    ]


def test_bulk_review_picks_endpoint_by_status():
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        body = json.loads(request.content)
        assert body["review_all"] is False
        assert body["product_ids"] == ["p1", "p2"]
        return httpx.Response(200, json={"success": True})

    client = make_client(handler)
    client.bulk_review(["p1", "p2", "p1"], ProductStatus.APPROVED, youtube_url=VIDEO, store_url=STORE)
    client.bulk_review(["p1", "p2"], ProductStatus.REJECTED, youtube_url=VIDEO, store_url=STORE)

    assert paths == ["/api/v1/collections/approve", "/api/v1/collections/reject"]


def test_bulk_review_refuses_draft():
    client = make_client(lambda request: httpx.Response(200, json={}))
    with pytest.raises(ValueError):
        client.bulk_review(["p1"], ProductStatus.DRAFT, youtube_url=VIDEO, store_url=STORE)


def test_error_status_carries_server_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": "database unavailable"})

    with pytest.raises(ApiStatusError) as excinfo:
        make_client(handler).fetch_products(VIDEO, STORE)

    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "database unavailable"
    assert str(excinfo.value) == "HTTP 500: database unavailable"


def test_unauthorized_maps_to_authentication_required():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Invalid token"})

    with pytest.raises(AuthenticationRequired):
        make_client(handler).my_store()


def test_network_failure_maps_to_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(TransportError):
        make_client(handler).fetch_products(VIDEO, STORE)


def test_unexpected_list_shape_is_an_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"items": []})

    with pytest.raises(ApiStatusError) as excinfo:
        make_client(handler).fetch_products(VIDEO, STORE)
    assert excinfo.value.status_code == 502


def test_login_stores_token():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "Authorization" not in request.headers
        return httpx.Response(
            200, json={"success": True, "token": "new", "user": {"username": "demo"}}
        )

    client = make_client(handler, token=None)
    result = client.login("demo", "demo")

    assert result.token == "new"
    assert result.user == {"username": "demo"}
    assert client.token == "new"


def test_rejected_login():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "message": "Invalid password"})

    client = make_client(handler, token=None)
    with pytest.raises(AuthenticationRequired) as excinfo:
        client.login("demo", "wrong")
    assert excinfo.value.message == "Invalid password"
    assert client.token is None


def test_logout_clears_token_even_when_request_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    client = make_client(handler)
    client.logout()
    assert client.token is None


def test_process_video_result():
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {
            "youtube_url": VIDEO,
            "store_url": STORE,
            "auto_approve": True,
        }
        return httpx.Response(
            200, json={"collection_id": 9, "total_products": 3, "status": "completed"}
        )

    result = make_client(handler).process_video(VIDEO, STORE, auto_approve=True)
    assert result.collection_id == "9"
    assert result.total_products == 3


def test_store_collections_passes_pagination():
    def handler(request: httpx.Request) -> httpx.Response:
        assert dict(request.url.params) == {"store_url": STORE, "page": "2", "per_page": "5"}
        return httpx.Response(200, json={"collections": [], "pagination": {"pages": 2, "current_page": 2}})

    page = make_client(handler).store_collections(STORE, page=2, per_page=5)
    assert page.pages == 2
    assert page.collections == []


def test_signup_sends_site_details():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.url.path == "/api/v1/signup"
        assert body == {
            "email": "a@example.com",
            "password": "pw",
            "site_title": "Shop",
            "site_url": STORE,
        }
        return httpx.Response(200, json={"success": True, "token": "t2"})

    client = make_client(handler, token=None)
    result = client.signup(email="a@example.com", password="pw", site_title="Shop", site_url=STORE)
    assert result.token == "t2"
    assert client.token == "t2"
