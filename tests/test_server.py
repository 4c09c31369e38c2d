import json
from pathlib import Path

from fastapi.testclient import TestClient

from video2commerce.config import Settings
from video2commerce.context import AppContext
from video2commerce.errors import AuthenticationRequired, TransportError
from video2commerce.models import (
    AuthResult,
    CollectionSummary,
    CollectionsPage,
    ProcessingResult,
    StoreProfile,
)
from video2commerce.server import create_app

from conftest import FakeStore

VIDEO = "https://www.youtube.com/watch?v=abc123"
STORE = "https://shop.example.com"
SESSION = {"youtube_url": VIDEO, "store_url": STORE}


class FakeApiClient(FakeStore):
    def __init__(self, products, **kwargs):
        super().__init__(products, **kwargs)
        self.token = None
        self.processed = []
        self.closed = False
        self.signups = []

    def login(self, username, password):
        if password != "secret":
            raise AuthenticationRequired("Invalid username or password")
        self.token = "tok"
        return AuthResult(token="tok", user={"username": username})

    def signup(self, *, email, password, site_title, site_url, username=None):
        if email == "taken@example.com":
            raise AuthenticationRequired("Email already registered")
        self.token = "new"
        self.signups.append((email, username, site_title, site_url))
        return AuthResult(token="new", user={"email": email})

    def logout(self):
        self.token = None

    def process_video(self, youtube_url, store_url, *, auto_approve=False):
        self.processed.append((youtube_url, store_url, auto_approve))
        return ProcessingResult(collection_id="c1", total_products=3, status="completed")

    def store_details(self, store_url):
        return StoreProfile(store_url=store_url, store_title="Example Shop")

    def my_store(self):
        return StoreProfile(store_url=STORE, store_title="My Shop")

    def store_collections(self, store_url, *, page=1, per_page=20):
        return CollectionsPage(
            collections=[
                CollectionSummary(id="1", name="Summer haul", total_products=3, video_url=VIDEO),
                CollectionSummary(id="2", name="Kitchen finds", total_products=0),
            ],
            total=2,
            current_page=page,
            per_page=per_page,
        )

    def close(self):
        self.closed = True


def make_client(tmp_path: Path, products, signed_in=True, **kwargs):
    context = AppContext(state_path=tmp_path / "state.json")
    if signed_in:
        context.sign_in("tok", {"username": "demo"})
    api = FakeApiClient(products, **kwargs)
    app = create_app(Settings(state_path=tmp_path / "state.json"), context, api)
    return TestClient(app), context, api


def test_health(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products)
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_api_requires_sign_in(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products, signed_in=False)
    resp = client.get("/api/review/products", params=SESSION)
    assert resp.status_code == 401
    assert resp.json()["code"] == "authentication_required"


def test_index_redirects_by_auth_state(tmp_path, three_products):
    client, context, _ = make_client(tmp_path, three_products, signed_in=False)
    resp = client.get("/", follow_redirects=False)
    assert resp.headers["location"] == "/login"

    context.sign_in("tok")
    resp = client.get("/", follow_redirects=False)
    assert resp.headers["location"] == "/process"


def test_login_and_logout(tmp_path, three_products):
    client, context, api = make_client(tmp_path, three_products, signed_in=False)

    bad = client.post("/api/auth/login", json={"username": "demo", "password": "nope"})
    assert bad.status_code == 400
    assert bad.json() == {
        "detail": "Invalid username or password",
        "code": "invalid_credentials",
    }

    ok = client.post("/api/auth/login", json={"username": "demo", "password": "secret"})
    assert ok.status_code == 200
    assert context.token == "tok"

    out = client.post("/api/auth/logout")
    assert out.json() == {"status": "signed_out"}
    assert context.token is None
    assert api.token is None


def test_login_page_does_not_redirect_on_refused_credentials(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products, signed_in=False)
    resp = client.get("/login")
    assert resp.status_code == 200
    assert '"auth_page": true' in resp.text
    assert 'href="/signup"' in resp.text


def test_signup_signs_in_and_selects_the_new_store(tmp_path, three_products):
    client, context, api = make_client(tmp_path, three_products, signed_in=False)

    page = client.get("/signup")
    assert page.status_code == 200
    assert "/api/auth/signup" in page.text

    resp = client.post(
        "/api/auth/signup",
        json={
            "email": " new@example.com ",
            "password": "pw",
            "site_title": "New Shop",
            "site_url": STORE,
            "username": "  ",
        },
    )

    assert resp.status_code == 200
    assert resp.json() == {"status": "signed_in", "user": {"email": "new@example.com"}}
    assert api.signups == [("new@example.com", None, "New Shop", STORE)]
    assert context.token == "new"
    assert context.current_store.store_url == STORE
    assert context.current_store.store_title == "New Shop"
    assert AppContext.load(tmp_path / "state.json").token == "new"


def test_refused_signup_is_a_bad_request(tmp_path, three_products):
    client, context, _ = make_client(tmp_path, three_products, signed_in=False)

    resp = client.post(
        "/api/auth/signup",
        json={
            "email": "taken@example.com",
            "password": "pw",
            "site_title": "Shop",
            "site_url": STORE,
        },
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_credentials"
    assert context.token is None

    missing = client.post("/api/auth/signup", json={"email": "a@example.com", "password": "pw"})
    assert missing.status_code == 400
    assert missing.json()["code"] == "invalid_request"


def test_review_page_without_parameters_redirects(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products)
    resp = client.get("/review", params={"youtube_url": VIDEO}, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/process?notice=missing-parameters"


def test_review_page_embeds_session(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products)
    resp = client.get("/review", params=SESSION)
    assert resp.status_code == 200
    assert "Product Review" in resp.text
    assert "https://www.youtube.com/embed/abc123" in resp.text
    assert json.dumps(VIDEO) in resp.text


def test_process_page_shows_notice(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products)
    resp = client.get("/process", params={"notice": "missing-parameters"})
    assert resp.status_code == 200
    assert "Missing required parameters" in resp.text


def test_products_counts_and_tabs(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products)

    data = client.get("/api/review/products", params=SESSION).json()
    assert data["counts"] == {"pending": 1, "approved": 1, "rejected": 1}
    assert data["total"] == 3
    assert data["pending_changes"] == 0

    pending = client.get("/api/review/products", params={**SESSION, "tab": "pending"}).json()
    assert [p["id"] for p in pending["products"]] == ["p1"]
    assert pending["products"][0]["clip_embed_url"].startswith("https://www.youtube.com/embed/abc123")

    bad_tab = client.get("/api/review/products", params={**SESSION, "tab": "archived"})
    assert bad_tab.status_code == 400


def test_products_without_parameters(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products)
    resp = client.get("/api/review/products", params={"youtube_url": VIDEO})
    assert resp.status_code == 400
    assert resp.json()["code"] == "missing_parameters"


def test_stage_then_submit(tmp_path, three_products):
    client, _, api = make_client(tmp_path, three_products)

    marked = client.post(
        "/api/review/mark", json={**SESSION, "product_ids": ["p1"], "decision": "approve"}
    ).json()
    assert marked["pending_changes"] == 1
    edited = client.post(
        "/api/review/edit", json={**SESSION, "product_id": "p2", "price": 12}
    ).json()
    assert edited["pending_summary"] == "1 approved, 1 edited"

    view = client.get("/api/review/products", params=SESSION).json()
    assert view["counts"] == {"pending": 0, "approved": 2, "rejected": 1}
    assert {p["id"]: p["staged"] for p in view["products"]} == {"p1": True, "p2": True, "p3": False}
    assert api.edits == []

    saved = client.post("/api/review/submit", json=SESSION)
    assert saved.status_code == 200
    assert saved.json()["pending_changes"] == 0
    assert set(api.edits[0]) == {"p1", "p2"}

    after = client.get("/api/review/products", params=SESSION).json()
    prices = {p["id"]: p["price"] for p in after["products"]}
    assert prices["p2"] == 12.0
    assert after["counts"]["approved"] == 2


def test_failed_submit_keeps_pending_changes(tmp_path, three_products):
    client, _, _ = make_client(
        tmp_path, three_products, fail_with=TransportError("Could not reach the product API")
    )
    client.post("/api/review/mark", json={**SESSION, "product_ids": ["p1"], "decision": "reject"})

    resp = client.post("/api/review/submit", json=SESSION)

    assert resp.status_code == 502
    assert resp.json()["code"] == "transport_error"
    view = client.get("/api/review/products", params=SESSION).json()
    assert view["pending_changes"] == 1
    assert view["counts"]["rejected"] == 2


def test_submit_with_nothing_staged(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products)
    resp = client.post("/api/review/submit", json=SESSION)
    assert resp.status_code == 400
    assert resp.json()["code"] == "empty_selection"


def test_discard_needs_confirmation(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products)
    client.post("/api/review/mark", json={**SESSION, "product_ids": ["p1", "p2"], "decision": "reject"})

    refused = client.post("/api/review/discard", json=SESSION)
    assert refused.status_code == 409
    assert refused.json()["code"] == "confirmation_required"

    done = client.post("/api/review/discard", json={**SESSION, "confirm": True}).json()
    assert done["discarded"] == 2
    view = client.get("/api/review/products", params=SESSION).json()
    assert view["counts"] == {"pending": 1, "approved": 1, "rejected": 1}


def test_invalid_edit_is_rejected(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products)
    resp = client.post("/api/review/edit", json={**SESSION, "product_id": "p1", "price": -5})
    assert resp.status_code == 400


def test_invalid_decision_is_a_bad_request(tmp_path, three_products):
    client, _, _ = make_client(tmp_path, three_products)
    resp = client.post(
        "/api/review/mark", json={**SESSION, "product_ids": ["p1"], "decision": "maybe"}
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_request"


def test_bulk_approve_everything(tmp_path, three_products):
    client, _, api = make_client(tmp_path, three_products)
    resp = client.post(
        "/api/review/bulk",
        json={**SESSION, "product_ids": [], "decision": "approve", "review_all": True},
    )
    assert resp.status_code == 200
    assert api.reviews[0]["ids"] == ["p1", "p2", "p3"]
    view = client.get("/api/review/products", params=SESSION).json()
    assert view["counts"]["approved"] == 3
    assert view["progress"] == 100.0


def test_process_video_returns_review_url(tmp_path, three_products):
    client, _, api = make_client(tmp_path, three_products)
    resp = client.post(
        "/api/process-video", json={**SESSION, "auto_approve": True}
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["review_url"].startswith("/review?youtube_url=")
    assert body["result"]["total_products"] == 3
    assert api.processed == [(VIDEO, STORE, True)]


def test_store_selection_and_collections(tmp_path, three_products):
    client, context, _ = make_client(tmp_path, three_products)

    missing = client.get("/api/store/collections")
    assert missing.status_code == 400

    selected = client.post("/api/store/select", json={"store_url": STORE}).json()
    assert selected["current_store"]["store_title"] == "Example Shop"
    assert context.current_store.store_url == STORE

    everything = client.get("/api/store/collections").json()
    assert [c["id"] for c in everything["collections"]] == ["1", "2"]
    found = client.get("/api/store/collections", params={"search": "kitchen"}).json()
    assert [c["name"] for c in found["collections"]] == ["Kitchen finds"]
    stocked = client.get("/api/store/collections", params={"tab": "with-products"}).json()
    assert [c["id"] for c in stocked["collections"]] == ["1"]


def test_upstream_rejection_signs_out(tmp_path, three_products):
    client, context, _ = make_client(
        tmp_path, three_products, fail_with=AuthenticationRequired("Token expired")
    )
    client.post("/api/review/mark", json={**SESSION, "product_ids": ["p1"], "decision": "approve"})

    resp = client.post("/api/review/submit", json=SESSION)

    assert resp.status_code == 401
    assert context.token is None
