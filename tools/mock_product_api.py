"""
In-memory stand-in for the product API, for running the dashboard locally.

    uvicorn --factory tools.mock_product_api:create_mock_app --port 8000

Sign in as ``demo`` / ``demo``. Processing any YouTube URL creates three
draft products for it. Records come back in the older response shapes
(``_id``, ``review_status``, string prices, ``private`` for rejected) so the
dashboard's normalization is exercised end to end.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, Header, HTTPException, status

SAMPLE_PRODUCTS = [
    ("Wireless Earbuds", "79.99", 0.93, 12.0, 31.5),
    ("Ceramic Pour-Over Set", "34.50", 0.81, 45.0, 62.0),
    ("Linen Throw Blanket", "58.00", 0.64, 90.0, 118.2),
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_mock_app(users: Optional[Dict[str, str]] = None) -> FastAPI:
    app = FastAPI(title="Mock Product API")
    accounts = dict(users or {"demo": "demo"})
    tokens: Dict[str, str] = {}
    products: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}
    stores: Dict[str, Dict[str, Any]] = {}
    app.state.products = products

    def _user(authorization: Optional[str]) -> str:
        token = (authorization or "").removeprefix("Bearer ").strip()
        if token not in tokens:
            raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
        return tokens[token]

    def _items(youtube_url: str, store_url: str) -> List[Dict[str, Any]]:
        key = (youtube_url, store_url)
        if key not in products:
            raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Collection not found")
        return products[key]

    def _store(store_url: str) -> Dict[str, Any]:
        store = stores.setdefault(
            store_url,
            {
                "url": store_url,
                "name": store_url.split("//")[-1].strip("/"),
                "status": "active",
            },
        )
        collections = [key for key in products if key[1] == store_url]
        store["total_collections"] = len(collections)
        store["total_products"] = sum(len(products[key]) for key in collections)
        return store

    @app.post("/api/v1/login")
    def login(payload: Dict[str, Any]) -> Dict[str, Any]:
        username = payload.get("username")
        if not username or accounts.get(username) != payload.get("password"):
            return {"success": False, "message": "Invalid username or password"}
        token = secrets.token_hex(16)
        tokens[token] = username
        return {"success": True, "token": token, "user": {"username": username}}

    @app.post("/api/v1/signup")
    def signup(payload: Dict[str, Any]) -> Dict[str, Any]:
        username = payload.get("username") or payload.get("email")
        if not username or username in accounts:
            return {"success": False, "message": "Account already exists"}
        accounts[username] = payload.get("password", "")
        _store(payload.get("site_url", ""))["name"] = payload.get("site_title")
        return login({"username": username, "password": accounts[username]})

    @app.post("/api/v1/logout")
    def logout(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
        _user(authorization)
        tokens.pop((authorization or "").removeprefix("Bearer ").strip(), None)
        return {"success": True}

    @app.post("/process-video/")
    def process_video(
        payload: Dict[str, Any], authorization: Optional[str] = Header(None)
    ) -> Dict[str, Any]:
        _user(authorization)
        key = (payload["youtube_url"], payload["store_url"])
        items = []
        for index, (name, price, confidence, start, end) in enumerate(SAMPLE_PRODUCTS):
            approved = payload.get("auto_approve") and confidence >= 0.9
            items.append(
                {
                    "_id": f"p{len(products)}{index + 1}",
                    "name": name,
                    "price": price,
                    "description": f"{name} featured in the video.",
                    "status": "draft",
                    "review_status": "approved" if approved else None,
                    "confidence_score": confidence,
                    "youtube_timestamp_start": start,
                    "youtube_timestamp_end": end,
                    "updated_at": _now(),
                }
            )
        products[key] = items
        return {
            "status": "completed",
            "collection_id": len(products),
            "collection_url": f"{payload['store_url'].rstrip('/')}/collections/{len(products)}",
            "total_products": len(items),
        }

    @app.get("/api/v1/collections/by-youtube-url")
    def by_youtube_url(
        youtube_url: str, store_url: str, authorization: Optional[str] = Header(None)
    ) -> Dict[str, Any]:
        _user(authorization)
        return {"products": _items(youtube_url, store_url)}

    def _review(payload: Dict[str, Any], marker: str) -> Dict[str, Any]:
        items = _items(payload["youtube_url"], payload["store_url"])
        wanted = set(payload.get("product_ids") or [])
        updated = 0
        for item in items:
            if payload.get("review_all") or item["_id"] in wanted:
                item["review_status"] = marker
                item["updated_at"] = _now()
                updated += 1
        return {"success": True, "updated": updated}

    @app.post("/api/v1/collections/approve")
    def approve(
        payload: Dict[str, Any], authorization: Optional[str] = Header(None)
    ) -> Dict[str, Any]:
        _user(authorization)
        return _review(payload, "approved")

    @app.post("/api/v1/collections/reject")
    def reject(
        payload: Dict[str, Any], authorization: Optional[str] = Header(None)
    ) -> Dict[str, Any]:
        _user(authorization)
        return _review(payload, "private")

    @app.post("/api/v1/collections/products/bulk-update")
    def bulk_update(
        payload: Dict[str, Any], authorization: Optional[str] = Header(None)
    ) -> Dict[str, Any]:
        _user(authorization)
        items = {i["_id"]: i for i in _items(payload["youtube_url"], payload["store_url"])}
        missing = [c["id"] for c in payload.get("products", []) if c["id"] not in items]
        if missing:
            raise HTTPException(
                status.HTTP_404_NOT_FOUND, detail=f"Unknown products: {', '.join(missing)}"
            )
        for change in payload["products"]:
            item = items[change["id"]]
            for field in ("name", "description"):
                if field in change:
                    item[field] = change[field]
            if "price" in change:
                item["price"] = f"{change['price']:.2f}"
            if "status" in change:
                item["review_status"] = change["status"]
            item["updated_at"] = _now()
        return {"success": True, "updated": len(payload["products"])}

    @app.get("/api/v1/store/details")
    def store_details(
        store_url: str, authorization: Optional[str] = Header(None)
    ) -> Dict[str, Any]:
        _user(authorization)
        return _store(store_url)

    @app.get("/api/v1/store/my-store")
    def my_store(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
        username = _user(authorization)
        return _store(f"https://{username}.example.com")

    @app.get("/store/collections")
    def store_collections(
        store_url: str,
        page: int = 1,
        per_page: int = 20,
        authorization: Optional[str] = Header(None),
    ) -> Dict[str, Any]:
        _user(authorization)
        rows = []
        for index, ((youtube_url, url), items) in enumerate(products.items(), start=1):
            if url != store_url:
                continue
            buckets = [i.get("review_status") for i in items]
            rows.append(
                {
                    "id": index,
                    "video_title": f"Video {index}",
                    "youtube_url": youtube_url,
                    "total_products": len(items),
                    "approved_products": buckets.count("approved"),
                    "rejected_products": buckets.count("private") + buckets.count("rejected"),
                    "pending_products": sum(1 for b in buckets if b in (None, "draft")),
                    "updated_at": max((i["updated_at"] for i in items), default=None),
                }
            )
        start = (page - 1) * per_page
        return {
            "collections": rows[start : start + per_page],
            "pagination": {
                "total": len(rows),
                "pages": max(1, -(-len(rows) // per_page)),
                "current_page": page,
                "per_page": per_page,
            },
        }

    return app
