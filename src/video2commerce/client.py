"""HTTP client for the product API (candidate products, reviews, stores, auth)."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from .errors import ApiStatusError, AuthenticationRequired, TransportError
from .models import (
    AuthResult,
    CollectionsPage,
    PendingChange,
    ProcessingResult,
    Product,
    ProductStatus,
    StoreProfile,
)
from .normalize import normalize_collections_page, normalize_products, normalize_store
from .schema import validate_request

logger = logging.getLogger(__name__)

PRODUCTS_PATH = "/api/v1/collections/by-youtube-url"
APPROVE_PATH = "/api/v1/collections/approve"
REJECT_PATH = "/api/v1/collections/reject"
BULK_EDIT_PATH = "/api/v1/collections/products/bulk-update"
PROCESS_VIDEO_PATH = "/process-video/"
LOGIN_PATH = "/api/v1/login"
SIGNUP_PATH = "/api/v1/signup"
LOGOUT_PATH = "/api/v1/logout"
STORE_DETAILS_PATH = "/api/v1/store/details"
MY_STORE_PATH = "/api/v1/store/my-store"
STORE_COLLECTIONS_PATH = "/store/collections"


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(data, dict):
        detail = data.get("message") or data.get("detail") or data.get("error")
        if detail:
            return str(detail)
    return response.reason_phrase or "request failed"


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _wire_change(product_id: str, change: PendingChange) -> Dict[str, Any]:
    item: Dict[str, Any] = {"id": product_id}
    for key, value in change.fields().items():
        if isinstance(value, Decimal):
            value = float(value)
        elif isinstance(value, ProductStatus):
            value = value.value
        item[key] = value
    return item


class ProductStoreClient:
    """
    Thin wrapper over ``httpx.Client`` for the product API.

    Every response is normalized before it leaves this class; callers get
    ``Product``/``StoreProfile`` models, never raw JSON. Failures surface as
    ``TransportError``, ``AuthenticationRequired`` or ``ApiStatusError``.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.token = token

    @property
    def token(self) -> Optional[str]:
        return self._token

    @token.setter
    def token(self, value: Optional[str]) -> None:
        self._token = value or None
        if self._token:
            self._client.headers["Authorization"] = f"Bearer {self._token}"
        else:
            self._client.headers.pop("Authorization", None)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ProductStoreClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = self._client.request(method, path, params=params, json=json)
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransportError(f"Could not reach the product API: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthenticationRequired(_error_message(response), response.status_code)
        if response.is_error:
            message = _error_message(response)
            logger.warning("%s %s -> %s %s", method, path, response.status_code, message)
            raise ApiStatusError(response.status_code, message)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiStatusError(
                response.status_code, "product API returned invalid JSON"
            ) from exc

    # --- candidate products -------------------------------------------------

    def fetch_products(self, youtube_url: str, store_url: str) -> List[Product]:
        data = self._request(
            "GET",
            PRODUCTS_PATH,
            params={"youtube_url": youtube_url, "store_url": store_url},
        )
        try:
            return normalize_products(data if data is not None else [])
        except ValueError as exc:
            raise ApiStatusError(502, f"unexpected product list shape: {exc}") from exc

    def bulk_review(
        self,
        product_ids: Iterable[str],
        status: ProductStatus,
        *,
        youtube_url: str,
        store_url: str,
        review_all: bool = False,
    ) -> Dict[str, Any]:
        """Approve or reject products in one call (same body, endpoint per status)."""
        if status is ProductStatus.APPROVED:
            path = APPROVE_PATH
        elif status is ProductStatus.REJECTED:
            path = REJECT_PATH
        else:
            raise ValueError("bulk review status must be approved or rejected.")
        body = validate_request(
            {
                "product_ids": list(dict.fromkeys(product_ids)),
                "status": status.value,
                "review_all": review_all,
                "youtube_url": youtube_url,
                "store_url": store_url,
            },
            "BulkReviewRequest",
        )
        return self._request("POST", path, json=body) or {}

    def bulk_edit(
        self,
        changes: Mapping[str, PendingChange],
        *,
        youtube_url: str,
        store_url: str,
    ) -> Dict[str, Any]:
        """Send every staged change (status and field edits) as one request."""
        body = validate_request(
            {
                "youtube_url": youtube_url,
                "store_url": store_url,
                "products": [
                    _wire_change(product_id, change)
                    for product_id, change in changes.items()
                ],
            },
            "BulkEditRequest",
        )
        return self._request("POST", BULK_EDIT_PATH, json=body) or {}

    def process_video(
        self, youtube_url: str, store_url: str, *, auto_approve: bool = False
    ) -> ProcessingResult:
        body = validate_request(
            {
                "youtube_url": youtube_url,
                "store_url": store_url,
                "auto_approve": auto_approve,
            },
            "ProcessVideoRequest",
        )
        data = self._request("POST", PROCESS_VIDEO_PATH, json=body) or {}
        return ProcessingResult(
            collection_id=_optional_str(data.get("collection_id")),
            collection_url=_optional_str(data.get("collection_url")),
            total_products=int(data.get("total_products") or 0),
            status=str(data.get("status") or "submitted"),
        )

    # --- authentication -----------------------------------------------------

    def _auth(self, path: str, body: Dict[str, Any], action: str) -> AuthResult:
        data = self._request("POST", path, json=body) or {}
        token = data.get("token")
        if not data.get("success") or not token:
            raise AuthenticationRequired(data.get("message") or f"{action} failed")
        self.token = token
        return AuthResult(token=token, user=data.get("user") or {})

    def login(self, username: str, password: str) -> AuthResult:
        return self._auth(
            LOGIN_PATH, {"username": username, "password": password}, "Login"
        )

    def signup(
        self,
        *,
        email: str,
        password: str,
        site_title: str,
        site_url: str,
        username: Optional[str] = None,
    ) -> AuthResult:
        body: Dict[str, Any] = {
            "email": email,
            "password": password,
            "site_title": site_title,
            "site_url": site_url,
        }
        if username:
            body["username"] = username
        return self._auth(SIGNUP_PATH, body, "Signup")

    def logout(self) -> None:
        """Revoke the token server-side; the local token is cleared even on failure."""
        if not self.token:
            return
        try:
            self._request("POST", LOGOUT_PATH)
        except (TransportError, ApiStatusError) as exc:
            logger.warning("Logout request failed, clearing token locally: %s", exc)
        finally:
            self.token = None

    # --- storefronts --------------------------------------------------------

    def _store(self, data: Any) -> StoreProfile:
        try:
            return normalize_store(data if isinstance(data, dict) else {})
        except ValueError as exc:
            raise ApiStatusError(502, f"unexpected store shape: {exc}") from exc

    def store_details(self, store_url: str) -> StoreProfile:
        return self._store(
            self._request("GET", STORE_DETAILS_PATH, params={"store_url": store_url})
        )

    def my_store(self) -> StoreProfile:
        return self._store(self._request("GET", MY_STORE_PATH))

    def store_collections(
        self, store_url: str, *, page: int = 1, per_page: int = 20
    ) -> CollectionsPage:
        data = self._request(
            "GET",
            STORE_COLLECTIONS_PATH,
            params={"store_url": store_url, "page": page, "per_page": per_page},
        )
        try:
            return normalize_collections_page(data or {"collections": []})
        except ValueError as exc:
            raise ApiStatusError(502, f"unexpected collections shape: {exc}") from exc
