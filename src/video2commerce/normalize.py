"""
Turn product API responses into the strict internal models.

The API has shipped several response shapes over time (``review_status`` vs
``status``, ``private`` as the rejected marker, store ``url``/``name`` aliases,
lists wrapped in an object). Everything is folded into one shape here so the
rest of the package never sees the variants.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from .models import (
    CollectionSummary,
    CollectionsPage,
    Product,
    ProductStatus,
    StoreProfile,
)

logger = logging.getLogger(__name__)

_STATUS_ALIASES: Dict[str, Optional[ProductStatus]] = {
    "approved": ProductStatus.APPROVED,
    "publish": ProductStatus.APPROVED,
    "published": ProductStatus.APPROVED,
    "rejected": ProductStatus.REJECTED,
    "private": ProductStatus.REJECTED,
    "draft": ProductStatus.DRAFT,
    "pending": ProductStatus.DRAFT,
}


def normalize_status(raw: Any) -> Optional[ProductStatus]:
    """Map any known status spelling to ``ProductStatus``; unknown values become None."""
    if raw is None:
        return None
    if isinstance(raw, ProductStatus):
        return raw
    key = str(raw).strip().lower()
    if not key:
        return None
    if key not in _STATUS_ALIASES:
        logger.warning("Unknown product status %r; treating as unreviewed", raw)
    return _STATUS_ALIASES.get(key)


def _as_decimal(raw: Any) -> Optional[Decimal]:
    if raw is None or isinstance(raw, bool):
        return None
    txt = str(raw).strip().lstrip("$")
    if not txt:
        return None
    try:
        value = Decimal(txt)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _as_float(raw: Any) -> Optional[float]:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _as_int(raw: Any, default: int = 0) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def normalize_product(raw: Dict[str, Any]) -> Product:
    """
    Build a ``Product`` from one API record.

    ``review_status`` wins over ``status`` because older backends used
    ``status`` for the catalog state (``draft``) and ``review_status`` for the
    reviewer verdict. Raises ValueError when the record has no id.
    """
    product_id = _first(raw, "id", "_id", "wc_product_id")
    if product_id is None:
        raise ValueError("product record has no id.")

    confidence = _as_float(raw.get("confidence_score")) or 0.0
    confidence = min(max(confidence, 0.0), 1.0)

    return Product(
        id=str(product_id),
        name=str(raw.get("name") or "").strip(),
        price=_as_decimal(raw.get("price")),
        description=raw.get("description") or None,
        status=normalize_status(_first(raw, "review_status", "status")),
        confidence_score=confidence,
        timestamp_start=_as_float(
            _first(raw, "timestamp_start", "youtube_timestamp_start")
        ),
        timestamp_end=_as_float(_first(raw, "timestamp_end", "youtube_timestamp_end")),
        thumbnail_url=raw.get("thumbnail_url") or None,
        video_clip_url=raw.get("video_clip_url") or None,
    )


def _unwrap_list(payload: Any, key: str) -> List[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    raise ValueError(f"expected a list or an object with a '{key}' list.")


def normalize_products(payload: Any) -> List[Product]:
    """Normalize a product list response; malformed records are skipped and logged."""
    products: List[Product] = []
    for item in _unwrap_list(payload, "products"):
        if not isinstance(item, dict):
            logger.warning("Skipping non-object product record: %r", item)
            continue
        try:
            products.append(normalize_product(item))
        except ValueError as exc:
            logger.warning("Skipping product record: %s", exc)
    return products


def normalize_store(raw: Dict[str, Any]) -> StoreProfile:
    """Accept both the current store-details shape and the legacy url/name one."""
    store_url = _first(raw, "store_url", "url")
    if not store_url:
        raise ValueError("store record has no store_url.")
    return StoreProfile(
        store_url=str(store_url),
        store_title=str(_first(raw, "store_title", "name") or store_url),
        owner_email=raw.get("owner_email"),
        status=raw.get("status"),
        collections_count=_as_int(
            _first(raw, "collections_count", "total_collections")
        ),
        total_products=_as_int(raw.get("total_products")),
    )


def normalize_collection(raw: Dict[str, Any]) -> CollectionSummary:
    collection_id = _first(raw, "id", "_id", "wc_collection_id")
    if collection_id is None:
        raise ValueError("collection record has no id.")
    return CollectionSummary(
        id=str(collection_id),
        name=str(_first(raw, "name", "title", "video_title") or ""),
        url=raw.get("url"),
        total_products=_as_int(raw.get("total_products")),
        approved_products=_as_int(raw.get("approved_products")),
        draft_products=_as_int(_first(raw, "draft_products", "pending_products")),
        rejected_products=_as_int(raw.get("rejected_products")),
        video_url=_first(raw, "video_url", "youtube_url"),
        thumbnail=_first(raw, "thumbnail", "video_thumbnail"),
        last_updated=_first(raw, "last_updated", "updated_at", "created_at"),
    )


def _collections(items: Iterable[Any]) -> List[CollectionSummary]:
    out: List[CollectionSummary] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            out.append(normalize_collection(item))
        except ValueError as exc:
            logger.warning("Skipping collection record: %s", exc)
    return out


def normalize_collections_page(payload: Any) -> CollectionsPage:
    collections = _collections(_unwrap_list(payload, "collections"))
    pagination = payload.get("pagination", {}) if isinstance(payload, dict) else {}
    per_page = _as_int(pagination.get("per_page"), len(collections) or 20)
    return CollectionsPage(
        collections=collections,
        total=_as_int(pagination.get("total"), len(collections)),
        pages=_as_int(pagination.get("pages"), 1),
        current_page=_as_int(pagination.get("current_page"), 1),
        per_page=per_page,
    )
