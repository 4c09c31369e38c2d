"""Pure helpers that compute what the reviewer sees from products plus staged edits."""

from __future__ import annotations

import math
import re
from typing import Iterable, Iterator, List, Optional, Sequence

from .ledger import PendingEditLedger
from .models import Product, ProductStatus, ReviewCounts

TABS = ("all", "pending", "approved", "rejected")

_YOUTUBE_ID = re.compile(
    r"(?:youtu\.be/|youtube\.com/(?:embed/|v/|shorts/|watch\?v=|watch\?.+&v=))([^/?&#]+)"
)


def project(products: Iterable[Product], ledger: PendingEditLedger) -> Iterator[Product]:
    """Yield the effective view of each product; staged fields override authoritative ones."""
    for product in products:
        change = ledger.get(product.id)
        if change is None:
            yield product
            continue
        yield product.model_copy(update=change.fields())


def review_bucket(status: Optional[ProductStatus]) -> str:
    if status is ProductStatus.APPROVED:
        return "approved"
    if status is ProductStatus.REJECTED:
        return "rejected"
    return "pending"


def compute_counts(products: Sequence[Product], ledger: PendingEditLedger) -> ReviewCounts:
    counts = ReviewCounts()
    for view in project(products, ledger):
        bucket = review_bucket(view.status)
        setattr(counts, bucket, getattr(counts, bucket) + 1)
    return counts


def filter_by_tab(views: Iterable[Product], tab: str) -> List[Product]:
    if tab not in TABS:
        raise ValueError(f"unknown tab {tab!r}; expected one of {', '.join(TABS)}.")
    if tab == "all":
        return list(views)
    return [view for view in views if review_bucket(view.status) == tab]


def format_timestamp(seconds: Optional[float]) -> str:
    """Seconds as ``M:SS`` (``0:00`` when unknown)."""
    total = int(seconds or 0)
    return f"{total // 60}:{total % 60:02d}"


def youtube_video_id(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    match = _YOUTUBE_ID.search(url)
    return match.group(1) if match else None


def clip_embed_url(
    video_id: str, start: Optional[float] = None, end: Optional[float] = None
) -> str:
    """Embed URL that plays only the product's segment of the source video."""
    url = f"https://www.youtube.com/embed/{video_id}"
    if start is None and end is None:
        return url
    params = [f"start={int(start or 0)}"]
    if end is not None:
        params.append(f"end={math.ceil(end)}")
    params.append("autoplay=1")
    return url + "?" + "&".join(params)
