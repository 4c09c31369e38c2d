"""Data models shared by the API client, the review workflow and the dashboard."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductStatus(str, Enum):
    """Authoritative catalog status of a candidate product."""

    DRAFT = "draft"
    APPROVED = "approved"
    REJECTED = "rejected"


class Decision(str, Enum):
    """A reviewer verdict on one or more products."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def status(self) -> ProductStatus:
        if self is Decision.APPROVE:
            return ProductStatus.APPROVED
        return ProductStatus.REJECTED


class Product(BaseModel):
    """Normalized candidate product as returned by the product API."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: Optional[Decimal] = None
    description: Optional[str] = None
    status: Optional[ProductStatus] = Field(
        None, description="Missing when the backend has not assigned one yet."
    )
    confidence_score: float = Field(0.0, ge=0.0, le=1.0)
    timestamp_start: Optional[float] = Field(
        None, description="Segment start in seconds from the start of the video."
    )
    timestamp_end: Optional[float] = None
    thumbnail_url: Optional[str] = None
    video_clip_url: Optional[str] = None


class PendingChange(BaseModel):
    """Locally staged, unsent edits for a single product."""

    name: Optional[str] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    status: Optional[ProductStatus] = None

    def fields(self) -> Dict[str, Any]:
        """Only the fields this change actually carries."""
        return self.model_dump(exclude_none=True)

    def is_empty(self) -> bool:
        return not self.fields()


class ReviewCounts(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.approved + self.rejected

    @property
    def progress(self) -> float:
        """Share of reviewed (approved or rejected) products, in percent."""
        if not self.total:
            return 0.0
        return round((self.approved + self.rejected) * 100 / self.total, 2)


class StoreProfile(BaseModel):
    """A storefront the reviewer publishes to."""

    store_url: str
    store_title: str
    owner_email: Optional[str] = None
    status: Optional[str] = None
    collections_count: int = 0
    total_products: int = 0


class CollectionSummary(BaseModel):
    """Products extracted from one video for one storefront."""

    id: str
    name: str
    url: Optional[str] = None
    total_products: int = 0
    approved_products: int = 0
    draft_products: int = 0
    rejected_products: int = 0
    video_url: Optional[str] = None
    thumbnail: Optional[str] = None
    last_updated: Optional[str] = None


class CollectionsPage(BaseModel):
    collections: List[CollectionSummary]
    total: int = 0
    pages: int = 1
    current_page: int = 1
    per_page: int = 20


class AuthResult(BaseModel):
    token: str
    user: Dict[str, Any] = Field(default_factory=dict)


class ProcessingResult(BaseModel):
    """Acknowledgement returned after a video is submitted for extraction."""

    collection_id: Optional[str] = None
    collection_url: Optional[str] = None
    total_products: int = 0
    status: str = "submitted"
