"""Reconciliation of staged reviewer intent with the product API."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from .errors import ConfirmationRequired, EmptySelectionError, MissingParametersError
from .ledger import PendingEditLedger
from .models import Decision, PendingChange, Product, ProductStatus, ReviewCounts
from .projection import compute_counts, project

logger = logging.getLogger(__name__)


class ProductStore(Protocol):
    """The subset of ``ProductStoreClient`` the controller relies on."""

    def fetch_products(self, youtube_url: str, store_url: str) -> List[Product]: ...

    def bulk_review(
        self,
        product_ids: Iterable[str],
        status: ProductStatus,
        *,
        youtube_url: str,
        store_url: str,
        review_all: bool = False,
    ) -> Dict[str, Any]: ...

    def bulk_edit(
        self,
        changes: Dict[str, PendingChange],
        *,
        youtube_url: str,
        store_url: str,
    ) -> Dict[str, Any]: ...


def _check_ids(product_ids: Iterable[Any]) -> List[str]:
    if isinstance(product_ids, str):
        raise ValueError("product ids must be a list, not a single string.")
    ids = list(product_ids)
    for product_id in ids:
        if not isinstance(product_id, str) or not product_id.strip():
            raise ValueError(f"invalid product id: {product_id!r}")
    return list(dict.fromkeys(ids))


class ReconciliationController:
    """
    Review workflow for the products of one (video, storefront) pair.

    Holds the last fetched product list (authoritative, read-only) and the
    ledger of staged edits. Nothing staged reaches the product API until
    ``submit_all`` succeeds; on failure the ledger is left exactly as it was.
    The controller does not serialize concurrent submits.
    """

    def __init__(
        self,
        store: ProductStore,
        youtube_url: str,
        store_url: str,
        ledger: Optional[PendingEditLedger] = None,
    ):
        if not youtube_url or not store_url:
            raise MissingParametersError("youtube_url and store_url are required.")
        self.store = store
        self.youtube_url = youtube_url
        self.store_url = store_url
        self.ledger = ledger if ledger is not None else PendingEditLedger()
        self._snapshot: Optional[List[Product]] = None

    # --- authoritative snapshot ---------------------------------------------

    def products(self) -> List[Product]:
        if self._snapshot is None:
            return self.refresh()
        return list(self._snapshot)

    def refresh(self) -> List[Product]:
        self._snapshot = self.store.fetch_products(self.youtube_url, self.store_url)
        return list(self._snapshot)

    def invalidate(self) -> None:
        self._snapshot = None

    def view(self) -> List[Product]:
        return list(project(self.products(), self.ledger))

    def counts(self) -> ReviewCounts:
        return compute_counts(self.products(), self.ledger)

    # --- staging ------------------------------------------------------------

    def mark_reviewed(self, product_ids: Sequence[str], decision: Decision) -> int:
        """Stage approve/reject for every id; returns the number of ids staged."""
        ids = _check_ids(product_ids)
        if not ids:
            raise EmptySelectionError("No products selected.")
        status = Decision(decision).status
        for product_id in ids:
            self.ledger.stage(product_id, PendingChange(status=status))
        logger.debug("Staged %s for %d product(s)", status.value, len(ids))
        return len(ids)

    def stage_edit(
        self,
        product_id: str,
        *,
        name: Optional[str] = None,
        price: Optional[Decimal] = None,
        description: Optional[str] = None,
    ) -> PendingChange:
        (product_id,) = _check_ids([product_id])
        if name is not None and not name.strip():
            raise ValueError("name cannot be blank.")
        if price is not None and Decimal(price) < 0:
            raise ValueError("price cannot be negative.")
        change = PendingChange(name=name, price=price, description=description)
        if change.is_empty():
            raise EmptySelectionError("Nothing to change.")
        return self.ledger.stage(product_id, change)

    # --- reconciliation -----------------------------------------------------

    def submit_all(self) -> Dict[str, Any]:
        """
        Send the whole ledger in one request; on success drop what was sent and refetch.

        Entries staged or changed while the request was in flight stay pending.
        """
        if self.ledger.is_empty():
            raise EmptySelectionError("There are no pending changes to save.")
        changes = self.ledger.entries()
        logger.info(
            "Submitting %d pending change(s) for %s", len(changes), self.youtube_url
        )
        try:
            ack = self.store.bulk_edit(
                changes, youtube_url=self.youtube_url, store_url=self.store_url
            )
        except Exception:
            logger.warning(
                "Submit failed; keeping %d pending change(s)", len(self.ledger)
            )
            raise
        for product_id, sent in changes.items():
            if self.ledger.get(product_id) == sent:
                self.ledger.drop(product_id)
        if self.ledger:
            logger.info(
                "%d change(s) staged during submit remain pending", len(self.ledger)
            )
        self.invalidate()
        return ack

    def discard(self, confirmed: bool = False) -> int:
        """Drop every staged change; requires confirmation when anything is staged."""
        count = len(self.ledger)
        if count and not confirmed:
            raise ConfirmationRequired(
                f"Discard {count} pending change(s)? Confirm to continue."
            )
        self.ledger.discard_all()
        return count

    def review_now(
        self,
        product_ids: Sequence[str],
        decision: Decision,
        *,
        review_all: bool = False,
    ) -> Dict[str, Any]:
        """Approve or reject immediately through the bulk status endpoint."""
        ids = _check_ids(product_ids)
        if not ids and not review_all:
            raise EmptySelectionError("No products selected.")
        status = Decision(decision).status
        if review_all:
            ids = [product.id for product in self.products()]
        ack = self.store.bulk_review(
            ids,
            status,
            youtube_url=self.youtube_url,
            store_url=self.store_url,
            review_all=review_all,
        )
        logger.info("Marked %d product(s) %s", len(ids), status.value)
        for product_id in ids:
            change = self.ledger.get(product_id)
            if change is None or change.status is None:
                continue
            remaining = change.model_copy(update={"status": None})
            self.ledger.drop(product_id)
            if not remaining.is_empty():
                self.ledger.stage(product_id, remaining)
        self.invalidate()
        return ack
