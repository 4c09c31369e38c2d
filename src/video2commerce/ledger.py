"""In-memory ledger of reviewer edits that have not been sent yet."""

from __future__ import annotations

from typing import Any, Dict, Iterator, Mapping, Optional, Union

from .models import PendingChange, ProductStatus

ChangeLike = Union[PendingChange, Mapping[str, Any]]


class PendingEditLedger:
    """
    Map of product id to staged ``PendingChange``.

    Staging merges field by field: staging ``{"price": 5}`` after
    ``{"status": "approved"}`` keeps both. Nothing here talks to the network;
    the controller decides when the whole ledger is submitted or discarded.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, PendingChange] = {}

    def stage(self, product_id: str, change: ChangeLike) -> PendingChange:
        if not isinstance(change, PendingChange):
            change = PendingChange(**dict(change))
        current = self._entries.get(product_id)
        merged = (
            current.model_copy(update=change.fields()) if current else change.model_copy()
        )
        self._entries[product_id] = merged
        return merged

    def discard_all(self) -> None:
        self._entries.clear()

    def drop(self, product_id: str) -> None:
        self._entries.pop(product_id, None)

    def is_empty(self) -> bool:
        return not self._entries

    def get(self, product_id: str) -> Optional[PendingChange]:
        return self._entries.get(product_id)

    def entries(self) -> Dict[str, PendingChange]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def summary(self) -> str:
        """Short description for the unsaved-changes bar, e.g. ``2 approved, 1 edited``."""
        approved = rejected = edited = 0
        for change in self._entries.values():
            if change.status is ProductStatus.APPROVED:
                approved += 1
            elif change.status is ProductStatus.REJECTED:
                rejected += 1
            if change.name is not None or change.price is not None or change.description is not None:
                edited += 1
        parts = []
        if approved:
            parts.append(f"{approved} approved")
        if rejected:
            parts.append(f"{rejected} rejected")
        if edited:
            parts.append(f"{edited} edited")
        return ", ".join(parts) or "no changes"
