"""Process-local registry of review sessions, one per (video, storefront) pair."""

from __future__ import annotations

from threading import Lock
from typing import Dict, Tuple

from .controller import ProductStore, ReconciliationController
from .errors import MissingParametersError

SessionKey = Tuple[str, str]


class ReviewSessions:
    """Get-or-create controllers so a reviewer's ledger survives page reloads."""

    def __init__(self, store: ProductStore):
        self.store = store
        self._sessions: Dict[SessionKey, ReconciliationController] = {}
        self._guard = Lock()

    def get(self, youtube_url: str, store_url: str) -> ReconciliationController:
        youtube_url = (youtube_url or "").strip()
        store_url = (store_url or "").strip()
        if not youtube_url or not store_url:
            raise MissingParametersError("youtube_url and store_url are required.")
        key = (youtube_url, store_url)
        with self._guard:
            session = self._sessions.get(key)
            if session is None:
                session = ReconciliationController(self.store, youtube_url, store_url)
                self._sessions[key] = session
        return session

    def drop(self, youtube_url: str, store_url: str) -> None:
        with self._guard:
            self._sessions.pop((youtube_url, store_url), None)

    def clear(self) -> None:
        with self._guard:
            self._sessions.clear()

    def has_pending_changes(self) -> bool:
        with self._guard:
            return any(not s.ledger.is_empty() for s in self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)
