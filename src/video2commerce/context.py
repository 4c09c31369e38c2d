"""Application context: signed-in user and storefront selection, passed explicitly."""

from __future__ import annotations

import json
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .models import StoreProfile

logger = logging.getLogger(__name__)

MAX_RECENT_STORES = 5


@dataclass
class AppContext:
    """
    State the dashboard needs across pages and restarts.

    Built once at startup (``AppContext.load``) and handed to whatever needs
    it; nothing reads it from a module global. ``save`` writes it back when a
    ``state_path`` is set. Staged review edits are never stored here.
    """

    token: Optional[str] = None
    user: Dict[str, Any] = field(default_factory=dict)
    current_store: Optional[StoreProfile] = None
    recent_stores: List[StoreProfile] = field(default_factory=list)
    state_path: Optional[Path] = None
    _lock: Lock = field(default_factory=Lock, init=False, repr=False, compare=False)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def sign_in(self, token: str, user: Optional[Dict[str, Any]] = None) -> None:
        self.token = token
        self.user = dict(user or {})
        self.save()

    def sign_out(self) -> None:
        self.token = None
        self.user = {}
        self.save()

    def select_store(self, store: StoreProfile) -> None:
        """Make ``store`` current and remember it (newest first, at most five)."""
        self.current_store = store
        others = [s for s in self.recent_stores if s.store_url != store.store_url]
        self.recent_stores = [store, *others][:MAX_RECENT_STORES]
        self.save()

    def clear_store(self) -> None:
        self.current_store = None
        self.save()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "user": self.user,
            "current_store": self.current_store.model_dump() if self.current_store else None,
            "recent_stores": [s.model_dump() for s in self.recent_stores],
        }

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], state_path: Optional[Path] = None
    ) -> "AppContext":
        current = data.get("current_store")
        return cls(
            token=data.get("token") or None,
            user=dict(data.get("user") or {}),
            current_store=StoreProfile(**current) if current else None,
            recent_stores=[StoreProfile(**s) for s in data.get("recent_stores") or []],
            state_path=state_path,
        )

    @classmethod
    def load(cls, state_path: Optional[Path]) -> "AppContext":
        """Read persisted state; a missing or unreadable file yields an empty context."""
        if state_path is None or not state_path.exists():
            return cls(state_path=state_path)
        try:
            data = json.loads(state_path.read_text(encoding="utf-8"))
            return cls.from_dict(data if isinstance(data, dict) else {}, state_path)
        except (OSError, json.JSONDecodeError, ValidationError, TypeError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", state_path, exc)
            return cls(state_path=state_path)

    def save(self) -> None:
        if self.state_path is None:
            return
        path = self.state_path
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", delete=False, dir=str(path.parent), encoding="utf-8"
            ) as tf:
                tf.write(json.dumps(self.to_dict(), ensure_ascii=False, indent=2))
                tmpname = tf.name
            Path(tmpname).replace(path)
