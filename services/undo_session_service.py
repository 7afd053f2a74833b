"""
Undo sessions for staging mutations.

Each mutation records the operations that reverse it. Sessions are
kept per shop, newest first, capped at MAX_SESSIONS_PER_SHOP, and live
in process memory only.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4
import structlog

from models.staging import UndoOperation, UndoSession, UndoTarget
from services.staging_service import normalize_store_key
from utils.text_utils import normalize_lower, normalize_text

logger = structlog.get_logger(__name__)

MAX_SESSIONS_PER_SHOP = 120
MAX_LIST_LIMIT = 100


class UndoSessionService:
    """Per-shop stacks of undo sessions."""

    def __init__(self, max_sessions: int = MAX_SESSIONS_PER_SHOP):
        self.max_sessions = max_sessions
        self._sessions: dict[str, list[UndoSession]] = {}

    def _bucket(self, shop: Optional[str]) -> list[UndoSession]:
        return self._sessions.setdefault(normalize_store_key(shop), [])

    def create(
        self,
        shop: str,
        target: UndoTarget,
        action: str,
        note: str,
        operations: list[UndoOperation]
    ) -> UndoSession:
        session = UndoSession(
            id=str(uuid4()),
            shop=normalize_text(shop),
            target=target,
            action=normalize_text(action),
            note=normalize_text(note),
            created_at=datetime.now(timezone.utc).isoformat(),
            operations=list(operations),
        )
        bucket = self._bucket(shop)
        bucket.insert(0, session)
        del bucket[self.max_sessions:]

        logger.debug("undo_session_created", shop=shop, session_id=session.id, action=session.action)
        return session

    def get(self, shop: str, session_id: Optional[str] = None) -> Optional[UndoSession]:
        """Named session, or the newest one when session_id is empty."""
        bucket = self._bucket(shop)
        key = normalize_lower(session_id)
        if not key:
            return bucket[0] if bucket else None
        return next((s for s in bucket if normalize_lower(s.id) == key), None)

    def take(self, shop: str, session_id: Optional[str] = None) -> Optional[UndoSession]:
        """Remove and return a session (newest when session_id is empty)."""
        session = self.get(shop, session_id)
        if session is not None:
            self._bucket(shop).remove(session)
        return session

    def list(
        self,
        shop: str,
        target: Optional[UndoTarget] = None,
        limit: int = 20,
        action: Optional[str] = None
    ) -> list[UndoSession]:
        """Newest first, optionally one target or action; limit is clamped into [1, 100]."""
        limit = max(1, min(MAX_LIST_LIMIT, int(limit)))
        sessions = self._bucket(shop)
        if target:
            sessions = [s for s in sessions if s.target == target]
        if action:
            sessions = [s for s in sessions if normalize_lower(s.action) == normalize_lower(action)]
        return sessions[:limit]

    def clear(self) -> None:
        self._sessions.clear()


# Singleton instance for convenience
_undo_session_service: Optional[UndoSessionService] = None

def get_undo_session_service() -> UndoSessionService:
    """Get or create UndoSessionService instance."""
    global _undo_session_service
    if _undo_session_service is None:
        _undo_session_service = UndoSessionService()
    return _undo_session_service
