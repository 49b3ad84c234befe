# tools/sessions.py
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict

from app.config import get_firestore_client, get_settings


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _blank_session(session_id: str) -> Dict[str, Any]:
    return {
        "session_id": session_id,
        "created_at": _now_iso(),
        "last_seen": _now_iso(),
        "mode": None,         # "track" while the order/phone questions are open
        "need": None,         # "order" | "phone"
        "order_number": None,
        "last_intent": None,
    }


class FirestoreSessionStore:
    """Conversation state keyed by widget session id (collection: sessions)."""

    def get(self, session_id: str) -> Dict[str, Any]:
        db = get_firestore_client()
        ref = db.collection("sessions").document(session_id)
        doc = ref.get()

        if doc.exists:
            return doc.to_dict() or {}

        data = _blank_session(session_id)
        ref.set(data)
        return data

    def update(self, session_id: str, patch: Dict[str, Any]) -> None:
        db = get_firestore_client()
        ref = db.collection("sessions").document(session_id)
        patch = dict(patch)
        patch["last_seen"] = _now_iso()
        ref.set(patch, merge=True)


class MemorySessionStore:
    """
    Process-local store for single-instance / local runs. Holds at most
    `max_sessions` entries; the least recently used session is dropped first.
    """

    def __init__(self, max_sessions: int = 1000):
        self._data: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self.max_sessions = max_sessions

    def __len__(self) -> int:
        return len(self._data)

    def _touch(self, session_id: str) -> Dict[str, Any]:
        sess = self._data.get(session_id)
        if sess is None:
            sess = self._data[session_id] = _blank_session(session_id)
        self._data.move_to_end(session_id)
        while len(self._data) > self.max_sessions:
            self._data.popitem(last=False)
        return sess

    def get(self, session_id: str) -> Dict[str, Any]:
        return dict(self._touch(session_id))

    def update(self, session_id: str, patch: Dict[str, Any]) -> None:
        sess = self._touch(session_id)
        sess.update(patch)
        sess["last_seen"] = _now_iso()


def clear_track_flow(store, session_id: str) -> None:
    store.update(session_id, {"mode": None, "need": None, "order_number": None})


_memory_store = MemorySessionStore()


def get_session_store():
    if get_settings().session_backend == "memory":
        return _memory_store
    return FirestoreSessionStore()
