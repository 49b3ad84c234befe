import logging
from datetime import datetime, timezone

from app.config import get_firestore_client


logger = logging.getLogger(__name__)


def log_action(session_id: str, event_type: str, payload: dict) -> None:
    """
    Writes structured logs for every lookup / intent / error.
    Stored in Firestore collection: action_logs

    Fire-and-forget: a failed write is logged locally and never reaches the caller.
    """
    try:
        db = get_firestore_client()
        db.collection("action_logs").add({
            "session_id": session_id or "unknown",
            "event_type": event_type,  # track_order | intent | diagnostics | usage | error
            "payload": payload,
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        })
    except Exception as e:
        logger.warning("action log write failed (%s): %r", event_type, e)
