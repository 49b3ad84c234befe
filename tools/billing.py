import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from google.cloud import firestore

from app.config import get_firestore_client


logger = logging.getLogger(__name__)

# conversations per calendar month; None = unlimited
PLAN_LIMITS: Dict[str, Optional[int]] = {
    "free": 50,
    "basic": 1000,
    "pro": None,
}


def _month_bucket() -> str:
    # stable per-month bucket like: 202610
    return datetime.now(timezone.utc).strftime("%Y%m")


def _usage_ref(db, shop: str, bucket: str):
    return db.collection("usage").document(f"{shop}:{bucket}")


def check_subscription(shop: str) -> Optional[Dict[str, Any]]:
    """
    Plan gate consulted before a chat / track request is served.

    Returns None when the shop may proceed, otherwise an error payload:
      - NO_SUBSCRIPTION: no shop doc or plan inactive
      - LIMIT_EXCEEDED: monthly usage reached the plan limit

    Firestore doc: shops/{shop} = {plan, active, monthly_limit?}
    """
    db = get_firestore_client()
    doc = db.collection("shops").document(shop).get()
    data = doc.to_dict() if doc.exists else {}

    if not data or not data.get("active"):
        return {
            "ok": False,
            "error": "NO_SUBSCRIPTION",
            "message": "Chat support is not enabled for this store.",
        }

    plan = str(data.get("plan") or "free").lower()
    limit = data.get("monthly_limit", PLAN_LIMITS.get(plan))
    if limit is None:
        return None

    usage = _usage_ref(db, shop, _month_bucket()).get()
    count = int((usage.to_dict() or {}).get("count", 0)) if usage.exists else 0
    if count >= int(limit):
        return {
            "ok": False,
            "error": "LIMIT_EXCEEDED",
            "message": "This store has reached its monthly chat limit.",
        }
    return None


def record_usage(shop: str, kind: str) -> None:
    """Increment this month's counter. Never raises."""
    try:
        db = get_firestore_client()
        _usage_ref(db, shop, _month_bucket()).set(
            {
                "shop": shop,
                "count": firestore.Increment(1),
                kind: firestore.Increment(1),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            merge=True,
        )
    except Exception as e:
        logger.warning("usage counter update failed for %s: %r", shop, e)
