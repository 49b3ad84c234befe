import logging
from typing import Any, Dict, Optional

from tools.orders import ShopifyOrderClient


logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


def collect_diagnostics(client: ShopifyOrderClient) -> Optional[Dict[str, Any]]:
    """
    Best-effort context for a failed lookup: which orders the token can see and
    which scopes it was granted (a missing read_orders scope looks exactly like
    NOT_FOUND from the widget's side).

    Each probe degrades to "unknown" on its own; this function never raises.
    """
    try:
        bundle: Dict[str, Any] = {"recent_orders": UNKNOWN, "access_scopes": UNKNOWN}

        try:
            bundle["recent_orders"] = client.recent_order_names(limit=5)
        except Exception as e:
            logger.info("recent-orders probe failed: %r", e)

        try:
            bundle["access_scopes"] = client.access_scopes()
        except Exception as e:
            logger.info("access-scope probe failed: %r", e)

        return bundle
    except Exception:
        logger.exception("diagnostics collection failed")
        return None
