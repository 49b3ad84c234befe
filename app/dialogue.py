from typing import Any, Callable, Dict, Optional

from app.config import Settings, get_settings
from app.graph import ActionLogger
from app.models import TrackResult
from policies.intents import respond
from tools.logs import log_action
from tools.sessions import clear_track_flow


ASK_ORDER = "Please share your order number:"
ASK_PHONE = "Thanks! Now the phone number used at checkout:"
QUICK_REPLIES = ["Track another order", "Connect to Support"]


def widget_reply(html: str, **extra: Any) -> Dict[str, Any]:
    # the storefront widget renders `response`; `reply` is kept for API callers
    return {"ok": True, "reply": html, "response": html, **extra}


def format_track_reply(result: TrackResult) -> str:
    """Widget summary card (same field order the storefront widget renders)."""
    if not result.ok or result.order is None:
        text = result.message or "We couldn't look up that order."
        if result.hint:
            text += f"<br>{result.hint}"
        return text

    o = result.order
    value = "—"
    if o.value is not None:
        value = f"{o.value:.2f} {o.currency or ''}".strip()

    if o.tracking.number:
        tracking = f'<a href="{o.tracking.url}" target="_blank" rel="noopener">{o.tracking.number}</a>'
    else:
        tracking = "—"

    return (
        f"Order Date: {o.date or '—'}<br>"
        f"Order No: {o.name}<br>"
        f"Order Value: {value}<br>"
        f"Status: {o.status}<br>"
        f"Shipping Address: {o.shipping_summary}<br>"
        f"Tracking: {tracking}"
    )


def start_track(store, session_id: str) -> Dict[str, Any]:
    store.update(session_id, {"mode": "track", "need": "order", "order_number": None})
    return widget_reply(ASK_ORDER)


def handle_message(
    store,
    session_id: str,
    message: str,
    track: Callable[[str, str], TrackResult],
    settings: Optional[Settings] = None,
    log: ActionLogger = log_action,
) -> Dict[str, Any]:
    """
    One turn of the chat. While a track flow is open the message is taken as
    the order number, then the phone; otherwise it goes to the intent responder.

    `track(order_number, phone)` runs the lookup pipeline.
    """
    s = settings or get_settings()
    sess = store.get(session_id)

    if sess.get("mode") == "track":
        text = (message or "").strip()

        if sess.get("need") == "order":
            if not text:
                return widget_reply(ASK_ORDER)
            store.update(session_id, {"order_number": text, "need": "phone"})
            return widget_reply(ASK_PHONE)

        if sess.get("need") == "phone":
            if not text:
                return widget_reply(ASK_PHONE)
            result = track(sess.get("order_number") or "", text)
            clear_track_flow(store, session_id)
            out = result.to_payload(include_diagnostics=s.debug_diagnostics)
            out["reply"] = out["response"] = format_track_reply(result)
            out["quick_replies"] = QUICK_REPLIES
            return out

    ir = respond(message, s)
    log(session_id, "intent", {"intent": ir.intent, "confidence": ir.confidence})
    store.update(session_id, {"last_intent": ir.intent})

    return widget_reply(ir.reply, intent=ir.intent, confidence=ir.confidence)
