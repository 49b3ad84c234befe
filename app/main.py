# app/main.py
import logging
import os
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, FastAPI, Depends, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.dialogue import handle_message, start_track, widget_reply
from app.graph import run_track_pipeline
from app.models import ChatRequest
from app.security import require_api_key, verify_app_proxy
from policies.intents import respond
from tools.billing import check_subscription, record_usage
from tools.logs import log_action
from tools.orders import ShopifyOrderClient
from tools.sessions import get_session_store

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront Support Bot")

# ---- Guardrails ----
MAX_MESSAGE_CHARS = 2000  # reject huge payloads (basic abuse guard)


def get_order_client():
    client = ShopifyOrderClient.from_settings()
    try:
        yield client
    finally:
        client.close()


def get_store():
    return get_session_store()


def _gate(shop: str) -> Optional[Dict[str, Any]]:
    """Plan / usage gate. Billing outages must not take the widget down."""
    if not get_settings().billing_required:
        return None
    try:
        return check_subscription(shop)
    except Exception:
        logger.exception("subscription check failed for %s; allowing request", shop)
        return None


def _run_chat(
    req: ChatRequest,
    caller: Dict[str, Any],
    client: ShopifyOrderClient,
    store,
    background_tasks: BackgroundTasks,
) -> Dict[str, Any]:
    """
    Shared logic for /chat (API key) and /proxy/chat (storefront app proxy).

    Action logs and usage counters are written after the response is sent.
    """
    def log(session_id: str, event_type: str, payload: Dict[str, Any]) -> None:
        background_tasks.add_task(log_action, session_id, event_type, payload)

    settings = get_settings()
    sid = req.session_id or "unknown"
    shop = caller.get("shop", "unknown")
    action = (req.action or "").strip().lower()

    if action == "ping":
        return {"ok": True, "pong": True}

    # 1) Payload size guard
    msg = req.message or ""
    if len(msg) > MAX_MESSAGE_CHARS:
        # raised below, so no background task would run; write it now
        log_action(sid, "blocked_request", {
            "reason": "message_too_long",
            "length": len(msg),
            "max": MAX_MESSAGE_CHARS,
            "ip": caller.get("ip"),
        })
        raise HTTPException(
            status_code=413,
            detail={"ok": False, "error": "PAYLOAD_TOO_LARGE", "message": f"Message too long. Max is {MAX_MESSAGE_CHARS} chars."},
        )

    # 2) Plan gate (before anything touches Shopify)
    blocked = _gate(shop)
    if blocked:
        log(sid, "blocked_request", {"reason": blocked["error"], "shop": shop})
        return blocked

    def track(order_number: str, phone: str):
        return run_track_pipeline(order_number, phone, client, session_id=sid, settings=settings, log=log)

    if action == "track_order":
        result = track(req.order_number or "", req.phone_number or "")
        background_tasks.add_task(record_usage, shop, "track_order")
        return result.to_payload(include_diagnostics=settings.debug_diagnostics)

    if action == "discounts":
        return widget_reply("<br>".join(settings.discount_codes), codes=settings.discount_codes)

    if action == "start_track":
        if not req.session_id:
            return {"ok": False, "error": "MISSING_PARAMS", "message": "session_id is required."}
        return start_track(store, req.session_id)

    if action:
        return {"ok": False, "error": "UNKNOWN_ACTION", "message": f"Unknown action: {action}"}

    if not msg.strip():
        return {"ok": False, "error": "MISSING_PARAMS", "message": "Send a message or an action."}

    background_tasks.add_task(record_usage, shop, "message")

    if req.session_id:
        try:
            return handle_message(store, req.session_id, msg, track, settings, log=log)
        except Exception:
            # session store down: answer statelessly
            logger.exception("dialogue failed for session %s", req.session_id)

    ir = respond(msg, settings)
    log(sid, "intent", {"intent": ir.intent, "confidence": ir.confidence})
    return widget_reply(ir.reply, intent=ir.intent, confidence=ir.confidence)


@app.exception_handler(HTTPException)
async def http_error(request: Request, exc: HTTPException):
    detail = exc.detail if isinstance(exc.detail, dict) else {"ok": False, "error": "HTTP_ERROR", "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=detail, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def bad_request(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"ok": False, "error": "BAD_REQUEST", "message": "Request body must be a JSON object."},
    )


@app.exception_handler(Exception)
async def internal_error(request: Request, exc: Exception):
    logger.exception("unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": "INTERNAL_ERROR", "message": "Something went wrong. Please try again."},
    )


@app.post("/chat")
def chat(
    req: ChatRequest,
    background_tasks: BackgroundTasks,
    caller=Depends(require_api_key),
    client: ShopifyOrderClient = Depends(get_order_client),
    store=Depends(get_store),
):
    """
    Protected endpoint:
    - Requires X-API-Key (unless API_KEY env not set -> dev mode allowed)
    - Rejects huge messages
    """
    return _run_chat(req=req, caller=caller, client=client, store=store, background_tasks=background_tasks)


@app.post("/proxy/chat")
def proxy_chat(
    req: ChatRequest,
    background_tasks: BackgroundTasks,
    caller=Depends(verify_app_proxy),
    client: ShopifyOrderClient = Depends(get_order_client),
    store=Depends(get_store),
):
    """
    Storefront widget endpoint, reached through the Shopify app proxy
    (signed query string, no API key in the browser).
    """
    return _run_chat(req=req, caller=caller, client=client, store=store, background_tasks=background_tasks)


@app.get("/health")
def health():
    return {"status": "ok"}
