import logging
from typing import TypedDict, Callable, List, Dict, Any, Optional

from langgraph.graph import StateGraph, END

from app.config import Settings, get_settings
from app.models import NormalizedOrder, OrderQuery, TrackResult
from policies.order_shape import normalize_order
from policies.ownership import verify_ownership
from tools.diagnostics import collect_diagnostics
from tools.logs import log_action
from tools.order_numbers import OrderNumberForms, normalize_order_number
from tools.phones import canonical_phone
from tools.orders import (
    AdminAPIError,
    ShopifyOrderClient,
    UpstreamUnavailable,
    search_orders_with_fallback,
)


logger = logging.getLogger(__name__)

ActionLogger = Callable[[str, str, Dict[str, Any]], None]

MESSAGES = {
    "MISSING_PARAMS": "Please share both your order number and the phone number used at checkout.",
    "ADMIN_API_ERROR": "We couldn't look up orders right now. Please try again in a few minutes.",
    "UPSTREAM_UNAVAILABLE": "Order lookup is temporarily unavailable. Please try again shortly.",
    "NOT_FOUND": "We couldn't find an order with that number. Please check the number on your confirmation email.",
    "PHONE_MISMATCH": "That phone number doesn't match the one on this order. Please use the number given at checkout.",
    "INTERNAL_ERROR": "Something went wrong while looking up your order. Please try again.",
}


class TrackState(TypedDict, total=False):
    order_number: str
    phone: str
    session_id: str

    forms: OrderNumberForms
    candidates: List[Dict[str, Any]]
    matched: Dict[str, Any]
    hints: List[str]

    order: NormalizedOrder
    error: Optional[str]
    status: Optional[int]
    diagnostics: Optional[Dict[str, Any]]


def _fail(state: TrackState, kind: str, status: Optional[int] = None) -> TrackState:
    state["error"] = kind
    if status is not None:
        state["status"] = status
    return state


def build_track_graph(
    client: ShopifyOrderClient,
    settings: Optional[Settings] = None,
    log: ActionLogger = log_action,
):
    s = settings or get_settings()

    def validate_node(state: TrackState) -> TrackState:
        order_number = (state.get("order_number") or "").strip()
        phone = (state.get("phone") or "").strip()
        if not order_number or not canonical_phone(phone):
            return _fail(state, "MISSING_PARAMS")

        forms = normalize_order_number(order_number)
        if not forms.bare:
            return _fail(state, "MISSING_PARAMS")

        state["forms"] = forms
        return state

    def search_node(state: TrackState) -> TrackState:
        if state.get("error"):
            return state

        sid = state.get("session_id") or "unknown"
        forms = state["forms"]
        try:
            state["candidates"] = search_orders_with_fallback(client, forms)
        except AdminAPIError as e:
            log(sid, "error", {"where": "search_node", "status": e.status, "body": e.body})
            return _fail(state, "ADMIN_API_ERROR", status=e.status)
        except UpstreamUnavailable as e:
            log(sid, "error", {"where": "search_node", "error": str(e)})
            return _fail(state, "UPSTREAM_UNAVAILABLE")

        log(sid, "tool_call", {
            "tool": "search_orders",
            "name": forms.decorated,
            "candidates": len(state["candidates"]),
        })
        return state

    def verify_node(state: TrackState) -> TrackState:
        if state.get("error"):
            return state

        result = verify_ownership(state["candidates"], state["phone"])
        if result.matched:
            state["matched"] = result.order
            return state

        state["hints"] = result.hints
        kind = "NOT_FOUND" if result.outcome == "not_found" else "PHONE_MISMATCH"
        _fail(state, kind)

        if not s.debug_diagnostics:
            return state

        # best effort only; whatever happens here, the outcome above stands
        diag = collect_diagnostics(client)
        state["diagnostics"] = diag
        log(state.get("session_id") or "unknown", "diagnostics", {"outcome": kind, "diagnostics": diag})
        return state

    def present_node(state: TrackState) -> TrackState:
        if state.get("error"):
            return state

        state["order"] = normalize_order(state["matched"], tracking_url_template=s.tracking_url_template)
        return state

    g = StateGraph(TrackState)

    g.add_node("validate", validate_node)
    g.add_node("search", search_node)
    g.add_node("verify", verify_node)
    g.add_node("present", present_node)

    g.set_entry_point("validate")
    g.add_edge("validate", "search")
    g.add_edge("search", "verify")
    g.add_edge("verify", "present")
    g.add_edge("present", END)

    return g.compile()


def _to_result(out: TrackState) -> TrackResult:
    kind = out.get("error")
    if not kind:
        return TrackResult(ok=True, order=out["order"])

    hint = None
    if kind == "PHONE_MISMATCH" and out.get("hints"):
        hint = "Registered number ends with " + " or ".join(h[-4:] for h in out["hints"])

    return TrackResult(
        ok=False,
        error=kind,
        message=MESSAGES[kind],
        status=out.get("status"),
        hint=hint,
        diagnostics=out.get("diagnostics"),
    )


def run_track_pipeline(
    order_number: Optional[str],
    phone: Optional[str],
    client: ShopifyOrderClient,
    session_id: str = "unknown",
    settings: Optional[Settings] = None,
    log: ActionLogger = log_action,
) -> TrackResult:
    """
    order number + phone -> TrackResult. Never raises: anything unexpected
    becomes INTERNAL_ERROR and the traceback stays in the server log.
    """
    try:
        query = OrderQuery(order_number_raw=order_number or "", phone_raw=phone or "")
        graph = build_track_graph(client, settings, log=log)
        out = graph.invoke({
            "order_number": query.order_number_raw,
            "phone": query.phone_raw,
            "session_id": session_id,
        })
        result = _to_result(out)
    except Exception:
        logger.exception("track pipeline failed (session=%s)", session_id)
        result = TrackResult(ok=False, error="INTERNAL_ERROR", message=MESSAGES["INTERNAL_ERROR"])

    log(session_id, "track_order", {
        "ok": result.ok,
        "error": result.error,
        "status": result.status,
        "order": result.order.name if result.order else None,
    })
    return result
