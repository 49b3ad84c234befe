from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import quote

from app.config import DEFAULT_TRACKING_URL_TEMPLATE
from app.models import NormalizedOrder, Tracking


PLACEHOLDER = "—"

PathStep = Union[str, int]
Path = Tuple[PathStep, ...]


@dataclass(frozen=True)
class Rule:
    """One place a field may live in an upstream order, plus how to read it."""

    path: Path
    transform: Optional[Callable[[Any], Any]] = None


# --------------------------------------------------
# Shape helpers
# --------------------------------------------------

def _as_list(value: Any) -> List[Any]:
    """Plain list, or a GraphQL connection ({edges: [{node}]} / {nodes: [...]})."""
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        if isinstance(value.get("nodes"), list):
            return value["nodes"]
        if isinstance(value.get("edges"), list):
            return [e.get("node") if isinstance(e, dict) and "node" in e else e for e in value["edges"]]
    return []


def dig(obj: Any, path: Path) -> Any:
    cur = obj
    for step in path:
        if isinstance(step, int):
            items = _as_list(cur)
            if step >= len(items):
                return None
            cur = items[step]
        else:
            if not isinstance(cur, dict):
                return None
            cur = cur.get(step)
        if cur is None:
            return None
    return cur


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def resolve(order: Dict[str, Any], rules: Tuple[Rule, ...]) -> Any:
    """First rule yielding a non-empty value wins."""
    for rule in rules:
        value = dig(order, rule.path)
        if _is_empty(value):
            continue
        if rule.transform is not None:
            value = rule.transform(value)
            if _is_empty(value):
                continue
        return value
    return None


def coerce_order(body: Any) -> Dict[str, Any]:
    """Unwrap {"order": {...}} (REST single) and {"node": {...}} (GraphQL edge)."""
    if not isinstance(body, dict):
        return {}
    for key in ("order", "node"):
        inner = body.get(key)
        if isinstance(inner, dict):
            return coerce_order(inner)
    return body


def coerce_orders(body: Any) -> List[Dict[str, Any]]:
    """
    Accepts a REST list body ({"orders": [...]}), a GraphQL response
    ({"data": {"orders": {"edges": [...]}}}) or a bare list.
    """
    if isinstance(body, dict) and isinstance(body.get("data"), dict):
        body = body["data"]
    if isinstance(body, dict):
        body = body.get("orders")
    return [o for o in (coerce_order(x) for x in _as_list(body)) if o]


# --------------------------------------------------
# Value transforms
# --------------------------------------------------

def _text(value: Any) -> Optional[str]:
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        s = str(value).strip()
        return s or None
    return None


def _hash_prefixed(value: Any) -> Optional[str]:
    s = _text(value)
    if not s:
        return None
    return s if s.startswith("#") else f"#{s}"


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


STATUS_ALIASES = {
    "partial": "partially_fulfilled",
    "null": None,
}


def _status(value: Any) -> Optional[str]:
    s = _text(value)
    if not s:
        return None
    s = re.sub(r"[\s\-]+", "_", s.lower())
    return STATUS_ALIASES.get(s, s)


def _joined_lines(value: Any) -> Optional[str]:
    if not isinstance(value, list):
        return None
    parts = [p for p in (_text(v) for v in value) if p]
    return ", ".join(parts) or None


def _city_region_country(value: Any) -> Optional[str]:
    if not isinstance(value, dict):
        return None
    city = _text(value.get("city"))
    region = _text(value.get("province")) or _text(value.get("provinceCode")) or _text(value.get("province_code"))
    country = _text(value.get("country")) or _text(value.get("countryCodeV2")) or _text(value.get("country_code"))
    parts = [p for p in (city, region, country) if p]
    return ", ".join(parts) or None


# --------------------------------------------------
# Rule table
# --------------------------------------------------

NAME_RULES = (
    Rule(("name",), _text),
    Rule(("order_number",), _hash_prefixed),
    Rule(("orderNumber",), _hash_prefixed),
)

DATE_RULES = (
    Rule(("created_at",), _text),
    Rule(("createdAt",), _text),
    Rule(("processed_at",), _text),
    Rule(("processedAt",), _text),
)

VALUE_RULES = (
    Rule(("total_price",), _to_float),
    Rule(("totalPrice",), _to_float),
    Rule(("total_price_set", "shop_money", "amount"), _to_float),
    Rule(("totalPriceSet", "shopMoney", "amount"), _to_float),
    Rule(("current_total_price_set", "shop_money", "amount"), _to_float),
    Rule(("currentTotalPriceSet", "shopMoney", "amount"), _to_float),
)

CURRENCY_RULES = (
    Rule(("currency",), _text),
    Rule(("currencyCode",), _text),
    Rule(("total_price_set", "shop_money", "currency_code"), _text),
    Rule(("totalPriceSet", "shopMoney", "currencyCode"), _text),
    Rule(("current_total_price_set", "shop_money", "currency_code"), _text),
    Rule(("currentTotalPriceSet", "shopMoney", "currencyCode"), _text),
)

STATUS_RULES = (
    Rule(("status",), _status),
    Rule(("fulfillment_status",), _status),
    Rule(("displayFulfillmentStatus",), _status),
    Rule(("financial_status",), _status),
    Rule(("displayFinancialStatus",), _status),
)

SHIPPING_RULES = (
    Rule(("shippingAddress", "formatted"), _joined_lines),
    Rule(("shipping_address", "formatted"), _joined_lines),
    Rule(("shippingAddress",), _city_region_country),
    Rule(("shipping_address",), _city_region_country),
    Rule(("shippingAddress",), _text),
    Rule(("shipping_address",), _text),
    Rule(("formattedAddress",), _text),
)

# (number, url, company) paths; url and carrier are read from the same source as the number.
TRACKING_RULES: Tuple[Tuple[Path, Path, Path], ...] = (
    (("tracking", "number"), ("tracking", "url"), ("tracking", "company")),
    (("trackingNumber",), ("trackingUrl",), ("trackingCompany",)),
    (("tracking_number",), ("tracking_url",), ("tracking_company",)),
    (("trackingNumbers", 0), ("trackingUrls", 0), ("trackingCompany",)),
    (("tracking_numbers", 0), ("tracking_urls", 0), ("tracking_company",)),
    (
        ("fulfillments", 0, "trackingInfo", 0, "number"),
        ("fulfillments", 0, "trackingInfo", 0, "url"),
        ("fulfillments", 0, "trackingInfo", 0, "company"),
    ),
    (
        ("fulfillments", 0, "tracking_number"),
        ("fulfillments", 0, "tracking_url"),
        ("fulfillments", 0, "tracking_company"),
    ),
    (
        ("fulfillments", 0, "trackingNumber"),
        ("fulfillments", 0, "trackingUrl"),
        ("fulfillments", 0, "trackingCompany"),
    ),
    (
        ("fulfillments", 0, "tracking_numbers", 0),
        ("fulfillments", 0, "tracking_urls", 0),
        ("fulfillments", 0, "tracking_company"),
    ),
)


def tracking_lookup_url(number: str, template: str = DEFAULT_TRACKING_URL_TEMPLATE) -> str:
    return template.format(number=quote(number, safe=""))


def resolve_tracking(order: Dict[str, Any], url_template: str = DEFAULT_TRACKING_URL_TEMPLATE) -> Tracking:
    orphan_url = None
    for number_path, url_path, company_path in TRACKING_RULES:
        number = _text(dig(order, number_path))
        url = _text(dig(order, url_path))
        if number:
            return Tracking(
                number=number,
                url=url or tracking_lookup_url(number, url_template),
                company=_text(dig(order, company_path)),
            )
        if url and not orphan_url:
            orphan_url = url
    return Tracking(number=None, url=orphan_url)


def normalize_order(
    candidate: Any,
    tracking_url_template: str = DEFAULT_TRACKING_URL_TEMPLATE,
) -> NormalizedOrder:
    """
    Build the widget's order summary from whatever shape Shopify handed us
    (legacy REST, trimmed REST, GraphQL node).
    """
    order = coerce_order(candidate)

    return NormalizedOrder(
        name=resolve(order, NAME_RULES) or PLACEHOLDER,
        date=resolve(order, DATE_RULES),
        value=resolve(order, VALUE_RULES),
        currency=resolve(order, CURRENCY_RULES),
        status=resolve(order, STATUS_RULES) or PLACEHOLDER,
        shipping_summary=resolve(order, SHIPPING_RULES) or PLACEHOLDER,
        tracking=resolve_tracking(order, tracking_url_template),
    )
