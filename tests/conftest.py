import copy
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from app.config import get_settings
from tools.orders import ShopifyOrderClient


SHOP = "test-shop.myshopify.com"

REST_ORDER: Dict[str, Any] = {
    "id": 450789469,
    "name": "#1001",
    "order_number": 1001,
    "created_at": "2026-10-01T10:15:00+05:30",
    "processed_at": "2026-10-01T10:16:00+05:30",
    "total_price": "1499.00",
    "currency": "INR",
    "fulfillment_status": "fulfilled",
    "financial_status": "paid",
    "shipping_address": {
        "city": "Mumbai",
        "province": "Maharashtra",
        "country": "India",
        "phone": "9876543210",
    },
    "customer": {"phone": "+919876543210"},
    "fulfillments": [
        {
            "status": "success",
            "tracking_company": "India Post",
            "tracking_number": "EZ123456789IN",
            "tracking_url": "https://track.example.com/EZ123456789IN",
            "tracking_numbers": ["EZ123456789IN"],
            "tracking_urls": ["https://track.example.com/EZ123456789IN"],
        }
    ],
}

GRAPHQL_ORDER: Dict[str, Any] = {
    "id": "gid://shopify/Order/450789469",
    "name": "#1001",
    "createdAt": "2026-10-01T10:15:00+05:30",
    "processedAt": "2026-10-01T10:16:00+05:30",
    "totalPriceSet": {"shopMoney": {"amount": "1499.00", "currencyCode": "INR"}},
    "displayFulfillmentStatus": "FULFILLED",
    "displayFinancialStatus": "PAID",
    "shippingAddress": {
        "formatted": ["Mumbai", "Maharashtra", "India"],
        "phone": "+91 98765 43210",
    },
    "customer": {"phone": "+919876543210"},
    "fulfillments": [
        {
            "status": "SUCCESS",
            "trackingInfo": [
                {"number": "EZ123456789IN", "url": "https://track.example.com/EZ123456789IN", "company": "India Post"}
            ],
        }
    ],
}


class FakeDoc:
    def __init__(self, data: Optional[Dict[str, Any]]):
        self._data = data
        self.exists = data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, store: Dict[str, Dict[str, Any]], doc_id: str):
        self._store = store
        self._id = doc_id

    def get(self):
        return FakeDoc(self._store.get(self._id))

    def set(self, data, merge=False):
        if merge and self._id in self._store:
            self._store[self._id].update(data)
        else:
            self._store[self._id] = dict(data)


class FakeCollection:
    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.added: List[Dict[str, Any]] = []

    def document(self, doc_id: str):
        return FakeDocRef(self.docs, doc_id)

    def add(self, data):
        self.added.append(data)


class FakeFirestore:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


@pytest.fixture(autouse=True)
def fake_db(monkeypatch):
    db = FakeFirestore()
    for mod in ("tools.logs", "tools.sessions", "tools.billing"):
        monkeypatch.setattr(f"{mod}.get_firestore_client", lambda: db)
    return db


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    for name in (
        "API_KEY",
        "SHOPIFY_API_SECRET",
        "BILLING_REQUIRED",
        "DEBUG_DIAGNOSTICS",
        "DISCOUNT_CODES",
        "TRACKING_URL_TEMPLATE",
        "SESSION_BACKEND",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SHOPIFY_SHOP_DOMAIN", SHOP)
    monkeypatch.setenv("SHOPIFY_ADMIN_TOKEN", "shpat_test")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeShopify:
    """
    Stand-in for the Admin API behind httpx.MockTransport.

    orders_by_name maps the exact `name` filter to the orders returned for it.
    """

    def __init__(self, orders_by_name: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.orders_by_name = orders_by_name or {}
        self.requests: List[httpx.Request] = []
        self.search_status = 200
        self.probe_error: Optional[Exception] = None
        self.scopes = ["read_orders", "read_customers"]

    @property
    def name_filters(self) -> List[str]:
        return [r.url.params["name"] for r in self.requests if "name" in r.url.params]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/access_scopes.json"):
            if self.probe_error:
                raise self.probe_error
            return httpx.Response(200, json={"access_scopes": [{"handle": s} for s in self.scopes]})

        if path.endswith("/orders.json"):
            name = request.url.params.get("name")
            if name is None:
                if self.probe_error:
                    raise self.probe_error
                names = [o["name"] for orders in self.orders_by_name.values() for o in orders]
                return httpx.Response(200, json={"orders": [{"name": n} for n in names[:5]]})
            if self.search_status != 200:
                return httpx.Response(self.search_status, text="Internal Server Error")
            return httpx.Response(200, json={"orders": self.orders_by_name.get(name, [])})

        return httpx.Response(404, json={"errors": "Not Found"})

    def client(self) -> ShopifyOrderClient:
        return make_client(self.handler)


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> ShopifyOrderClient:
    return ShopifyOrderClient(SHOP, "shpat_test", transport=httpx.MockTransport(handler))


@pytest.fixture
def shopify():
    return FakeShopify({"#1001": [copy.deepcopy(REST_ORDER)]})
