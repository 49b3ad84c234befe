import logging
from typing import Any, Dict, List, Optional

import httpx

from app.config import Settings, get_settings
from tools.order_numbers import OrderNumberForms


logger = logging.getLogger(__name__)

# Only what the tracking reply needs. Customer / shipping phones are used for
# ownership checks and never leave the server.
ORDER_FIELDS = ",".join(
    [
        "id",
        "name",
        "order_number",
        "created_at",
        "processed_at",
        "total_price",
        "currency",
        "total_price_set",
        "current_total_price_set",
        "fulfillment_status",
        "financial_status",
        "shipping_address",
        "customer",
        "fulfillments",
    ]
)


class ShopifyError(Exception):
    pass


class AdminAPIError(ShopifyError):
    """Admin API answered, but not with a usable 2xx JSON body."""

    def __init__(self, status: int, body: str = ""):
        super().__init__(f"Shopify Admin API returned HTTP {status}")
        self.status = status
        self.body = body


class UpstreamUnavailable(ShopifyError):
    """Timeout / connection failure talking to Shopify."""


class ShopifyOrderClient:
    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = "2024-10",
        timeout: float = 20.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.shop_domain = shop_domain
        self.base_url = f"https://{shop_domain}/admin/api/{api_version}"
        self.client = httpx.Client(
            headers={
                "X-Shopify-Access-Token": access_token,
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ShopifyOrderClient":
        s = settings or get_settings()
        return cls(
            shop_domain=s.shop_domain,
            access_token=s.admin_token,
            api_version=s.api_version,
            timeout=s.timeout_seconds,
        )

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = self.client.get(url, params=params)
        except httpx.TimeoutException as e:
            logger.warning("Shopify call timed out: %s", url)
            raise UpstreamUnavailable("Shopify request timed out") from e
        except httpx.TransportError as e:
            logger.warning("Shopify call failed: %s (%r)", url, e)
            raise UpstreamUnavailable("Could not reach Shopify") from e

        if not resp.is_success:
            logger.error("Shopify HTTP %s for %s: %s", resp.status_code, url, resp.text[:500])
            raise AdminAPIError(resp.status_code, resp.text[:500])

        try:
            data = resp.json()
        except ValueError as e:
            logger.error("Shopify returned non-JSON body for %s", url)
            raise AdminAPIError(resp.status_code, resp.text[:500]) from e

        if not isinstance(data, dict):
            raise AdminAPIError(resp.status_code, "unexpected response body")
        return data

    def search_orders(self, name_filter: str) -> List[Dict[str, Any]]:
        """
        GET orders.json?name=<filter>&status=any

        status=any so cancelled / refunded / archived orders are still found.
        """
        data = self._get(
            f"{self.base_url}/orders.json",
            params={"name": name_filter, "status": "any", "fields": ORDER_FIELDS},
        )
        orders = data.get("orders") or []
        return [o for o in orders if isinstance(o, dict)]

    def recent_order_names(self, limit: int = 5) -> List[str]:
        data = self._get(
            f"{self.base_url}/orders.json",
            params={"status": "any", "limit": limit, "fields": "name"},
        )
        return [str(o.get("name")) for o in data.get("orders") or [] if isinstance(o, dict)]

    def access_scopes(self) -> List[str]:
        data = self._get(f"https://{self.shop_domain}/admin/oauth/access_scopes.json")
        return [str(s.get("handle")) for s in data.get("access_scopes") or [] if isinstance(s, dict)]

    def close(self) -> None:
        self.client.close()


def search_orders_with_fallback(client: ShopifyOrderClient, forms: OrderNumberForms) -> List[Dict[str, Any]]:
    """
    Decorated form first ("#1001"); bare form ("1001") only if that found nothing.
    AdminAPIError / UpstreamUnavailable propagate to the caller.
    """
    orders = client.search_orders(forms.decorated)
    if orders or forms.bare == forms.decorated:
        return orders

    logger.info("No orders for %r, retrying with %r", forms.decorated, forms.bare)
    return client.search_orders(forms.bare)
