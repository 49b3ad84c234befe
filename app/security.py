import hashlib
import hmac
import os
from fastapi import Header, HTTPException, Request
from typing import Optional

from app.config import get_settings


def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
):
    """
    Require X-API-Key header to access protected endpoints.
    Expected key is stored in env var API_KEY.

    Returns caller identity for logging / usage counting. The key belongs to
    this deployment, so the shop is always the configured one; a `?shop=`
    query param is not trusted here.
    """

    expected = os.getenv("API_KEY", "").strip()
    shop = get_settings().shop_domain or "unknown"

    # If API_KEY is not set → allow dev mode
    if not expected:
        return {
            "api_key": "dev",
            "shop": shop,
            "ip": request.client.host if request.client else "unknown"
        }

    if not x_api_key or not hmac.compare_digest(x_api_key.strip(), expected):
        raise HTTPException(
            status_code=401,
            detail={
                "ok": False,
                "error": "UNAUTHORIZED",
                "message": "Missing or invalid X-API-Key"
            },
        )

    return {
        "api_key": x_api_key.strip(),
        "shop": shop,
        "ip": request.client.host if request.client else "unknown"
    }


def app_proxy_signature(params: dict, secret: str) -> str:
    """
    Shopify app proxy signature: sorted "key=value" pairs (multi-values joined
    with ","), concatenated without separators, HMAC-SHA256 hex digest.
    """
    parts = []
    for key in sorted(params):
        if key == "signature":
            continue
        value = params[key]
        if isinstance(value, (list, tuple)):
            value = ",".join(value)
        parts.append(f"{key}={value}")
    return hmac.new(secret.encode("utf-8"), "".join(parts).encode("utf-8"), hashlib.sha256).hexdigest()


def verify_app_proxy(request: Request):
    """
    Storefront requests arrive through the Shopify app proxy, signed with the
    app secret. If SHOPIFY_API_SECRET is not set → dev mode.
    """
    settings = get_settings()
    secret = settings.api_secret
    qp = request.query_params
    ip = request.client.host if request.client else "unknown"

    if not secret:
        return {"api_key": "proxy-dev", "shop": settings.shop_domain or "unknown", "ip": ip}

    params = {k: qp.getlist(k) for k in qp.keys()}
    given = qp.get("signature") or ""
    expected = app_proxy_signature(params, secret)

    if not given or not hmac.compare_digest(given, expected):
        raise HTTPException(
            status_code=401,
            detail={"ok": False, "error": "UNAUTHORIZED", "message": "Invalid app proxy signature"},
        )

    # `shop` is covered by the signature, so it can be taken from the query
    return {"api_key": "proxy", "shop": qp.get("shop") or settings.shop_domain or "unknown", "ip": ip}
