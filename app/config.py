import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from google.cloud import firestore


DEFAULT_DISCOUNT_CODES = "SAVE10 — 10% off|HOLIDAY20 — 20% off $50+|NEWBIE15 — 15% off"
DEFAULT_TRACKING_URL_TEMPLATE = "https://t.17track.net/en#nums={number}"


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    shop_domain: str = ""
    admin_token: str = ""
    api_version: str = "2024-10"
    api_secret: str = ""
    timeout_seconds: float = 20.0
    tracking_url_template: str = DEFAULT_TRACKING_URL_TEMPLATE
    support_phone: str = ""
    support_email: str = ""
    support_hours: str = ""
    discount_codes: List[str] = field(default_factory=list)
    billing_required: bool = False
    session_backend: str = "firestore"
    debug_diagnostics: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    All runtime config comes from env vars.
    DISCOUNT_CODES is a '|' separated list of "CODE — description" entries.
    """
    codes = os.getenv("DISCOUNT_CODES", DEFAULT_DISCOUNT_CODES)

    return Settings(
        shop_domain=os.getenv("SHOPIFY_SHOP_DOMAIN", "").strip(),
        admin_token=os.getenv("SHOPIFY_ADMIN_TOKEN", "").strip(),
        api_version=os.getenv("SHOPIFY_API_VERSION", "2024-10").strip(),
        api_secret=os.getenv("SHOPIFY_API_SECRET", "").strip(),
        timeout_seconds=float(os.getenv("SHOPIFY_TIMEOUT_SECONDS", "20")),
        tracking_url_template=os.getenv("TRACKING_URL_TEMPLATE", DEFAULT_TRACKING_URL_TEMPLATE),
        support_phone=os.getenv("SUPPORT_PHONE", "").strip(),
        support_email=os.getenv("SUPPORT_EMAIL", "").strip(),
        support_hours=os.getenv("SUPPORT_HOURS", "").strip(),
        discount_codes=[c.strip() for c in codes.split("|") if c.strip()],
        billing_required=_flag("BILLING_REQUIRED"),
        session_backend=os.getenv("SESSION_BACKEND", "firestore").strip().lower(),
        debug_diagnostics=_flag("DEBUG_DIAGNOSTICS"),
    )


@lru_cache(maxsize=1)
def get_firestore_client():
    """
    Central Firestore client used by the application (action logs, sessions,
    shop plans, usage counters).
    Auth is provided via GOOGLE_APPLICATION_CREDENTIALS env var.
    """
    cred_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")

    if not cred_path:
        raise RuntimeError(
            "GOOGLE_APPLICATION_CREDENTIALS is not set. "
            "Run: export GOOGLE_APPLICATION_CREDENTIALS=/path/to/service-account.json"
        )

    return firestore.Client()
