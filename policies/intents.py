from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from app.config import Settings, get_settings
from app.models import IntentReply


@dataclass(frozen=True)
class IntentRule:
    intent: str
    phrases: Tuple[str, ...]   # multi-word regexes -> "high"
    keywords: Tuple[str, ...]  # single words -> "medium"


@dataclass(frozen=True)
class IntentMatch:
    intent: str
    confidence: str


# Order matters: first rule that matches wins.
INTENT_RULES: List[IntentRule] = [
    IntentRule(
        "product_inquiry",
        phrases=(r"how much", r"what(?:'s| is) the (?:price|cost)", r"kitne ka", r"kitna (?:hai|price)"),
        keywords=("price", "prices", "pricing", "cost", "costs", "mrp", "daam", "kimat", "keemat"),
    ),
    IntentRule(
        "how_to_order",
        phrases=(
            r"how (?:do|can|to) (?:i |we )?(?:place an? )?(?:order|buy|purchase)",
            r"place an? order",
            r"order kaise",
            r"kaise (?:order|kharide|khareed)",
        ),
        keywords=("checkout",),
    ),
    IntentRule(
        "order_status_hint",
        phrases=(
            r"where(?:'s| is) my (?:order|package|parcel)",
            r"track(?:ing)? (?:my )?order",
            r"order status",
            r"(?:mera|meri) (?:order|parcel)",
            r"kab (?:aayega|ayega|milega)",
            r"order kaha",
            r"kahan hai",
        ),
        keywords=("track", "tracking", "shipped", "delivery", "delivered", "dispatch", "dispatched"),
    ),
    IntentRule(
        "cancellation",
        phrases=(r"cancel (?:my )?order", r"money back", r"return (?:my )?order", r"paise wapas"),
        keywords=("cancel", "cancellation", "refund", "refunds", "return", "exchange"),
    ),
    IntentRule(
        "product_recommendation",
        phrases=(r"what should i buy", r"best (?:product|seller)", r"which (?:one|product) (?:is|should)"),
        keywords=("recommend", "recommendation", "suggest", "suggestion", "bestseller"),
    ),
    IntentRule(
        "contact_support",
        phrases=(r"talk to (?:a |an )?(?:human|person|agent|someone)", r"customer (?:care|service)", r"contact (?:you|us)"),
        keywords=("support", "helpline", "agent", "human", "complaint", "contact"),
    ),
    IntentRule(
        "discount_query",
        phrases=(r"promo code", r"coupon code", r"discount code", r"any offers?"),
        keywords=("discount", "discounts", "coupon", "coupons", "offer", "offers", "sale", "promo"),
    ),
    IntentRule(
        "greeting",
        phrases=(r"good (?:morning|afternoon|evening)",),
        keywords=("hi", "hello", "hey", "hii", "namaste", "namaskar", "hola"),
    ),
]


def _normalize_msg(message: str) -> str:
    m = (message or "").lower()
    m = m.replace("’", "'")
    m = re.sub(r"\s+", " ", m).strip()
    return m


def classify_intent(message: str) -> IntentMatch:
    msg = _normalize_msg(message)
    words = set(re.findall(r"[a-z']+", msg))

    for rule in INTENT_RULES:
        if any(re.search(rf"\b{p}\b", msg) for p in rule.phrases):
            return IntentMatch(rule.intent, "high")
        if words.intersection(rule.keywords):
            return IntentMatch(rule.intent, "medium")

    return IntentMatch("general", "low")


def _support_lines(settings: Settings) -> str:
    return (
        f"Phone: {settings.support_phone or '—'}<br>"
        f"Email: {settings.support_email or '—'}<br>"
        f"Hours: {settings.support_hours or '—'}"
    )


def scripted_reply(intent: str, settings: Optional[Settings] = None) -> str:
    s = settings or get_settings()

    replies = {
        "product_inquiry": (
            "Prices are shown on each product page, including any active sale price.<br>"
            "Tell me which product you're looking at and I'll point you to it."
        ),
        "how_to_order": (
            "Ordering is easy:<br>"
            "1) Open the product and pick your size/variant<br>"
            "2) Tap <b>Add to cart</b><br>"
            "3) Go to the cart and tap <b>Checkout</b> to pay."
        ),
        "order_status_hint": (
            "I can check that for you! Tap <b>Track Order</b> and share your order number "
            "and the phone number used at checkout."
        ),
        "cancellation": (
            "For cancellations, returns or refunds, please contact support with your order number:<br>"
            + _support_lines(s)
        ),
        "product_recommendation": (
            "Our bestsellers are a great place to start. Check the <b>Best Sellers</b> collection "
            "or tell me what you need and I'll help you choose."
        ),
        "contact_support": "You can reach our team here:<br>" + _support_lines(s),
        "discount_query": "Current offers:<br>" + "<br>".join(s.discount_codes or ["No active offers right now."]),
        "greeting": (
            "Hi! I can help with tracking, returns &amp; exchanges, discounts, "
            "shipping &amp; delivery, or connect you to support."
        ),
        "general": (
            "I can help with Track Order, Return/Exchange, Discounts, Shipping &amp; Delivery, "
            "or Connect to Support."
        ),
    }
    return replies[intent]


def respond(message: str, settings: Optional[Settings] = None) -> IntentReply:
    match = classify_intent(message)
    return IntentReply(
        intent=match.intent,
        confidence=match.confidence,
        reply=scripted_reply(match.intent, settings),
    )
