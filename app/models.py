# app/models.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, Literal


ErrorKind = Literal[
    "MISSING_PARAMS",
    "ADMIN_API_ERROR",
    "UPSTREAM_UNAVAILABLE",
    "NOT_FOUND",
    "PHONE_MISMATCH",
    "INTERNAL_ERROR",
]

IntentLabel = Literal[
    "product_inquiry",
    "how_to_order",
    "order_status_hint",
    "cancellation",
    "product_recommendation",
    "contact_support",
    "discount_query",
    "greeting",
    "general",
]

ConfidenceTier = Literal["high", "medium", "low"]


class ChatRequest(BaseModel):
    # widget sends camelCase keys
    model_config = ConfigDict(populate_by_name=True)

    action: Optional[str] = None
    message: Optional[str] = None
    order_number: Optional[str] = Field(default=None, alias="orderNumber")
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class OrderQuery(BaseModel):
    order_number_raw: str
    phone_raw: str


class Tracking(BaseModel):
    number: Optional[str] = None
    url: Optional[str] = None
    company: Optional[str] = None  # carrier, when the source names one


class NormalizedOrder(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    date: Optional[str] = None
    value: Optional[float] = None
    currency: Optional[str] = None
    status: str = "—"
    shipping_summary: str = Field(default="—", alias="shippingSummary")
    tracking: Tracking = Field(default_factory=Tracking)


class TrackResult(BaseModel):
    ok: bool
    order: Optional[NormalizedOrder] = None

    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    status: Optional[int] = None  # upstream HTTP status for ADMIN_API_ERROR
    hint: Optional[str] = None    # masked registered phone(s) for PHONE_MISMATCH

    diagnostics: Optional[Dict[str, Any]] = None

    def to_payload(self, include_diagnostics: bool = False) -> Dict[str, Any]:
        """
        JSON body for the widget. Order fields are always present (null when
        unknown); error-side fields only when set.
        """
        out: Dict[str, Any] = {"ok": self.ok}
        if self.order is not None:
            out["order"] = self.order.model_dump(by_alias=True)

        for key in ("error", "message", "status", "hint"):
            val = getattr(self, key)
            if val is not None:
                out[key] = val

        if include_diagnostics and self.diagnostics is not None:
            out["diagnostics"] = self.diagnostics
        return out


class IntentReply(BaseModel):
    intent: IntentLabel
    confidence: ConfidenceTier
    reply: str

