from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from policies.order_shape import coerce_order, dig
from tools.phones import mask_phone, phones_match


# Where a customer's phone can sit on a REST order or a GraphQL node.
CONTACT_PHONE_PATHS = (
    ("shipping_address", "phone"),
    ("shippingAddress", "phone"),
    ("customer", "phone"),
    ("customer", "default_address", "phone"),
    ("customer", "defaultAddress", "phone"),
)


@dataclass
class OwnershipResult:
    """
    outcome:
      - matched        (order is set)
      - not_found      (no candidates at all)
      - phone_mismatch (candidates exist, none carries the caller's phone)
    """

    outcome: str
    order: Optional[Dict[str, Any]] = None
    hints: List[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.outcome == "matched"


def contact_phones(order: Dict[str, Any]) -> List[str]:
    phones = []
    for path in CONTACT_PHONE_PATHS:
        value = dig(order, path)
        if isinstance(value, str) and value.strip():
            phones.append(value.strip())
    return phones


def verify_ownership(candidates: List[Dict[str, Any]], phone_raw: str) -> OwnershipResult:
    if not candidates:
        return OwnershipResult("not_found")

    hints: List[str] = []
    for raw in candidates:
        order = coerce_order(raw)
        phones = contact_phones(order)
        if any(phones_match(phone_raw, p) for p in phones):
            return OwnershipResult("matched", order=order)

        for p in phones:
            masked = mask_phone(p)
            if masked and masked not in hints:
                hints.append(masked)

    return OwnershipResult("phone_mismatch", hints=hints)
