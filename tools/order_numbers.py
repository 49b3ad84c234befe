from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class OrderNumberForms:
    decorated: str  # "#1001"
    bare: str       # "1001"


def normalize_order_number(raw: Optional[str]) -> OrderNumberForms:
    """
    Shopify's name filter is picky about the leading '#', so we keep both forms.
    Only surrounding whitespace and leading '#' are touched; case and inner
    spaces are left alone.
    """
    text = str(raw or "").strip()
    bare = text.lstrip("#").strip()
    return OrderNumberForms(decorated=f"#{bare}", bare=bare)
