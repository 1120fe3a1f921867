"""
Price arithmetic shared by the API and the storefront client.

Nothing here touches the database; callers hand in documents or models.
"""
from typing import Optional

from pydantic import BaseModel

from schemas import FixedDiscount, PercentageDiscount


class PriceView(BaseModel):
    displayPrice: Optional[float] = None
    originalPrice: Optional[float] = None
    discountPercentage: float = 0


def discount_amount(kind, total_amount: float) -> float:
    """Amount taken off ``total_amount`` by a percentage or fixed discount.

    A percentage discount is capped by ``maxDiscountAmount`` when one is set.
    A fixed discount is returned as-is, even when it exceeds the total.
    """
    if isinstance(kind, PercentageDiscount):
        amount = total_amount * kind.percentage / 100
        if kind.maxDiscountAmount and amount > kind.maxDiscountAmount:
            amount = kind.maxDiscountAmount
        return amount
    if isinstance(kind, FixedDiscount):
        return kind.fixedAmount
    raise TypeError(f"Unknown discount kind: {kind!r}")


def discount_amount_from_document(doc: dict, total_amount: float) -> float:
    kind = doc.get("kind")
    if kind:
        if kind.get("type") == "percentage":
            return discount_amount(PercentageDiscount(**kind), total_amount)
        return discount_amount(FixedDiscount(**kind), total_amount)

    # documents written before discounts carried a kind; use the stored numbers as-is
    percentage = doc.get("percentage")
    if percentage:
        amount = total_amount * float(percentage) / 100
        cap = doc.get("maxDiscountAmount")
        if cap and amount > cap:
            amount = float(cap)
        return amount
    fixed = doc.get("fixedAmount")
    if fixed:
        return float(fixed)
    return 0


def final_total(subtotal: float, discount: float) -> float:
    total = subtotal - discount
    return total if total > 0 else 0


def advertisement_discount_percentage(ad: dict) -> float:
    original = ad.get("originalPrice")
    discounted = ad.get("discountedPrice")
    if not original or discounted is None or discounted >= original:
        return 0
    return (original - discounted) / original * 100


def resolve_price(product: dict) -> PriceView:
    base_price = product.get("basePrice")
    ad = product.get("advertisement")
    pct = ad.get("discountPercentage", 0) if ad else 0

    if not pct or pct <= 0 or base_price is None:
        return PriceView(displayPrice=base_price)

    return PriceView(
        displayPrice=base_price * (1 - pct / 100),
        originalPrice=base_price,
        discountPercentage=pct,
    )


def unit_price(product: dict, variant_id: Optional[str] = None) -> float:
    """Price of one unit: the selected SKU's price, else the product base price."""
    if variant_id:
        for variation in product.get("variations", []):
            for option in variation.get("options", []):
                for sku in option.get("skus", []):
                    if sku.get("id") == variant_id:
                        return float(sku.get("price", 0))
    return float(product.get("basePrice", 0))
