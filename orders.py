from typing import List, Literal, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from auth import get_current_user, require_admin
from database import db, create_document
from errors import NotFoundError, ValidationError
from pricing import final_total, unit_price
from schemas import AppliedDiscount, Order, OrderItem, ShippingAddress
from utils import parse_object_id, serialize_doc

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])


class CartLine(BaseModel):
    product: str
    selectedVariant: Optional[str] = None
    quantity: int = Field(..., ge=1)


class OrderCreateBody(BaseModel):
    shippingAddress: ShippingAddress
    paymentMethod: Literal["Cash on Delivery", "Card"] = "Cash on Delivery"
    items: List[CartLine] = []
    discount: Optional[AppliedDiscount] = None


@router.post("", status_code=201)
def create_order(body: OrderCreateBody, user=Depends(get_current_user)):
    if not body.items:
        raise ValidationError("Cart is empty")

    subtotal = 0.0
    items: List[OrderItem] = []
    for line in body.items:
        product = db["product"].find_one({"_id": parse_object_id(line.product, "product id")})
        if not product:
            raise NotFoundError(f"Product not found: {line.product}")
        price = unit_price(product, line.selectedVariant)
        subtotal += price * line.quantity
        items.append(OrderItem(
            product=line.product,
            selectedVariant=line.selectedVariant,
            name=product["name"],
            image=product.get("mainImage"),
            price=price,
            quantity=line.quantity,
        ))

    discount_amount = body.discount.amount if body.discount else 0
    order = Order(
        user=user["id"],
        items=items,
        shippingAddress=body.shippingAddress,
        paymentMethod=body.paymentMethod,
        discount=body.discount,
        subtotal=round(subtotal, 2),
        discountAmount=discount_amount,
        totalPrice=round(final_total(subtotal, discount_amount), 2),
    )
    order_id = create_document("order", order)
    logger.info(
        "order_placed",
        order_id=order_id,
        user_id=user["id"],
        total=order.totalPrice,
        discount_code=body.discount.code if body.discount else None,
    )
    return serialize_doc(db["order"].find_one({"_id": parse_object_id(order_id)}))


@router.get("/mine")
def my_orders(user=Depends(get_current_user)):
    docs = db["order"].find({"user": user["id"]}).sort("created_at", -1)
    return [serialize_doc(d) for d in docs]


@router.get("")
def list_orders(limit: int = 50, admin=Depends(require_admin)):
    docs = db["order"].find().sort("created_at", -1).limit(limit)
    return [serialize_doc(d) for d in docs]


@router.get("/{order_id}")
def get_order(order_id: str, user=Depends(get_current_user)):
    doc = db["order"].find_one({"_id": parse_object_id(order_id, "order id")})
    if not doc:
        raise NotFoundError("Order not found")
    if doc.get("user") != user["id"] and not user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Not allowed")
    return serialize_doc(doc)
