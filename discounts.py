from datetime import datetime
from typing import Optional, Union

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from auth import get_current_user, require_admin
from database import db, create_document, to_utc_naive, utcnow
from errors import ConflictError, NotFoundError, ValidationError, from_pydantic
from pricing import discount_amount_from_document
from schemas import Discount
from utils import format_amount, parse_bool, parse_number, parse_object_id, serialize_doc

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/discounts", tags=["discounts"])

Number = Union[float, str, None]


# ----------------------- Models -----------------------
class ValidateBody(BaseModel):
    code: str = Field(..., min_length=1)
    totalAmount: float = Field(..., ge=0)


class DiscountForm(BaseModel):
    """Admin form as submitted: numbers and flags may arrive as strings."""
    code: Optional[str] = None
    percentage: Number = None
    fixedAmount: Number = None
    minOrderAmount: Number = None
    maxDiscountAmount: Number = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    isActive: Union[bool, str, None] = None


def build_discount(form: DiscountForm) -> Discount:
    percentage = parse_number(form.percentage, "percentage")
    fixed_amount = parse_number(form.fixedAmount, "fixedAmount")
    max_amount = parse_number(form.maxDiscountAmount, "maxDiscountAmount")
    min_order = parse_number(form.minOrderAmount, "minOrderAmount")

    if percentage is not None and fixed_amount is not None:
        raise ValidationError("Set either percentage or fixedAmount, not both.")
    if percentage is not None:
        kind = {"type": "percentage", "percentage": percentage, "maxDiscountAmount": max_amount}
    elif fixed_amount is not None:
        kind = {"type": "fixed", "fixedAmount": fixed_amount}
    else:
        raise ValidationError("Either percentage or fixedAmount is required.")

    try:
        return Discount(
            code=form.code or "",
            kind=kind,
            minOrderAmount=min_order if min_order is not None else 0,
            isActive=parse_bool(form.isActive),
            startDate=to_utc_naive(form.startDate),
            endDate=to_utc_naive(form.endDate),
        )
    except PydanticValidationError as e:
        raise from_pydantic(e)


def _current_window(now: datetime) -> dict:
    return {"isActive": True, "startDate": {"$lte": now}, "endDate": {"$gte": now}}


# ----------------------- Public -----------------------
@router.post("/validate")
def validate_discount(body: ValidateBody, user=Depends(get_current_user)):
    code = body.code.strip().upper()
    discount = db["discount"].find_one({"code": code, **_current_window(utcnow())})
    if not discount:
        logger.info("discount_rejected", code=code, reason="not_found")
        raise NotFoundError("Invalid or expired discount code.")

    min_order = discount.get("minOrderAmount") or 0
    if body.totalAmount < min_order:
        logger.info("discount_rejected", code=code, reason="below_minimum", total=body.totalAmount)
        raise ValidationError(f"Minimum order amount of {format_amount(min_order)} is required to use this code.")

    amount = discount_amount_from_document(discount, body.totalAmount)
    logger.info("discount_validated", code=code, total=body.totalAmount, amount=amount, user_id=user["id"])
    return {
        "message": "Discount applied successfully!",
        "discountAmount": amount,
        "code": discount["code"],
    }


@router.get("/active")
def active_discounts():
    docs = db["discount"].find(_current_window(utcnow())).sort("endDate", 1)
    return [serialize_doc(d) for d in docs]


# ----------------------- Admin -----------------------
@router.get("")
def list_discounts(admin=Depends(require_admin)):
    docs = db["discount"].find({}).sort("created_at", -1)
    return [serialize_doc(d) for d in docs]


@router.get("/{discount_id}")
def get_discount(discount_id: str, admin=Depends(require_admin)):
    doc = db["discount"].find_one({"_id": parse_object_id(discount_id, "discount id")})
    if not doc:
        raise NotFoundError("Discount not found")
    return serialize_doc(doc)


@router.post("", status_code=201)
def create_discount(form: DiscountForm, admin=Depends(require_admin)):
    discount = build_discount(form)
    try:
        new_id = create_document("discount", discount)
    except DuplicateKeyError:
        raise ConflictError(f'Discount code "{discount.code}" already exists.')
    logger.info("discount_created", code=discount.code, discount_id=new_id)
    return serialize_doc(db["discount"].find_one({"_id": parse_object_id(new_id)}))


@router.put("/{discount_id}")
def update_discount(discount_id: str, form: DiscountForm, admin=Depends(require_admin)):
    _id = parse_object_id(discount_id, "discount id")
    discount = build_discount(form)
    update = discount.model_dump()
    update["updated_at"] = utcnow()
    try:
        doc = db["discount"].find_one_and_update(
            {"_id": _id}, {"$set": update}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise ConflictError(f'Discount code "{discount.code}" already exists.')
    if not doc:
        raise NotFoundError("Discount not found")
    logger.info("discount_updated", code=discount.code, discount_id=discount_id)
    return serialize_doc(doc)


@router.delete("/{discount_id}")
def delete_discount(discount_id: str, admin=Depends(require_admin)):
    doc = db["discount"].find_one_and_delete({"_id": parse_object_id(discount_id, "discount id")})
    if not doc:
        raise NotFoundError("Discount not found")
    logger.info("discount_deleted", code=doc.get("code"), discount_id=discount_id)
    return {"message": "Discount deleted successfully"}
