from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pymongo import ReturnDocument

import storage
from auth import require_admin
from database import db, create_document, to_utc_naive, utcnow
from errors import NotFoundError, ValidationError, from_pydantic
from schemas import Advertisement
from utils import parse_bool, parse_int, parse_number, parse_object_id, serialize_doc

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/advertisements", tags=["advertisements"])

IMAGE_KIND = "advertisements"
HERO_SLOTS = {"sideOffer": "iphoneOffer", "weeklyOffer": "weeklyOffer"}

_datetime = TypeAdapter(Optional[datetime])


def _parse_date(value: Optional[str], field: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return to_utc_naive(_datetime.validate_python(value))
    except PydanticValidationError:
        raise ValidationError(f"{field} must be a valid date.")


def _has_upload(image: Optional[UploadFile]) -> bool:
    return image is not None and bool(image.filename)


# ----------------------- Public -----------------------
@router.get("")
def list_advertisements(type: Optional[str] = None, isActive: Optional[str] = None):
    query = {}
    if type:
        query["type"] = type
    if isActive is not None:
        query["isActive"] = isActive == "true"
    docs = db["advertisement"].find(query).sort([("order", 1), ("created_at", -1)])
    return [serialize_doc(d) for d in docs]


@router.get("/hero-side-offers")
def hero_side_offers():
    docs = db["advertisement"].find(
        {"type": {"$in": list(HERO_SLOTS)}, "isActive": True}
    ).sort([("order", 1), ("created_at", -1)])
    offers = {}
    for doc in docs:
        slot = HERO_SLOTS[doc["type"]]
        offers.setdefault(slot, serialize_doc(doc))
    return offers


@router.get("/{ad_id}")
def get_advertisement(ad_id: str):
    doc = db["advertisement"].find_one({"_id": parse_object_id(ad_id, "advertisement id")})
    if not doc:
        raise NotFoundError("Advertisement not found")
    return serialize_doc(doc)


# ----------------------- Admin -----------------------
@router.post("", status_code=201)
def create_advertisement(
    title_en: Optional[str] = Form(None),
    title_ar: Optional[str] = Form(None),
    description_en: Optional[str] = Form(None),
    description_ar: Optional[str] = Form(None),
    link: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    isActive: Optional[str] = Form(None),
    order: Optional[str] = Form(None),
    startDate: Optional[str] = Form(None),
    endDate: Optional[str] = Form(None),
    originalPrice: Optional[str] = Form(None),
    discountedPrice: Optional[str] = Form(None),
    currency: Optional[str] = Form(None),
    productRef: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    admin=Depends(require_admin),
):
    if not title_en or not title_ar or not _has_upload(image):
        raise ValidationError("Title (English & Arabic) and image are required.")

    image_path = storage.save_upload(image, IMAGE_KIND)
    try:
        ad = Advertisement(
            title={"en": title_en, "ar": title_ar},
            description={"en": description_en, "ar": description_ar},
            image=image_path,
            link=link or "#",
            type=type or "slide",
            isActive=parse_bool(isActive),
            order=parse_int(order, "order") or 0,
            startDate=_parse_date(startDate, "startDate"),
            endDate=_parse_date(endDate, "endDate"),
            originalPrice=parse_number(originalPrice, "originalPrice"),
            discountedPrice=parse_number(discountedPrice, "discountedPrice"),
            currency=currency or "SAR",
            productRef=productRef or None,
        )
        new_id = create_document("advertisement", ad)
    except PydanticValidationError as e:
        storage.remove_image(image_path)
        raise from_pydantic(e)
    except Exception:
        storage.remove_image(image_path)
        raise

    logger.info("advertisement_created", advertisement_id=new_id, type=ad.type)
    return serialize_doc(db["advertisement"].find_one({"_id": parse_object_id(new_id)}))


@router.put("/{ad_id}")
def update_advertisement(
    ad_id: str,
    title_en: Optional[str] = Form(None),
    title_ar: Optional[str] = Form(None),
    description_en: Optional[str] = Form(None),
    description_ar: Optional[str] = Form(None),
    link: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    isActive: Optional[str] = Form(None),
    order: Optional[str] = Form(None),
    startDate: Optional[str] = Form(None),
    endDate: Optional[str] = Form(None),
    originalPrice: Optional[str] = Form(None),
    discountedPrice: Optional[str] = Form(None),
    currency: Optional[str] = Form(None),
    productRef: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    admin=Depends(require_admin),
):
    _id = parse_object_id(ad_id, "advertisement id")
    current = db["advertisement"].find_one({"_id": _id})
    if not current:
        raise NotFoundError("Advertisement not found")

    title = current.get("title") or {}
    description = current.get("description") or {}

    def keep(value, field):
        return value if value is not None else current.get(field)

    def keep_number(value, field):
        return parse_number(value, field) if value is not None else current.get(field)

    new_image = storage.save_upload(image, IMAGE_KIND) if _has_upload(image) else None
    try:
        ad = Advertisement(
            title={"en": title_en or title.get("en"), "ar": title_ar or title.get("ar")},
            description={
                "en": description_en or description.get("en"),
                "ar": description_ar or description.get("ar"),
            },
            image=new_image or current.get("image"),
            link=keep(link, "link"),
            type=type or current.get("type"),
            isActive=parse_bool(isActive) if isActive is not None else current.get("isActive", False),
            order=parse_int(order, "order") if order is not None else current.get("order", 0),
            startDate=_parse_date(startDate, "startDate") if startDate is not None else current.get("startDate"),
            endDate=_parse_date(endDate, "endDate") if endDate is not None else current.get("endDate"),
            originalPrice=keep_number(originalPrice, "originalPrice"),
            discountedPrice=keep_number(discountedPrice, "discountedPrice"),
            currency=keep(currency, "currency"),
            productRef=(productRef or None) if productRef is not None else current.get("productRef"),
        )
        update = ad.model_dump()
        update["updated_at"] = utcnow()
        doc = db["advertisement"].find_one_and_update(
            {"_id": _id}, {"$set": update}, return_document=ReturnDocument.AFTER
        )
    except PydanticValidationError as e:
        storage.remove_image(new_image)
        raise from_pydantic(e)
    except Exception:
        storage.remove_image(new_image)
        raise

    if not doc:
        storage.remove_image(new_image)
        raise NotFoundError("Advertisement not found")

    if new_image and current.get("image") and current.get("image") != new_image:
        storage.remove_image(current["image"])

    logger.info("advertisement_updated", advertisement_id=ad_id, image_replaced=bool(new_image))
    return serialize_doc(doc)


@router.delete("/{ad_id}")
def delete_advertisement(ad_id: str, admin=Depends(require_admin)):
    doc = db["advertisement"].find_one_and_delete({"_id": parse_object_id(ad_id, "advertisement id")})
    if not doc:
        raise NotFoundError("Advertisement not found")
    if doc.get("image"):
        storage.remove_image(doc["image"])
    logger.info("advertisement_deleted", advertisement_id=ad_id)
    return {"message": "Advertisement deleted"}
