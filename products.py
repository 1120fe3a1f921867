import re
from typing import List, Optional

import structlog
from bson.objectid import ObjectId
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from pymongo import ReturnDocument

from auth import get_current_user, require_admin
from database import db, create_document, get_documents, utcnow
from errors import NotFoundError, ValidationError
from pricing import advertisement_discount_percentage, resolve_price
from schemas import Attribute, Category, Localized, OptionalLocalized, Product, Review, Variation
from utils import parse_object_id, serialize_doc

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


# ----------------------- Models -----------------------
class ProductBody(BaseModel):
    name: Localized
    description: OptionalLocalized = OptionalLocalized()
    basePrice: float = Field(..., ge=0)
    mainImage: Optional[str] = None
    category: str
    subCategory: Optional[str] = None
    attributes: List[Attribute] = []
    variations: List[Variation] = []


class ReviewBody(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)


def _assign_ids(variations: List[Variation]) -> List[Variation]:
    for variation in variations:
        variation.id = variation.id or str(ObjectId())
        for option in variation.options:
            option.id = option.id or str(ObjectId())
            for sku in option.skus:
                sku.id = sku.id or str(ObjectId())
    return variations


def _check_category(category_id: str, sub_category_id: Optional[str]):
    category = db["category"].find_one({"_id": parse_object_id(category_id, "category id")})
    if not category:
        raise NotFoundError("Category not found")
    if sub_category_id:
        known = {sub.get("id") for sub in category.get("subCategories", [])}
        if sub_category_id not in known:
            raise ValidationError("Sub-category does not belong to the selected category.")


def _active_ads_by_product(product_ids: List[str]) -> dict:
    now = utcnow()
    query = {
        "productRef": {"$in": product_ids},
        "isActive": True,
        "$and": [
            {"$or": [{"startDate": None}, {"startDate": {"$lte": now}}]},
            {"$or": [{"endDate": None}, {"endDate": {"$gte": now}}]},
        ],
    }
    ads = {}
    for ad in db["advertisement"].find(query).sort([("order", 1), ("created_at", -1)]):
        ads.setdefault(ad["productRef"], {
            "id": str(ad["_id"]),
            "title": ad.get("title"),
            "discountPercentage": advertisement_discount_percentage(ad),
        })
    return ads


def _with_pricing(docs: List[dict]) -> List[dict]:
    products = [serialize_doc(d) for d in docs]
    ads = _active_ads_by_product([p["id"] for p in products])
    for product in products:
        product["advertisement"] = ads.get(product["id"])
        product["pricing"] = resolve_price(product).model_dump()
    return products


def _recompute_rating(reviews: List[dict]) -> dict:
    count = len(reviews)
    average = sum(r["rating"] for r in reviews) / count if count else 0
    return {"numReviews": count, "averageRating": average}


# ----------------------- Categories -----------------------
@router.get("/categories")
def list_categories():
    return [serialize_doc(c) for c in get_documents("category")]


@router.post("/categories", status_code=201)
def create_category(body: Category, admin=Depends(require_admin)):
    for sub in body.subCategories:
        sub.id = sub.id or str(ObjectId())
    new_id = create_document("category", body)
    logger.info("category_created", category_id=new_id)
    return serialize_doc(db["category"].find_one({"_id": ObjectId(new_id)}))


# ----------------------- Products -----------------------
@router.get("/products")
def list_products(category: Optional[str] = None, q: Optional[str] = None):
    filt = {}
    if category:
        filt["category"] = category
    if q:
        pattern = {"$regex": re.escape(q), "$options": "i"}
        filt["$or"] = [{"name.en": pattern}, {"name.ar": pattern}]
    docs = db["product"].find(filt).sort("created_at", -1).limit(100)
    return _with_pricing(list(docs))


@router.get("/products/{product_id}")
def get_product(product_id: str):
    doc = db["product"].find_one({"_id": parse_object_id(product_id, "product id")})
    if not doc:
        raise NotFoundError("Product not found")
    return _with_pricing([doc])[0]


@router.post("/products", status_code=201)
def create_product(body: ProductBody, admin=Depends(require_admin)):
    _check_category(body.category, body.subCategory)
    product = Product(**body.model_dump(exclude={"variations"}), variations=_assign_ids(body.variations))
    new_id = create_document("product", product)
    logger.info("product_created", product_id=new_id)
    return get_product(new_id)


@router.put("/products/{product_id}")
def update_product(product_id: str, body: ProductBody, admin=Depends(require_admin)):
    _id = parse_object_id(product_id, "product id")
    _check_category(body.category, body.subCategory)
    update = body.model_dump(exclude={"variations"})
    update["variations"] = [v.model_dump() for v in _assign_ids(body.variations)]
    update["updated_at"] = utcnow()
    doc = db["product"].find_one_and_update({"_id": _id}, {"$set": update}, return_document=ReturnDocument.AFTER)
    if not doc:
        raise NotFoundError("Product not found")
    logger.info("product_updated", product_id=product_id)
    return _with_pricing([doc])[0]


@router.delete("/products/{product_id}")
def delete_product(product_id: str, admin=Depends(require_admin)):
    res = db["product"].delete_one({"_id": parse_object_id(product_id, "product id")})
    if res.deleted_count == 0:
        raise NotFoundError("Product not found")
    logger.info("product_deleted", product_id=product_id)
    return {"message": "Product removed"}


@router.post("/products/{product_id}/reviews", status_code=201)
def add_review(product_id: str, body: ReviewBody, user=Depends(get_current_user)):
    _id = parse_object_id(product_id, "product id")
    product = db["product"].find_one({"_id": _id})
    if not product:
        raise NotFoundError("Product not found")

    reviews = product.get("reviews", [])
    if any(r.get("user") == user["id"] for r in reviews):
        raise ValidationError("Product already reviewed")

    review = Review(name=user["name"], rating=body.rating, comment=body.comment, user=user["id"], created_at=utcnow())
    reviews = reviews + [review.model_dump()]
    db["product"].update_one(
        {"_id": _id},
        {"$set": {"reviews": reviews, "updated_at": utcnow(), **_recompute_rating(reviews)}},
    )
    logger.info("review_added", product_id=product_id, user_id=user["id"], rating=body.rating)
    return {"message": "Review added"}
