"""
Database Schemas for the bilingual storefront

Each Pydantic model corresponds to one MongoDB collection.
Collection name is the lowercase of the class name.
"""
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


class Localized(BaseModel):
    en: str = Field(..., min_length=1)
    ar: str = Field(..., min_length=1)


class OptionalLocalized(BaseModel):
    en: Optional[str] = None
    ar: Optional[str] = None


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr
    password_hash: str = Field(..., description="Hashed password")
    is_admin: bool = False


# ----------------------- Catalog -----------------------
class SubCategory(BaseModel):
    id: Optional[str] = None
    name: Localized


class Category(BaseModel):
    name: Localized
    image: Optional[str] = None
    subCategories: List[SubCategory] = []


class Sku(BaseModel):
    id: Optional[str] = None
    name_en: str = Field(..., min_length=1)
    name_ar: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    sku: Optional[str] = None


class VariationOption(BaseModel):
    id: Optional[str] = None
    name_en: str = Field(..., min_length=1)
    name_ar: str = Field(..., min_length=1)
    image: Optional[str] = None
    skus: List[Sku] = []


class Variation(BaseModel):
    id: Optional[str] = None
    name_en: str = Field(..., min_length=1)
    name_ar: str = Field(..., min_length=1)
    options: List[VariationOption] = []


class Attribute(BaseModel):
    key_en: str
    key_ar: str
    value_en: str
    value_ar: str


class Review(BaseModel):
    name: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)
    user: str
    created_at: Optional[datetime] = None


class Product(BaseModel):
    name: Localized
    description: OptionalLocalized = OptionalLocalized()
    basePrice: float = Field(..., ge=0)
    mainImage: Optional[str] = None
    category: str
    subCategory: Optional[str] = None
    attributes: List[Attribute] = []
    variations: List[Variation] = []
    reviews: List[Review] = []
    averageRating: float = 0
    numReviews: int = 0


# ----------------------- Promotions -----------------------
class Advertisement(BaseModel):
    title: Localized
    description: OptionalLocalized = OptionalLocalized()
    image: str
    link: str = "#"
    type: Literal["slide", "sideOffer", "weeklyOffer"] = "slide"
    isActive: bool = False
    order: int = 0
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    originalPrice: Optional[float] = Field(None, ge=0)
    discountedPrice: Optional[float] = Field(None, ge=0)
    currency: str = "SAR"
    productRef: Optional[str] = None


class PercentageDiscount(BaseModel):
    type: Literal["percentage"] = "percentage"
    percentage: float = Field(..., ge=0, le=100)
    maxDiscountAmount: Optional[float] = Field(None, ge=0)


class FixedDiscount(BaseModel):
    type: Literal["fixed"] = "fixed"
    fixedAmount: float = Field(..., ge=0)


DiscountKind = Annotated[Union[PercentageDiscount, FixedDiscount], Field(discriminator="type")]


class Discount(BaseModel):
    code: str = Field(..., min_length=1)
    kind: DiscountKind
    minOrderAmount: float = Field(0, ge=0)
    isActive: bool = False
    startDate: datetime
    endDate: datetime

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def check_window(self):
        if self.endDate < self.startDate:
            raise ValueError("endDate must not be before startDate")
        return self


# ----------------------- Orders -----------------------
class ShippingAddress(BaseModel):
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    postalCode: str = ""
    country: str = Field(..., min_length=1)


class AppliedDiscount(BaseModel):
    code: str
    amount: float = Field(..., ge=0)


class OrderItem(BaseModel):
    product: str
    selectedVariant: Optional[str] = None
    name: Localized
    image: Optional[str] = None
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)


class Order(BaseModel):
    user: str
    items: List[OrderItem]
    shippingAddress: ShippingAddress
    paymentMethod: Literal["Cash on Delivery", "Card"] = "Cash on Delivery"
    discount: Optional[AppliedDiscount] = None
    subtotal: float = Field(..., ge=0)
    discountAmount: float = Field(0, ge=0)
    totalPrice: float = Field(..., ge=0)
    status: Literal["placed", "processing", "shipped", "delivered"] = "placed"
