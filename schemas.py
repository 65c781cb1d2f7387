"""
Database Schemas for the Jewelry Admin Panel

Administrators and shops live in the panel's own MongoDB ("users", "shops").
Categories and products live in each shop's external MongoDB ("categories",
"products") and are only ever read or written through that shop's connection
string.

Documents are stored with camelCase keys; models expose snake_case attributes
and accept/emit the camelCase aliases.
"""

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

MONGODB_URI_SCHEMES = ("mongodb://", "mongodb+srv://")
MAX_SUB_IMAGES = 4


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_mongodb_uri(value: str) -> str:
    if not value.startswith(MONGODB_URI_SCHEMES):
        raise ValueError("MongoDB URI must start with mongodb:// or mongodb+srv://")
    return value


MongoUri = Annotated[str, AfterValidator(_check_mongodb_uri)]


# ----------------------------- Auth & Session -----------------------------

class AdminUser(CamelModel):
    email: EmailStr = Field(..., description="Admin email (unique)")
    name: str = Field(..., description="Display name")
    password: str = Field(..., description="Salted PBKDF2 password hash, never exposed")


class SignupRequest(BaseModel):
    email: EmailStr
    password: str
    name: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# --------------------------------- Shops ----------------------------------

class ShopCreate(CamelModel):
    name: str = Field(..., description="Shop display name")
    image_url: str = Field(..., description="Shop image reference")
    mongodb_uri: MongoUri = Field(..., description="Connection string of the shop's own catalog database")
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


class ShopUpdate(CamelModel):
    name: Optional[str] = None
    image_url: Optional[str] = None
    mongodb_uri: Optional[MongoUri] = None
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


# -------------------------------- Catalog ---------------------------------

class ProductCreate(CamelModel):
    name: str = Field(..., description="Product name")
    description: str = Field(..., description="Product description")
    price: float = Field(..., ge=0, description="Current price")
    original_price: Optional[float] = Field(None, ge=0, description="Pre-discount price")
    image_url: str = Field(..., description="Primary image reference")
    sub_images: List[str] = Field(default_factory=list, max_length=MAX_SUB_IMAGES)
    category: str = Field(..., description="Category name (free text)")
    tags: List[str] = Field(default_factory=list)
    featured: bool = False
    in_stock: bool = True
    is_new_arrival: bool = False
    is_new_trend: bool = False
    display_order: int = 0
    gender: Optional[str] = None
    occasion: Optional[str] = None
    purity: Optional[str] = None
    stone: Optional[str] = None
    weight: Optional[str] = None


class ProductUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None
    sub_images: Optional[List[str]] = Field(None, max_length=MAX_SUB_IMAGES)
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    featured: Optional[bool] = None
    in_stock: Optional[bool] = None
    is_new_arrival: Optional[bool] = None
    is_new_trend: Optional[bool] = None
    display_order: Optional[int] = None
    gender: Optional[str] = None
    occasion: Optional[str] = None
    purity: Optional[str] = None
    stone: Optional[str] = None
    weight: Optional[str] = None


# --------------------------------- Rates ----------------------------------

class MetalRates(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    gold_24k: str = Field(..., description="24K gold per 10 grams")
    gold_22k: str = Field(..., description="22K gold per 10 grams")
    silver: str = Field(..., description="Silver per kilogram, derived from gold (approximation, not a quote)")
    last_updated: datetime = Field(..., alias="lastUpdated")
