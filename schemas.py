"""
Database Schemas for the Car Rental catalog

Each Pydantic model describes the payload accepted for one MongoDB collection.
- Car -> "cars"
- Brand -> "brands"
- Category -> "categories"
- User -> "users"

Request bodies reject unknown fields; ``*Update`` models make every field
optional and list the keys that are accepted but never written.
"""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

Number = Union[int, float, str]


def _not_null(value):
    # Optional only so the key can be omitted; an explicit null would erase a required field
    if value is None:
        raise ValueError("field cannot be null")
    return value


class Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class Car(Strict):
    name: str = Field(..., min_length=1, description="Display name")
    brand: str = Field(..., min_length=1, description="Brand name")
    transmission: str = Field(..., min_length=1, description="Automatic | Manual")
    fuelType: str = Field(..., min_length=1, description="Petrol, Diesel, Electric, ...")
    type: str = Field(..., min_length=1, description="Body type: SUV, Sedan, ...")
    model: Optional[str] = Field(None, description="Model designation")
    seats: Optional[int] = Field(None, ge=1)
    year: Optional[int] = None
    rating: float = Field(0, ge=0, le=5)
    advancePayment: bool = False
    rareCar: bool = False
    featured: bool = False
    engineCapacity: Optional[Number] = None
    power: Optional[Number] = None
    dailyPrice: Optional[float] = Field(None, ge=0, description="Price per day")
    tags: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    images: List[str] = Field(default_factory=list, description="Ordered image URLs")
    available: bool = True
    location: Optional[str] = None
    categories: List[str] = Field(default_factory=list, description="Category ids")


class CarUpdate(Strict):
    id: Optional[str] = Field(None, exclude=True)
    name: Optional[str] = Field(None, min_length=1)
    brand: Optional[str] = Field(None, min_length=1)
    transmission: Optional[str] = Field(None, min_length=1)
    fuelType: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)
    model: Optional[str] = None
    seats: Optional[int] = Field(None, ge=1)
    year: Optional[int] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    advancePayment: Optional[bool] = None
    rareCar: Optional[bool] = None
    featured: Optional[bool] = None
    engineCapacity: Optional[Number] = None
    power: Optional[Number] = None
    dailyPrice: Optional[float] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    description: Optional[str] = None
    images: Optional[List[str]] = None
    available: Optional[bool] = None
    location: Optional[str] = None
    categories: Optional[List[str]] = None

    @field_validator("name", "brand", "transmission", "fuelType", "type")
    @classmethod
    def required_not_null(cls, value):
        return _not_null(value)


class BulkUpdateItem(Strict):
    id: str = Field(..., min_length=1)
    data: CarUpdate


class BulkUpdateRequest(BaseModel):
    # Entries are validated one at a time so bad ones can be skipped
    updates: Any = None


class Brand(Strict):
    name: str = Field(..., min_length=1)
    logo: str = Field(..., min_length=1, description="Logo URL")
    slug: str = Field(..., min_length=1)
    featured: bool = False


class BrandUpdate(Strict):
    id: Optional[str] = Field(None, exclude=True)
    name: Optional[str] = None
    logo: Optional[str] = None
    slug: Optional[str] = None
    featured: Optional[bool] = None
    carCount: Optional[int] = Field(None, ge=0)


class Category(Strict):
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="carType, fuelType, tag, ...")
    slug: str = Field(..., min_length=1, description="URL-friendly unique identifier")
    value: Optional[str] = Field(None, description="Car type for carType categories")
    featured: bool = False
    description: str = ""


class CategoryUpdate(Strict):
    id: Optional[str] = Field(None, exclude=True)
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    value: Optional[str] = None
    featured: Optional[bool] = None
    description: Optional[str] = None
    carCount: Optional[int] = Field(None, ge=0)

    @field_validator("name", "type", "slug")
    @classmethod
    def required_not_null(cls, value):
        return _not_null(value)


class User(Strict):
    email: EmailStr = Field(..., description="Unique email address")
    phoneNumber: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, description="Full name")


class UserUpdate(Strict):
    # Identity fields may be sent back by clients but are never written here
    id: Optional[str] = Field(None, exclude=True)
    email: Optional[str] = Field(None, exclude=True)
    password: Optional[str] = Field(None, exclude=True)
    name: Optional[str] = Field(None, min_length=1)
    phoneNumber: Optional[str] = Field(None, min_length=1)
    rentals: Optional[List[Any]] = None
    favorites: Optional[List[str]] = None

    @field_validator("name", "phoneNumber")
    @classmethod
    def required_not_null(cls, value):
        return _not_null(value)


class FavoriteIn(Strict):
    carId: Optional[str] = None
