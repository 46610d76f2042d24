from datetime import date, datetime
from pydantic import BaseModel, Field

from track2give.impact.factors import StorageLocation


class UserIn(BaseModel):
    username: str
    email: str | None = None
    profile_picture: str | None = None


class FoodItemIn(BaseModel):
    name: str = Field(min_length=1)
    category: str = "other"
    quantity: float = Field(default=1, gt=0)
    unit: str = "item"
    purchase_date: datetime | None = None
    expiry_date: datetime
    storage_location: StorageLocation = StorageLocation.FRIDGE
    estimated_value: float = Field(default=0, ge=0)
    notes: str | None = None


class FoodItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    category: str | None = None
    quantity: float | None = Field(default=None, gt=0)
    unit: str | None = None
    expiry_date: datetime | None = None
    storage_location: StorageLocation | None = None
    estimated_value: float | None = Field(default=None, ge=0)
    notes: str | None = None


class ShareIn(BaseModel):
    pickup_location: str | None = None
    notes: str | None = None


class ReceiptLineIn(BaseModel):
    name: str | None = None
    category: str | None = None
    quantity: float | str | None = None
    unit: str | None = None
    price: float | str | None = None
    expiryDate: date | datetime | str | None = None


class ReceiptIn(BaseModel):
    storeName: str | None = None
    purchaseDate: date | datetime | str | None = None
    items: list[ReceiptLineIn] = []
