"""
Pydantic schemas for request/response validation in the Sweet Shop service.

These schemas define the structure of data for API requests and responses,
including the uniform success and error envelopes.
"""
from datetime import datetime
from decimal import Decimal
from typing import Generic, Literal, Optional, TypeVar
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .validators import MAX_PRICE, MAX_QUANTITY

T = TypeVar("T")

Role = Literal["user", "admin"]


# --- Envelopes ---

class SuccessResponse(BaseModel, Generic[T]):
    """Body of every successful response that returns data."""
    status: Literal["success"] = "success"
    data: T


class MessageResponse(BaseModel):
    """Body of successful responses that only carry a message (deletes)."""
    status: Literal["success"] = "success"
    message: str


class ErrorResponse(BaseModel):
    """Body of every error response."""
    status: Literal["error"] = "error"
    message: str


# --- Accounts ---

class UserRegister(BaseModel):
    """Schema for user registration with password."""
    email: EmailStr
    password: str = Field(..., min_length=6, description="Password must be at least 6 characters")
    name: Optional[str] = Field(default=None, max_length=255)


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str


class RoleUpdate(BaseModel):
    """Schema for an administrative role change."""
    role: Role


class Profile(BaseModel):
    """
    Schema for profile responses, includes all database fields except password.

    Attributes:
        id (int): Profile's unique identifier
        email (str): Email address
        name (str): Display name
        role (str): Profile role
        created_at (datetime): When the profile was created
    """
    id: int
    email: str
    name: Optional[str] = None
    role: Role
    created_at: datetime

    class Config:
        from_attributes = True


class AuthResult(BaseModel):
    """Profile plus a freshly issued access token."""
    user: Profile
    token: str
    token_type: str = "bearer"


# --- Sweets ---

def _require_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class SweetCreate(BaseModel):
    """Schema for creating a new sweet."""
    name: str = Field(..., max_length=255)
    category: str = Field(..., max_length=100)
    price: Decimal = Field(..., ge=0, le=MAX_PRICE, max_digits=10, decimal_places=2)
    quantity: int = Field(..., ge=0, le=MAX_QUANTITY, strict=True)
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, max_length=1024)

    @field_validator("name", "category")
    @classmethod
    def not_blank(cls, value):
        return _require_text(value)


class SweetUpdate(BaseModel):
    """Schema for updating an existing sweet. All fields are optional."""
    name: Optional[str] = Field(default=None, max_length=255)
    category: Optional[str] = Field(default=None, max_length=100)
    price: Optional[Decimal] = Field(default=None, ge=0, le=MAX_PRICE, max_digits=10, decimal_places=2)
    quantity: Optional[int] = Field(default=None, ge=0, le=MAX_QUANTITY, strict=True)
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, max_length=1024)

    @field_validator("name", "category")
    @classmethod
    def not_blank(cls, value):
        return _require_text(value)

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for field in ("name", "category", "price", "quantity"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class Sweet(BaseModel):
    """
    Schema for sweet responses, includes all database fields.

    Attributes:
        id (int): Sweet's unique identifier
        name (str): Item name
        category (str): Item category
        description (str): Description, if any
        price (Decimal): Unit price
        quantity (int): Units in stock
        image_url (str): Image reference, if any
        created_by (int): ID of the creating profile
        created_at (datetime): When the sweet was created
        updated_at (datetime): When the sweet was last changed
    """
    id: int
    name: str
    category: str
    description: Optional[str] = None
    price: Decimal
    quantity: int
    image_url: Optional[str] = None
    created_by: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SweetSnapshot(BaseModel):
    """Current descriptive fields of a sweet, as shown in purchase history."""
    id: int
    name: str
    category: str
    price: Decimal

    class Config:
        from_attributes = True


# --- Purchases and restocks ---

class QuantityRequest(BaseModel):
    """Body of purchase and restock requests."""
    quantity: int = Field(..., gt=0, le=MAX_QUANTITY, strict=True, description="Number of units, must be positive")


class PurchaseRecord(BaseModel):
    """
    Schema for a stored purchase.

    Attributes:
        id (int): Purchase ID
        sweet_id (int): Purchased sweet
        user_id (int): Purchasing profile
        quantity (int): Units bought
        total_price (Decimal): Amount charged at purchase time
        created_at (datetime): When the purchase happened
    """
    id: int
    sweet_id: int
    user_id: int
    quantity: int
    total_price: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class PurchaseResult(BaseModel):
    """Created purchase plus the stock left afterwards."""
    purchase: PurchaseRecord
    remaining_stock: int = Field(..., alias="remainingStock")

    class Config:
        populate_by_name = True


class PurchaseHistoryEntry(BaseModel):
    """A purchase joined with the current state of the purchased sweet."""
    id: int
    quantity: int
    total_price: Decimal
    created_at: datetime
    sweet: SweetSnapshot

    class Config:
        from_attributes = True

