"""
SQLAlchemy ORM models for the Sweet Shop service.

Defines the database schema for profiles, sweets and purchase history.
"""
from datetime import datetime
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from .database import Base

ROLES = ("user", "admin")

# Largest value an Integer primary key can hold
MAX_ID = 2**31 - 1


class Profile(Base):
    """
    Profile model representing a registered identity.

    Attributes:
        id (int): Primary key, auto-incremented profile ID
        email (str): Email address (unique)
        name (str): Display name (optional)
        password_hash (str): Hashed password
        role (str): Profile role (user, admin)
        created_at (datetime): Timestamp when the profile was created
    """
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_profiles_role"),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), default="user", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Sweet(Base):
    """
    Sweet model representing a purchasable inventory item.

    Attributes:
        id (int): Primary key, auto-incremented sweet ID
        name (str): Item name
        category (str): Item category
        description (str): Free-text description (optional)
        price (Decimal): Unit price, never negative
        quantity (int): Units in stock, never negative
        image_url (str): Image reference (optional)
        created_by (int): ID of the profile that created the item
        created_at (datetime): Timestamp when the item was created
        updated_at (datetime): Timestamp of the last modification
    """
    __tablename__ = "sweets"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_sweets_price_non_negative"),
        CheckConstraint("quantity >= 0", name="ck_sweets_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), index=True, nullable=False)
    category = Column(String(100), index=True, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    image_url = Column(String(1024), nullable=True)
    created_by = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Purchase(Base):
    """
    Purchase model representing one completed purchase. Rows are never
    updated or deleted.

    Attributes:
        id (int): Primary key, auto-incremented purchase ID
        sweet_id (int): Foreign key to the purchased sweet
        user_id (int): Foreign key to the purchasing profile
        quantity (int): Units bought, always positive
        total_price (Decimal): quantity * unit price at purchase time
        created_at (datetime): Timestamp of the purchase
    """
    __tablename__ = "purchases"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_purchases_quantity_positive"),
        CheckConstraint("total_price >= 0", name="ck_purchases_total_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    sweet_id = Column(Integer, ForeignKey("sweets.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    total_price = Column(Numeric(16, 2), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    sweet = relationship("Sweet", lazy="joined")
