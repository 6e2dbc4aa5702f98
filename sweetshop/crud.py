"""
CRUD (Create, Read, Update, Delete) operations for the Sweet Shop service.

This module contains all database operations: profiles, inventory, purchases,
restocks and purchase history. Role and ownership rules are enforced here so
that every caller goes through the same checks.
"""
from decimal import Decimal
from typing import List, Optional, Tuple
import logging
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from . import errors, models, schemas, validators

logger = logging.getLogger(__name__)


def _commit(db: Session, action: str) -> None:
    """Commit the session, rolling back and raising Internal on store errors."""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Database error while trying to {action}")
        raise errors.Internal("Database error") from e


# --- Profiles ---

def get_profile(db: Session, user_id: int) -> Optional[models.Profile]:
    """
    Retrieve a single profile by ID.

    Args:
        db: Database session
        user_id: ID of the profile to retrieve

    Returns:
        Profile object or None if not found
    """
    if not 0 < user_id <= models.MAX_ID:
        return None
    return db.query(models.Profile).filter(models.Profile.id == user_id).first()


def get_profile_by_email(db: Session, email: str) -> Optional[models.Profile]:
    """
    Retrieve a profile by email address (case-insensitive).

    Args:
        db: Database session
        email: Email address to search for

    Returns:
        Profile object or None if not found
    """
    return db.query(models.Profile).filter(models.Profile.email == email.lower()).first()


def create_profile(db: Session, email: str, password_hash: str, name: Optional[str] = None,
                   role: str = "user") -> models.Profile:
    """
    Create a new profile in the database.

    Args:
        db: Database session
        email: Email address, stored lower-cased
        password_hash: Already hashed password
        name: Optional display name
        role: Initial role

    Returns:
        Created Profile object

    Raises:
        ValidationError: if the email is already registered
    """
    email = email.lower()
    if get_profile_by_email(db, email):
        raise errors.ValidationError("Email already registered")

    db_profile = models.Profile(email=email, name=name, password_hash=password_hash, role=role)
    db.add(db_profile)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise errors.ValidationError("Email already registered") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Database error while trying to create profile")
        raise errors.Internal("Database error") from e

    db.refresh(db_profile)
    logger.info(f"Registered profile {db_profile.id} with role '{db_profile.role}'")
    return db_profile


def update_profile_role(db: Session, user_id: int, role: str, caller: models.Profile) -> models.Profile:
    """
    Change a profile's role (admin only).

    Raises:
        Forbidden: if the caller is not an admin
        ValidationError: if the role is unknown
        NotFound: if the profile does not exist
    """
    if not caller.is_admin:
        raise errors.Forbidden("Admin privileges required")
    if role not in models.ROLES:
        raise errors.ValidationError(f"Unknown role: {role}")

    db_profile = get_profile(db, user_id)
    if db_profile is None:
        raise errors.NotFound("User not found")

    old_role = db_profile.role
    db_profile.role = role
    _commit(db, "update profile role")
    db.refresh(db_profile)
    logger.info(f"Admin {caller.id} changed role of profile {user_id}: {old_role} -> {role}")
    return db_profile


# --- Sweets ---

def get_sweet(db: Session, sweet_id: int) -> Optional[models.Sweet]:
    """
    Retrieve a single sweet by ID.

    Args:
        db: Database session
        sweet_id: ID of the sweet to retrieve

    Returns:
        Sweet object or None if not found
    """
    if not 0 < sweet_id <= models.MAX_ID:
        return None
    return db.query(models.Sweet).filter(models.Sweet.id == sweet_id).first()


def require_sweet(db: Session, sweet_id: int) -> models.Sweet:
    db_sweet = get_sweet(db, sweet_id)
    if db_sweet is None:
        raise errors.NotFound("Sweet not found")
    return db_sweet


def get_sweets(db: Session) -> List[models.Sweet]:
    """
    Retrieve every sweet, oldest first.

    Args:
        db: Database session

    Returns:
        List of Sweet objects
    """
    return db.query(models.Sweet).order_by(models.Sweet.id).all()


def search_sweets(
    db: Session,
    name: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
) -> List[models.Sweet]:
    """
    Retrieve the sweets matching every provided filter.

    Args:
        db: Database session
        name: Case-insensitive substring of the name
        category: Exact category
        min_price: Inclusive lower price bound
        max_price: Inclusive upper price bound

    Returns:
        List of Sweet objects; all sweets when no filter is given

    Raises:
        ValidationError: if the price bounds are negative or inverted
    """
    valid, message = validators.validate_price_range(min_price, max_price)
    if not valid:
        raise errors.ValidationError(message)

    query = db.query(models.Sweet)
    if name:
        query = query.filter(func.lower(models.Sweet.name).contains(name.lower(), autoescape=True))
    if category:
        query = query.filter(models.Sweet.category == category)
    if min_price is not None:
        query = query.filter(models.Sweet.price >= min_price)
    if max_price is not None:
        query = query.filter(models.Sweet.price <= max_price)
    return query.order_by(models.Sweet.id).all()


def create_sweet(db: Session, sweet: schemas.SweetCreate, caller: models.Profile) -> models.Sweet:
    """
    Create a new sweet owned by the caller.

    Args:
        db: Database session
        sweet: Sweet data to create
        caller: Authenticated profile creating the sweet

    Returns:
        Created Sweet object

    Raises:
        ValidationError: if any field breaks the inventory constraints
    """
    data = sweet.model_dump()
    valid, message = validators.validate_sweet_fields(data)
    if not valid:
        raise errors.ValidationError(message)

    db_sweet = models.Sweet(**data, created_by=caller.id)
    db.add(db_sweet)
    _commit(db, "create sweet")
    db.refresh(db_sweet)
    logger.info(f"Profile {caller.id} created sweet {db_sweet.id} '{db_sweet.name}'")
    return db_sweet


def update_sweet(db: Session, sweet_id: int, sweet: schemas.SweetUpdate, caller: models.Profile) -> models.Sweet:
    """
    Update an existing sweet. Only the creator or an admin may do so.

    Args:
        db: Database session
        sweet_id: ID of the sweet to update
        sweet: Updated sweet data (only provided fields will be updated)
        caller: Authenticated profile making the change

    Returns:
        Updated Sweet object

    Raises:
        NotFound: if the sweet does not exist
        Forbidden: if the caller is neither the creator nor an admin
        ValidationError: if a provided value breaks the inventory constraints
    """
    db_sweet = require_sweet(db, sweet_id)
    if db_sweet.created_by != caller.id and not caller.is_admin:
        raise errors.Forbidden("Not authorized to update this sweet")

    update_data = sweet.model_dump(exclude_unset=True)
    valid, message = validators.validate_sweet_fields(update_data, partial=True)
    if not valid:
        raise errors.ValidationError(message)

    for key, value in update_data.items():
        setattr(db_sweet, key, value)

    _commit(db, "update sweet")
    db.refresh(db_sweet)
    logger.info(f"Profile {caller.id} updated sweet {sweet_id}: {sorted(update_data)}")
    return db_sweet


def delete_sweet(db: Session, sweet_id: int, caller: models.Profile) -> None:
    """
    Delete a sweet (admin only).

    Sweets with purchase history are kept by the store's foreign key and the
    delete fails with Internal.

    Raises:
        Forbidden: if the caller is not an admin
        NotFound: if the sweet does not exist
    """
    if not caller.is_admin:
        raise errors.Forbidden("Admin privileges required")

    db_sweet = require_sweet(db, sweet_id)
    db.delete(db_sweet)
    _commit(db, "delete sweet")
    logger.info(f"Admin {caller.id} deleted sweet {sweet_id}")


# --- Purchases and restocks ---

def purchase_sweet(db: Session, sweet_id: int, quantity: int,
                   caller: models.Profile) -> Tuple[models.Purchase, int]:
    """
    Buy units of a sweet.

    The stock decrement and the purchase row are written in one transaction.
    The decrement is a conditional UPDATE that only matches while enough
    stock remains, so two concurrent purchases can never oversell.

    Args:
        db: Database session
        sweet_id: ID of the sweet to buy
        quantity: Units to buy
        caller: Authenticated purchasing profile

    Returns:
        Tuple of (created Purchase, remaining stock)

    Raises:
        ValidationError: if quantity is not a positive integer
        NotFound: if the sweet does not exist
        InsufficientStock: if fewer than ``quantity`` units are in stock
    """
    valid, message = validators.validate_quantity(quantity)
    if not valid:
        raise errors.ValidationError(message)

    db_sweet = require_sweet(db, sweet_id)
    if quantity > db_sweet.quantity:
        logger.warning(
            f"Rejected purchase of {quantity} x sweet {sweet_id} by profile {caller.id}: "
            f"only {db_sweet.quantity} in stock"
        )
        raise errors.InsufficientStock(quantity, db_sweet.quantity)

    unit_price = db_sweet.price
    try:
        result = db.execute(
            update(models.Sweet)
            .where(models.Sweet.id == sweet_id, models.Sweet.quantity >= quantity)
            .values(quantity=models.Sweet.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Another purchase took the stock after it was read
            db.rollback()
            db.refresh(db_sweet)
            logger.warning(
                f"Rejected purchase of {quantity} x sweet {sweet_id} by profile {caller.id}: "
                f"stock dropped to {db_sweet.quantity}"
            )
            raise errors.InsufficientStock(quantity, db_sweet.quantity)

        db_purchase = models.Purchase(
            sweet_id=sweet_id,
            user_id=caller.id,
            quantity=quantity,
            total_price=unit_price * quantity,
        )
        db.add(db_purchase)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Database error while purchasing sweet {sweet_id}")
        raise errors.Internal("Database error") from e

    db.refresh(db_sweet)
    db.refresh(db_purchase)
    logger.info(
        f"Profile {caller.id} bought {quantity} x sweet {sweet_id} for {db_purchase.total_price}; "
        f"{db_sweet.quantity} left"
    )
    return db_purchase, db_sweet.quantity


def restock_sweet(db: Session, sweet_id: int, quantity: int, caller: models.Profile) -> models.Sweet:
    """
    Add units to a sweet's stock (admin only). No purchase row is written.

    Raises:
        Forbidden: if the caller is not an admin
        ValidationError: if quantity is not a positive integer, or the new
            stock level would exceed the maximum
        NotFound: if the sweet does not exist
    """
    if not caller.is_admin:
        raise errors.Forbidden("Admin privileges required")

    valid, message = validators.validate_quantity(quantity)
    if not valid:
        raise errors.ValidationError(message)

    db_sweet = require_sweet(db, sweet_id)
    valid, message = validators.validate_restock(db_sweet.quantity, quantity)
    if not valid:
        raise errors.ValidationError(message)

    try:
        result = db.execute(
            update(models.Sweet)
            .where(models.Sweet.id == sweet_id)
            .where(models.Sweet.quantity <= validators.MAX_QUANTITY - quantity)
            .values(quantity=models.Sweet.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            db.refresh(db_sweet)
            _, message = validators.validate_restock(db_sweet.quantity, quantity)
            raise errors.ValidationError(message or "Restock would exceed maximum stock")
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Database error while restocking sweet {sweet_id}")
        raise errors.Internal("Database error") from e

    db.refresh(db_sweet)
    logger.info(f"Admin {caller.id} restocked sweet {sweet_id} with {quantity}; now {db_sweet.quantity}")
    return db_sweet


def get_purchases_for_user(db: Session, user_id: int) -> List[models.Purchase]:
    """
    Retrieve a profile's purchase history, newest first.

    Each Purchase has its ``sweet`` loaded, giving the sweet's current name,
    category and price next to the historical total.

    Args:
        db: Database session
        user_id: ID of the purchasing profile

    Returns:
        List of Purchase objects
    """
    return (
        db.query(models.Purchase)
        .filter(models.Purchase.user_id == user_id)
        .order_by(models.Purchase.created_at.desc(), models.Purchase.id.desc())
        .all()
    )
