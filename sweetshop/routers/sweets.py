"""
Inventory endpoints: listing, search, CRUD, purchases, restocks and purchase history.

Static paths (``/search``, ``/purchases``) are declared before ``/{sweet_id}``
so they are not captured by it.
"""
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import auth, crud, models, schemas
from ..database import get_db

router = APIRouter(prefix="/sweets", tags=["Sweets"])


def _sweet(db_sweet: models.Sweet) -> dict:
    return {"status": "success", "data": schemas.Sweet.model_validate(db_sweet)}


def _sweets(db_sweets: List[models.Sweet]) -> dict:
    return {"status": "success", "data": [schemas.Sweet.model_validate(s) for s in db_sweets]}


@router.get("", response_model=schemas.SuccessResponse[List[schemas.Sweet]])
def list_sweets(db: Session = Depends(get_db)):
    """List every sweet. No authentication required."""
    return _sweets(crud.get_sweets(db))


@router.get("/search", response_model=schemas.SuccessResponse[List[schemas.Sweet]])
def search_sweets(
    name: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[Decimal] = Query(default=None, alias="minPrice"),
    max_price: Optional[Decimal] = Query(default=None, alias="maxPrice"),
    db: Session = Depends(get_db)
):
    """
    Search sweets. Every given filter must match.

    Args:
        name: Case-insensitive substring of the name
        category: Exact category
        min_price: Inclusive lower price bound (query parameter ``minPrice``)
        max_price: Inclusive upper price bound (query parameter ``maxPrice``)
        db: Database session (injected)

    Returns:
        Matching sweets; all sweets when no filter is given
    """
    sweets = crud.search_sweets(
        db,
        name=name or None,
        category=category or None,
        min_price=min_price,
        max_price=max_price,
    )
    return _sweets(sweets)


@router.get("/purchases", response_model=schemas.SuccessResponse[List[schemas.PurchaseHistoryEntry]])
def list_purchases(
    db: Session = Depends(get_db),
    current_user: models.Profile = Depends(auth.get_current_user)
):
    """
    List the caller's purchases, newest first.

    Each entry shows the sweet as it is now; ``total_price`` is what was
    charged at purchase time.
    """
    purchases = crud.get_purchases_for_user(db, current_user.id)
    return {
        "status": "success",
        "data": [schemas.PurchaseHistoryEntry.model_validate(p) for p in purchases],
    }


@router.get("/{sweet_id}", response_model=schemas.SuccessResponse[schemas.Sweet])
def get_sweet(sweet_id: int, db: Session = Depends(get_db)):
    """
    Get a single sweet by ID.

    Raises:
        NotFound: 404 if the sweet does not exist
    """
    return _sweet(crud.require_sweet(db, sweet_id))


@router.post("", response_model=schemas.SuccessResponse[schemas.Sweet], status_code=status.HTTP_201_CREATED)
def create_sweet(
    sweet: schemas.SweetCreate,
    db: Session = Depends(get_db),
    current_user: models.Profile = Depends(auth.get_current_user)
):
    """
    Create a new sweet (any authenticated user). The caller becomes its owner.

    Args:
        sweet: Sweet data to create
        db: Database session (injected)
        current_user: Current authenticated profile (injected)

    Returns:
        Created sweet
    """
    return _sweet(crud.create_sweet(db, sweet, current_user))


@router.put("/{sweet_id}", response_model=schemas.SuccessResponse[schemas.Sweet])
def update_sweet(
    sweet_id: int,
    sweet: schemas.SweetUpdate,
    db: Session = Depends(get_db),
    current_user: models.Profile = Depends(auth.get_current_user)
):
    """
    Update a sweet (owner or admin). Omitted fields keep their values.

    Args:
        sweet_id: ID of the sweet to update
        sweet: Fields to change
        db: Database session (injected)
        current_user: Current authenticated profile (injected)

    Returns:
        Updated sweet

    Raises:
        NotFound: 404 if the sweet does not exist
        Forbidden: 403 if the caller is neither the owner nor an admin
    """
    return _sweet(crud.update_sweet(db, sweet_id, sweet, current_user))


@router.delete("/{sweet_id}", response_model=schemas.MessageResponse)
def delete_sweet(
    sweet_id: int,
    db: Session = Depends(get_db),
    current_user: models.Profile = Depends(auth.require_admin)
):
    """
    Delete a sweet (admin only).

    Raises:
        NotFound: 404 if the sweet does not exist
        Internal: 500 if the store refuses the delete (the sweet has purchases)
    """
    crud.delete_sweet(db, sweet_id, current_user)
    return {"status": "success", "message": "Sweet deleted successfully"}


@router.post("/{sweet_id}/purchase", response_model=schemas.SuccessResponse[schemas.PurchaseResult])
def purchase_sweet(
    sweet_id: int,
    body: schemas.QuantityRequest,
    db: Session = Depends(get_db),
    current_user: models.Profile = Depends(auth.get_current_user)
):
    """
    Buy units of a sweet.

    Returns:
        The purchase record and the remaining stock

    Raises:
        NotFound: 404 if the sweet does not exist
        InsufficientStock: 400 if not enough units are in stock
    """
    purchase, remaining = crud.purchase_sweet(db, sweet_id, body.quantity, current_user)
    result = schemas.PurchaseResult(
        purchase=schemas.PurchaseRecord.model_validate(purchase),
        remaining_stock=remaining,
    )
    return {"status": "success", "data": result}


@router.post("/{sweet_id}/restock", response_model=schemas.SuccessResponse[schemas.Sweet])
def restock_sweet(
    sweet_id: int,
    body: schemas.QuantityRequest,
    db: Session = Depends(get_db),
    current_user: models.Profile = Depends(auth.require_admin)
):
    """
    Add units to a sweet's stock (admin only).

    Raises:
        NotFound: 404 if the sweet does not exist
    """
    return _sweet(crud.restock_sweet(db, sweet_id, body.quantity, current_user))
