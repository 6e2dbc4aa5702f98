"""
Account endpoints: registration, login, profile and role administration.
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import auth, crud, errors, models, schemas
from ..config import ADMIN_EMAILS
from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _auth_result(profile: models.Profile) -> dict:
    return {
        "status": "success",
        "data": schemas.AuthResult(
            user=schemas.Profile.model_validate(profile),
            token=auth.create_token_for(profile),
        ),
    }


@router.post(
    "/register",
    response_model=schemas.SuccessResponse[schemas.AuthResult],
    status_code=status.HTTP_201_CREATED,
)
def register(user: schemas.UserRegister, db: Session = Depends(get_db)):
    """
    Register a new account.

    Emails listed in ADMIN_EMAILS are given the admin role; everyone else
    starts as a regular user.

    Args:
        user: Registration data (email, password, optional name)
        db: Database session (injected)

    Returns:
        The new profile and a JWT access token

    Raises:
        ValidationError: 400 if the email is already registered
    """
    role = "admin" if user.email.lower() in ADMIN_EMAILS else "user"
    profile = crud.create_profile(
        db,
        email=user.email,
        password_hash=auth.get_password_hash(user.password),
        name=user.name,
        role=role,
    )
    return _auth_result(profile)


@router.post("/login", response_model=schemas.SuccessResponse[schemas.AuthResult])
def login(credentials: schemas.UserLogin, db: Session = Depends(get_db)):
    """
    Authenticate and log in.

    Args:
        credentials: Login credentials (email, password)
        db: Database session (injected)

    Returns:
        The profile and a JWT access token

    Raises:
        Unauthenticated: 401 if the credentials are invalid
    """
    profile = auth.authenticate_user(db, credentials.email, credentials.password)
    if not profile:
        logger.warning(f"Failed login for {credentials.email}")
        raise errors.Unauthenticated("Incorrect email or password")

    logger.info(f"Profile {profile.id} logged in")
    return _auth_result(profile)


@router.get("/profile", response_model=schemas.SuccessResponse[schemas.Profile])
def get_profile(current_user: models.Profile = Depends(auth.get_current_user)):
    """Return the authenticated caller's profile."""
    return {"status": "success", "data": schemas.Profile.model_validate(current_user)}


@router.put("/users/{user_id}/role", response_model=schemas.SuccessResponse[schemas.Profile])
def update_role(
    user_id: int,
    body: schemas.RoleUpdate,
    db: Session = Depends(get_db),
    current_user: models.Profile = Depends(auth.require_admin)
):
    """
    Change a profile's role (admin only).

    Raises:
        NotFound: 404 if the profile does not exist
    """
    profile = crud.update_profile_role(db, user_id, body.role, current_user)
    return {"status": "success", "data": schemas.Profile.model_validate(profile)}
