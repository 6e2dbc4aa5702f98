"""
Authentication and authorization utilities.

Provides password hashing, JWT token creation/validation, and FastAPI dependencies
for protecting endpoints.
"""
from datetime import datetime, timedelta
from typing import Optional
import logging
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from . import crud, errors, models
from .database import get_db
from .config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Security scheme for JWT bearer tokens; missing headers are reported by get_current_user
security = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        True if the password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password for secure storage.

    Args:
        password: The plain text password to hash

    Returns:
        The hashed password
    """
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary containing the claims to encode in the token
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    if expires_delta is not None:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def create_token_for(profile: models.Profile) -> str:
    return create_access_token(
        data={"sub": str(profile.id), "email": profile.email, "role": profile.role}
    )


def authenticate_user(db: Session, email: str, password: str) -> Optional[models.Profile]:
    """
    Authenticate a profile by email and password.

    Args:
        db: Database session
        email: Email address
        password: Plain text password to verify

    Returns:
        Profile object if authentication succeeds, None otherwise
    """
    profile = crud.get_profile_by_email(db, email)
    if not profile:
        return None
    if not verify_password(password, profile.password_hash):
        return None
    return profile


def decode_access_token(token: str) -> int:
    """
    Decode a bearer token and return the profile ID it names.

    Raises:
        Unauthenticated: if the token is malformed, badly signed, expired or has no usable subject
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id_str = payload.get("sub")
        if user_id_str is None:
            logger.warning("No 'sub' claim in token")
            raise errors.Unauthenticated("Invalid or expired token")
        return int(user_id_str)
    except (JWTError, ValueError, TypeError) as e:
        logger.warning(f"JWT validation error: {e}")
        raise errors.Unauthenticated("Invalid or expired token")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> models.Profile:
    """
    FastAPI dependency to get the current authenticated profile from a JWT token.

    The role is read from the store on every request, so role changes apply
    to tokens that were issued before them.

    Args:
        credentials: HTTP Authorization credentials (injected)
        db: Database session (injected)

    Returns:
        Current authenticated profile

    Raises:
        Unauthenticated: if the header is missing or malformed, or the token is invalid
    """
    if credentials is None:
        raise errors.Unauthenticated("Authentication required")

    user_id = decode_access_token(credentials.credentials)
    profile = crud.get_profile(db, user_id)
    if profile is None:
        logger.warning(f"Token names unknown profile {user_id}")
        raise errors.Unauthenticated("Invalid or expired token")
    return profile


def require_admin(current_user: models.Profile = Depends(get_current_user)) -> models.Profile:
    """
    FastAPI dependency to require admin role.

    Args:
        current_user: Current authenticated profile (injected)

    Returns:
        Current profile if it is an admin

    Raises:
        Forbidden: if the profile is not an admin
    """
    if not current_user.is_admin:
        raise errors.Forbidden("Admin privileges required")
    return current_user
