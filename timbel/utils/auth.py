# timbel/utils/auth.py
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from timbel.config.settings import Settings
from timbel.core.exceptions import ProvisioningError
from timbel.database import get_db
from timbel.models.user import User, UserRole
from timbel.services.users import UserService

logger = logging.getLogger(__name__)

# Tokens come from the hosted identity provider; tokenUrl only documents that
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def verify_token(token: str) -> Optional[dict]:
    """Verify a JWT and return its claims, or None when it is invalid"""
    options = {}
    kwargs = {}
    if Settings.JWT_AUDIENCE:
        kwargs["audience"] = Settings.JWT_AUDIENCE
    else:
        options["verify_aud"] = False

    try:
        return jwt.decode(
            token,
            Settings.JWT_SECRET,
            algorithms=[Settings.JWT_ALGORITHM],
            options=options,
            **kwargs
        )
    except JWTError as e:
        logger.info(f"Rejected token: {e}")
        return None


def resolve_viewer(claims: dict, db: Session) -> User:
    """Load the user named by the token, creating the record on first sign-in"""
    metadata = claims.get("user_metadata") or {}
    return UserService(db).ensure_user(
        user_id=claims["sub"],
        email=claims.get("email", ""),
        full_name=metadata.get("full_name")
    )


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    claims = verify_token(token)
    if not claims or not claims.get("sub"):
        raise credentials_exception

    try:
        return resolve_viewer(claims, db)
    except ProvisioningError as e:
        logger.error(f"Could not provision user {claims.get('sub')}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Your account could not be set up. Please try again."
        )


def get_current_super_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.SUPER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only SUPER users can access the admin console"
        )
    return current_user
