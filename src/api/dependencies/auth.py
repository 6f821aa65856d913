from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError

from src.core import get_settings

settings = get_settings()

# Tokens are issued by the external auth service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def decode_user_id(token: Optional[str]) -> Optional[int]:
    """Return the user id carried in the ``sub`` claim, or None for a bad token"""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> int:
    """
    Get the id of the authenticated user from the bearer JWT

    Raises:
        HTTPException: If the token is invalid
    """
    user_id = decode_user_id(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


def get_user_id_from_token(token: Optional[str]) -> int:
    """Same check as get_current_user_id for the WebSocket query parameter"""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication token required",
        )
    user_id = decode_user_id(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    return user_id
