"""
Authentication utilities: password hashing, JWT cookies and user dependencies
"""
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt.exceptions import PyJWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import Config
from .database import get_db
from .errors import AuthenticationError, AuthorizationError
from .models import User

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

security_optional = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def avatar_url_for(name: Optional[str]) -> str:
    """Placeholder avatar with the user's initials on a random background"""
    initials = "".join(part[0].upper() for part in (name or "").split() if part)
    color = format(random.randint(0, 0xFFFFFF), "06x")
    return f"https://placehold.co/150x150/{color}/000000?text={initials}"


def _encode(user_id: str, secret: str, expires_delta: timedelta) -> str:
    payload = {
        "id": user_id,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(payload, secret, algorithm=Config.JWT_ALGORITHM)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    return _encode(user_id, Config.ACCESS_TOKEN_SECRET,
                   expires_delta or timedelta(minutes=Config.ACCESS_TOKEN_EXPIRY_MINUTES))


def create_refresh_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT refresh token"""
    return _encode(user_id, Config.REFRESH_TOKEN_SECRET,
                   expires_delta or timedelta(days=Config.REFRESH_TOKEN_EXPIRY_DAYS))


def _decode(token: str, secret: str) -> str:
    try:
        payload = jwt.decode(token, secret, algorithms=[Config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except PyJWTError:
        raise AuthenticationError("Invalid authentication token")

    user_id = payload.get("id")
    if not user_id:
        raise AuthenticationError("Invalid authentication token")
    return user_id


def verify_access_token(token: str) -> str:
    """Verify an access token and return the user id it was issued for"""
    return _decode(token, Config.ACCESS_TOKEN_SECRET)


def verify_refresh_token(token: str) -> str:
    return _decode(token, Config.REFRESH_TOKEN_SECRET)


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "samesite": "strict",
        "secure": not Config.is_development(),
    }


def set_access_cookie(response: Response, token: str) -> None:
    response.set_cookie(ACCESS_TOKEN_COOKIE, token,
                        max_age=Config.ACCESS_TOKEN_EXPIRY_MINUTES * 60, **_cookie_options())


def set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(REFRESH_TOKEN_COOKIE, token,
                        max_age=Config.REFRESH_TOKEN_EXPIRY_DAYS * 86400, **_cookie_options())


def clear_auth_cookies(response: Response) -> None:
    options = _cookie_options()
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(name, httponly=options["httponly"], samesite=options["samesite"],
                               secure=options["secure"])


def _token_from_request(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    # Cookie first, then Authorization header
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token and credentials:
        token = credentials.credentials
    return token


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
    db: Session = Depends(get_db)
) -> User:
    """Get the current authenticated user from cookie or Bearer token"""
    token = _token_from_request(request, credentials)
    if not token:
        raise AuthenticationError("Unauthorized access")

    user_id = verify_access_token(token)
    user = db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User is not authorized to access this resource")
    return user


async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Get the current user if authenticated, otherwise return None"""
    token = _token_from_request(request, credentials)
    if not token:
        return None
    try:
        user_id = verify_access_token(token)
    except AuthenticationError:
        return None
    return db.get(User, user_id)


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Only ADMIN users get through"""
    if not current_user.is_admin:
        logger.warning("User %s denied access to an admin-only operation", current_user.id)
        raise AuthorizationError("Access denied - Admins only")
    return current_user
