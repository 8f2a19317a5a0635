import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .auth import (REFRESH_TOKEN_COOKIE, avatar_url_for, clear_auth_cookies, create_access_token,
                   create_refresh_token, get_current_user, get_current_user_optional, get_password_hash,
                   set_access_cookie, set_refresh_cookie, verify_password, verify_refresh_token)
from .config import Config
from .database import get_db, unit_of_work
from .errors import AuthenticationError, ConflictError, success_body
from .models import User, UserRole
from .schemas import LoginRequest, RegisterRequest, UserResponse

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix=f"{Config.API_PREFIX}/auth", tags=["auth"])


def _user_payload(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(by_alias=True, mode="json")


def _ensure_email_available(db: Session, email: str) -> None:
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email already exists, please login")


@auth_router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user_data: RegisterRequest, db: Session = Depends(get_db)):
    _ensure_email_available(db, user_data.email)

    user = User(
        name=user_data.name,
        email=user_data.email,
        password_hash=get_password_hash(user_data.password),
        role=UserRole.USER,
        image=avatar_url_for(user_data.name),
    )
    try:
        with unit_of_work(db):
            db.add(user)
    except IntegrityError:
        raise ConflictError("Email already exists, please login")
    db.refresh(user)
    logger.info("Registered user %s", user.id)

    response = JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success_body(201, "User registered successfully", {"user": _user_payload(user)}),
    )
    set_access_cookie(response, create_access_token(user.id))
    return response


@auth_router.post("/login")
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == login_data.email).first()
    if not user:
        raise AuthenticationError("User not found")

    if not verify_password(login_data.password, user.password_hash):
        raise AuthenticationError("Invalid credentials")

    response = JSONResponse(
        status_code=status.HTTP_200_OK,
        content=success_body(200, "User logged in successfully", {"user": _user_payload(user)}),
    )
    set_access_cookie(response, create_access_token(user.id))
    set_refresh_cookie(response, create_refresh_token(user.id))
    return response


@auth_router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    response = JSONResponse(status_code=status.HTTP_200_OK,
                            content=success_body(200, "User logged out successfully", {}))
    clear_auth_cookies(response)
    return response


@auth_router.get("/check")
def check(current_user: User = Depends(get_current_user_optional)):
    if current_user is None:
        return success_body(200, "User not authenticated", {"authenticated": False})
    return success_body(200, "User authenticated", {"authenticated": True, "user": _user_payload(current_user)})


@auth_router.post("/refresh")
def refresh(request: Request, db: Session = Depends(get_db)):
    """Issue a fresh access token from the refresh cookie"""
    token = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not token:
        raise AuthenticationError("Refresh token missing")

    user = db.get(User, verify_refresh_token(token))
    if user is None:
        raise AuthenticationError("User not found")

    response = JSONResponse(status_code=status.HTTP_200_OK,
                            content=success_body(200, "Access token refreshed", {"user": _user_payload(user)}))
    set_access_cookie(response, create_access_token(user.id))
    return response
