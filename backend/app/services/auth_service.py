import logging
import secrets
from datetime import datetime, timedelta

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, HTTPException, Request, Response, status
import jwt
from jwt.exceptions import InvalidTokenError as JWTError

from app.config import settings
import app.database as _db
from app.database import get_db
from app.utils import utcnow

logger = logging.getLogger("tawaqo.auth")
ph = PasswordHasher()

ALGORITHM = "HS256"
ACCESS_COOKIE = "access_token"


def decode_jwt(token: str) -> dict:
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return ph.verify(hashed, password)
    except VerifyMismatchError:
        return False


def create_access_token(user_id: str) -> str:
    expire = utcnow() + timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    payload = {
        "sub": user_id,
        "exp": expire,
        "type": "access",
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


async def blocklist_access_token(jti: str, expires_at: datetime) -> None:
    """Add an access token JTI to the blocklist until it expires."""
    await _db.db.access_blocklist.update_one(
        {"jti": jti},
        {"$setOnInsert": {"jti": jti, "expires_at": expires_at}},
        upsert=True,
    )


def set_auth_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=access_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE, path="/")


async def get_user_roles(user_id: ObjectId) -> list[str]:
    docs = await _db.db.user_roles.find({"user_id": user_id}, {"role": 1}).to_list(length=None)
    return sorted({str(doc["role"]) for doc in docs if doc.get("role")})


async def resolve_user_from_token(token: str | None) -> dict | None:
    """Validate an access token and load its user. None when anything is off.

    Shared by the HTTP dependency and the WebSocket handshake.
    """
    if not token:
        return None
    try:
        payload = decode_jwt(token)
    except JWTError:
        return None
    if payload.get("type") != "access" or not payload.get("sub"):
        return None

    jti = payload.get("jti")
    if jti:
        blocked = await _db.db.access_blocklist.find_one({"jti": jti}, {"_id": 1})
        if blocked:
            return None

    try:
        user_id = ObjectId(payload["sub"])
    except (InvalidId, TypeError):
        return None
    return await _db.db.users.find_one({"_id": user_id, "is_deleted": False})


async def get_current_user(request: Request, db=Depends(get_db)) -> dict:
    """FastAPI dependency: extract and validate user from access token cookie."""
    token = request.cookies.get(ACCESS_COOKIE)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated.",
        )

    user = await resolve_user_from_token(token)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session.",
        )
    user["roles"] = await get_user_roles(user["_id"])
    return user


async def get_admin_user(request: Request, db=Depends(get_db)) -> dict:
    """FastAPI dependency: requires an authenticated admin user."""
    user = await get_current_user(request, db)
    if "admin" not in user.get("roles", []):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admins only.",
        )
    return user
