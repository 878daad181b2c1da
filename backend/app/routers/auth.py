import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response, Request, status
from jwt.exceptions import InvalidTokenError as JWTError
from pymongo.errors import DuplicateKeyError

from app.database import get_db
from app.models.user import UserCreate, UserLogin, UserResponse
from app.services.auth_service import (
    ACCESS_COOKIE,
    blocklist_access_token,
    clear_auth_cookie,
    create_access_token,
    decode_jwt,
    get_current_user,
    hash_password,
    set_auth_cookie,
    verify_password,
)
from app.services.websocket_manager import websocket_manager
from app.utils import as_utc, utcnow

logger = logging.getLogger("tawaqo.auth")
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: UserCreate, response: Response, db=Depends(get_db)):
    """Register a new user with a profile and the default `user` role."""
    email = body.email.lower()
    existing = await db.users.find_one({"email": email})
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This email address is already registered.",
        )

    now = utcnow()
    try:
        result = await db.users.insert_one({
            "email": email,
            "hashed_password": hash_password(body.password),
            "is_deleted": False,
            "created_at": now,
            "updated_at": now,
        })
    except DuplicateKeyError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This email address is already registered.",
        )
    user_id = result.inserted_id
    await db.profiles.insert_one({
        "_id": user_id,
        "display_name": body.display_name,
        "avatar_url": None,
        "created_at": now,
        "updated_at": now,
    })
    await db.user_roles.insert_one({"user_id": user_id, "role": "user", "created_at": now})

    set_auth_cookie(response, create_access_token(str(user_id)))
    logger.info("User registered: %s", user_id)
    return {"message": "Registration successful."}


@router.post("/login")
async def login(body: UserLogin, response: Response, db=Depends(get_db)):
    """Login with email and password."""
    user = await db.users.find_one({"email": body.email.lower(), "is_deleted": False})
    if not user or not verify_password(body.password, user["hashed_password"]):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )

    user_id = str(user["_id"])
    set_auth_cookie(response, create_access_token(user_id))
    logger.info("User logged in: %s", user_id)
    return {"message": "Login successful."}


@router.post("/logout")
async def logout(request: Request, response: Response):
    """Revoke the current access token and close the user's realtime sockets."""
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        try:
            payload = decode_jwt(token)
        except JWTError:
            payload = None
        if payload and payload.get("jti"):
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
            await blocklist_access_token(payload["jti"], expires_at)
        if payload and payload.get("sub"):
            await websocket_manager.disconnect_user(str(payload["sub"]))
    clear_auth_cookie(response)
    return {"message": "Logged out."}


@router.get("/me", response_model=UserResponse)
async def me(user=Depends(get_current_user), db=Depends(get_db)):
    profile = await db.profiles.find_one({"_id": user["_id"]}) or {}
    return UserResponse(
        id=str(user["_id"]),
        email=user["email"],
        display_name=profile.get("display_name", ""),
        avatar_url=profile.get("avatar_url"),
        roles=user.get("roles", []),
        created_at=as_utc(user["created_at"]),
    )
