"""
Authentication Routes

POST /auth/register - Register new user (role "student")
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
"""

import logging
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text

from placement_portal.db.postgres import get_db_session
from placement_portal.core.auth import hash_password, verify_password, create_access_token, get_current_user
from placement_portal.core.exceptions import RegistrationsClosed
from placement_portal.services.placement_store import PlacementStore, get_placement_store
from placement_portal.schemas.schemas import (
    RegisterRequest, LoginRequest, TokenResponse, UserResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(request: RegisterRequest, store: PlacementStore = Depends(get_placement_store)):
    """
    Register a new user account.

    Students must use their roll number as username. Coordinator and admin
    roles are granted by an admin afterwards.
    """
    if not store.get_portal_settings().get("registrations_allowed"):
        raise RegistrationsClosed()

    with get_db_session() as db:
        # Check username / email exists
        result = db.execute(
            text("SELECT username, email FROM users WHERE username = :username OR email = :email"),
            {"username": request.username, "email": request.email}
        )
        existing = result.fetchone()
        if existing:
            field = "Username" if existing[0] == request.username else "Email"
            raise HTTPException(status_code=400, detail=f"{field} already registered")

        # Create user
        db.execute(
            text("""
                INSERT INTO users (username, email, password_hash, role)
                VALUES (:username, :email, :password_hash, 'student')
            """),
            {
                "username": request.username,
                "email": request.email,
                "password_hash": hash_password(request.password),
            }
        )

    logger.info("Registered user %s", request.username)
    return MessageResponse(message="Registered successfully. Please login.")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    with get_db_session() as db:
        result = db.execute(
            text("SELECT id, password_hash, role, is_active FROM users WHERE username = :username"),
            {"username": request.username}
        )
        user = result.fetchone()

    if not user:
        raise HTTPException(status_code=401, detail="Invalid username or password")

    user_id, password_hash, role, is_active = user

    if not is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")

    if not verify_password(request.password, password_hash):
        raise HTTPException(status_code=401, detail="Invalid username or password")

    token = create_access_token(data={"sub": str(user_id), "role": role})

    return TokenResponse(access_token=token, user_id=user_id, username=request.username, role=role)


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    with get_db_session() as db:
        result = db.execute(
            text("SELECT id, username, email, role, is_active, created_at FROM users WHERE id = :id"),
            {"id": user["user_id"]}
        )
        row = result.fetchone()

    return UserResponse(
        user_id=row[0], username=row[1], email=row[2], role=row[3], is_active=row[4], created_at=row[5]
    )
