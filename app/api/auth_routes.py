"""
Authentication routes - password login, registration and API token management.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.api.dependencies import get_current_actor, get_session_actor
from app.db.session import get_write_db
from app.exceptions import (
    AuthenticationError,
    DuplicateUserError,
    TokenNotFoundError,
    ValidationFailedError,
)
from app.models.api import (
    LoginRequest,
    LoginResponse,
    LoginUser,
    RegisterRequest,
    TokenCreateRequest,
    TokenCreateResponse,
    TokenListResponse,
    TokenResponse,
    TokenRevokeRequest,
    TokenRevokeResponse,
    UserEnvelope,
    UserResponse,
)
from app.models.domain import Actor, UserData
from app.services.api_token import ApiTokenService
from app.services.auth import SessionAuthService
from app.services.users import UserService, to_user_data

logger = get_logger(__name__)
router = APIRouter()


def _user_response(user: UserData) -> UserResponse:
    return UserResponse(
        id=user.user_id,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        created_at=user.created_at,
        last_login_at=user.last_login_at,
    )


# ============================================================================
# Sessions
# ============================================================================


@router.post("/auth/login", response_model=LoginResponse, tags=["auth"])
async def login(
    request: LoginRequest | None = None,
    db: AsyncSession = Depends(get_write_db),
) -> LoginResponse:
    """Exchange email and password for a session token."""
    if request is None or not request.email or not request.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Fields "email" and "password" are required.',
        )

    try:
        issued = await SessionAuthService(db).authenticate(request.email, request.password)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    return LoginResponse(
        access_token=issued.access_token,
        expires_in=issued.expires_in,
        user=LoginUser(id=issued.user.user_id, email=issued.user.email, role=issued.user.role),
    )


@router.post(
    "/auth/register",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    tags=["auth"],
)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_write_db),
) -> UserEnvelope:
    """Create an editor account. Admin rights are granted by an existing admin."""
    try:
        user = await SessionAuthService(db).register(request.email, request.password)
    except DuplicateUserError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return UserEnvelope(user=_user_response(user))


@router.get("/auth/me", response_model=UserEnvelope, tags=["auth"])
async def me(
    db: AsyncSession = Depends(get_write_db),
    actor: Actor = Depends(get_current_actor),
) -> UserEnvelope:
    """The caller's account with its current role."""
    user = await UserService(db).get_user(actor.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return UserEnvelope(user=_user_response(to_user_data(user)))


# ============================================================================
# API Tokens (session only)
# ============================================================================


@router.get("/tokens", response_model=TokenListResponse, tags=["tokens"])
async def list_tokens(
    db: AsyncSession = Depends(get_write_db),
    actor: Actor = Depends(get_session_actor),
) -> TokenListResponse:
    """The caller's tokens, newest first. Secrets are never returned."""
    tokens = await ApiTokenService(db).list_tokens(actor.user_id)
    return TokenListResponse(
        tokens=[
            TokenResponse(
                id=token.token_id,
                name=token.name,
                is_active=token.is_active,
                created_at=token.created_at,
            )
            for token in tokens
        ]
    )


@router.post(
    "/tokens",
    response_model=TokenCreateResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["tokens"],
)
async def create_token(
    request: TokenCreateRequest | None = None,
    db: AsyncSession = Depends(get_write_db),
    actor: Actor = Depends(get_session_actor),
) -> TokenCreateResponse:
    """Create a token. The raw value is in this response and nowhere else."""
    try:
        generated = await ApiTokenService(db).create_token(
            actor.user_id, request.name if request else None
        )
    except ValidationFailedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return TokenCreateResponse(
        token=generated.plaintext_token,
        id=generated.token_id,
        name=generated.name,
        created_at=generated.created_at,
    )


@router.delete("/tokens", response_model=TokenRevokeResponse, tags=["tokens"])
async def revoke_token(
    request: TokenRevokeRequest | None = None,
    db: AsyncSession = Depends(get_write_db),
    actor: Actor = Depends(get_session_actor),
) -> TokenRevokeResponse:
    """Revoke one of the caller's active tokens."""
    if request is None or request.id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail='Token "id" is required.'
        )

    try:
        revoked_id = await ApiTokenService(db).revoke_token(actor.user_id, request.id)
    except TokenNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return TokenRevokeResponse(id=revoked_id)
