"""Security utilities for authentication and organization scoping."""

from fastapi import Depends, HTTPException, Query, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session, select
from db.session import get_session
from core.config import settings
from models.user import User
from models.auth import Session as AuthSession
from models.organization import Organization
from services.organizations import resolve_organization
from datetime import datetime, timezone

# Use auto_error=False to allow checking cookies manually if header is missing
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_session)
) -> User:
    """
    Verify session token and return the current user.
    Checks Authorization header (Bearer) first, then the session cookie.
    Raises 401 if token is invalid or expired.
    """
    token = None

    if credentials:
        token = credentials.credentials

    if not token:
        token = request.cookies.get(settings.session_cookie_name)
        # Signed cookies look like "token.signature", only the token is stored
        if token and "." in token:
            token = token.split(".")[0]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )

    auth_session = db.exec(select(AuthSession).where(AuthSession.token == token)).first()

    if not auth_session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token"
        )

    # Naive datetimes coming back from the DB are UTC
    expires_at = auth_session.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)

    if expires_at < datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired"
        )

    user = db.get(User, auth_session.user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return user


async def get_current_organization(
    request: Request,
    org_id: str | None = Query(None, description="Organization to act on (defaults to the primary one)"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
) -> Organization:
    """
    Resolve the organization a request acts on.

    An explicit ``org_id`` query parameter or ``X-Organization-Id`` header is
    honoured only when the user is a member; otherwise the user's primary
    organization is used (created on first access).
    """
    requested = org_id or request.headers.get("x-organization-id")
    return resolve_organization(db, current_user, requested)
