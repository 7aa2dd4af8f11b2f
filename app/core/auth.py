import uuid
from collections.abc import Callable
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from app.core.config import get_settings
from app.database import get_session
from app.models.user import User

CUSTOMER_ROLE = "user"
STAFF_ROLES = frozenset({"staff", "admin"})

# Missing header means guest, so the scheme must not reject on its own
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry of a bearer token and return its claims.

    Tokens are issued by the external identity provider; only the shared
    secret and algorithm are configured here. Audience is not checked.

    Raises:
        HTTPException(401): bad signature, expired or malformed token.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_aud": False},
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token")


def identity_from_claims(claims: dict[str, Any]) -> tuple[uuid.UUID, str]:
    """(user id, email) from the `sub` and `email` claims."""
    sub = claims.get("sub")
    email = claims.get("email")
    if not sub or not email:
        raise _unauthorized("Token missing sub/email")
    try:
        return uuid.UUID(sub), email
    except ValueError:
        raise _unauthorized("Invalid sub in token")


def _provision_customer(session: Session, user_id: uuid.UUID, email: str) -> User:
    # First request from a new account: mirror it locally as a customer.
    # Staff roles are granted out of band.
    user = User(
        id=user_id,
        email=email,
        name=email.split("@", 1)[0][:50],
        role=CUSTOMER_ROLE,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    The signed-in user, or None for guests.

    Services never read this directly: routers pass `user.id` down as an
    explicit argument.
    """
    if credentials is None:
        return None

    user_id, email = identity_from_claims(decode_access_token(credentials.credentials))

    user = session.get(User, user_id)
    if user is None:
        user = _provision_customer(session, user_id, email)
    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    if user is None:
        raise _unauthorized("Authentication required")
    return user


def require_roles(roles: frozenset[str], detail: str) -> Callable[..., User]:
    """
    Build a dependency that admits only users whose role is in `roles`
    (403 otherwise).
    """

    def dependency(user: User = Depends(require_auth)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return user

    return dependency


# Order and appointment administration
require_staff = require_roles(STAFF_ROLES, "Staff access required")

# Checkout and booking are customer actions
require_user = require_roles(frozenset({CUSTOMER_ROLE}), "Customer access required")
