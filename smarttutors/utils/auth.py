import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, Request, status
from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware

from smarttutors.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_TUTOR = "tutor"


@dataclass(frozen=True)
class AuthContext:
    """Resolved caller identity for one request."""
    subject: Optional[str] = None
    role: Optional[str] = None
    tutor_id: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.subject is not None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_tutor(self) -> bool:
        return self.role == ROLE_TUTOR and self.tutor_id is not None


ANONYMOUS = AuthContext()


def create_access_token(data: dict, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES):
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_auth_context(token: str) -> AuthContext:
    """Turn a bearer token into an AuthContext, or ANONYMOUS when it does not verify."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug("Rejected bearer token: %s", e)
        return ANONYMOUS

    subject = payload.get("sub")
    if subject is None:
        return ANONYMOUS

    return AuthContext(
        subject=subject,
        role=payload.get("role"),
        tutor_id=payload.get("tutor_id"),
        name=payload.get("name"),
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """Resolves the Authorization header once and stores it on request.state.auth."""

    async def dispatch(self, request: Request, call_next):
        context = ANONYMOUS
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() == "bearer" and token:
            context = decode_auth_context(token.strip())
        request.state.auth = context
        return await call_next(request)


# ===========================
# ROUTE DEPENDENCIES
# ===========================

def get_auth(request: Request) -> AuthContext:
    return getattr(request.state, "auth", ANONYMOUS)


def require_user(request: Request) -> AuthContext:
    auth = get_auth(request)
    if not auth.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth


def require_admin(request: Request) -> AuthContext:
    auth = require_user(request)
    if not auth.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return auth


def require_tutor(request: Request) -> AuthContext:
    auth = require_user(request)
    if not auth.is_tutor:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Tutor access required")
    return auth
