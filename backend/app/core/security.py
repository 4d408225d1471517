from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from app.core.config import settings


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


class UserRole(str, enum.Enum):
    faculty = "faculty"
    admin = "admin"
    student = "student"


MANAGER_ROLES = frozenset({UserRole.faculty, UserRole.admin})


@dataclass(frozen=True)
class Identity:
    """Caller identity as asserted by the external authentication provider."""

    user_id: str
    role: UserRole
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    def owns(self, owner_id: str | None) -> bool:
        return self.is_admin or (owner_id is not None and str(owner_id) == self.user_id)


def create_access_token(*, user_id: str, role: UserRole | str, name: str = "", minutes: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = int(minutes if minutes is not None else settings.jwt_access_token_minutes)
    payload = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "name": name,
        "iss": settings.jwt_issuer,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> Identity:
    if not token:
        token = request.cookies.get("campus_token")
    if not token:
        raise HTTPException(status_code=401, detail="not authenticated")

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=str(settings.jwt_issuer),
        )
    except JWTError as e:
        raise HTTPException(status_code=401, detail="invalid token") from e

    user_id = str(payload.get("sub") or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="invalid token")

    try:
        role = UserRole(str(payload.get("role") or "").strip().lower())
    except ValueError as e:
        raise HTTPException(status_code=401, detail="invalid token") from e

    request.state.user_id = user_id
    return Identity(user_id=user_id, role=role, name=str(payload.get("name") or ""))


def require_roles(*roles: UserRole):
    def _dep(user: Identity = Depends(get_current_user)) -> Identity:
        # admin passes every role check
        if user.role == UserRole.admin:
            return user

        if user.role not in roles:
            raise HTTPException(status_code=403, detail="forbidden")
        return user

    return _dep
