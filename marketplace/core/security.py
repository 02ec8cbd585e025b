# marketplace/core/security.py
# Access control gate. Identity issuance lives outside this service; we only
# verify bearer tokens and check resource ownership.

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from loguru import logger

from marketplace.core.config import Settings, get_settings
from marketplace.core.errors import AccessDeniedError, AuthError


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None


bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(identity: Identity, settings: Settings, expires_minutes: int | None = None) -> str:
    minutes = expires_minutes or settings.access_token_expire_minutes
    claims = {
        "sub": identity.user_id,
        "email": identity.email,
        "name": identity.name,
        "image": identity.image,
        "exp": datetime.now(tz=timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_identity(token: str, settings: Settings) -> Optional[Identity]:
    """Return the identity carried by a token, or None when it does not verify."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        logger.debug("Rejected bearer token: {}", exc)
        return None

    user_id = claims.get("sub")
    email = claims.get("email")
    if not user_id or not email:
        return None
    return Identity(user_id=str(user_id), email=email, name=claims.get("name"), image=claims.get("image"))


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> Identity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Not authenticated")
    identity = decode_identity(credentials.credentials, settings)
    if identity is None:
        raise AuthError("Not authenticated")
    return identity


def require_owner(resource_user_id: str, identity: Identity) -> None:
    if resource_user_id != identity.user_id:
        raise AccessDeniedError("Access denied")
