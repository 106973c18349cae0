# vehicle_service/auth/identity.py
from typing import Any, Dict, Mapping, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt
from jose.exceptions import JWTError

from vehicle_service.config import Settings, get_settings
from vehicle_service.errors import Unauthorized
from vehicle_service.schemas.identity import DEFAULT_TIER, UNAUTHENTICATED, UNKNOWN, IdentityContext

# auto_error is off so a missing header reaches our own 401 message
security = HTTPBearer(auto_error=False)


def identity_from_claims(claims: Mapping[str, Any]) -> IdentityContext:
    """Normalize a verified token payload; absent claims never raise."""
    return IdentityContext(
        id=str(claims.get("id") or UNKNOWN),
        email=str(claims.get("email") or UNKNOWN),
        user_role=str(claims.get("userRole") or claims.get("role") or UNAUTHENTICATED),
        tenant_id=str(claims.get("tenantId") or UNKNOWN),
        tenant_type=str(claims.get("tenantType") or UNKNOWN),
        tier=str(claims.get("tier") or DEFAULT_TIER),
    )


def verify_token(token: str, settings: Settings) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise Unauthorized("Invalid or expired token.")


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> IdentityContext:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("No token provided, authorization denied.")
    return identity_from_claims(verify_token(credentials.credentials, settings))
