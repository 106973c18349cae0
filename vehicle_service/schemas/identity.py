# vehicle_service/schemas/identity.py
from pydantic import BaseModel

UNKNOWN = "Unknown"
UNAUTHENTICATED = "Unauthenticated"
DEFAULT_TIER = "Basic"


class IdentityContext(BaseModel):
    id: str = UNKNOWN
    email: str = UNKNOWN
    user_role: str = UNAUTHENTICATED
    tenant_id: str = UNKNOWN
    tenant_type: str = UNKNOWN
    tier: str = DEFAULT_TIER
