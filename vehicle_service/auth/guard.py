# vehicle_service/auth/guard.py
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from fastapi import Depends, Request

from vehicle_service.auth.identity import get_current_identity
from vehicle_service.config import Settings, get_settings
from vehicle_service.dependencies import get_vehicle_store
from vehicle_service.errors import Forbidden, InternalError, NotFound, ServiceError, ValidationError
from vehicle_service.schemas.identity import IdentityContext
from vehicle_service.services.vehicle_store import VehicleStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    error: Optional[ServiceError] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, error: ServiceError) -> "Decision":
        return cls(False, error)


async def authorize(
    identity: IdentityContext,
    resource_id: str,
    allowed_roles: Iterable[str],
    store: VehicleStore,
) -> Decision:
    """Owner-or-elevated-role check ahead of an ownership-sensitive mutation.

    Fails closed: a storage error while reading the owner is a denial.
    """
    if identity.user_role in allowed_roles:
        return Decision.allow()

    try:
        resource = await store.find_by_id(resource_id, projection={"userId": 1})
    except ValidationError as exc:
        return Decision.deny(exc)
    except ServiceError as exc:
        logger.error("Ownership check failed for %s: %s", resource_id, exc.details or exc.message)
        return Decision.deny(InternalError("Ownership check error."))

    if resource is None:
        return Decision.deny(NotFound("Resource not found."))

    if str(resource.get("userId")) == identity.id:
        return Decision.allow()

    return Decision.deny(Forbidden(
        "Forbidden: Not owner or allowed role.",
        context={"resource_id": resource_id, "requested_by": identity.id, "user_role": identity.user_role},
    ))


def authorize_ownership_or_role(allowed_roles: Optional[Sequence[str]] = None, id_param: str = "vehicle_id"):
    async def dependency(
        request: Request,
        identity: IdentityContext = Depends(get_current_identity),
        store: VehicleStore = Depends(get_vehicle_store),
        settings: Settings = Depends(get_settings),
    ) -> IdentityContext:
        roles = settings.ownership_override_roles if allowed_roles is None else allowed_roles
        decision = await authorize(identity, request.path_params[id_param], roles, store)
        if not decision.allowed:
            raise decision.error
        return identity

    return dependency


def require_roles(tenant_types: Sequence[str] = (), user_roles: Sequence[str] = ()):
    """Tenant-type / role gate; an empty list admits everyone."""

    async def dependency(identity: IdentityContext = Depends(get_current_identity)) -> IdentityContext:
        tenant_allowed = not tenant_types or identity.tenant_type in tenant_types
        user_allowed = not user_roles or identity.user_role in user_roles
        if not (tenant_allowed and user_allowed):
            raise Forbidden("Forbidden: Insufficient role permissions")
        return identity

    return dependency
