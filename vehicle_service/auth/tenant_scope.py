# vehicle_service/auth/tenant_scope.py
"""Tenant scope derivation.

``resolve`` maps a caller's tenant type and role to the MongoDB filter that
limits which tenant records they may see:

* ``{}`` - unrestricted (Platform Admin)
* ``{"parentTenantId": <tenant>}`` - Agency and Reseller see their children
* ``{"connectedVendorIds": {"$in": [<tenant>]}}`` - Vendor and Partner
* ``None`` - no lawful scope, the caller is denied
"""
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from fastapi import Depends, Request

from vehicle_service.auth.identity import get_current_identity
from vehicle_service.errors import Forbidden
from vehicle_service.observability import EventSink
from vehicle_service.schemas.identity import IdentityContext
from vehicle_service.utils.object_id import parse_object_id

logger = logging.getLogger(__name__)

TENANT_ADMIN = "tenantAdmin"


class TenantType(str, Enum):
    PLATFORM_ADMIN = "Platform Admin"
    AGENCY = "Agency"
    RESELLER = "Reseller"
    VENDOR = "Vendor"
    PARTNER = "Partner"


def resolve(tenant_type: str, user_role: str, tenant_id: str) -> Optional[Dict[str, Any]]:
    # role does not widen or narrow the scope; tenantAdmin of a Vendor is still vendor-scoped
    if tenant_type == TenantType.PLATFORM_ADMIN:
        return {}
    if tenant_type in (TenantType.AGENCY, TenantType.RESELLER):
        return {"parentTenantId": tenant_id}
    if tenant_type in (TenantType.VENDOR, TenantType.PARTNER):
        return {"connectedVendorIds": {"$in": [tenant_id]}}
    return None


def resolve_scoped(
    identity: IdentityContext,
    requested_tenant_id: str,
    base_filter: Optional[Mapping[str, Any]] = None,
    sink: Optional[EventSink] = None,
) -> Dict[str, Any]:
    """Filter for reading one requested tenant, or Forbidden.

    A caller always reaches their own tenant. Otherwise the role-derived
    filter is merged with ``base_filter``.
    """
    sink = sink or EventSink(logger)
    parse_object_id(requested_tenant_id, "tenant ID")

    if requested_tenant_id == identity.tenant_id:
        return {"_id": requested_tenant_id}

    role_filter = resolve(identity.tenant_type, identity.user_role, identity.tenant_id)
    if role_filter is None:
        context = {
            "tenant_id": identity.tenant_id,
            "tenant_type": identity.tenant_type,
            "user_role": identity.user_role,
            "requested_by": identity.id,
            "requested_tenant_id": requested_tenant_id,
        }
        sink.warn("tenant_scope.denied", **context)
        raise Forbidden("You do not have permission to access this tenant.", context=context)

    scoped = {"_id": requested_tenant_id, **role_filter, **(base_filter or {})}
    sink.emit("tenant_scope.resolved", user_id=identity.id, applied_filter=scoped)
    return scoped


def matches(scope_filter: Mapping[str, Any], document: Mapping[str, Any]) -> bool:
    """Evaluate a derived scope filter against a tenant record held in memory."""
    for key, condition in scope_filter.items():
        value = document.get(key)
        if isinstance(condition, Mapping) and "$in" in condition:
            wanted = {str(item) for item in condition["$in"]}
            values = value if isinstance(value, list) else [value]
            if not wanted.intersection(str(item) for item in values if item is not None):
                return False
        elif isinstance(value, list):
            if str(condition) not in {str(item) for item in value}:
                return False
        elif value is None or str(value) != str(condition):
            return False
    return True


def require_scoped_tenant_access(base_filter: Optional[Mapping[str, Any]] = None):
    """Dependency attaching the caller's scope filter to ``request.state``."""

    async def dependency(request: Request, identity: IdentityContext = Depends(get_current_identity)):
        scoped = resolve(identity.tenant_type, identity.user_role, identity.tenant_id)
        if scoped is None:
            logger.warning(
                "Access denied, no tenant scope for role %s (%s) from %s",
                identity.user_role, identity.tenant_type, request.client.host if request.client else "unknown",
            )
            raise Forbidden("Forbidden: You do not have access to these tenants.")
        request.state.scoped_tenant_filter = {**scoped, **(base_filter or {})}
        return request.state.scoped_tenant_filter

    return dependency
