import pytest
from bson import ObjectId

from vehicle_service.auth.tenant_scope import TENANT_ADMIN, TenantType, matches, resolve, resolve_scoped
from vehicle_service.errors import Forbidden, ValidationError
from vehicle_service.schemas.identity import IdentityContext

TENANT = str(ObjectId())
OTHER_TENANT = str(ObjectId())

TENANT_TYPES = [t.value for t in TenantType] + ["Unknown", "Dealer", ""]
ROLES = [TENANT_ADMIN, "platformAdmin", "customer", "Unauthenticated"]


@pytest.mark.parametrize("tenant_type", TENANT_TYPES)
@pytest.mark.parametrize("role", ROLES)
def test_resolve_is_total_over_tenant_types_and_roles(tenant_type, role) -> None:
    result = resolve(tenant_type, role, TENANT)

    assert result in (
        {},
        {"parentTenantId": TENANT},
        {"connectedVendorIds": {"$in": [TENANT]}},
        None,
    )


@pytest.mark.parametrize("role", ROLES)
def test_platform_admin_is_unrestricted_for_every_role(role) -> None:
    assert resolve("Platform Admin", role, TENANT) == {}


@pytest.mark.parametrize("tenant_type", ["Agency", "Reseller"])
def test_agency_and_reseller_scope_to_child_tenants(tenant_type) -> None:
    assert resolve(tenant_type, "customer", TENANT) == {"parentTenantId": TENANT}


@pytest.mark.parametrize("tenant_type", ["Vendor", "Partner"])
def test_vendor_and_partner_scope_to_connected_tenants(tenant_type) -> None:
    assert resolve(tenant_type, TENANT_ADMIN, TENANT) == {"connectedVendorIds": {"$in": [TENANT]}}


def test_unknown_tenant_type_has_no_scope() -> None:
    assert resolve("Unknown", TENANT_ADMIN, TENANT) is None


def _identity(tenant_type: str, role: str = "customer") -> IdentityContext:
    return IdentityContext(id="user-1", user_role=role, tenant_id=TENANT, tenant_type=tenant_type)


def test_resolve_scoped_allows_self_access_without_role_rules() -> None:
    assert resolve_scoped(_identity("Unknown"), TENANT) == {"_id": TENANT}


def test_resolve_scoped_merges_role_filter_with_base_filter() -> None:
    scoped = resolve_scoped(_identity("Agency"), OTHER_TENANT, {"status": "active"})

    assert scoped == {"_id": OTHER_TENANT, "parentTenantId": TENANT, "status": "active"}


def test_resolve_scoped_forbidden_carries_audit_context() -> None:
    with pytest.raises(Forbidden) as excinfo:
        resolve_scoped(_identity("Dealer", role="customer"), OTHER_TENANT)

    assert excinfo.value.status_code == 403
    assert excinfo.value.context["tenant_id"] == TENANT
    assert excinfo.value.context["user_role"] == "customer"
    assert excinfo.value.context["requested_by"] == "user-1"


def test_resolve_scoped_rejects_malformed_tenant_id() -> None:
    with pytest.raises(ValidationError):
        resolve_scoped(_identity("Agency"), "not-an-id")


def test_matches_evaluates_equality_and_in_filters() -> None:
    child = {"_id": OTHER_TENANT, "parentTenantId": TENANT, "connectedVendorIds": [TENANT, "x"]}

    assert matches({"_id": OTHER_TENANT, "parentTenantId": TENANT}, child)
    assert matches({"connectedVendorIds": {"$in": [TENANT]}}, child)
    assert matches({}, child)
    assert not matches({"parentTenantId": "someone-else"}, child)
    assert not matches({"connectedVendorIds": {"$in": ["nobody"]}}, child)
