from bson import ObjectId

from vehicle_service.auth.guard import authorize
from vehicle_service.errors import Forbidden, InternalError, NotFound, ValidationError
from vehicle_service.schemas.identity import IdentityContext
from tests.conftest import OTHER_USER_ID, OWNER_ID, auth_headers, run, seed_vehicle, stored


class BrokenStore:
    async def find_by_id(self, vehicle_id, projection=None):
        raise InternalError("Failed to retrieve vehicle", details="connection reset")


def _identity(user_id: str, role: str = "customer") -> IdentityContext:
    return IdentityContext(id=user_id, user_role=role)


def test_elevated_role_skips_ownership_lookup() -> None:
    decision = run(authorize(_identity(OTHER_USER_ID, "tenantAdmin"), "anything", ["tenantAdmin"], BrokenStore()))

    assert decision.allowed


def test_owner_is_allowed(store) -> None:
    vehicle = seed_vehicle(store)

    decision = run(authorize(_identity(OWNER_ID), str(vehicle["_id"]), ["tenantAdmin"], store))

    assert decision.allowed
    assert decision.error is None


def test_non_owner_is_forbidden(store) -> None:
    vehicle = seed_vehicle(store)

    decision = run(authorize(_identity(OTHER_USER_ID), str(vehicle["_id"]), ["tenantAdmin"], store))

    assert not decision.allowed
    assert isinstance(decision.error, Forbidden)


def test_missing_resource_is_not_found(store) -> None:
    decision = run(authorize(_identity(OWNER_ID), str(ObjectId()), [], store))

    assert isinstance(decision.error, NotFound)


def test_malformed_resource_id_is_a_validation_error(store) -> None:
    decision = run(authorize(_identity(OWNER_ID), "xyz", [], store))

    assert isinstance(decision.error, ValidationError)


def test_storage_failure_fails_closed() -> None:
    decision = run(authorize(_identity(OWNER_ID), str(ObjectId()), [], BrokenStore()))

    assert not decision.allowed
    assert isinstance(decision.error, InternalError)
    assert decision.error.message == "Ownership check error."


def test_owner_can_transfer_ownership(client, store, queue) -> None:
    vehicle = seed_vehicle(store)

    response = client.put(
        f"/api/v2/vehicles/{vehicle['_id']}/owner",
        json={"newOwnerId": OTHER_USER_ID},
        headers=auth_headers(),
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Vehicle ownership transferred successfully", "newOwnerId": OTHER_USER_ID}
    assert stored(store, vehicle["_id"])["userId"] == ObjectId(OTHER_USER_ID)
    assert queue.jobs[-1][1]["action"] == "VEHICLE_OWNERSHIP_TRANSFERRED"


def test_stranger_cannot_transfer_ownership(client, store) -> None:
    vehicle = seed_vehicle(store)

    response = client.put(
        f"/api/v2/vehicles/{vehicle['_id']}/owner",
        json={"newOwnerId": OTHER_USER_ID},
        headers=auth_headers(id=OTHER_USER_ID),
    )

    assert response.status_code == 403
    assert response.json()["message"] == "Forbidden: Not owner or allowed role."
    assert stored(store, vehicle["_id"])["userId"] == ObjectId(OWNER_ID)


def test_tenant_admin_transfer_validates_new_owner(client, store) -> None:
    vehicle = seed_vehicle(store)

    response = client.put(
        f"/api/v2/vehicles/{vehicle['_id']}/owner",
        json={"newOwnerId": "someone"},
        headers=auth_headers(id=OTHER_USER_ID, userRole="tenantAdmin"),
    )

    assert response.status_code == 400


def test_transfer_on_missing_vehicle_is_404(client) -> None:
    response = client.put(
        f"/api/v2/vehicles/{ObjectId()}/owner",
        json={"newOwnerId": OTHER_USER_ID},
        headers=auth_headers(),
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Resource not found."
