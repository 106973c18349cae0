# vehicle_service/services/vehicle_operations.py
"""End-to-end vehicle workflows.

The local store is the system of record. Shop-Ware is written after it,
with a different failure rule per workflow:

* create - partner sync is best effort; the vehicle exists locally whatever
  happens downstream
* update - local write first; a failed partner update fails the request but
  the local change stays (the two systems have drifted)
* delete - partner delete first; if it fails nothing is removed locally
* status and ownership changes never touch Shop-Ware

Usage events are enqueued after every successful mutation and never fail
the request.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from vehicle_service.auth.tenant_scope import matches, resolve, resolve_scoped
from vehicle_service.errors import Forbidden, NotFound, ServiceError, Unauthorized, UpstreamFailure
from vehicle_service.models.vehicle import VehicleModel
from vehicle_service.observability import EventSink
from vehicle_service.schemas.identity import UNKNOWN, IdentityContext
from vehicle_service.services.directory import DirectoryClient
from vehicle_service.services.shopware import ShopwareClient
from vehicle_service.services.usage_events import UsageAction, UsageEventEmitter
from vehicle_service.services.vehicle_store import VehicleStore

UPDATE_SYNC_FAILED = "Vehicle updated in Skynetrix but failed to sync with Shopware."
DELETE_SYNC_FAILED = "Failed to delete vehicle from Shopware. Vehicle was not deleted."
DIRECTORY_FAILED = "Failed to retrieve customer or tenant data."

# Local-only keys left out of the partner payload
PARTNER_EXCLUDED_FIELDS = {"id", "user_id", "shop_ware_id", "telematics_id", "created_at", "updated_at"}
SUMMARY_PROJECTION = {"vin": 1, "make": 1, "model": 1, "year": 1, "shopWareId": 1}


class SyncStatus(str, Enum):
    SUCCESS = "Success"
    FAILED = "Failed"
    NOT_ENABLED = "Not Enabled"
    NOT_SYNCED = "Not Synced"


@dataclass
class CreateResult:
    vehicle: Dict[str, Any]
    shopware_vehicle_id: Optional[str]
    sync_status: SyncStatus


@dataclass
class UpdateResult:
    vehicle: Dict[str, Any]
    sync_status: SyncStatus


@dataclass
class DeleteResult:
    vehicle_id: str
    shopware_deleted: bool


@dataclass
class CustomerVehicles:
    vehicles: List[Dict[str, Any]]
    shopware_sync_enabled: bool


def partner_fields(vehicle: Mapping[str, Any]) -> Dict[str, Any]:
    """Full current field set in the partner's snake_case shape."""
    return VehicleModel.model_validate(vehicle).model_dump(
        mode="json", exclude=PARTNER_EXCLUDED_FIELDS, exclude_none=True
    )


def _sync_enabled(tenant: Optional[Mapping[str, Any]]) -> bool:
    return bool(((tenant or {}).get("shopware") or {}).get("enabled", False))


class VehicleOperations:
    def __init__(
        self,
        store: VehicleStore,
        shopware: ShopwareClient,
        directory: DirectoryClient,
        usage: UsageEventEmitter,
        sink: EventSink,
    ):
        self.store = store
        self.shopware = shopware
        self.directory = directory
        self.usage = usage
        self.sink = sink

    # Reads

    async def list_vehicles(self, params: Mapping[str, str]) -> List[Dict[str, Any]]:
        return await self.store.find_many(params)

    async def get_vehicle(self, vehicle_id: str) -> Dict[str, Any]:
        vehicle = await self.store.find_by_id(vehicle_id)
        if vehicle is None:
            raise NotFound("Vehicle not found", details=f"No vehicle found with ID: {vehicle_id}")
        return vehicle

    async def vehicles_for_user(self, identity: IdentityContext) -> List[Dict[str, Any]]:
        if identity.id == UNKNOWN:
            raise Unauthorized("Unauthorized. No user ID found.")
        vehicles = await self.store.find_by_owner(identity.id)
        if not vehicles:
            raise NotFound("No vehicles found for this user.")
        return vehicles

    async def vehicles_for_customer(self, identity: IdentityContext, customer_id: str) -> CustomerVehicles:
        # the customer's tenant decides both visibility and the sync flag, so lookups here are fatal
        try:
            user = await self.directory.get_user(customer_id)
            if user is None:
                raise NotFound("Customer not found.")
            tenant_id = user.get("tenantId")
            tenant = await self.directory.get_tenant(tenant_id) if tenant_id else None
        except UpstreamFailure as exc:
            self.sink.error("customer_lookup.failed", customer_id=customer_id, error=exc.message)
            raise UpstreamFailure(DIRECTORY_FAILED, details=exc.details, upstream_status=exc.upstream_status) from exc

        if tenant is not None:
            scope = resolve_scoped(identity, str(tenant_id), sink=self.sink)
            if not matches(scope, {**tenant, "_id": str(tenant.get("_id", tenant_id))}):
                raise Forbidden("You do not have permission to access this tenant.")
        elif resolve(identity.tenant_type, identity.user_role, identity.tenant_id) is None:
            # no tenant record to match against, so only callers with some scope get through
            self.sink.warn("tenant_scope.denied", requested_by=identity.id, customer_id=customer_id)
            raise Forbidden("You do not have permission to access this tenant.")

        owner_id = user.get("userId") or customer_id
        vehicles = await self.store.find_by_owner(owner_id, SUMMARY_PROJECTION)
        if not vehicles:
            raise NotFound("No vehicles found for this customer.")
        return CustomerVehicles(vehicles=vehicles, shopware_sync_enabled=_sync_enabled(tenant))

    async def get_partner_vehicle(self, vehicle_id: str) -> Dict[str, Any]:
        vehicle = await self.get_vehicle(vehicle_id)
        partner_id = vehicle.get("shopWareId")
        if not partner_id:
            raise NotFound("Vehicle is not linked to Shopware")
        return {"shopWareId": partner_id, "record": await self.shopware.get_vehicle(partner_id)}

    async def list_partner_vehicles(self) -> Dict[str, Any]:
        return await self.shopware.list_vehicles()

    # Mutations

    async def create_vehicle(self, identity: IdentityContext, payload: Mapping[str, Any]) -> CreateResult:
        vehicle = await self.store.create(payload)
        self.sink.emit("vehicle.created", vehicle_id=vehicle["_id"], vin=vehicle["vin"], requested_by=identity.id)

        partner_id, status = await self._sync_new_vehicle(vehicle)
        if partner_id:
            try:
                vehicle = await self.store.set_partner_id(vehicle["_id"], partner_id)
            except ServiceError as exc:
                self.sink.error("vehicle.partner_link_failed", vehicle_id=vehicle["_id"], shopware_id=partner_id, error=exc.message)
                partner_id, status = None, SyncStatus.FAILED

        await self.usage.emit(identity, UsageAction.VEHICLE_CREATED)
        return CreateResult(vehicle=vehicle, shopware_vehicle_id=partner_id, sync_status=status)

    async def _sync_new_vehicle(self, vehicle: Mapping[str, Any]):
        if not (self.shopware.enabled and self.directory.enabled):
            return None, SyncStatus.NOT_ENABLED

        owner_id = str(vehicle["userId"])
        try:
            user = await self.directory.get_user(owner_id)
            tenant_id = (user or {}).get("tenantId")
            if not tenant_id:
                self.sink.warn("vehicle.sync_skipped", vehicle_id=vehicle["_id"], reason="owner has no tenant")
                return None, SyncStatus.NOT_ENABLED
            if not _sync_enabled(await self.directory.get_tenant(tenant_id)):
                return None, SyncStatus.NOT_ENABLED
        except UpstreamFailure as exc:
            self.sink.warn("vehicle.sync_skipped", vehicle_id=vehicle["_id"], reason=exc.message)
            return None, SyncStatus.FAILED

        try:
            partner_user_id = await self.shopware.resolve_partner_user_id(owner_id)
            if not partner_user_id:
                self.sink.warn("vehicle.sync_skipped", vehicle_id=vehicle["_id"], reason="no Shop-Ware user id")
                return None, SyncStatus.FAILED
            partner_id = await self.shopware.create_vehicle(
                vin=vehicle["vin"],
                make=vehicle["make"],
                model=vehicle["model"],
                year=vehicle["year"],
                license_plate=vehicle.get("licensePlate"),
                customer_ids=[partner_user_id],
            )
        except UpstreamFailure as exc:
            self.sink.warn("vehicle.sync_failed", vehicle_id=vehicle["_id"], reason=exc.message)
            return None, SyncStatus.FAILED
        return partner_id, SyncStatus.SUCCESS

    async def update_vehicle(self, identity: IdentityContext, vehicle_id: str, patch: Mapping[str, Any]) -> UpdateResult:
        vehicle = await self.store.update_allowed_fields(vehicle_id, patch)
        await self.usage.emit(identity, UsageAction.VEHICLE_UPDATED)

        partner_id = vehicle.get("shopWareId")
        if not partner_id:
            return UpdateResult(vehicle=vehicle, sync_status=SyncStatus.NOT_SYNCED)

        try:
            await self.shopware.update_vehicle(partner_id, partner_fields(vehicle))
        except UpstreamFailure as exc:
            # local change is kept; the next successful update re-sends the full field set
            self.sink.error("vehicle.sync_drift", vehicle_id=vehicle["_id"], shopware_id=partner_id, error=exc.message)
            raise UpstreamFailure(UPDATE_SYNC_FAILED, details=exc.details, upstream_status=exc.upstream_status) from exc
        return UpdateResult(vehicle=vehicle, sync_status=SyncStatus.SUCCESS)

    async def update_status(self, identity: IdentityContext, vehicle_id: str, status: Any) -> Dict[str, Any]:
        vehicle = await self.store.set_status(vehicle_id, status)
        self.sink.emit("vehicle.status_changed", vehicle_id=vehicle["_id"], status=status)
        await self.usage.emit(identity, UsageAction.VEHICLE_STATUS_UPDATED)
        return vehicle

    async def delete_vehicle(self, identity: IdentityContext, vehicle_id: str) -> DeleteResult:
        vehicle = await self.get_vehicle(vehicle_id)

        partner_id = vehicle.get("shopWareId")
        if partner_id:
            try:
                await self.shopware.delete_vehicle(partner_id)
            except UpstreamFailure as exc:
                self.sink.error("vehicle.delete_aborted", vehicle_id=vehicle["_id"], shopware_id=partner_id, error=exc.message)
                raise UpstreamFailure(DELETE_SYNC_FAILED, details=exc.details, upstream_status=exc.upstream_status) from exc

        await self.store.delete(vehicle["_id"])
        self.sink.emit("vehicle.deleted", vehicle_id=vehicle["_id"], shopware_deleted=bool(partner_id))
        await self.usage.emit(identity, UsageAction.VEHICLE_DELETED)
        return DeleteResult(vehicle_id=str(vehicle["_id"]), shopware_deleted=bool(partner_id))

    async def transfer_ownership(self, identity: IdentityContext, vehicle_id: str, new_owner_id: Any) -> str:
        vehicle = await self.store.reassign_owner(vehicle_id, new_owner_id)
        self.sink.emit("vehicle.owner_changed", vehicle_id=vehicle["_id"], new_owner=vehicle["userId"], requested_by=identity.id)
        await self.usage.emit(identity, UsageAction.VEHICLE_OWNERSHIP_TRANSFERRED)
        return str(vehicle["userId"])
