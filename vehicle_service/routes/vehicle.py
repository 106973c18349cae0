# vehicle_service/routes/vehicle.py
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request, status

from vehicle_service.auth.guard import authorize, authorize_ownership_or_role, require_roles
from vehicle_service.auth.identity import get_current_identity
from vehicle_service.auth.tenant_scope import require_scoped_tenant_access
from vehicle_service.config import Settings, get_settings
from vehicle_service.dependencies import get_vehicle_operations, get_vehicle_store
from vehicle_service.schemas.identity import IdentityContext
from vehicle_service.schemas.vehicle import (
    CustomerVehiclesOut, OwnershipTransferOut, PartnerVehicleOut, VehicleCreatedOut, VehicleDeletedOut,
    VehicleListOut, VehicleOut, VehicleStatusOut, VehicleUpdatedOut,
)
from vehicle_service.services.vehicle_operations import VehicleOperations
from vehicle_service.services.vehicle_store import VehicleStore

router = APIRouter(dependencies=[Depends(get_current_identity)])

PARTNER_ADMIN_ROLES = ("platformAdmin", "tenantAdmin")

# Body keys that move the vehicle to another owner
OWNER_KEYS = {"userId", "user_id"}


@router.post("/vehicles", response_model=VehicleCreatedOut, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    payload: Dict[str, Any] = Body(...),
    identity: IdentityContext = Depends(get_current_identity),
    operations: VehicleOperations = Depends(get_vehicle_operations),
):
    result = await operations.create_vehicle(identity, payload)
    return VehicleCreatedOut(
        vehicle_id=str(result.vehicle["_id"]),
        shopware_vehicle_id=result.shopware_vehicle_id,
        shopware_sync_status=result.sync_status.value,
    )


@router.get(
    "/vehicles",
    response_model=VehicleListOut,
    dependencies=[Depends(require_scoped_tenant_access())],
)
async def get_vehicles(request: Request, operations: VehicleOperations = Depends(get_vehicle_operations)):
    """List vehicles; every query parameter is an equality filter on the stored field of the same name."""
    vehicles = await operations.list_vehicles(dict(request.query_params))
    return {"count": len(vehicles), "vehicles": vehicles}


@router.get("/vehicles/me", response_model=VehicleListOut)
async def get_my_vehicles(
    identity: IdentityContext = Depends(get_current_identity),
    operations: VehicleOperations = Depends(get_vehicle_operations),
):
    vehicles = await operations.vehicles_for_user(identity)
    return {"count": len(vehicles), "vehicles": vehicles}


@router.get("/vehicles/by-customer/{customer_id}", response_model=CustomerVehiclesOut)
async def get_vehicles_by_customer(
    customer_id: str,
    identity: IdentityContext = Depends(get_current_identity),
    operations: VehicleOperations = Depends(get_vehicle_operations),
):
    result = await operations.vehicles_for_customer(identity, customer_id)
    return CustomerVehiclesOut(
        count=len(result.vehicles),
        vehicles=result.vehicles,
        shopware_sync_enabled=result.shopware_sync_enabled,
    )


@router.get(
    "/vehicles/shopware",
    dependencies=[Depends(require_roles(user_roles=PARTNER_ADMIN_ROLES))],
)
async def get_partner_vehicles(operations: VehicleOperations = Depends(get_vehicle_operations)) -> Dict[str, Any]:
    """Every vehicle Shop-Ware holds for the configured partner tenant."""
    return await operations.list_partner_vehicles()


@router.get("/vehicles/{vehicle_id}", response_model=VehicleOut)
async def get_vehicle(vehicle_id: str, operations: VehicleOperations = Depends(get_vehicle_operations)):
    return await operations.get_vehicle(vehicle_id)


@router.get(
    "/vehicles/{vehicle_id}/shopware",
    response_model=PartnerVehicleOut,
    dependencies=[Depends(require_roles(user_roles=PARTNER_ADMIN_ROLES))],
)
async def get_partner_vehicle(vehicle_id: str, operations: VehicleOperations = Depends(get_vehicle_operations)):
    return await operations.get_partner_vehicle(vehicle_id)


@router.put("/vehicles/{vehicle_id}", response_model=VehicleUpdatedOut)
@router.patch("/vehicles/{vehicle_id}", response_model=VehicleUpdatedOut)
async def update_vehicle(
    vehicle_id: str,
    payload: Dict[str, Any] = Body(...),
    identity: IdentityContext = Depends(get_current_identity),
    operations: VehicleOperations = Depends(get_vehicle_operations),
    store: VehicleStore = Depends(get_vehicle_store),
    settings: Settings = Depends(get_settings),
):
    # an owner change needs the same check as the transfer route
    if OWNER_KEYS & payload.keys():
        decision = await authorize(identity, vehicle_id, settings.ownership_override_roles, store)
        if not decision.allowed:
            raise decision.error
    result = await operations.update_vehicle(identity, vehicle_id, payload)
    return VehicleUpdatedOut(vehicle=result.vehicle, shopware_sync_status=result.sync_status.value)


@router.put("/vehicles/{vehicle_id}/status", response_model=VehicleStatusOut)
async def update_vehicle_status(
    vehicle_id: str,
    payload: Dict[str, Any] = Body(...),
    identity: IdentityContext = Depends(get_current_identity),
    operations: VehicleOperations = Depends(get_vehicle_operations),
):
    vehicle = await operations.update_status(identity, vehicle_id, payload.get("status"))
    return VehicleStatusOut(vehicle=vehicle)


@router.put("/vehicles/{vehicle_id}/owner", response_model=OwnershipTransferOut)
async def transfer_vehicle_ownership(
    vehicle_id: str,
    payload: Dict[str, Any] = Body(...),
    identity: IdentityContext = Depends(authorize_ownership_or_role()),
    operations: VehicleOperations = Depends(get_vehicle_operations),
):
    new_owner_id = await operations.transfer_ownership(identity, vehicle_id, payload.get("newOwnerId"))
    return OwnershipTransferOut(new_owner_id=new_owner_id)


@router.delete("/vehicles/{vehicle_id}", response_model=VehicleDeletedOut)
async def delete_vehicle(
    vehicle_id: str,
    identity: IdentityContext = Depends(get_current_identity),
    operations: VehicleOperations = Depends(get_vehicle_operations),
):
    result = await operations.delete_vehicle(identity, vehicle_id)
    return VehicleDeletedOut(shopware_deleted=result.shopware_deleted)
