# vehicle_service/schemas/__init__.py
from .identity import IdentityContext
from .vehicle import (
    VehicleCreate, VehicleUpdate, VehicleOut, VehicleSummary, VehicleListOut, CustomerVehiclesOut,
    VehicleCreatedOut, VehicleUpdatedOut, VehicleStatusOut, OwnershipTransferOut, VehicleDeletedOut,
    PartnerVehicleOut,
)
