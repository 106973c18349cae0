# vehicle_service/schemas/vehicle.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vehicle_service.models.vehicle import OwnershipType, VehicleModel, VehicleStatus
from vehicle_service.utils.object_id import PyObjectId


class VehicleCreate(VehicleModel):
    """Creation payload. Unknown keys are dropped; ids and timestamps are set by the store."""

    model_config = ConfigDict(extra="ignore")


class VehicleUpdate(BaseModel):
    """Allow-listed patch. Every other key in the body is ignored."""

    license_plate: Optional[str] = None
    registration_state: Optional[str] = None
    current_mileage: Optional[int] = Field(default=None, ge=0)
    estimated_miles_per_year: Optional[int] = Field(default=None, ge=0)
    purchase_date: Optional[datetime] = None
    warranty_expiration: Optional[datetime] = None
    last_service_date: Optional[datetime] = None
    odometer_at_last_service: Optional[int] = Field(default=None, ge=0)
    service_due_mileage: Optional[int] = Field(default=None, ge=0)
    service_alert: Optional[bool] = None
    status: Optional[VehicleStatus] = None
    ownership_type: Optional[OwnershipType] = None
    is_fleet_vehicle: Optional[bool] = None
    fleet_number: Optional[str] = None
    telematics_id: Optional[PyObjectId] = None
    user_id: Optional[PyObjectId] = None
    shop_ware_id: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )


class VehicleOut(VehicleModel):
    pass


class VehicleSummary(BaseModel):
    id: PyObjectId = Field(validation_alias="_id", serialization_alias="id")
    vin: str
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    shop_ware_id: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


class VehicleListOut(BaseModel):
    count: int
    vehicles: List[VehicleOut]


class CustomerVehiclesOut(BaseModel):
    count: int
    vehicles: List[VehicleSummary]
    shopware_sync_enabled: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VehicleCreatedOut(BaseModel):
    message: str = "Vehicle created successfully."
    vehicle_id: str
    shopware_vehicle_id: Optional[str] = None
    shopware_sync_status: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VehicleUpdatedOut(BaseModel):
    message: str = "Vehicle updated successfully"
    vehicle: VehicleOut
    shopware_sync_status: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VehicleStatusOut(BaseModel):
    message: str = "Vehicle status updated successfully"
    vehicle: VehicleOut


class OwnershipTransferOut(BaseModel):
    message: str = "Vehicle ownership transferred successfully"
    new_owner_id: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VehicleDeletedOut(BaseModel):
    message: str = "Vehicle deleted successfully"
    shopware_deleted: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PartnerVehicleOut(BaseModel):
    shop_ware_id: str
    record: Dict[str, Any]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
