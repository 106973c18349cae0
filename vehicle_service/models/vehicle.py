# vehicle_service/models/vehicle.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from vehicle_service.utils.object_id import PyObjectId


class VehicleStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"
    SOLD = "sold"


class OwnershipType(str, Enum):
    OWNED = "owned"
    LEASED = "leased"
    RENTED = "rented"


# "active" is only ever a creation default
SETTABLE_STATUSES = (VehicleStatus.INACTIVE, VehicleStatus.ARCHIVED, VehicleStatus.SOLD)

REQUIRED_FIELDS = ("userId", "vin", "make", "model", "year")

# Stored keys that may change through the general update path
UPDATABLE_FIELDS = (
    "licensePlate",
    "registrationState",
    "currentMileage",
    "estimatedMilesPerYear",
    "purchaseDate",
    "warrantyExpiration",
    "lastServiceDate",
    "odometerAtLastService",
    "serviceDueMileage",
    "serviceAlert",
    "status",
    "ownershipType",
    "isFleetVehicle",
    "fleetNumber",
    "telematicsId",
    "userId",
    "shopWareId",
)

# Stored keys that always hold a value; an update may change them but never clear them
NON_NULLABLE_FIELDS = (
    "userId",
    "status",
    "ownershipType",
    "serviceAlert",
    "isFleetVehicle",
    "currentMileage",
    "estimatedMilesPerYear",
)


def normalize_vin(vin: str) -> str:
    return vin.strip().upper()


class VehicleModel(BaseModel):
    """A vehicle document as stored in the ``vehicles`` collection."""

    id: Optional[PyObjectId] = Field(default=None, validation_alias="_id", serialization_alias="id")

    # Ownership and partner link
    user_id: PyObjectId
    shop_ware_id: Optional[str] = None

    # Core vehicle info
    vin: str
    make: str
    model: str
    trim: Optional[str] = None
    year: int
    body_style: Optional[str] = None
    color: Optional[str] = None
    license_plate: Optional[str] = None
    registration_state: Optional[str] = None
    engine_type: Optional[str] = None
    transmission: Optional[str] = None
    drivetrain: Optional[str] = None
    fuel_type: Optional[str] = None
    cylinders: Optional[int] = None

    # Mileage and usage
    current_mileage: int = 0
    estimated_miles_per_year: int = 12000

    # Maintenance
    purchase_date: Optional[datetime] = None
    warranty_expiration: Optional[datetime] = None
    last_service_date: Optional[datetime] = None
    odometer_at_last_service: Optional[int] = None
    service_due_mileage: Optional[int] = None
    service_alert: bool = False

    # Status and ownership
    status: VehicleStatus = VehicleStatus.ACTIVE
    ownership_type: OwnershipType = OwnershipType.OWNED
    is_fleet_vehicle: bool = False
    fleet_number: Optional[str] = None
    telematics_id: Optional[PyObjectId] = None

    # Notes and metadata
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        arbitrary_types_allowed=True,
        protected_namespaces=(),
    )

    @field_validator("vin")
    @classmethod
    def uppercase_vin(cls, v: str) -> str:
        return normalize_vin(v)

    @field_validator("tags")
    @classmethod
    def unique_tags(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))
