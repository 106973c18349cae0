# vehicle_service/services/vehicle_store.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import pydantic
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from vehicle_service.database import VEHICLES
from vehicle_service.errors import DuplicateVehicleError, InternalError, NotFound, ValidationError
from vehicle_service.models.vehicle import NON_NULLABLE_FIELDS, REQUIRED_FIELDS, SETTABLE_STATUSES, normalize_vin
from vehicle_service.schemas.vehicle import VehicleCreate, VehicleUpdate
from vehicle_service.utils.object_id import is_object_id, parse_object_id

logger = logging.getLogger(__name__)

# Query-string values for these keys are converted before matching
INT_FILTER_FIELDS = {
    "year", "cylinders", "currentMileage", "estimatedMilesPerYear",
    "odometerAtLastService", "serviceDueMileage",
}
BOOL_FILTER_FIELDS = {"serviceAlert", "isFleetVehicle"}
ID_FILTER_FIELDS = {"_id", "userId", "telematicsId"}


def _now():
    return datetime.now(timezone.utc)


def _coerce_filter_value(key: str, value: str) -> Any:
    if key in INT_FILTER_FIELDS:
        try:
            return int(value)
        except ValueError:
            return value
    if key in BOOL_FILTER_FIELDS and value.lower() in ("true", "false"):
        return value.lower() == "true"
    if key in ID_FILTER_FIELDS and is_object_id(value):
        return ObjectId(value)
    if key == "vin":
        return normalize_vin(value)
    return value


def build_filter(params: Mapping[str, str]) -> Dict[str, Any]:
    """Equality filter from raw query parameters.

    Every field key is accepted as-is, so a key naming no stored field simply
    matches nothing. Empty values are skipped. Operator keys are refused.
    """
    operators = sorted(key for key in params if key.startswith("$"))
    if operators:
        raise ValidationError("Invalid filter parameter", details=f"Query operators are not allowed: {', '.join(operators)}")
    return {key: _coerce_filter_value(key, value) for key, value in params.items() if value}


def _validation_details(exc: pydantic.ValidationError):
    return [
        {"field": ".".join(str(part) for part in err["loc"]), "error": err["msg"]}
        for err in exc.errors()
    ]


class VehicleStore:
    """System-of-record CRUD over the ``vehicles`` collection."""

    def __init__(self, database):
        self.collection = database[VEHICLES]

    async def create(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        if not all(payload.get(field) for field in REQUIRED_FIELDS):
            raise ValidationError("User ID, VIN, Make, Model, and Year are required.")

        try:
            vehicle = VehicleCreate.model_validate(payload)
        except pydantic.ValidationError as exc:
            raise ValidationError("Invalid vehicle data", details=_validation_details(exc))

        document = vehicle.model_dump(by_alias=True, exclude_none=True, exclude={"id", "created_at", "updated_at"})
        document["createdAt"] = document["updatedAt"] = _now()

        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError as exc:
            raise DuplicateVehicleError(
                "Vehicle already exists",
                details=f"A vehicle with VIN '{document['vin']}' or the same Shop-Ware ID is already registered",
            ) from exc
        except PyMongoError as exc:
            raise InternalError("Failed to create vehicle", details=str(exc)) from exc

        document["_id"] = result.inserted_id
        return document

    async def find_by_id(self, vehicle_id, projection: Optional[Dict[str, int]] = None) -> Optional[Dict[str, Any]]:
        vehicle_oid = parse_object_id(vehicle_id, "vehicle ID")
        try:
            return await self.collection.find_one({"_id": vehicle_oid}, projection)
        except PyMongoError as exc:
            raise InternalError("Failed to retrieve vehicle", details=str(exc)) from exc

    async def find_many(self, params: Mapping[str, str]) -> List[Dict[str, Any]]:
        query = build_filter(params)
        try:
            return await self.collection.find(query).to_list(length=None)
        except PyMongoError as exc:
            raise InternalError("Failed to retrieve vehicles", details=str(exc)) from exc

    async def find_by_owner(self, user_id, projection: Optional[Dict[str, int]] = None) -> List[Dict[str, Any]]:
        owner = ObjectId(user_id) if is_object_id(user_id) else user_id
        try:
            return await self.collection.find({"userId": owner}, projection).to_list(length=None)
        except PyMongoError as exc:
            raise InternalError("Failed to retrieve vehicles", details=str(exc)) from exc

    async def update_allowed_fields(self, vehicle_id, patch: Mapping[str, Any]) -> Dict[str, Any]:
        vehicle_oid = parse_object_id(vehicle_id, "vehicle ID")

        try:
            update = VehicleUpdate.model_validate(patch)
        except pydantic.ValidationError as exc:
            raise ValidationError("Invalid vehicle update", details=_validation_details(exc))

        changes = update.model_dump(by_alias=True, exclude_unset=True)
        if not changes:
            raise ValidationError("No valid fields provided for update.")

        cleared = sorted(key for key, value in changes.items() if value is None and key in NON_NULLABLE_FIELDS)
        if cleared:
            raise ValidationError("Required fields cannot be cleared.", details=f"Null is not allowed for: {', '.join(cleared)}")

        # explicit nulls remove the key so the sparse shopWareId index keeps ignoring it
        to_set = {key: value for key, value in changes.items() if value is not None}
        to_unset = {key: "" for key, value in changes.items() if value is None}
        return await self._apply(vehicle_oid, to_set, to_unset)

    async def set_status(self, vehicle_id, status: str) -> Dict[str, Any]:
        vehicle_oid = parse_object_id(vehicle_id, "vehicle ID")
        allowed = [s.value for s in SETTABLE_STATUSES]
        if status not in allowed:
            raise ValidationError(f"Invalid status. Allowed values: {', '.join(allowed)}.")
        return await self._apply(vehicle_oid, {"status": status})

    async def reassign_owner(self, vehicle_id, new_user_id) -> Dict[str, Any]:
        vehicle_oid = parse_object_id(vehicle_id, "vehicle ID")
        owner_oid = parse_object_id(new_user_id, "new owner ID")
        return await self._apply(vehicle_oid, {"userId": owner_oid})

    async def set_partner_id(self, vehicle_id, partner_id: str) -> Dict[str, Any]:
        vehicle_oid = parse_object_id(vehicle_id, "vehicle ID")
        return await self._apply(vehicle_oid, {"shopWareId": partner_id})

    async def delete(self, vehicle_id) -> None:
        vehicle_oid = parse_object_id(vehicle_id, "vehicle ID")
        try:
            result = await self.collection.delete_one({"_id": vehicle_oid})
        except PyMongoError as exc:
            raise InternalError("Failed to delete vehicle", details=str(exc)) from exc
        if result.deleted_count == 0:
            raise NotFound("Vehicle not found", details=f"No vehicle found with ID: {vehicle_id}")

    async def _apply(self, vehicle_oid: ObjectId, to_set: Dict[str, Any], to_unset: Optional[Dict[str, str]] = None):
        update = {"$set": {**to_set, "updatedAt": _now()}}
        if to_unset:
            update["$unset"] = to_unset
        try:
            vehicle = await self.collection.find_one_and_update(
                {"_id": vehicle_oid},
                update,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise DuplicateVehicleError(
                "Shop-Ware ID already linked",
                details="Another vehicle is already linked to this Shop-Ware ID",
            ) from exc
        except PyMongoError as exc:
            raise InternalError("Failed to update vehicle", details=str(exc)) from exc

        if vehicle is None:
            raise NotFound("Vehicle not found", details=f"No vehicle found with ID: {vehicle_oid}")
        logger.debug("Updated vehicle %s: %s", vehicle_oid, sorted(to_set))
        return vehicle
