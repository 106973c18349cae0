# vehicle_service/utils/object_id.py
from typing import Any

from bson import ObjectId
from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic_core import core_schema

from vehicle_service.errors import ValidationError


class PyObjectId(ObjectId):
    """ObjectId accepted from, and rendered as, its 24-character hex string."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.validate,
            serialization=core_schema.plain_serializer_function_ser_schema(str, when_used="json"),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, schema: Any, handler: GetJsonSchemaHandler) -> dict:
        return {
            "type": "string",
            "description": "ObjectId string representation",
            "examples": ["507f1f77bcf86cd799439011"]
        }

    @classmethod
    def validate(cls, value: Any) -> ObjectId:
        if isinstance(value, ObjectId):
            return value
        if isinstance(value, str) and ObjectId.is_valid(value):
            return ObjectId(value)
        raise ValueError(f"'{value}' is not a valid ObjectId")


def is_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or (isinstance(value, str) and ObjectId.is_valid(value))


def parse_object_id(value: Any, label: str = "ID") -> ObjectId:
    """Parse an identifier or raise a 400 naming the offending field."""
    if isinstance(value, ObjectId):
        return value
    if not is_object_id(value):
        raise ValidationError(
            f"Invalid {label} format",
            details=f"The provided {label} '{value}' is not valid. Expected 24 hexadecimal characters",
        )
    return ObjectId(value)
