from __future__ import annotations

from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pydantic_core import core_schema

from unlinked.core.exceptions import NotFoundError


class _ObjectIdOrStr(ObjectId):
    """Pydantic-friendly ObjectId type.

    Accept either a `bson.ObjectId` instance or a valid 24-char hex string and normalize to
    `bson.ObjectId`. Serializes to a hex string for JSON output.
    """

    @classmethod
    def _validate(cls, value: Any) -> ObjectId:
        if isinstance(value, ObjectId):
            return value
        if isinstance(value, str) and ObjectId.is_valid(value):
            return ObjectId(value)
        raise TypeError("Not a valid ObjectId or ObjectId hex string")

    @classmethod
    def __get_pydantic_core_schema__(
        cls, _source_type: Any, _handler: Any
    ) -> core_schema.CoreSchema:
        serializer = core_schema.plain_serializer_function_ser_schema(
            lambda value: str(value),
            return_schema=core_schema.str_schema(),
        )
        validated = core_schema.no_info_plain_validator_function(
            cls._validate,
            json_schema_input_schema=core_schema.str_schema(),
            serialization=serializer,
        )
        return core_schema.json_or_python_schema(json_schema=validated, python_schema=validated)


def maybe_object_id(value: Any) -> ObjectId | None:
    """Return `value` as an ObjectId, or None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    if not value:
        return None
    try:
        return ObjectId(str(value)) if ObjectId.is_valid(str(value)) else None
    except (InvalidId, TypeError):
        return None


def require_object_id(value: Any, *, what: str) -> ObjectId:
    """Parse an id coming from a client; malformed ids behave like missing documents."""
    oid = maybe_object_id(value)
    if oid is None:
        raise NotFoundError(f"{what} not found")
    return oid


ObjectIdStr = _ObjectIdOrStr

__all__ = ["ObjectIdStr", "_ObjectIdOrStr", "maybe_object_id", "require_object_id"]
