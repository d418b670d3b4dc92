from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from unlinked.schemas.object_id import ObjectIdStr


class WireModel(BaseModel):
    """Base for payloads leaving the service (camelCase keys, `_id` ids).

    Mongo documents are stored snake_case; validating from a raw document works
    by field name, dumping (`by_alias=True`) yields the client contract.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class UserRole(str, Enum):
    student = "student"
    professor = "professor"
    employee = "employee"
    employer = "employer"
    company = "company"
    university = "university"
    freelancer = "freelancer"


class UserPublic(WireModel):
    """Display fields embedded wherever a user is referenced."""

    id: ObjectIdStr = Field(alias="_id")
    name: str = ""
    username: str = ""
    profile_picture: str = ""


class PrivacySettings(WireModel):
    is_profile_private: bool = False


class PublicProfile(WireModel):
    id: ObjectIdStr = Field(alias="_id")
    name: str = ""
    username: str = ""
    profile_picture: str = ""
    location: str = ""
    role: Optional[UserRole] = None
    headline: str = ""
    about: str = ""
    banner_img: str = ""
    skills: List[str] = Field(default_factory=list)
    experience: List[Dict[str, Any]] = Field(default_factory=list)
    education: List[Dict[str, Any]] = Field(default_factory=list)
    connections: List[ObjectIdStr] = Field(default_factory=list)
    privacy_settings: PrivacySettings = Field(default_factory=PrivacySettings)


class LimitedProfile(WireModel):
    """What non-owners see of a private profile."""

    id: ObjectIdStr = Field(alias="_id")
    name: str = ""
    username: str = ""
    profile_picture: str = ""
    location: str = ""
    privacy_settings: PrivacySettings = Field(
        default_factory=lambda: PrivacySettings(is_profile_private=True)
    )


__all__ = [
    "LimitedProfile",
    "PrivacySettings",
    "PublicProfile",
    "UserPublic",
    "UserRole",
    "WireModel",
]
