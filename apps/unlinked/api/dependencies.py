"""Shared API dependencies."""

from typing import Any, Optional

from bson import ObjectId
from fastapi import Depends, Header, Request

from unlinked.core.dependencies import get_user_directory
from unlinked.core.exceptions import AuthenticationError
from unlinked.core.security import token_from_request, user_id_from_token
from unlinked.services.users import UserDirectory


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    users: UserDirectory = Depends(get_user_directory),
) -> dict[str, Any]:
    """Resolve the caller from the `jwt-linkedin` cookie (or a bearer header)."""
    user_id = user_id_from_token(token_from_request(request.cookies, authorization))
    user = users.get(user_id)
    if user is None:
        raise AuthenticationError("User not found", code="user_not_found")
    return user


def get_current_user_id(user: dict[str, Any] = Depends(get_current_user)) -> ObjectId:
    return user["_id"]


__all__ = ["get_current_user", "get_current_user_id"]
