"""Operator account management."""
from typing import Optional

from storefront.api.client import StorefrontApi
from storefront.errors import (
    ERROR_CREDENTIALS_REQUIRED,
    ERROR_PASSWORD_FIELDS_REQUIRED,
    ERROR_PASSWORD_MISMATCH,
    ERROR_PASSWORD_TOO_SHORT,
    InvalidRequestError,
)
from storefront.logging import get_logger
from storefront.models import User

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


def _check_length(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidRequestError(ERROR_PASSWORD_TOO_SHORT)


class UserDesk:
    """List, create and delete operator accounts; reset their passwords."""

    def __init__(self, api: StorefrontApi):
        self.api = api

    async def list(self) -> list[User]:
        return await self.api.get_users()

    async def create(
        self,
        username: str,
        password: str,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> Optional[User]:
        """Validate the form locally, then create the account."""
        username = (username or "").strip()
        if not username or not password:
            raise InvalidRequestError(ERROR_CREDENTIALS_REQUIRED)
        _check_length(password)

        user = await self.api.create_user({
            "username": username,
            "password": password,
            "email": email or "",
            "fullName": full_name or "",
        })
        logger.info(f"User {username} created")
        return user

    async def change_password(self, user_id: str, new_password: str, confirm_password: str) -> None:
        if not new_password or not confirm_password:
            raise InvalidRequestError(ERROR_PASSWORD_FIELDS_REQUIRED)
        _check_length(new_password)
        if new_password != confirm_password:
            raise InvalidRequestError(ERROR_PASSWORD_MISMATCH)

        await self.api.change_password(user_id, new_password)
        logger.info(f"Password changed for user {user_id}")

    async def delete(self, user_id: str) -> None:
        await self.api.delete_user(user_id)
        logger.info(f"User {user_id} deleted")
