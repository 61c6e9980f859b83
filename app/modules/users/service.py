import logging
from typing import Optional

import bcrypt
from postgrest.exceptions import APIError
from supabase import Client

from app.core.errors import (
    IdentityNotFound, InvalidCredentials, StorageFailure, UserAlreadyExists, ValidationError,
)
from app.modules.users.schemas import UserInDB, UserResponse

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserService:
    """Identity store backed by the users table."""

    def __init__(self, supabase: Client, bcrypt_rounds: int = 12):
        self.supabase = supabase
        self.bcrypt_rounds = bcrypt_rounds

    def _fetch_one(self, column: str, value) -> Optional[UserInDB]:
        try:
            result = self.supabase.table("users")\
                .select("*")\
                .eq(column, value)\
                .limit(1)\
                .execute()
        except APIError as e:
            logger.error(f"Error fetching user by {column}: {e.message}")
            raise StorageFailure(str(e.message)) from e
        if not result.data:
            return None
        return UserInDB(**result.data[0])

    def find_user_by_email(self, email: str) -> Optional[UserInDB]:
        return self._fetch_one("email", normalize_email(email))

    def get_user_by_email(self, email: str) -> UserInDB:
        user = self.find_user_by_email(email)
        if user is None:
            raise IdentityNotFound(f"No user with email {normalize_email(email)}")
        return user

    def get_user_by_id(self, user_id: int) -> UserInDB:
        user = self._fetch_one("id", user_id)
        if user is None:
            raise IdentityNotFound(f"No user with id {user_id}")
        return user

    def create_user(self, name: str, email: str, password: str) -> UserResponse:
        """Register a new identity with a bcrypt password hash"""
        email = normalize_email(email)
        if not name or not email or not password:
            raise ValidationError("Missing required fields")

        if self.find_user_by_email(email) is not None:
            raise UserAlreadyExists(f"Email {email} already registered")

        password_hash = bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt(rounds=self.bcrypt_rounds)
        ).decode("utf-8")

        try:
            result = self.supabase.table("users").insert({
                "name": name,
                "email": email,
                "password_hash": password_hash,
            }).execute()
        except APIError as e:
            # Lost a race with a concurrent registration for the same email
            if e.code == UNIQUE_VIOLATION:
                raise UserAlreadyExists(f"Email {email} already registered") from e
            logger.error(f"Error creating user: {e.message}")
            raise StorageFailure(str(e.message)) from e

        if not result.data:
            raise StorageFailure("Failed to create user")

        user = UserInDB(**result.data[0])
        logger.info(f"Registered user {user.id}")
        return user.public()

    def authenticate(self, email: str, password: str) -> UserResponse:
        """Check a password against the stored hash"""
        user = self.find_user_by_email(email)
        if user is None or not password:
            raise InvalidCredentials()
        if not bcrypt.checkpw(password.encode("utf-8"), user.password_hash.encode("utf-8")):
            logger.info(f"Password mismatch for user {user.id}")
            raise InvalidCredentials()
        return user.public()
