"""User records in the managed users table, plus auth admin calls"""

import httpx
import psycopg2
from psycopg2 import errors
from typing import Dict, Any, List, Optional
import structlog

from propviz.config.settings import settings
from propviz.database.connection_pool import db_pool
from propviz.utils.exceptions import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    UserDirectoryError,
)

logger = structlog.get_logger(__name__)

USER_COLUMNS = "id, email, name, approved, is_admin, created_at"

class UserDirectory:
    """Signup, approval and removal of application users"""

    def __init__(self, pool=None):
        self.pool = pool or db_pool
        self.session = httpx.Client(timeout=30.0)

    def close(self):
        """Close HTTP session"""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def create_user(self, user_id: str, email: str, name: str) -> None:
        """Create an unapproved, non-admin user record"""
        try:
            with self.pool.get_cursor() as cur:
                cur.execute(
                    "INSERT INTO users (id, email, name, approved, is_admin) "
                    "VALUES (%s, %s, %s, false, false)",
                    (user_id, email, name)
                )
        except errors.UniqueViolation:
            raise ConflictError(f"User already exists: {user_id}")
        except psycopg2.Error as e:
            logger.error("Error creating user record", user_id=user_id, error=str(e))
            raise UserDirectoryError("Failed to create user record")

        logger.info("User record created", user_id=user_id)

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            row = self.pool.execute_one(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = %s",
                (user_id,)
            )
        except psycopg2.Error as e:
            logger.error("Error fetching user", user_id=user_id, error=str(e))
            raise UserDirectoryError("Failed to fetch user")

        return _serialize(row) if row else None

    def list_users(self) -> List[Dict[str, Any]]:
        """All users, newest first"""
        try:
            rows = self.pool.execute_query(
                f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC"
            )
        except psycopg2.Error as e:
            logger.error("Error fetching users", error=str(e))
            raise UserDirectoryError("Failed to fetch users")

        return [_serialize(row) for row in rows]

    def approve_user(self, user_id: str) -> Dict[str, Any]:
        """Confirm the user's e-mail with the auth service and mark them approved"""
        if self.get_user(user_id) is None:
            raise NotFoundError(f"User not found: {user_id}")

        self._confirm_email(user_id)

        try:
            row = self.pool.execute_one(
                f"UPDATE users SET approved = true WHERE id = %s RETURNING {USER_COLUMNS}",
                (user_id,)
            )
        except psycopg2.Error as e:
            logger.error("Error approving user", user_id=user_id, error=str(e))
            raise UserDirectoryError("Failed to approve user")

        if row is None:
            raise NotFoundError(f"User not found: {user_id}")

        logger.info("User approved", user_id=user_id)
        return _serialize(row)

    def delete_user(self, user_id: str) -> None:
        try:
            row = self.pool.execute_one(
                "DELETE FROM users WHERE id = %s RETURNING id",
                (user_id,)
            )
        except psycopg2.Error as e:
            logger.error("Error deleting user", user_id=user_id, error=str(e))
            raise UserDirectoryError("Failed to delete user")

        if row is None:
            raise NotFoundError(f"User not found: {user_id}")

        logger.info("User deleted", user_id=user_id)

    def _confirm_email(self, user_id: str) -> None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")

        url = f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/admin/users/{user_id}"
        try:
            response = self.session.put(
                url,
                json={"email_confirm": True},
                headers={
                    "apikey": settings.SUPABASE_SERVICE_ROLE_KEY,
                    "Authorization": f"Bearer {settings.SUPABASE_SERVICE_ROLE_KEY}",
                }
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Error confirming user email", user_id=user_id, status=e.response.status_code)
            if e.response.status_code == 404:
                raise NotFoundError(f"User not found in auth service: {user_id}")
            raise UserDirectoryError("Failed to confirm user email")
        except httpx.HTTPError as e:
            logger.error("Error confirming user email", user_id=user_id, error=str(e))
            raise UserDirectoryError("Failed to confirm user email")

def _serialize(row: Dict[str, Any]) -> Dict[str, Any]:
    user = dict(row)
    created_at = user.get("created_at")
    if created_at is not None and hasattr(created_at, "isoformat"):
        user["created_at"] = created_at.isoformat()
    return user
