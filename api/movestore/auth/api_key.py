"""API key management with secure hashing and validation."""

import logging
import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict

from ..db.connection import get_db_pool


logger = logging.getLogger(__name__)

# Use bcrypt for secure password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class Principal(BaseModel):
    """The authenticated caller."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def generate_api_key() -> str:
    """Generate a new API key.

    Returns:
        A cryptographically secure random API key string.
    """
    return secrets.token_urlsafe(32)


def hash_api_key(api_key: str) -> bytes:
    """Hash an API key for storage.

    Args:
        api_key: The plain text API key

    Returns:
        Hashed API key as bytes
    """
    return pwd_context.hash(api_key).encode('utf-8')


def verify_api_key(api_key: str, hashed: bytes) -> bool:
    """Verify an API key against its hash.

    Args:
        api_key: The plain text API key to verify
        hashed: The stored hash as bytes

    Returns:
        True if the API key is valid, False otherwise
    """
    try:
        return pwd_context.verify(api_key, hashed.decode('utf-8'))
    except (ValueError, TypeError, UnicodeDecodeError):
        # Malformed stored hash
        return False


async def create_api_key(user_id: str, role: Role = Role.USER, api_key: Optional[str] = None) -> str:
    """Create a new API key acting for ``user_id``.

    Args:
        user_id: The user the key authenticates as
        role: Role granted to requests made with the key
        api_key: Optional specific API key to use (if None, generates new one)

    Returns:
        The plain text API key (only returned here, not stored)
    """
    if api_key is None:
        api_key = generate_api_key()

    pool = await get_db_pool()
    async with pool.acquire() as conn:
        await conn.execute(
            "INSERT INTO api_keys (token_hash, user_id, role) VALUES ($1, $2, $3)",
            hash_api_key(api_key), user_id, Role(role).value
        )

    logger.info(f"Created {Role(role).value} API key for user {user_id}")
    return api_key


async def validate_api_key(api_key: str) -> Optional[Principal]:
    """Validate an API key and return the caller it acts for.

    Args:
        api_key: The plain text API key to validate

    Returns:
        The principal if the API key is valid, None otherwise
    """
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        # Hashes are salted, so each stored key is checked in turn
        rows = await conn.fetch("SELECT token_hash, user_id, role FROM api_keys")

        for row in rows:
            if verify_api_key(api_key, row['token_hash']):
                await conn.execute(
                    "UPDATE api_keys SET last_used = $1 WHERE token_hash = $2",
                    datetime.now(timezone.utc), row['token_hash']
                )
                return Principal(user_id=row['user_id'], role=Role(row['role']))

    return None


async def revoke_api_key(api_key: str) -> bool:
    """Revoke an API key by deleting it from the database.

    Args:
        api_key: The plain text API key to revoke

    Returns:
        True if the API key was found and revoked, False otherwise
    """
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch("SELECT token_hash FROM api_keys")

        for row in rows:
            if verify_api_key(api_key, row['token_hash']):
                await conn.execute(
                    "DELETE FROM api_keys WHERE token_hash = $1",
                    row['token_hash']
                )
                return True

    return False


async def list_api_keys_for_user(user_id: str) -> List[dict]:
    """List key metadata (never the keys) for a user, newest first."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch(
            """
            SELECT role, created_at, last_used
            FROM api_keys
            WHERE user_id = $1
            ORDER BY created_at DESC
            """,
            user_id
        )

        return [
            {
                "role": row['role'],
                "created_at": row['created_at'],
                "last_used": row['last_used']
            }
            for row in rows
        ]
