"""
MongoDB repository for role assignments.
"""

from datetime import datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from eduverify.core.config import get_mongodb_database_name, get_mongodb_url
from eduverify.core.exceptions import DatabaseError
from eduverify.core.logging import get_logger
from eduverify.domain.models.profile import UserRole

logger = get_logger(__name__)


class RoleRepository:
    """Repository for (identity, role) assignments in MongoDB."""

    def __init__(self, database: Optional[AsyncIOMotorDatabase] = None):
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = database
        self.collection: Optional[AsyncIOMotorCollection] = None
        self._initialized = False

    async def initialize(self):
        """Initialize MongoDB connection and collection."""
        if self._initialized:
            return

        try:
            if self.database is None:
                self.client = AsyncIOMotorClient(get_mongodb_url())
                self.database = self.client[get_mongodb_database_name()]
            self.collection = self.database["user_roles"]

            await self.collection.create_index(
                [("identity_id", ASCENDING), ("role", ASCENDING)],
                unique=True,
                name="identity_role_unique",
            )

            self._initialized = True
            logger.info("RoleRepository initialized")

        except PyMongoError as e:
            logger.error(f"Failed to initialize RoleRepository: {e}")
            raise DatabaseError("Failed to initialize role storage", {"cause": str(e)})

    async def ensure_role(self, identity_id: str, role: UserRole) -> bool:
        """
        Grant a role if it is not already held.

        Args:
            identity_id: Identity provider user id
            role: Role to grant

        Returns:
            True if a new assignment was written, False if it already existed
        """
        await self.initialize()

        try:
            result = await self.collection.update_one(
                {"identity_id": identity_id, "role": role.value},
                {"$setOnInsert": {"created_at": datetime.now(timezone.utc)}},
                upsert=True,
            )
        except DuplicateKeyError:
            # Concurrent upsert of the same pair; the other writer won.
            return False
        except PyMongoError as e:
            logger.error(f"Failed to assign role {role.value} to {identity_id}: {e}")
            raise DatabaseError("Failed to assign role", {"cause": str(e)})

        return result.upserted_id is not None

    async def list_roles(self, identity_id: str) -> List[UserRole]:
        """
        Get all roles held by an identity.

        Args:
            identity_id: Identity provider user id

        Returns:
            Roles in grant order, unknown values skipped
        """
        await self.initialize()

        try:
            cursor = self.collection.find({"identity_id": identity_id})
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Failed to list roles for {identity_id}: {e}")
            raise DatabaseError("Failed to load roles", {"cause": str(e)})

        roles: List[UserRole] = []
        for doc in docs:
            try:
                role = UserRole(doc["role"])
            except ValueError:
                logger.warning(f"Skipping unknown role {doc.get('role')!r} for {identity_id}")
                continue
            if role not in roles:
                roles.append(role)

        return roles

    async def close(self):
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self._initialized = False
            logger.info("RoleRepository connection closed")


# Global repository instance
role_repository = RoleRepository()
