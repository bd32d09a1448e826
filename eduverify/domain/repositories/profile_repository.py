"""
MongoDB repository for wallet-bound profiles.

The unique indexes created here are the serialization point for concurrent
first sign-ins of the same wallet.
"""

from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from eduverify.core.config import get_mongodb_database_name, get_mongodb_url
from eduverify.core.exceptions import DatabaseError, DuplicateProfileError
from eduverify.core.logging import get_logger
from eduverify.domain.models.profile import (
    DEFAULT_ROLE,
    ProfileCreateModel,
    ProfileModel,
    UserRole,
)

logger = get_logger(__name__)


class ProfileRepository:
    """Repository for profiles in MongoDB."""

    def __init__(self, database: Optional[AsyncIOMotorDatabase] = None):
        """Initialize the repository, optionally with an existing database handle."""
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
            self.collection = self.database["profiles"]

            await self._create_indexes()

            self._initialized = True
            logger.info("ProfileRepository initialized")

        except PyMongoError as e:
            logger.error(f"Failed to initialize ProfileRepository: {e}")
            raise DatabaseError("Failed to initialize profile storage", {"cause": str(e)})

    async def _create_indexes(self):
        """Create the uniqueness constraints profiles rely on."""
        await self.collection.create_index(
            [("wallet_address", ASCENDING)],
            unique=True,
            name="wallet_address_unique",
        )

        # Unlinked profiles carry a null identity_id, so only string values
        # take part in the uniqueness check.
        await self.collection.create_index(
            [("identity_id", ASCENDING)],
            unique=True,
            name="identity_id_unique",
            partialFilterExpression={"identity_id": {"$type": "string"}},
        )

        logger.info("Profile indexes created successfully")

    @staticmethod
    def _to_model(doc: Optional[dict]) -> Optional[ProfileModel]:
        if not doc:
            return None
        doc["id"] = str(doc["_id"])
        return ProfileModel(**doc)

    async def get_by_wallet(self, wallet_address: str) -> Optional[ProfileModel]:
        """
        Get the profile bound to a wallet address.

        Args:
            wallet_address: Wallet address (any case)

        Returns:
            Profile model or None if not found
        """
        await self.initialize()

        try:
            doc = await self.collection.find_one(
                {"wallet_address": wallet_address.lower()}
            )
        except PyMongoError as e:
            logger.error(f"Failed to get profile by wallet: {e}")
            raise DatabaseError("Failed to load profile", {"cause": str(e)})

        return self._to_model(doc)

    async def get_by_identity(self, identity_id: str) -> Optional[ProfileModel]:
        """
        Get the profile linked to an identity.

        Args:
            identity_id: Identity provider user id

        Returns:
            Profile model or None if not found
        """
        await self.initialize()

        try:
            doc = await self.collection.find_one({"identity_id": identity_id})
        except PyMongoError as e:
            logger.error(f"Failed to get profile by identity: {e}")
            raise DatabaseError("Failed to load profile", {"cause": str(e)})

        return self._to_model(doc)

    async def create_profile(self, profile: ProfileCreateModel) -> ProfileModel:
        """
        Insert a new linked profile.

        Args:
            profile: Profile data to create

        Returns:
            Created profile model

        Raises:
            DuplicateProfileError: The wallet or identity already has a profile
        """
        await self.initialize()

        now = datetime.now(timezone.utc)
        profile_data = profile.model_dump(mode="json")
        profile_data["wallet_address"] = profile.wallet_address.lower()
        profile_data["display_name"] = None
        profile_data["institution"] = None
        profile_data["created_at"] = now
        profile_data["updated_at"] = now

        try:
            result = await self.collection.insert_one(profile_data)
        except DuplicateKeyError as e:
            logger.warning(
                f"Profile already exists for wallet {profile_data['wallet_address']}"
            )
            raise DuplicateProfileError(
                profile_data["wallet_address"], {"cause": str(e)}
            )
        except PyMongoError as e:
            logger.error(f"Failed to create profile: {e}")
            raise DatabaseError("Failed to create profile", {"cause": str(e)})

        profile_data["_id"] = result.inserted_id
        return self._to_model(profile_data)

    async def link_identity(self, wallet_address: str, identity_id: str) -> bool:
        """
        Attach an identity to a pre-provisioned profile.

        Only a profile whose identity_id is still null is updated, so a
        concurrent link by another request is never overwritten.

        Returns:
            True if this call linked the profile
        """
        await self.initialize()

        try:
            result = await self.collection.update_one(
                {"wallet_address": wallet_address.lower(), "identity_id": None},
                {
                    "$set": {
                        "identity_id": identity_id,
                        "updated_at": datetime.now(timezone.utc),
                    }
                },
            )
        except DuplicateKeyError as e:
            raise DuplicateProfileError(wallet_address.lower(), {"cause": str(e)})
        except PyMongoError as e:
            logger.error(f"Failed to link profile: {e}")
            raise DatabaseError("Failed to link profile", {"cause": str(e)})

        return result.modified_count > 0

    async def mark_onboarded(
        self,
        identity_id: str,
        role: UserRole = DEFAULT_ROLE,
        display_name: Optional[str] = None,
        institution: Optional[str] = None,
    ) -> Optional[ProfileModel]:
        """
        Record the onboarding choices and set onboarded=true.

        Role, display name and institution are written in the same update that
        flips the flag, and only while the profile is not yet onboarded, so a
        repeated call leaves the first choices in place.

        Returns:
            Current profile model or None if the identity has no profile
        """
        await self.initialize()

        try:
            await self.collection.update_one(
                {"identity_id": identity_id, "onboarded": False},
                {
                    "$set": {
                        "onboarded": True,
                        "role": UserRole(role).value,
                        "display_name": display_name,
                        "institution": institution,
                        "updated_at": datetime.now(timezone.utc),
                    }
                },
            )
        except PyMongoError as e:
            logger.error(f"Failed to mark profile onboarded: {e}")
            raise DatabaseError("Failed to update profile", {"cause": str(e)})

        return await self.get_by_identity(identity_id)

    async def close(self):
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self._initialized = False
            logger.info("ProfileRepository connection closed")


# Global repository instance
profile_repository = ProfileRepository()
