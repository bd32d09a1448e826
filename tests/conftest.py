import asyncio
import copy
import os
import sys
import uuid
from typing import Any, Dict, List, Optional

import pytest
from asgi_lifespan import LifespanManager
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from pymongo.errors import DuplicateKeyError

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)
os.environ.setdefault("ANYIO_BACKEND", "asyncio")

from eduverify.main import app  # noqa: E402
from eduverify.api.deps.auth_guard import AuthenticatedUser, get_current_user  # noqa: E402
from eduverify.api.routers.profile_router import get_profile_service  # noqa: E402
from eduverify.api.routers.wallet_auth_router import get_wallet_auth_service  # noqa: E402
from eduverify.api.services.identity_service import IdentityService  # noqa: E402
from eduverify.api.services.profile_service import ProfileService  # noqa: E402
from eduverify.api.services.session_service import SessionService  # noqa: E402
from eduverify.api.services.wallet_auth_service import WalletAuthService  # noqa: E402
from eduverify.core.exceptions import (  # noqa: E402
    IdentityAlreadyExistsError,
    IdentityProviderError,
    InvalidTokenError,
)
from eduverify.domain.models.identity import Identity, Session, SessionCredential  # noqa: E402
from eduverify.domain.repositories.profile_repository import ProfileRepository  # noqa: E402
from eduverify.domain.repositories.role_repository import RoleRepository  # noqa: E402

# Hardhat/anvil default account #0
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


# ---------------------------------------------------------------------------
# In-memory stand-ins for the motor collections
# ---------------------------------------------------------------------------


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    return all(doc.get(key) == value for key, value in query.items())


class _InsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class _UpdateResult:
    def __init__(self, matched_count: int, modified_count: int, upserted_id=None):
        self.matched_count = matched_count
        self.modified_count = modified_count
        self.upserted_id = upserted_id


class _Cursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        await asyncio.sleep(0)
        return self._docs if length is None else self._docs[:length]


class FakeCollection:
    """Just enough of AsyncIOMotorCollection, unique indexes included."""

    def __init__(self):
        self.docs: List[Dict[str, Any]] = []
        self.unique_indexes: List[Dict[str, Any]] = []

    async def create_index(self, keys, unique=False, name=None, partialFilterExpression=None):
        if unique:
            self.unique_indexes.append(
                {
                    "name": name,
                    "fields": [field for field, _ in keys],
                    "partial": partialFilterExpression,
                }
            )
        return name

    @staticmethod
    def _indexed(index: Dict[str, Any], doc: Dict[str, Any]) -> bool:
        partial = index["partial"]
        if not partial:
            return True
        # Only {"field": {"$type": "string"}} filters are used here
        return all(isinstance(doc.get(field), str) for field in partial)

    def _check_unique(self, candidate: Dict[str, Any], ignore=None) -> None:
        for index in self.unique_indexes:
            if not self._indexed(index, candidate):
                continue
            key = tuple(candidate.get(field) for field in index["fields"])
            for doc in self.docs:
                if doc is ignore or not self._indexed(index, doc):
                    continue
                if tuple(doc.get(field) for field in index["fields"]) == key:
                    raise DuplicateKeyError(f"E11000 duplicate key error index: {index['name']}")

    async def find_one(self, query: Dict[str, Any]):
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query: Dict[str, Any]) -> _Cursor:
        return _Cursor([copy.deepcopy(doc) for doc in self.docs if _matches(doc, query)])

    async def insert_one(self, document: Dict[str, Any]) -> _InsertResult:
        await asyncio.sleep(0)
        doc = copy.deepcopy(document)
        doc.setdefault("_id", ObjectId())
        self._check_unique(doc)
        self.docs.append(doc)
        return _InsertResult(doc["_id"])

    async def update_one(self, query, update, upsert=False) -> _UpdateResult:
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, query):
                updated = {**doc, **update.get("$set", {})}
                self._check_unique(updated, ignore=doc)
                modified = int(updated != doc)
                doc.update(updated)
                return _UpdateResult(1, modified)

        if not upsert:
            return _UpdateResult(0, 0)

        doc = {**query, **update.get("$setOnInsert", {}), **update.get("$set", {})}
        doc["_id"] = ObjectId()
        self._check_unique(doc)
        self.docs.append(doc)
        return _UpdateResult(0, 0, upserted_id=doc["_id"])


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


# ---------------------------------------------------------------------------
# In-memory identity provider
# ---------------------------------------------------------------------------


class FakeIdentityProvider:
    """Mimics IdentityProviderClient: unique emails, magic links, sessions."""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.links: Dict[str, str] = {}
        self.sessions: Dict[str, str] = {}
        self.create_calls = 0
        self.fail_generate_link = False
        self.fail_sign_out = False
        self.signed_out: List[str] = []

    def _identity(self, user_id: str) -> Identity:
        return Identity.from_provider_user(self.users[user_id])

    async def create_user(self, email: str, wallet_address: str) -> Identity:
        self.create_calls += 1
        await asyncio.sleep(0)
        if any(user["email"] == email for user in self.users.values()):
            raise IdentityAlreadyExistsError(email)
        user_id = str(uuid.uuid4())
        self.users[user_id] = {
            "id": user_id,
            "email": email,
            "user_metadata": {"wallet_address": wallet_address},
        }
        return self._identity(user_id)

    async def get_user_by_id(self, identity_id: str) -> Identity:
        await asyncio.sleep(0)
        if identity_id not in self.users:
            raise IdentityProviderError("Identity provider get_user_by_id failed")
        return self._identity(identity_id)

    async def get_user_by_email(self, email: str) -> Optional[Identity]:
        await asyncio.sleep(0)
        for user_id, user in self.users.items():
            if user["email"] == email:
                return self._identity(user_id)
        return None

    async def generate_magic_link(self, email: str) -> SessionCredential:
        await asyncio.sleep(0)
        if self.fail_generate_link:
            raise IdentityProviderError("Identity provider generate_link failed")
        user_id = next(uid for uid, user in self.users.items() if user["email"] == email)
        token_hash = uuid.uuid4().hex
        self.links[token_hash] = user_id
        return SessionCredential(
            token_hash=token_hash,
            verification_url=f"http://idp.test/auth/v1/verify?token={token_hash}&type=magiclink",
        )

    async def redeem_magic_link(self, token_hash: str) -> Session:
        await asyncio.sleep(0)
        user_id = self.links.pop(token_hash, None)
        if user_id is None:
            raise InvalidTokenError({"status_code": 403})
        access_token = f"access-{uuid.uuid4().hex}"
        self.sessions[access_token] = user_id
        return Session(
            access_token=access_token,
            refresh_token="refresh",
            expires_in=3600,
            user=self._identity(user_id),
        )

    async def get_user(self, access_token: str) -> Identity:
        await asyncio.sleep(0)
        if access_token not in self.sessions:
            raise InvalidTokenError({"status_code": 401})
        return self._identity(self.sessions[access_token])

    async def sign_out(self, access_token: str) -> None:
        await asyncio.sleep(0)
        self.signed_out.append(access_token)
        if self.fail_sign_out:
            raise IdentityProviderError("Identity provider logout failed")
        self.sessions.pop(access_token, None)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def fake_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def profile_repo(fake_db) -> ProfileRepository:
    return ProfileRepository(database=fake_db)


@pytest.fixture
def role_repo(fake_db) -> RoleRepository:
    return RoleRepository(database=fake_db)


@pytest.fixture
def identity_svc(profile_repo, role_repo, fake_provider) -> IdentityService:
    return IdentityService(profiles=profile_repo, roles=role_repo, provider=fake_provider)


@pytest.fixture
def wallet_auth_svc(identity_svc, fake_provider) -> WalletAuthService:
    return WalletAuthService(
        identities=identity_svc, sessions=SessionService(provider=fake_provider)
    )


@pytest.fixture
def profile_svc(profile_repo, role_repo) -> ProfileService:
    return ProfileService(profiles=profile_repo, roles=role_repo)


@pytest.fixture
def test_user() -> AuthenticatedUser:
    """Reusable authenticated user for dependency overrides."""
    return AuthenticatedUser(
        identity_id="identity-test-123",
        email="0xabc@wallet.eduverify.local",
        wallet_address="0x000000000000000000000000000000000000dead",
    )


@pytest.fixture(autouse=True)
def override_dependencies(test_user, wallet_auth_svc, profile_svc):
    """
    Point the routers at in-memory services and a fixed signed-in user so
    endpoints run without MongoDB, Redis or a live identity provider.
    """

    async def _override_current_user() -> AuthenticatedUser:
        return test_user

    app.dependency_overrides[get_current_user] = _override_current_user
    app.dependency_overrides[get_wallet_auth_service] = lambda: wallet_auth_svc
    app.dependency_overrides[get_profile_service] = lambda: profile_svc
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client():
    """Shared HTTPX async client with FastAPI lifespan handling."""
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
