import asyncio

import pytest

from eduverify.core.exceptions import DatabaseError, ProvisioningFailedError
from eduverify.domain.models.profile import UserRole

pytestmark = pytest.mark.anyio

WALLET = "0x" + "ab12" * 10


async def test_first_sign_in_creates_identity_profile_and_role(
    identity_svc, profile_repo, role_repo, fake_provider
):
    identity = await identity_svc.resolve_or_create_identity(WALLET)

    assert identity.wallet_address == WALLET
    assert identity.email == f"{WALLET}@wallet.eduverify.local"

    profile = await profile_repo.get_by_wallet(WALLET)
    assert profile.identity_id == identity.id
    assert profile.role == UserRole.STUDENT
    assert profile.onboarded is False
    assert await role_repo.list_roles(identity.id) == [UserRole.STUDENT]


async def test_resolution_is_idempotent(identity_svc, fake_db, fake_provider):
    first = await identity_svc.resolve_or_create_identity(WALLET)
    second = await identity_svc.resolve_or_create_identity(WALLET.upper().replace("0X", "0x"))

    assert first.id == second.id
    assert fake_provider.create_calls == 1
    assert len(fake_db["profiles"].docs) == 1
    assert len(fake_db["user_roles"].docs) == 1


async def test_concurrent_first_sign_in_converges(identity_svc, fake_db, fake_provider):
    results = await asyncio.gather(
        *(identity_svc.resolve_or_create_identity(WALLET) for _ in range(5))
    )

    assert len({identity.id for identity in results}) == 1
    assert len(fake_provider.users) == 1
    assert len(fake_db["profiles"].docs) == 1
    assert len(fake_db["user_roles"].docs) == 1


async def test_pre_provisioned_profile_is_linked(identity_svc, profile_repo, fake_db):
    await profile_repo.initialize()
    await fake_db["profiles"].insert_one(
        {
            "identity_id": None,
            "wallet_address": WALLET,
            "role": "issuer",
            "display_name": "Registrar",
            "institution": "State University",
            "onboarded": False,
        }
    )

    identity = await identity_svc.resolve_or_create_identity(WALLET)

    profile = await profile_repo.get_by_wallet(WALLET)
    assert profile.identity_id == identity.id
    assert profile.role == UserRole.ISSUER
    assert profile.institution == "State University"
    assert len(fake_db["profiles"].docs) == 1


async def test_concurrent_link_of_pre_provisioned_profile(identity_svc, profile_repo, fake_db):
    await profile_repo.initialize()
    await fake_db["profiles"].insert_one(
        {"identity_id": None, "wallet_address": WALLET, "role": "student", "onboarded": False}
    )

    first, second = await asyncio.gather(
        identity_svc.resolve_or_create_identity(WALLET),
        identity_svc.resolve_or_create_identity(WALLET),
    )

    assert first.id == second.id
    assert (await profile_repo.get_by_wallet(WALLET)).identity_id == first.id


async def test_unlinked_profiles_do_not_collide(profile_repo, fake_db):
    await profile_repo.initialize()
    for suffix in ("1", "2"):
        await fake_db["profiles"].insert_one(
            {"identity_id": None, "wallet_address": "0x" + suffix * 40}
        )

    assert len(fake_db["profiles"].docs) == 2


async def test_storage_failure_becomes_provisioning_failure(identity_svc, monkeypatch):
    async def broken_get_by_wallet(wallet_address):
        raise DatabaseError("Failed to load profile")

    monkeypatch.setattr(identity_svc.profiles, "get_by_wallet", broken_get_by_wallet)

    with pytest.raises(ProvisioningFailedError):
        await identity_svc.resolve_or_create_identity(WALLET)


async def test_existing_identity_without_profile_is_adopted(
    identity_svc, profile_repo, fake_provider
):
    existing = await fake_provider.create_user(f"{WALLET}@wallet.eduverify.local", WALLET)

    identity = await identity_svc.resolve_or_create_identity(WALLET)

    assert identity.id == existing.id
    assert (await profile_repo.get_by_wallet(WALLET)).identity_id == existing.id
