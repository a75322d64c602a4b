import pytest
from sqlalchemy import select

from app.core.errors import Conflict, Unauthorized
from app.core.security import verify_password
from app.models.points_transaction import PointsTransaction
from app.services.auth_service import AuthService


def _google_profile(sub="google-sub-1", email="person@gmail.com", verified=True):
    return {
        "sub": sub,
        "email": email,
        "email_verified": verified,
        "name": "Google Person",
        "picture": "https://lh3.googleusercontent.com/a/photo",
    }


async def test_register_stores_hash_not_password(session_factory):
    async with session_factory() as db:
        user = await AuthService.register(" Person@Example.com ", "correct-horse-battery", db)

    assert user.email == "person@example.com"
    assert user.password_hash != "correct-horse-battery"
    assert verify_password("correct-horse-battery", user.password_hash)


async def test_register_records_signup_bonus_credit(session_factory):
    async with session_factory() as db:
        user = await AuthService.register("person@example.com", "correct-horse-battery", db)

    async with session_factory() as db:
        entries = (
            await db.execute(select(PointsTransaction).where(PointsTransaction.user_id == user.id))
        ).scalars().all()

    assert len(entries) == 1
    assert entries[0].is_credit()
    assert entries[0].balance_after == user.points


async def test_register_is_case_insensitive_on_email(session_factory):
    async with session_factory() as db:
        await AuthService.register("person@example.com", "correct-horse-battery", db)

    async with session_factory() as db:
        with pytest.raises(Conflict):
            await AuthService.register("PERSON@example.com", "another-password", db)


async def test_google_sign_in_creates_account(session_factory):
    async with session_factory() as db:
        user = await AuthService.upsert_google_user(_google_profile(), db)

    assert user.google_sub == "google-sub-1"
    assert user.password_hash is None
    assert user.picture.startswith("https://")
    assert user.points == 50


async def test_repeat_google_sign_in_returns_same_account(session_factory):
    async with session_factory() as db:
        first = await AuthService.upsert_google_user(_google_profile(), db)
    async with session_factory() as db:
        second = await AuthService.upsert_google_user(_google_profile(email="renamed@gmail.com"), db)

    assert second.id == first.id


async def test_google_links_existing_password_account(session_factory, make_user):
    existing = await make_user(email="person@gmail.com")

    async with session_factory() as db:
        user = await AuthService.upsert_google_user(_google_profile(), db)

    assert user.id == existing.id
    assert user.google_sub == "google-sub-1"
    assert user.password_hash is not None


async def test_google_does_not_link_unverified_email(session_factory, make_user):
    await make_user(email="person@gmail.com")

    async with session_factory() as db:
        with pytest.raises(Unauthorized) as exc_info:
            await AuthService.upsert_google_user(_google_profile(verified=False), db)

    assert exc_info.value.reason == "email_unverified"


async def test_authenticate_rejects_google_only_account(session_factory):
    async with session_factory() as db:
        await AuthService.upsert_google_user(_google_profile(), db)

    async with session_factory() as db:
        with pytest.raises(Unauthorized):
            await AuthService.authenticate("person@gmail.com", "any-password", db)
