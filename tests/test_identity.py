from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from app.models.user import User
from app.services.identity import IdentityService
from app.utils.exceptions import AuthError, ConflictError, ExpiredOrInvalidError, NotFoundError, ValidationError
from app.utils.security import verify_password


@pytest.mark.asyncio
async def test_signup_stores_hash_not_plaintext(db, make_user):
    user = await make_user("alice", password="hunter22")

    assert user.id is not None
    assert user.password_hash != "hunter22"
    assert verify_password("hunter22", user.password_hash)
    assert user.follower_count == 0 and user.following_count == 0 and user.post_count == 0


@pytest.mark.asyncio
async def test_signup_duplicate_username_conflicts(db, make_user):
    await make_user("alice")

    with pytest.raises(ConflictError):
        await make_user("alice", email="other@example.com")

    count = await db.scalar(select(func.count()).select_from(User).filter(User.username == "alice"))
    assert count == 1


@pytest.mark.asyncio
async def test_signup_duplicate_email_conflicts(db, make_user):
    await make_user("alice")

    with pytest.raises(ConflictError):
        await make_user("alicia", email="alice@example.com")


@pytest.mark.asyncio
async def test_signup_password_mismatch_writes_nothing(db, make_user):
    with pytest.raises(ValidationError):
        await make_user("alice", password="secret123", confirm_password="secret124")

    assert await db.scalar(select(func.count()).select_from(User)) == 0


@pytest.mark.asyncio
async def test_signup_requires_terms(db, make_user):
    with pytest.raises(ValidationError):
        await make_user("alice", terms_accepted=False)


@pytest.mark.asyncio
async def test_login_by_username_or_email(db, make_user):
    await make_user("alice")
    service = IdentityService(db)

    assert await service.login("alice", "secret123") == {"username": "alice", "email": "alice@example.com"}
    assert await service.login("alice@example.com", "secret123") == {"username": "alice", "email": "alice@example.com"}


@pytest.mark.asyncio
async def test_login_distinguishes_unknown_user_from_wrong_password(db, make_user):
    await make_user("alice")
    service = IdentityService(db)

    with pytest.raises(NotFoundError, match="User not found"):
        await service.login("nobody", "secret123")
    with pytest.raises(AuthError, match="Incorrect password"):
        await service.login("alice", "wrong-password")


@pytest.mark.asyncio
async def test_password_reset_round_trip_is_single_use(db, make_user):
    await make_user("alice")
    service = IdentityService(db)

    token = await service.request_password_reset("alice")
    assert token

    await service.reset_password(token, "newpw123", "newpw123")
    assert await service.login("alice", "newpw123")

    with pytest.raises(ExpiredOrInvalidError):
        await service.reset_password(token, "another1", "another1")

    user = await service.get_user("alice")
    await db.refresh(user)
    assert user.reset_password_token is None
    assert user.reset_password_expires is None


@pytest.mark.asyncio
async def test_password_reset_unknown_account_returns_none(db):
    assert await IdentityService(db).request_password_reset("ghost") is None


@pytest.mark.asyncio
async def test_password_reset_rejects_expired_token(db, make_user):
    user = await make_user("alice")
    service = IdentityService(db)
    token = await service.request_password_reset("alice")

    user.reset_password_expires = datetime.now(timezone.utc) - timedelta(minutes=1)
    await db.commit()

    with pytest.raises(ExpiredOrInvalidError):
        await service.reset_password(token, "newpw123", "newpw123")


@pytest.mark.asyncio
async def test_password_reset_validates_before_lookup(db, make_user):
    await make_user("alice")
    service = IdentityService(db)
    token = await service.request_password_reset("alice")

    with pytest.raises(ValidationError):
        await service.reset_password(token, "newpw123", "newpw124")
    with pytest.raises(ValidationError):
        await service.reset_password(token, "", "")

    # the token survives a rejected attempt
    await service.reset_password(token, "newpw123", "newpw123")


@pytest.mark.asyncio
async def test_update_profile_ignores_unknown_fields(db, make_user):
    await make_user("alice")
    service = IdentityService(db)

    user = await service.update_profile("alice", bio="Writes about Rust", username="mallory", country="NL")

    assert user.username == "alice"
    assert user.bio == "Writes about Rust"
    assert user.country == "NL"


@pytest.mark.asyncio
async def test_update_profile_rejects_long_bio(db, make_user):
    await make_user("alice")

    with pytest.raises(ValidationError):
        await IdentityService(db).update_profile("alice", bio="x" * 501)


@pytest.mark.asyncio
async def test_search_users_matches_username_and_full_name(db, make_user):
    await make_user("alice", full_name="Alice Liddell")
    await make_user("bob", full_name="Bob Builder")

    found = await IdentityService(db).search_users("LIDDELL")
    assert [u.username for u in found] == ["alice"]

    everyone = await IdentityService(db).search_users()
    assert {u.username for u in everyone} == {"alice", "bob"}


@pytest.mark.asyncio
async def test_search_users_treats_wildcards_literally(db, make_user):
    await make_user("a_b", full_name="Underscore")
    await make_user("axb", full_name="Plain")

    found = await IdentityService(db).search_users("a_b")

    assert [u.username for u in found] == ["a_b"]
