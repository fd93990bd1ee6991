"""
Tests for the credential and session reconciler.

Covers the authorize error taxonomy, token rebuilding on refresh, and the
display-field freshening done on every session read.
"""

import asyncio
import time
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from portal.app.auth.callbacks import (
    CredentialsSigninError,
    InvalidPassword,
    MissingCredentials,
    UserNotFound,
    authorize,
    derive_session,
    derive_token,
)
from portal.app.models import Credentials, Session, SessionUser, UserRecord

TEST_PASSWORD = "secret"


def make_session(**user_fields):
    return Session(
        user=SessionUser(**user_fields),
        expires=datetime(2030, 1, 1, tzinfo=timezone.utc),
    )


class TestAuthorize:
    """Password sign-in"""

    @pytest.mark.asyncio
    async def test_valid_credentials_return_user(self, users, alice):
        user = await authorize(Credentials(email="a@x.com", password=TEST_PASSWORD), users)

        assert user.id == "u1"
        assert user.email == "a@x.com"
        assert user.hashed_password == alice.hashed_password

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "credentials",
        [
            None,
            Credentials(),
            Credentials(email="a@x.com"),
            Credentials(password=TEST_PASSWORD),
            Credentials(email="", password=TEST_PASSWORD),
            Credentials(email="a@x.com", password=""),
        ],
    )
    async def test_missing_fields_rejected(self, users, alice, credentials):
        with pytest.raises(MissingCredentials) as exc_info:
            await authorize(credentials, users)

        assert str(exc_info.value) == "Please enter email and password"

    @pytest.mark.asyncio
    async def test_unknown_email_rejected(self, users, alice):
        with pytest.raises(UserNotFound) as exc_info:
            await authorize(Credentials(email="ghost@x.com", password="x"), users)

        assert str(exc_info.value) == "User not found. Please try again."

    @pytest.mark.asyncio
    async def test_oauth_only_account_rejected_as_not_found(self, users):
        users.add(id="u2", email="b@x.com", name="Bob", hashed_password=None)

        with pytest.raises(UserNotFound):
            await authorize(Credentials(email="b@x.com", password="anything"), users)

    @pytest.mark.asyncio
    async def test_email_match_is_case_sensitive(self, users, alice):
        with pytest.raises(UserNotFound):
            await authorize(Credentials(email="A@X.com", password=TEST_PASSWORD), users)

    @pytest.mark.asyncio
    async def test_wrong_password_rejected(self, users, alice):
        with pytest.raises(InvalidPassword) as exc_info:
            await authorize(Credentials(email="a@x.com", password="not-the-password"), users)

        assert "password is not correct" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_corrupt_hash_treated_as_wrong_password(self, users):
        users.add(id="u3", email="c@x.com", name="Carol", hashed_password="not-a-bcrypt-hash")

        with pytest.raises(InvalidPassword):
            await authorize(Credentials(email="c@x.com", password=TEST_PASSWORD), users)

    @pytest.mark.asyncio
    async def test_password_check_does_not_block_event_loop(self, users, alice):
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                await asyncio.sleep(0.01)
                ticks += 1

        def slow_verify(password, hashed_password):
            time.sleep(0.3)
            return True

        task = asyncio.create_task(ticker())
        try:
            with patch("portal.app.auth.callbacks.verify_password", slow_verify):
                await authorize(Credentials(email="a@x.com", password=TEST_PASSWORD), users)
        finally:
            task.cancel()

        assert ticks >= 5

    def test_errors_share_a_base_class(self):
        for error in (MissingCredentials, UserNotFound, InvalidPassword):
            assert issubclass(error, CredentialsSigninError)


class TestDeriveToken:
    """Token refresh"""

    @pytest.mark.asyncio
    async def test_rebuilds_from_stored_user(self, users, alice):
        token = {
            "email": "a@x.com",
            "name": "Old Name",
            "picture": "https://img.example/old.png",
            "sub": "u1",
            "stale": True,
        }

        result = await derive_token(token, users)

        assert result == {
            "id": "u1",
            "name": "Alice",
            "email": "a@x.com",
            "picture": "https://img.example/alice.png",
        }

    @pytest.mark.asyncio
    async def test_idempotent_without_data_change(self, users, alice):
        once = await derive_token({"email": "a@x.com"}, users)
        twice = await derive_token(dict(once), users)

        assert once == twice

    @pytest.mark.asyncio
    async def test_stored_user_wins_over_fresh_sign_in(self, users, alice):
        other = UserRecord(id="other", email="a@x.com", name="Other")

        result = await derive_token({"email": "a@x.com"}, users, user=other)

        assert result["id"] == "u1"

    @pytest.mark.asyncio
    async def test_missing_user_stamps_id_from_sign_in(self, users):
        fresh = UserRecord(id="u9", email="new@x.com", name="New")
        token = {"email": "new@x.com", "name": "New", "sub": "u9"}

        result = await derive_token(token, users, user=fresh)

        assert result == {"email": "new@x.com", "name": "New", "sub": "u9", "id": "u9"}

    @pytest.mark.asyncio
    async def test_missing_user_without_sign_in_keeps_token(self, users):
        token = {"id": "u1", "email": "gone@x.com", "name": "Gone"}

        result = await derive_token(dict(token), users)

        assert result == token

    @pytest.mark.asyncio
    async def test_token_without_email_does_not_raise(self, users, alice):
        result = await derive_token({"name": "Nobody"}, users)

        assert result == {"name": "Nobody"}

    @pytest.mark.asyncio
    async def test_reflects_profile_change(self, users, alice):
        first = await derive_token({"email": "a@x.com"}, users)
        await users.update_user("u1", name="Alice Liddell", image=None)

        second = await derive_token(dict(first), users)

        assert second["name"] == "Alice Liddell"
        assert second["picture"] is None


class TestDeriveSession:
    """Session read"""

    @pytest.mark.asyncio
    async def test_name_is_lower_cased_from_store(self, users, alice):
        session = await derive_session(make_session(), {"email": "a@x.com"}, users)

        assert session.user.name == "alice"

    @pytest.mark.asyncio
    async def test_copies_token_then_freshens_display_fields(self, users, alice):
        await users.update_user("u1", username="alice")
        token = {
            "id": "u1",
            "name": "Stale Name",
            "email": "a@x.com",
            "picture": "https://img.example/stale.png",
            "username": "alice01",
        }

        session = await derive_session(make_session(), token, users)

        assert session.user.id == "u1"
        assert session.user.email == "a@x.com"
        assert session.user.username == "alice"
        assert session.user.name == "alice"
        assert session.user.image == "https://img.example/alice.png"

    @pytest.mark.asyncio
    async def test_username_comes_from_store(self, users, alice):
        await users.update_user("u1", username="alice")
        token = await derive_token({"email": "a@x.com"}, users)

        session = await derive_session(make_session(), token, users)

        assert "username" not in token
        assert session.user.username == "alice"

    @pytest.mark.asyncio
    async def test_deleted_user_keeps_token_values(self, users):
        token = {"id": "u1", "name": "Alice", "email": "a@x.com", "picture": "p.png"}

        session = await derive_session(make_session(), token, users)

        assert session.user.name == "Alice"
        assert session.user.image == "p.png"
        assert session.user.id == "u1"

    @pytest.mark.asyncio
    async def test_stored_user_without_name(self, users):
        users.add(id="u4", email="d@x.com", name=None, image="d.png")

        session = await derive_session(make_session(), {"id": "u4", "name": "Dee"}, users)

        assert session.user.name is None
        assert session.user.image == "d.png"

    @pytest.mark.asyncio
    async def test_missing_session_user_is_created(self, users, alice):
        session = make_session()
        session.user = None

        result = await derive_session(session, {"id": "u1", "email": "a@x.com"}, users)

        assert result.user is not None
        assert result.user.name == "alice"

    @pytest.mark.asyncio
    async def test_one_lookup_by_id_per_read(self, alice):
        adapter = AsyncMock()
        adapter.get_user.return_value = alice

        await derive_session(make_session(), {"id": "u1", "email": "a@x.com"}, adapter)

        adapter.get_user.assert_awaited_once_with("u1")
        adapter.get_user_by_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_token_leaves_session_untouched(self, users, alice):
        session = await derive_session(make_session(name="Kept"), None, users)

        assert session.user.name == "Kept"
