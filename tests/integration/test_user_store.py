"""Integration tests for SqlAlchemyUserStore against SQLite."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from authflow.kernel.errors import NotFound
from authflow.kernel.identity.password import fingerprint_token


class TestLookups:
    @pytest.mark.asyncio
    async def test_find_by_email_is_case_insensitive(self, store, test_user):
        found = await store.find_by_email("  TestUser@Example.COM ")

        assert found is not None
        assert found.id == test_user.id

    @pytest.mark.asyncio
    async def test_find_unknown(self, store, test_user):
        assert await store.find_by_email("nobody@example.com") is None
        assert await store.find_by_id(uuid.uuid4()) is None
        assert await store.find_by_verify_token_hash(fingerprint_token("x")) is None
        assert await store.find_by_reset_token_hash(fingerprint_token("x")) is None

    @pytest.mark.asyncio
    async def test_find_by_token_hashes(self, store, make_user):
        verify_hash = fingerprint_token("verify-token")
        reset_hash = fingerprint_token("reset-token")
        user = await make_user(
            verify_email_token_hash=verify_hash,
            reset_password_token_hash=reset_hash,
        )

        assert (await store.find_by_verify_token_hash(verify_hash)).id == user.id
        assert (await store.find_by_reset_token_hash(reset_hash)).id == user.id


class TestGuardedUpdate:
    @pytest.mark.asyncio
    async def test_update_writes_fields(self, store, test_user):
        updated = await store.update(test_user.id, {"username": "ada"})

        assert updated.username == "ada"
        assert updated.display_name == "ada"

    @pytest.mark.asyncio
    async def test_unknown_id_raises_not_found(self, store, test_user):
        with pytest.raises(NotFound):
            await store.update(uuid.uuid4(), {"username": "ada"})

    @pytest.mark.asyncio
    async def test_guard_allows_only_one_consumer(self, store, make_user):
        """Two updates guarded on the same token hash: the second finds nothing."""
        token_hash = fingerprint_token("one-time")
        user = await make_user(is_verified=False, verify_email_token_hash=token_hash)
        fields = {"is_verified": True, "verify_email_token_hash": None}

        first = await store.update(user.id, fields, expected={"verify_email_token_hash": token_hash})
        assert first.is_verified is True
        assert first.verify_email_token_hash is None

        with pytest.raises(NotFound):
            await store.update(user.id, fields, expected={"verify_email_token_hash": token_hash})

    @pytest.mark.asyncio
    async def test_guard_on_null(self, store, test_user):
        updated = await store.update(
            test_user.id,
            {"new_email": "next@example.com"},
            expected={"new_email": None},
        )
        assert updated.new_email == "next@example.com"

        with pytest.raises(NotFound):
            await store.update(test_user.id, {"new_email": "other@example.com"}, expected={"new_email": None})

    @pytest.mark.asyncio
    async def test_unknown_column_rejected(self, store, test_user):
        with pytest.raises(ValueError):
            await store.update(test_user.id, {"is_admin": True})

        with pytest.raises(ValueError):
            await store.update(test_user.id, {"username": "x"}, expected={"bogus": 1})

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, store, test_user):
        with pytest.raises(ValueError):
            await store.update(test_user.id, {})

    @pytest.mark.asyncio
    async def test_datetimes_come_back_as_utc(self, store, test_user):
        expires_at = datetime(2026, 3, 1, 9, 30, tzinfo=timezone(timedelta(hours=2)))

        updated = await store.update(test_user.id, {"reset_password_expires_at": expires_at})

        assert updated.reset_password_expires_at == expires_at
        assert updated.reset_password_expires_at.utcoffset() == timedelta(0)
        assert updated.created_at.tzinfo is not None
