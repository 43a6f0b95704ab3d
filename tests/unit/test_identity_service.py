"""
Unit tests for IdentityService.

Tests client registration, token resolution, token hash uniqueness,
renaming and removal of clients.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from miniprobe.exceptions import ConflictError, NotFoundError, UnauthorizedError
from miniprobe.models import Client, Session
from miniprobe.services.identity_service import IdentityService
from miniprobe.utils.security import hash_token, index_client_token


@pytest.mark.unit
@pytest.mark.asyncio
class TestIdentityServiceRegistration:
    """Test client registration operations."""

    async def test_create_client_returns_token(self, db_session: AsyncSession):
        """Test creating a client returns the plain token once."""
        service = IdentityService(db_session)

        client, token = await service.create_client("probe-a")

        assert client.id is not None
        assert client.name == "probe-a"
        assert len(token) == 16
        assert token.isalnum()

    async def test_create_client_does_not_store_plain_token(self, db_session: AsyncSession):
        """Test the stored hash is not the plain token."""
        service = IdentityService(db_session)

        client, token = await service.create_client("probe-a")

        assert client.token_hash != token
        assert token not in client.token_hash
        assert client.token_idx == index_client_token(token)

    async def test_create_multiple_clients(self, db_session: AsyncSession):
        """Test creating multiple clients generates unique tokens."""
        service = IdentityService(db_session)

        _, token1 = await service.create_client("probe-a")
        _, token2 = await service.create_client("probe-b")

        assert token1 != token2

    async def test_register_duplicate_token_hash_conflicts(self, db_session: AsyncSession):
        """Test registering an existing token hash raises ConflictError."""
        service = IdentityService(db_session)
        token = "AbCdEfGh12345678"
        token_hash = hash_token(token)

        await service.register_client("first", token_hash, index_client_token(token))

        with pytest.raises(ConflictError):
            await service.register_client("second", token_hash, index_client_token(token))

        result = await db_session.execute(select(Client.name))
        assert result.scalars().all() == ["first"]

    async def test_session_usable_after_conflict(self, db_session: AsyncSession):
        """Test the service keeps working after a rolled back conflict."""
        service = IdentityService(db_session)
        token_hash = hash_token("AbCdEfGh12345678")

        await service.register_client("first", token_hash, 1)
        with pytest.raises(ConflictError):
            await service.register_client("second", token_hash, 1)

        client, _ = await service.create_client("third")
        assert client.id is not None


@pytest.mark.unit
@pytest.mark.asyncio
class TestIdentityServiceResolve:
    """Test token resolution."""

    async def test_resolve_valid_token(self, db_session: AsyncSession, probe_client):
        """Test a freshly issued token resolves to its client."""
        client, token = probe_client
        service = IdentityService(db_session)

        client_id = await service.resolve(token)

        assert client_id == client.id

    async def test_resolve_picks_matching_client(self, db_session: AsyncSession):
        """Test resolution among clients sharing the same token index."""
        service = IdentityService(db_session)
        token_a = "abcdAAAAAAAAAAAA"
        token_b = "abcdBBBBBBBBBBBB"
        assert index_client_token(token_a) == index_client_token(token_b)

        client_a = await service.register_client("a", hash_token(token_a), index_client_token(token_a))
        client_b = await service.register_client("b", hash_token(token_b), index_client_token(token_b))

        assert await service.resolve(token_a) == client_a.id
        assert await service.resolve(token_b) == client_b.id

    async def test_resolve_wrong_token(self, db_session: AsyncSession, probe_client):
        """Test an unknown token of the right length is rejected."""
        service = IdentityService(db_session)

        with pytest.raises(UnauthorizedError):
            await service.resolve("X" * 16)

    async def test_resolve_same_prefix_wrong_token(self, db_session: AsyncSession, probe_client):
        """Test a token with a matching index but wrong secret is rejected."""
        _, token = probe_client
        service = IdentityService(db_session)
        forged = token[:4] + ("0" * 12 if token[4:] != "0" * 12 else "1" * 12)

        with pytest.raises(UnauthorizedError):
            await service.resolve(forged)

    async def test_resolve_wrong_length(self, db_session: AsyncSession, probe_client):
        """Test tokens of the wrong length are rejected before lookup."""
        _, token = probe_client
        service = IdentityService(db_session)

        with pytest.raises(UnauthorizedError):
            await service.resolve(token[:-1])

        with pytest.raises(UnauthorizedError):
            await service.resolve(token + "x")

    async def test_resolve_custom_token_length(self, db_session: AsyncSession):
        """Test the accepted token length is configurable."""
        service = IdentityService(db_session, token_length=24)

        client, token = await service.create_client("long")

        assert len(token) == 24
        assert await service.resolve(token) == client.id


@pytest.mark.unit
@pytest.mark.asyncio
class TestIdentityServiceManagement:
    """Test listing, renaming and removing clients."""

    async def test_list_clients(self, db_session: AsyncSession):
        """Test clients are listed in ID order."""
        service = IdentityService(db_session)
        await service.create_client("a")
        await service.create_client("b")

        clients = await service.list_clients()

        assert [c.name for c in clients] == ["a", "b"]

    async def test_rename_client(self, db_session: AsyncSession, probe_client):
        """Test renaming a client."""
        client, _ = probe_client
        service = IdentityService(db_session)

        await service.rename_client(client.id, "renamed")

        result = await db_session.execute(select(Client.name).where(Client.id == client.id))
        assert result.scalar_one() == "renamed"

    async def test_rename_unknown_client(self, db_session: AsyncSession):
        """Test renaming a missing client raises NotFoundError."""
        service = IdentityService(db_session)

        with pytest.raises(NotFoundError):
            await service.rename_client(9999, "nobody")

    async def test_delete_client_keeps_sessions(
        self, db_session: AsyncSession, probe_client, open_session: Session
    ):
        """Test deleting a client nulls client_id instead of deleting sessions."""
        client, _ = probe_client
        service = IdentityService(db_session)

        await service.delete_client(client.id)

        result = await db_session.execute(
            select(Session.id, Session.client_id).where(Session.id == open_session.id)
        )
        row = result.one()
        assert row.id == open_session.id
        assert row.client_id is None
        assert await service.get_client(client.id) is None

    async def test_deleted_client_token_no_longer_resolves(
        self, db_session: AsyncSession, probe_client
    ):
        """Test a removed client's token is rejected."""
        client, token = probe_client
        service = IdentityService(db_session)

        await service.delete_client(client.id)

        with pytest.raises(UnauthorizedError):
            await service.resolve(token)

    async def test_delete_unknown_client(self, db_session: AsyncSession):
        """Test deleting a missing client raises NotFoundError."""
        service = IdentityService(db_session)

        with pytest.raises(NotFoundError):
            await service.delete_client(9999)
