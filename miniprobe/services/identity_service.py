"""Identity service for probe client credentials."""
import logging
from typing import List, Optional, Tuple
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from miniprobe.database import atomic, storage_errors
from miniprobe.exceptions import (
    ConflictError,
    ConstraintViolationError,
    NotFoundError,
    UnauthorizedError,
)
from miniprobe.models.client import Client
from miniprobe.utils.security import (
    generate_client_token,
    hash_token,
    index_client_token,
    verify_token,
)


logger = logging.getLogger(__name__)


class IdentityService:
    """Service for registering clients and resolving their tokens."""

    def __init__(self, session: AsyncSession, token_length: int = 16):
        """
        Initialize identity service.

        Args:
            session: Database session
            token_length: Exact length of a valid client token (default 16)
        """
        self.session = session
        self.token_length = token_length

    async def resolve(self, token: str) -> int:
        """
        Resolve a presented client token to a client ID.

        Args:
            token: Plain text token presented by the probe

        Returns:
            ID of the matching client

        Raises:
            UnauthorizedError: If the token matches no registered client
            StorageUnavailableError: On transient engine failures
        """
        if len(token) != self.token_length:
            raise UnauthorizedError("Invalid client token")

        async with storage_errors(self.session):
            result = await self.session.execute(
                select(Client.id, Client.token_hash).where(
                    Client.token_idx == index_client_token(token)
                )
            )

        for client_id, token_hash in result.all():
            if verify_token(token, token_hash):
                return client_id

        raise UnauthorizedError("Invalid client token")

    async def register_client(
        self,
        name: str,
        token_hash: str,
        token_idx: int
    ) -> Client:
        """
        Insert a client record for an already hashed token.

        Args:
            name: Display name
            token_hash: Hash of the client's token
            token_idx: Lookup index of the client's token

        Returns:
            Created Client

        Raises:
            ConflictError: If the token hash is already registered
        """
        client = Client(name=name, token_hash=token_hash, token_idx=token_idx)

        try:
            async with atomic(self.session):
                self.session.add(client)
                await self.session.flush()
        except ConstraintViolationError as e:
            raise ConflictError("Client token hash already registered") from e

        logger.info("Registered client %d (%s)", client.id, name)
        return client

    async def create_client(self, name: str) -> Tuple[Client, str]:
        """
        Create a client with a freshly generated token.

        The plain token is returned once and is not stored.

        Args:
            name: Display name

        Returns:
            Tuple of (client, token)
        """
        token = generate_client_token(self.token_length)
        client = await self.register_client(
            name=name,
            token_hash=hash_token(token),
            token_idx=index_client_token(token),
        )
        return client, token

    async def get_client(self, client_id: int) -> Optional[Client]:
        """Get a client by ID."""
        async with storage_errors(self.session):
            result = await self.session.execute(
                select(Client).where(Client.id == client_id)
            )
        return result.scalar_one_or_none()

    async def list_clients(self) -> List[Client]:
        """List all clients ordered by ID."""
        async with storage_errors(self.session):
            result = await self.session.execute(select(Client).order_by(Client.id))
        return list(result.scalars().all())

    async def rename_client(self, client_id: int, name: str) -> Client:
        """
        Rename a client.

        Raises:
            NotFoundError: If the client does not exist
        """
        async with atomic(self.session):
            client = await self.get_client(client_id)
            if not client:
                raise NotFoundError("Client", client_id)
            client.name = name

        return client

    async def delete_client(self, client_id: int) -> None:
        """
        Delete a client.

        Sessions of the client are kept; the database sets their client_id
        to NULL.

        Raises:
            NotFoundError: If the client does not exist
        """
        async with atomic(self.session):
            result = await self.session.execute(
                delete(Client).where(Client.id == client_id)
            )
            if result.rowcount == 0:
                raise NotFoundError("Client", client_id)

        logger.info("Deleted client %d", client_id)
