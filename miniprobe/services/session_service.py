"""Session registry service."""
import logging
import time
from typing import List, Optional
from sqlalchemy import case, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from miniprobe.database import atomic, storage_errors
from miniprobe.exceptions import InvalidInputError, NotFoundError
from miniprobe.models.client import Client
from miniprobe.models.session import Session
from miniprobe.schemas.sample import HostMetadata


logger = logging.getLogger(__name__)


class SessionService:
    """Service for opening, touching and removing probe sessions."""

    def __init__(self, session: AsyncSession):
        """
        Initialize session service.

        Args:
            session: Database session
        """
        self.session = session

    async def open_session(
        self,
        client_id: int,
        host: HostMetadata,
        now: Optional[int] = None
    ) -> Session:
        """
        Open a new session for a client.

        Args:
            client_id: Owning client ID
            host: Static host metadata; cpu_arch is required
            now: Current epoch seconds (defaults to the server clock)

        Returns:
            Created Session with last_active set to now

        Raises:
            InvalidInputError: If cpu_arch is missing
            NotFoundError: If the client does not exist
        """
        if not host.cpu_arch or not host.cpu_arch.strip():
            raise InvalidInputError("cpu_arch is required")

        if now is None:
            now = int(time.time())

        async with atomic(self.session):
            result = await self.session.execute(
                select(Client.id).where(Client.id == client_id)
            )
            if result.scalar_one_or_none() is None:
                raise NotFoundError("Client", client_id)

            probe_session = Session(
                client_id=client_id,
                last_active=now,
                system_name=host.system_name,
                kernel_version=host.kernel_version,
                os_version=host.os_version,
                host_name=host.host_name,
                cpu_arch=host.cpu_arch,
            )
            self.session.add(probe_session)
            await self.session.flush()

        logger.debug("Opened session %d for client %d", probe_session.id, client_id)
        return probe_session

    async def advance_watermark(self, session_id: int, timestamp: int) -> bool:
        """
        Move last_active forward to timestamp without committing.

        The update never moves the watermark backwards.

        Returns:
            True if the session exists, False otherwise
        """
        result = await self.session.execute(
            update(Session)
            .where(Session.id == session_id)
            .values(
                last_active=case(
                    (Session.last_active < timestamp, timestamp),
                    else_=Session.last_active,
                )
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def touch(self, session_id: int, timestamp: int) -> None:
        """
        Advance a session's last_active watermark.

        Raises:
            NotFoundError: If the session does not exist
        """
        async with atomic(self.session):
            if not await self.advance_watermark(session_id, timestamp):
                raise NotFoundError("Session", session_id)

    async def get_session(self, session_id: int) -> Optional[Session]:
        """Get a session by ID."""
        async with storage_errors(self.session):
            result = await self.session.execute(
                select(Session)
                .where(Session.id == session_id)
                .execution_options(populate_existing=True)
            )
        return result.scalar_one_or_none()

    async def list_sessions(self, client_id: Optional[int] = None) -> List[Session]:
        """List sessions, optionally only those of one client."""
        query = select(Session).order_by(Session.id).execution_options(populate_existing=True)
        if client_id is not None:
            query = query.where(Session.client_id == client_id)

        async with storage_errors(self.session):
            result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete_session(self, session_id: int) -> None:
        """
        Delete a session and, by cascade, all of its samples.

        Raises:
            NotFoundError: If the session does not exist
        """
        async with atomic(self.session):
            result = await self.session.execute(
                delete(Session).where(Session.id == session_id)
            )
            if result.rowcount == 0:
                raise NotFoundError("Session", session_id)

        logger.info("Deleted session %d", session_id)

    async def reap_stale_sessions(
        self,
        max_idle_seconds: int,
        now: Optional[int] = None
    ) -> int:
        """
        Delete sessions idle for longer than max_idle_seconds.

        Returns:
            Number of sessions deleted
        """
        if now is None:
            now = int(time.time())
        cutoff = now - max_idle_seconds

        async with atomic(self.session):
            result = await self.session.execute(
                delete(Session).where(Session.last_active < cutoff)
            )

        if result.rowcount > 0:
            logger.info("Reaped %d stale sessions (idle before %d)", result.rowcount, cutoff)
        return result.rowcount
