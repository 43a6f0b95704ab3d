"""Sample writer service."""
import logging
import time
from typing import Iterable, Optional
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from miniprobe.database import atomic, storage_errors
from miniprobe.exceptions import NotFoundError
from miniprobe.models.session_data import (
    SessionData,
    SessionDataCpu,
    SessionDataMemory,
    SessionDataNetwork,
)
from miniprobe.schemas.sample import CpuReading, MemoryReading, NetworkReading
from miniprobe.services.session_service import SessionService


logger = logging.getLogger(__name__)


class SampleService:
    """Service for appending resource samples to sessions."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.sessions = SessionService(session)

    async def write_sample(
        self,
        session_id: int,
        sample_time: int,
        cpu: Iterable[CpuReading] = (),
        memory: Optional[MemoryReading] = None,
        network: Iterable[NetworkReading] = (),
        now: Optional[int] = None
    ) -> int:
        """
        Store one sample and advance the session's liveness watermark.

        The parent row, every child row and the watermark update are written
        in one transaction: either all of them are committed or none are.
        The watermark moves to the server clock (now), not to sample_time.

        Args:
            session_id: Session the sample belongs to
            sample_time: Epoch seconds reported by the probe
            cpu: One reading per core
            memory: Optional memory reading
            network: One reading per interface
            now: Current epoch seconds (defaults to the server clock)

        Returns:
            ID of the new SessionData row

        Raises:
            NotFoundError: If the session no longer exists
            ConstraintViolationError: If a row violates a constraint
            StorageUnavailableError: On transient engine failures
        """
        if now is None:
            now = int(time.time())

        async with atomic(self.session):
            # Also takes the session row's write lock before the inserts
            if not await self.sessions.advance_watermark(session_id, now):
                raise NotFoundError("Session", session_id)

            result = await self.session.execute(
                insert(SessionData)
                .values(session_id=session_id, sample_time=sample_time)
                .returning(SessionData.id)
            )
            session_data_id = result.scalar_one()

            cpu_rows = [
                {"session_data_id": session_data_id, "cpu_id": reading.core, "cpu_usage": reading.usage}
                for reading in cpu
            ]
            if cpu_rows:
                await self.session.execute(insert(SessionDataCpu), cpu_rows)

            if memory is not None:
                await self.session.execute(
                    insert(SessionDataMemory).values(
                        session_data_id=session_data_id,
                        total=memory.total,
                        used=memory.used,
                        swap_total=memory.swap_total,
                        swap_used=memory.swap_used,
                    )
                )

            network_rows = [
                {
                    "session_data_id": session_data_id,
                    "ifname": reading.ifname,
                    "rx_bytes": reading.rx_bytes,
                    "tx_bytes": reading.tx_bytes,
                }
                for reading in network
            ]
            if network_rows:
                await self.session.execute(insert(SessionDataNetwork), network_rows)

        logger.debug(
            "Stored sample %d for session %d (%d cpu, %d network rows)",
            session_data_id, session_id, len(cpu_rows), len(network_rows)
        )
        return session_data_id

    async def get_sample(self, session_data_id: int) -> SessionData:
        """
        Get a stored sample with its CPU, memory and network rows.

        Raises:
            NotFoundError: If the sample does not exist
            StorageUnavailableError: On transient engine failures
        """
        async with storage_errors(self.session):
            result = await self.session.execute(
                select(SessionData)
                .options(
                    selectinload(SessionData.cpu),
                    selectinload(SessionData.memory),
                    selectinload(SessionData.network),
                )
                .where(SessionData.id == session_data_id)
                .execution_options(populate_existing=True)
            )
            sample = result.scalar_one_or_none()

        if not sample:
            raise NotFoundError("Sample", session_data_id)

        return sample
