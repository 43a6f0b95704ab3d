"""Liveness view over probe sessions."""
import time
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from miniprobe.config import DEFAULT_LIVENESS_WINDOW_SECONDS
from miniprobe.database import storage_errors
from miniprobe.models.session import Session


class LivenessService:
    """Derives the set of active sessions from their last_active watermark."""

    def __init__(self, session: AsyncSession, window_seconds: int = DEFAULT_LIVENESS_WINDOW_SECONDS):
        """
        Initialize liveness service.

        Args:
            session: Database session
            window_seconds: Trailing window a session must fall in to count as active
        """
        self.session = session
        self.window_seconds = window_seconds

    async def list_active_sessions(self, now: Optional[int] = None) -> List[Session]:
        """
        List sessions active within the trailing window ending at now.

        Returns:
            Sessions with last_active >= now - window, most recently active first

        Raises:
            StorageUnavailableError: On transient engine failures
        """
        if now is None:
            now = int(time.time())

        async with storage_errors(self.session):
            result = await self.session.execute(
                select(Session)
                .where(Session.last_active >= now - self.window_seconds)
                .order_by(Session.last_active.desc(), Session.id)
                .execution_options(populate_existing=True)
            )
        return list(result.scalars().all())
