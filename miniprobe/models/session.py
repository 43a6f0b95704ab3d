"""Probe session model and the liveness view."""
import time

from sqlalchemy import Column, Integer, BigInteger, Text, TIMESTAMP, ForeignKey, Index, DDL, event
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from miniprobe.config import DEFAULT_LIVENESS_WINDOW_SECONDS
from miniprobe.database import Base


# Baked into the view DDL when the tables are created; changing
# LIVENESS_WINDOW_SECONDS does not alter an existing view
NON_EXPIRED_WINDOW_SECONDS = DEFAULT_LIVENESS_WINDOW_SECONDS


def _epoch_now() -> int:
    return int(time.time())


class Session(Base):
    """A period during which one client reports samples."""

    __tablename__ = "sessions"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    # Client Reference (weak: nulled when the client is deleted)
    client_id = Column(
        Integer,
        ForeignKey('clients.id', ondelete='SET NULL', onupdate='CASCADE'),
        nullable=True,
    )

    # Session Info
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    last_active = Column(BigInteger, nullable=False, default=_epoch_now)  # Epoch seconds, monotonic

    # Host Info
    system_name = Column(Text, nullable=True)
    kernel_version = Column(Text, nullable=True)
    os_version = Column(Text, nullable=True)
    host_name = Column(Text, nullable=True)
    cpu_arch = Column(Text, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="sessions")
    samples = relationship("SessionData", back_populates="session", passive_deletes=True)

    # Indexes
    __table_args__ = (
        Index('idx_sessions_client_id', 'client_id'),
        Index('idx_sessions_last_active', 'last_active'),
    )

    def __repr__(self):
        return f"<Session(id={self.id}, client_id={self.client_id}, last_active={self.last_active})>"


# non_expired_sessions mirrors LivenessService using the database clock
event.listen(
    Session.__table__,
    "after_create",
    DDL(
        "CREATE VIEW IF NOT EXISTS non_expired_sessions AS "
        "SELECT * FROM sessions "
        "WHERE last_active >= CAST((julianday('now') - 2440587.5) * 86400 AS INTEGER) "
        f"- {NON_EXPIRED_WINDOW_SECONDS}"
    ).execute_if(dialect="sqlite"),
)
event.listen(
    Session.__table__,
    "after_create",
    DDL(
        "CREATE OR REPLACE VIEW non_expired_sessions AS "
        "SELECT * FROM sessions "
        "WHERE last_active >= CAST(EXTRACT(EPOCH FROM now()) AS BIGINT) "
        f"- {NON_EXPIRED_WINDOW_SECONDS}"
    ).execute_if(dialect="postgresql"),
)
event.listen(
    Session.__table__,
    "before_drop",
    DDL("DROP VIEW IF EXISTS non_expired_sessions"),
)
