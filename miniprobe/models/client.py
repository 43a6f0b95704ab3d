"""Probe client model."""
from sqlalchemy import Column, Integer, BigInteger, String, TIMESTAMP, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from miniprobe.database import Base


class Client(Base):
    """A registered probe, identified by the hash of its secret token."""

    __tablename__ = "clients"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False)

    # Token lookup: token_idx narrows the candidates, token_hash is verified
    token_idx = Column(BigInteger, nullable=False)
    token_hash = Column(String(255), unique=True, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    # Sessions keep existing after the client is removed (client_id -> NULL)
    sessions = relationship("Session", back_populates="client", passive_deletes=True)

    __table_args__ = (
        Index('idx_clients_token_idx', 'token_idx'),
    )

    def __repr__(self):
        return f"<Client(id={self.id}, name={self.name})>"
