"""Session sample models.

A sample is one SessionData row plus its children, written in a single
transaction and never modified afterwards. Deleting a session cascades to
its samples, and deleting a sample cascades to its children.
"""
from sqlalchemy import Column, Integer, BigInteger, Float, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from miniprobe.database import Base


class SessionData(Base):
    """One timestamped snapshot of a session's resource usage."""

    __tablename__ = "session_data"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(
        Integer,
        ForeignKey('sessions.id', ondelete='CASCADE', onupdate='CASCADE'),
        nullable=False,
    )
    sample_time = Column(BigInteger, nullable=False)  # Epoch seconds reported by the probe

    # Relationships
    session = relationship("Session", back_populates="samples")
    cpu = relationship(
        "SessionDataCpu",
        back_populates="sample",
        passive_deletes=True,
        order_by="SessionDataCpu.cpu_id",
    )
    memory = relationship(
        "SessionDataMemory",
        back_populates="sample",
        passive_deletes=True,
        uselist=False,
    )
    network = relationship(
        "SessionDataNetwork",
        back_populates="sample",
        passive_deletes=True,
        order_by="SessionDataNetwork.ifname",
    )

    __table_args__ = (
        Index('idx_session_data_session_id', 'session_id'),
    )

    def __repr__(self):
        return f"<SessionData(id={self.id}, session_id={self.session_id}, sample_time={self.sample_time})>"


class SessionDataCpu(Base):
    """Usage of one core within a sample."""

    __tablename__ = "session_data_cpu"

    id = Column(Integer, primary_key=True, index=True)
    session_data_id = Column(
        Integer,
        ForeignKey('session_data.id', ondelete='CASCADE', onupdate='CASCADE'),
        nullable=False,
    )
    cpu_id = Column(Integer, nullable=False)  # Core index
    cpu_usage = Column(Float, nullable=False)  # Fraction, stored as reported

    sample = relationship("SessionData", back_populates="cpu")

    __table_args__ = (
        Index('idx_session_data_cpu_session_data_id', 'session_data_id'),
    )

    def __repr__(self):
        return f"<SessionDataCpu(session_data_id={self.session_data_id}, cpu_id={self.cpu_id}, cpu_usage={self.cpu_usage})>"


class SessionDataMemory(Base):
    """Memory reading of a sample (at most one per sample)."""

    __tablename__ = "session_data_memory"

    session_data_id = Column(
        Integer,
        ForeignKey('session_data.id', ondelete='CASCADE', onupdate='CASCADE'),
        primary_key=True,
    )
    total = Column(BigInteger, nullable=False)
    used = Column(BigInteger, nullable=False)
    swap_total = Column(BigInteger, nullable=False)
    swap_used = Column(BigInteger, nullable=False)

    sample = relationship("SessionData", back_populates="memory")

    def __repr__(self):
        return f"<SessionDataMemory(session_data_id={self.session_data_id}, used={self.used}/{self.total})>"


class SessionDataNetwork(Base):
    """Counters of one network interface within a sample."""

    __tablename__ = "session_data_network"

    session_data_id = Column(
        Integer,
        ForeignKey('session_data.id', ondelete='CASCADE', onupdate='CASCADE'),
        primary_key=True,
    )
    ifname = Column(Text, primary_key=True, nullable=False)
    rx_bytes = Column(BigInteger, nullable=True)  # Interfaces may report partial stats
    tx_bytes = Column(BigInteger, nullable=True)

    sample = relationship("SessionData", back_populates="network")

    def __repr__(self):
        return f"<SessionDataNetwork(session_data_id={self.session_data_id}, ifname={self.ifname})>"
