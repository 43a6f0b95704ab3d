"""Sample and host metadata Pydantic schemas."""
from typing import Optional

from pydantic import BaseModel, Field


# ── Host metadata ───────────────────────────────────────────

class HostMetadata(BaseModel):
    """Static host information recorded when a session opens."""
    system_name: Optional[str] = None
    kernel_version: Optional[str] = None
    os_version: Optional[str] = None
    host_name: Optional[str] = None
    # Required by the store; checked by SessionService so the error is InvalidInputError
    cpu_arch: Optional[str] = None


# ── Readings ────────────────────────────────────────────────

class CpuReading(BaseModel):
    core: int
    usage: float  # Fraction in [0, 1]; out-of-range values are stored as-is


class MemoryReading(BaseModel):
    total: int
    used: int
    swap_total: int = 0
    swap_used: int = 0


class NetworkReading(BaseModel):
    ifname: str
    rx_bytes: Optional[int] = None
    tx_bytes: Optional[int] = None


class SampleCreate(BaseModel):
    """One sampling tick as produced by a probe."""
    sample_time: int
    cpu: list[CpuReading] = Field(default_factory=list)
    memory: Optional[MemoryReading] = None
    network: list[NetworkReading] = Field(default_factory=list)
