"""SQLAlchemy models."""
from miniprobe.models.client import Client
from miniprobe.models.session import Session
from miniprobe.models.session_data import (
    SessionData,
    SessionDataCpu,
    SessionDataMemory,
    SessionDataNetwork,
)

__all__ = [
    "Client",
    "Session",
    "SessionData",
    "SessionDataCpu",
    "SessionDataMemory",
    "SessionDataNetwork",
]
