"""Session Pydantic schemas."""
from pydantic import BaseModel, Field

from miniprobe.schemas.sample import HostMetadata


class SessionCreateRequest(BaseModel):
    """Request to open a session with a client token."""
    token: str = Field(..., min_length=1)
    system_info: HostMetadata


class SessionCreateResponse(BaseModel):
    """Identifier of the new session and the interval the probe should sample at."""
    session_id: int
    scrape_interval: int
