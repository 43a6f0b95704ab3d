"""Session API routes.

Probes present their client token and host metadata to open a session.
Samples are not accepted over HTTP.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from miniprobe.config import Settings, get_settings
from miniprobe.database import get_db
from miniprobe.api.exceptions import bad_request, unauthorized, service_unavailable
from miniprobe.exceptions import (
    InvalidInputError,
    NotFoundError,
    StorageUnavailableError,
    UnauthorizedError,
)
from miniprobe.schemas.session import SessionCreateRequest, SessionCreateResponse
from miniprobe.services.identity_service import IdentityService
from miniprobe.services.session_service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/sessions", tags=["Sessions"])


@router.post("", response_model=SessionCreateResponse, status_code=201)
async def create_session(
    data: SessionCreateRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Open a session for the client owning the presented token."""
    identity = IdentityService(db, token_length=settings.CLIENT_TOKEN_LENGTH)
    sessions = SessionService(db)

    try:
        client_id = await identity.resolve(data.token)
        probe_session = await sessions.open_session(client_id, data.system_info)
    except (UnauthorizedError, NotFoundError):
        # NotFound here means the client was removed after its token resolved
        raise unauthorized()
    except InvalidInputError as e:
        raise bad_request(str(e))
    except StorageUnavailableError:
        logger.warning("Session creation failed: storage unavailable")
        raise service_unavailable()

    logger.info("Session %d opened for client %d", probe_session.id, client_id)

    return SessionCreateResponse(
        session_id=probe_session.id,
        scrape_interval=settings.SCRAPE_INTERVAL_SECONDS,
    )
