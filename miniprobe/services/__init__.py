"""Service layer."""
from miniprobe.services.identity_service import IdentityService
from miniprobe.services.session_service import SessionService
from miniprobe.services.sample_service import SampleService
from miniprobe.services.liveness_service import LivenessService

__all__ = [
    "IdentityService",
    "SessionService",
    "SampleService",
    "LivenessService",
]
