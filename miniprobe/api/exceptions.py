"""Standard HTTP exceptions for common cases."""
from fastapi import HTTPException, status


def bad_request(message: str) -> HTTPException:
    """
    Return 400 Bad Request exception.

    Examples:
        raise bad_request("cpu_arch is required")
    """
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=message
    )


def unauthorized(message: str = "Invalid client token") -> HTTPException:
    """
    Return 401 Unauthorized exception.

    Examples:
        raise unauthorized()  # Uses default message
    """
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message
    )


def service_unavailable(message: str = "Storage temporarily unavailable") -> HTTPException:
    """Return 503 Service Unavailable exception. The client may retry."""
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=message
    )
