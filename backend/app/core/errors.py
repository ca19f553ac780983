"""Business outcomes surfaced to callers.

Each error carries the HTTP status and a stable machine-readable code. The
API layer renders them as ``{"detail": ..., "code": ...}``; anything that is
not a ``WishlistError`` is an internal failure.
"""

from fastapi import status


class WishlistError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidInput(WishlistError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_input"
    default_detail = "Invalid input"


class NotYetAvailable(WishlistError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "not_yet_available"
    default_detail = "Not available yet"


class Unauthorized(WishlistError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    default_detail = "Not authenticated"


class Forbidden(WishlistError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "Access denied"


class NotFound(WishlistError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"


class Conflict(WishlistError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_detail = "This item has already been claimed"


class Expired(WishlistError):
    status_code = status.HTTP_410_GONE
    code = "expired"
    default_detail = "This wishlist has expired"
