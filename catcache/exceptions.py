"""
Error types for the catcache proxy.

Each error knows the HTTP status and plain-text body it is answered with,
so the request handler can translate any of them into a response directly.
"""

from typing import Optional


class CatCacheError(Exception):
    """Base error for the proxy."""
    status_code: int = 500
    body: str = "Internal Server Error"

    def __init__(self, message: str, body: Optional[str] = None):
        super().__init__(message)
        if body is not None:
            self.body = body


class ClientInputError(CatCacheError):
    """Request cannot be served as given (empty or unsafe key)."""
    status_code = 400
    body = "Bad Request"


class NotFoundError(CatCacheError):
    """No cache entry for the key."""
    status_code = 404
    body = "Not Found"


class FetchError(NotFoundError):
    """Upstream did not produce an image, for whatever reason."""
    pass


class WriteError(CatCacheError):
    """Cache entry could not be written."""
    status_code = 500
    body = "Internal Server Error"


class UnsupportedMethodError(CatCacheError):
    """HTTP method other than GET, PUT or DELETE."""
    status_code = 405
    body = "Method Not Allowed"


class InternalError(CatCacheError):
    """Anything else that went wrong while handling a request."""
    status_code = 500
    body = "Internal Server Error"
