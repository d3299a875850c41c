from typing import Optional


class WebDavError(Exception):
    """Base failure of a WebDAV operation.

    ``status`` is 0 for local and transport failures, otherwise the HTTP
    status the upstream answered with.
    """

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.message = message
        self.status = status


class WebDavConfigurationError(WebDavError):
    """The client has no endpoint to talk to."""


class WebDavNetworkError(WebDavError):
    """The upstream could not be reached at all."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, status=0)
        self.url = url


class WebDavRequestError(WebDavError):
    """The upstream answered with a non-2xx status."""

    def __init__(self, message: str, status: int, body: str = ""):
        super().__init__(message, status=status)
        self.body = body
