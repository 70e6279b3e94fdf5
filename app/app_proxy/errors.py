from typing import Optional

from app.utils.exception_logging import format_exception_message


class ProxyError(Exception):
    """Base class for failures of the proxy pipeline.

    Each subclass carries the HTTP status and the plain-text body the caller
    receives.
    """

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingURLError(ProxyError):
    status_code = 400
    message = "URL is required"


class InvalidURLError(ProxyError):
    status_code = 400
    message = "Invalid URL"


class FetchFailureError(ProxyError):
    """Transport-level failure while fetching the upstream URL."""

    status_code = 500

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Error fetching url: {format_exception_message(cause)}")
