"""Error taxonomy for request building and execution.

Every error is an ``HttxError``. Build-time helpers raise them; the executor catches
them and returns them inside ``Err`` so that callers never see an exception for an
expected failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from httx.models import Timings

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NETWORK_ERROR = 2
EXIT_TIMEOUT = 3
EXIT_INVALID_ARGUMENTS = 4


class HttxError(Exception):
    """Base class for all errors surfaced by httx."""

    exit_code = EXIT_ERROR


class InvalidArgumentError(HttxError):
    """A malformed CLI token or a missing required positional."""

    exit_code = EXIT_INVALID_ARGUMENTS


class InvalidUrlError(InvalidArgumentError):
    def __init__(self, url: str, reason: Optional[str] = None):
        self.url = url
        self.reason = reason
        message = f"Invalid URL: {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class MissingUrlError(InvalidArgumentError):
    def __init__(self, message: str = "No URL given"):
        super().__init__(message)


class FileAccessError(HttxError):
    """An upload file could not be opened. Raised before any network I/O."""

    def __init__(self, path: str, key: str, cause: Optional[BaseException] = None):
        self.path = path
        self.key = key
        self.cause = cause
        detail = f": {cause.strerror if isinstance(cause, OSError) and cause.strerror else cause}" if cause else ""
        super().__init__(f"Cannot read file '{path}' for field '{key}'{detail}")


class InvalidBodyTypeError(HttxError):
    pass


class RequestError(HttxError):
    """Base class for failures of a request that reached the send stage."""

    def __init__(self, message: str, *, method: str, url: str, timings: Optional[Timings] = None):
        self.method = method
        self.url = url
        self.timings = timings
        super().__init__(message)


class RequestTimeoutError(RequestError):
    exit_code = EXIT_TIMEOUT

    def __init__(self, *, timeout: int, method: str, url: str, timings: Optional[Timings] = None):
        self.timeout = timeout
        super().__init__(
            f"Request timed out after {timeout}ms: {method} {url}", method=method, url=url, timings=timings
        )


class RequestCancelledError(RequestError):
    def __init__(self, *, method: str, url: str, timings: Optional[Timings] = None):
        super().__init__(f"Request cancelled: {method} {url}", method=method, url=url, timings=timings)


class NetworkError(RequestError):
    exit_code = EXIT_NETWORK_ERROR

    def __init__(self, cause: BaseException, *, method: str, url: str, timings: Optional[Timings] = None):
        self.cause = cause
        reason = str(cause) or type(cause).__name__
        super().__init__(f"Network error for {method} {url}: {reason}", method=method, url=url, timings=timings)


class ResponseTooLargeError(RequestError):
    def __init__(self, *, limit: int, method: str, url: str, timings: Optional[Timings] = None):
        self.limit = limit
        super().__init__(
            f"Response body exceeds the limit of {limit} bytes: {method} {url}",
            method=method,
            url=url,
            timings=timings,
        )


class ResponseError(RequestError):
    """A response with a non-2xx status, produced by ``check_status``."""

    def __init__(
        self,
        *,
        status: int,
        status_text: str,
        method: str,
        url: str,
        data: Any = None,
        timings: Optional[Timings] = None,
    ):
        self.status = status
        self.status_text = status_text
        self.data = data
        super().__init__(
            f"Got HttpError with status={status} {status_text} in call to {method} {url}",
            method=method,
            url=url,
            timings=timings,
        )
