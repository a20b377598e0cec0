import logging
import os
from logging import NullHandler
from pathlib import Path

logging.getLogger(__name__).addHandler(NullHandler())

try:
    from ._version import __version__
except ImportError:
    __version__ = "0.0.0"

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_MAX_BODY_SIZE = 100 * 1024 * 1024

DEFAULT_CONFIG_FILE_PATHS = (
    Path("httx.config.json"),
    Path(".httx.json"),
    Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "httx" / "config.json",
)

from httx.client import HttxClient, check_status  # noqa: E402
from httx.config import HttxConfig, resolve_config  # noqa: E402
from httx.errors import (  # noqa: E402
    FileAccessError,
    HttxError,
    InvalidArgumentError,
    InvalidBodyTypeError,
    InvalidUrlError,
    MissingUrlError,
    NetworkError,
    RequestCancelledError,
    RequestTimeoutError,
    ResponseError,
    ResponseTooLargeError,
)
from httx.models import CancelToken, ContentMode, RequestDescriptor, RequestOptions, ResponseEnvelope  # noqa: E402
from httx.result import Err, Ok, Outcome  # noqa: E402
from httx.retry import RetryPolicy  # noqa: E402

__all__ = [
    "CancelToken",
    "ContentMode",
    "Err",
    "FileAccessError",
    "HttxClient",
    "HttxConfig",
    "HttxError",
    "InvalidArgumentError",
    "InvalidBodyTypeError",
    "InvalidUrlError",
    "MissingUrlError",
    "NetworkError",
    "Ok",
    "Outcome",
    "RequestCancelledError",
    "RequestDescriptor",
    "RequestOptions",
    "RequestTimeoutError",
    "ResponseEnvelope",
    "ResponseError",
    "ResponseTooLargeError",
    "RetryPolicy",
    "check_status",
    "resolve_config",
]
