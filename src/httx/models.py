"""Data model for requests, bodies and responses."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncIterable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

if TYPE_CHECKING:
    import httpx

    from httx.retry import RetryPolicy


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: str) -> Optional[HttpMethod]:
        """Return the method matching ``value`` case-insensitively, or None."""
        try:
            return cls(value.upper())
        except ValueError:
            return None


class ContentMode(str, Enum):
    NONE = "none"
    JSON = "json"
    FORM = "form"
    MULTIPART = "multipart"


class FieldKind(str, Enum):
    TEXT = "text"
    FILE = "file"


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class PlainFields:
    """String-keyed fields, possibly nested from bracket expansion."""

    fields: Mapping[str, Any]


@dataclass(frozen=True)
class RawText:
    text: str


@dataclass(frozen=True)
class RawBinary:
    """Bytes, or a (sync or async) iterable of byte chunks sent as a stream."""

    data: Union[bytes, Iterable[bytes], AsyncIterable[bytes]]


@dataclass(frozen=True)
class MultipartField:
    key: str
    kind: FieldKind
    value: str
    content_type: Optional[str] = None


@dataclass(frozen=True)
class MultipartFields:
    fields: Tuple[MultipartField, ...]

    def keys(self) -> List[str]:
        return [f.key for f in self.fields]


Body = Union[Empty, PlainFields, RawText, RawBinary, MultipartFields]

QueryValues = Dict[str, List[str]]


@dataclass(frozen=True)
class RequestDescriptor:
    """An assembled request that has not been sent yet.

    Header values of ``None`` remove a header of the same name set by an
    earlier layer (defaults or content mode).
    """

    method: str = HttpMethod.GET.value
    url: str = ""
    headers: Dict[str, Optional[str]] = field(default_factory=dict)
    query: QueryValues = field(default_factory=dict)
    body: Body = field(default_factory=Empty)
    content_mode: ContentMode = ContentMode.NONE
    timeout: Optional[int] = None
    stream: bool = False


@dataclass
class RequestOptions:
    method: str = HttpMethod.GET.value
    headers: Dict[str, Optional[str]] = field(default_factory=dict)
    body: Any = None
    query: Union[Mapping[str, Union[str, List[str]]], None] = None
    timeout: Optional[int] = None
    content_mode: ContentMode = ContentMode.NONE
    stream: bool = False
    cancel: Optional[CancelToken] = None
    retry: Optional[RetryPolicy] = None


@dataclass(frozen=True)
class Timings:
    """Monotonic timestamps in milliseconds."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return max(0.0, self.end - self.start)


@dataclass(frozen=True)
class ResponseEnvelope:
    status: int
    status_text: str
    headers: httpx.Headers
    data: Any
    timings: Timings
    method: str = ""
    url: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


class CancelToken:
    """Cancellation handle for an in-flight request.

    Cancelling more than once, or after the request completed, has no effect.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
