"""Request execution and the library client, on top of httpx."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator, Callable, Optional, Union

import httpx

from httx import DEFAULT_TIMEOUT_MS
from httx._user_agent import get_user_agent
from httx.body import EncodedBody, coerce_body, encode_body
from httx.config import HttxConfig, resolve_config
from httx.errors import (
    HttxError,
    InvalidArgumentError,
    InvalidBodyTypeError,
    NetworkError,
    RequestCancelledError,
    RequestTimeoutError,
    ResponseError,
    ResponseTooLargeError,
)
from httx.headers import merge_headers, mode_headers
from httx.models import (
    CancelToken,
    ContentMode,
    HttpMethod,
    MultipartFields,
    RequestDescriptor,
    RequestOptions,
    ResponseEnvelope,
    Timings,
)
from httx.result import Err, Ok, Outcome
from httx.retry import execute_with_retry
from httx.urls import query_pairs, resolve_url

logger = logging.getLogger(__name__)

DebugSink = Callable[[str, str], None]


def _now_ms() -> float:
    return time.perf_counter() * 1000


def _log_sink(category: str, message: str) -> None:
    logger.debug(f"[httx:{category}] {message}")


def _resolve_guard(guard: asyncio.Future) -> None:
    if not guard.done():
        guard.set_result(None)


def _null_sink(category: str, message: str) -> None:
    pass


def is_json_content_type(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def is_text_content_type(content_type: str) -> bool:
    return content_type.split(";", 1)[0].strip().lower().startswith("text/")


def parse_body(content: bytes, content_type: str, encoding: Optional[str] = None) -> Any:
    """Parse a buffered body: JSON to Python values, text to str, anything else stays bytes."""
    if is_json_content_type(content_type):
        if not content.strip():
            return None
        text = content.decode(encoding or "utf-8", errors="replace")
        try:
            return json.loads(text)
        except ValueError:
            logger.debug("Response declared JSON but could not be parsed, returning text")
            return text
    if is_text_content_type(content_type):
        return content.decode(encoding or "utf-8", errors="replace")
    return content


class ResponseStream:
    """Incremental reader over a streamed response body.

    Owns the response and its transport client; both are released on ``aclose()``,
    on leaving ``async with``, or once iteration is exhausted.
    """

    def __init__(self, response: httpx.Response, client: httpx.AsyncClient):
        self._response = response
        self._client = client
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        finally:
            await self.aclose()

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self])

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()

    async def __aenter__(self) -> ResponseStream:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


def check_status(outcome: Outcome) -> Outcome:
    """Turn an ``Ok`` envelope with a non-2xx status into ``Err(ResponseError)``."""
    if outcome.is_err() or outcome.value.is_success:
        return outcome
    envelope = outcome.value
    return Err(
        ResponseError(
            status=envelope.status,
            status_text=envelope.status_text,
            method=envelope.method,
            url=envelope.url,
            data=envelope.data,
            timings=envelope.timings,
        )
    )


def build_descriptor(url: str, options: Optional[RequestOptions] = None) -> RequestDescriptor:
    """Build a descriptor from library options.

    Raises:
        InvalidArgumentError: If the method is not a supported HTTP method
        InvalidBodyTypeError: If the body cannot be represented
    """
    options = options or RequestOptions()
    method = HttpMethod.parse(options.method)
    if method is None:
        raise InvalidArgumentError(f"Unsupported HTTP method: {options.method}")
    body = coerce_body(options.body)
    content_mode = options.content_mode
    if isinstance(body, MultipartFields):
        content_mode = ContentMode.MULTIPART

    query: dict = {}
    for key, value in query_pairs(options.query):
        query.setdefault(key, []).append(value)

    return RequestDescriptor(
        method=method.value,
        url=url,
        headers=dict(options.headers or {}),
        query=query,
        body=body,
        content_mode=content_mode,
        timeout=options.timeout,
        stream=options.stream,
    )


class HttxClient:
    """HTTP client returning ``Ok``/``Err`` outcomes instead of raising.

    The configuration is a read-only snapshot taken at construction, so one client
    can serve any number of concurrent requests.

    Example:
        client = HttxClient(HttxConfig(base_url="https://api.example.com"))
        outcome = await client.request("users", RequestOptions(query={"page": "2"}))
        if outcome.is_ok():
            print(outcome.value.data)
    """

    def __init__(
        self,
        config: Optional[HttxConfig] = None,
        *,
        debug_sink: Optional[DebugSink] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client_name: Optional[str] = None,
    ):
        """Initialize the client.

        Args:
            config: Resolved configuration. Defaults to builtin defaults.
            debug_sink: Callable receiving ``(category, message)`` diagnostics. Only used when
                the config is verbose; defaults to DEBUG logging.
            transport: httpx transport to send requests with, e.g. ``httpx.MockTransport`` in tests.
            client_name: Name added to the User-Agent header.
        """
        self.config = config or HttxConfig()
        self._transport = transport
        if not self.config.verbose:
            self._debug = _null_sink
        else:
            self._debug = debug_sink or _log_sink
        self._default_headers = {
            "User-Agent": get_user_agent(f"python-httpx/{httpx.__version__}", client_name),
            **self.config.default_headers,
        }

    @classmethod
    def from_config_file(cls, config_path: Union[str, None] = None, **overrides: Any) -> HttxClient:
        """Create a client from the config file, the environment and ``overrides``."""
        client_kwargs = {k: overrides.pop(k) for k in ("debug_sink", "transport", "client_name") if k in overrides}
        return cls(resolve_config(config_path, **overrides), **client_kwargs)

    @property
    def default_headers(self) -> dict:
        return dict(self._default_headers)

    def effective_timeout(self, descriptor: RequestDescriptor) -> Optional[int]:
        """Timeout in ms for ``descriptor``; None means no timeout (streaming with timeout 0 only)."""
        timeout = descriptor.timeout if descriptor.timeout is not None else self.config.timeout
        if timeout and timeout > 0:
            return timeout
        if descriptor.stream and timeout == 0:
            return None
        return self.config.timeout if self.config.timeout > 0 else DEFAULT_TIMEOUT_MS

    def final_headers(self, descriptor: RequestDescriptor) -> dict:
        return merge_headers(self._default_headers, mode_headers(descriptor.content_mode), descriptor.headers)

    def _create_transport_client(self) -> httpx.AsyncClient:
        cert: Any = self.config.cert
        if self.config.cert and self.config.cert_key:
            cert = (self.config.cert, self.config.cert_key)
        kwargs: dict = {
            "follow_redirects": self.config.follow_redirects,
            "verify": self.config.verify,
            # Timeouts are enforced by the executor's own race.
            "timeout": None,
        }
        if cert:
            kwargs["cert"] = cert
        if self.config.proxy:
            kwargs["proxy"] = self.config.proxy
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def request(self, url: str, options: Optional[RequestOptions] = None) -> Outcome:
        """Send a request to ``url`` (absolute, or relative to the configured base URL)."""
        options = options or RequestOptions()
        try:
            descriptor = build_descriptor(url, options)
        except HttxError as e:
            return Err(e)

        if options.retry is None:
            return await self.execute(descriptor, cancel=options.cancel)

        def on_retry(outcome: Outcome, attempt: int, wait: float) -> None:
            reason = f"status {outcome.value.status}" if outcome.is_ok() else str(outcome.error)
            self._debug("retry", f"attempt {attempt} failed ({reason}), retrying in {wait}s")
            logger.warning(f"Attempt {attempt} for {descriptor.method} {url} failed ({reason}), retrying in {wait}s")

        return await execute_with_retry(
            lambda: self.execute(descriptor, cancel=options.cancel), options.retry, on_retry=on_retry
        )

    def request_sync(self, url: str, options: Optional[RequestOptions] = None) -> Outcome:
        """Blocking variant of ``request``. Must not be called from a running event loop."""
        return asyncio.run(self.request(url, options))

    async def execute(self, descriptor: RequestDescriptor, *, cancel: Optional[CancelToken] = None) -> Outcome:
        """Send ``descriptor`` once.

        Expected failures (bad URL, headers or body, timeout, cancellation, transport errors) come
        back as ``Err``. Non-2xx responses are ``Ok``; use ``check_status`` to treat them as errors.
        """
        method = descriptor.method
        try:
            if HttpMethod.parse(method) is None:
                raise InvalidArgumentError(f"Unsupported HTTP method: {method}")
            url = resolve_url(descriptor.url, self.config.base_url or None, descriptor.query)
            headers = self.final_headers(descriptor)
            encoded = encode_body(descriptor.body, descriptor.content_mode)
        except HttxError as e:
            return Err(e)

        with encoded:
            try:
                client = self._create_transport_client()
            except (httpx.InvalidURL, ValueError, OSError) as e:
                return Err(InvalidArgumentError(f"Invalid transport configuration: {e}"))
            try:
                request = self._build_request(client, method, url, headers, encoded)
            except HttxError as e:
                await client.aclose()
                return Err(e)

            timeout = None if cancel is not None else self.effective_timeout(descriptor)
            self._debug("request", f"{method} {url}")
            outcome = await self._race(client, request, url, descriptor.stream, cancel, timeout, _now_ms())

        if outcome.is_ok():
            envelope = outcome.value
            self._debug(
                "response",
                f"{envelope.status} {envelope.status_text} ({envelope.timings.duration:.2f}ms)",
            )
        else:
            self._debug("response", f"{type(outcome.error).__name__}: {outcome.error}")
        return outcome

    @staticmethod
    def _build_request(
        client: httpx.AsyncClient, method: str, url: str, headers: dict, encoded: EncodedBody
    ) -> httpx.Request:
        """Build the wire request before anything is sent.

        Raises:
            InvalidArgumentError: If a header name or value cannot be encoded
            InvalidBodyTypeError: If httpx rejects the encoded body
        """
        try:
            request_headers = httpx.Headers(headers)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Invalid header for {method} {url}: {e}") from None
        try:
            return client.build_request(method, url, headers=request_headers, **encoded.request_kwargs())
        except (TypeError, ValueError) as e:
            raise InvalidBodyTypeError(f"Cannot encode request body for {method} {url}: {e}") from None

    async def _race(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        url: str,
        stream: bool,
        cancel: Optional[CancelToken],
        timeout: Optional[int],
        start: float,
    ) -> Outcome:
        method = request.method
        loop = asyncio.get_running_loop()
        send_task = asyncio.ensure_future(self._send(client, request, stream))
        guard: Optional[asyncio.Future] = None
        timer: Optional[asyncio.TimerHandle] = None
        if cancel is not None:
            guard = asyncio.ensure_future(cancel.wait())
        elif timeout is not None:
            # A bare future resolved by the timer callback, so an expired timer is visible
            # in the same loop iteration that completes the send.
            guard = loop.create_future()
            timer = loop.call_later(timeout / 1000, _resolve_guard, guard)

        keep_client = False
        try:
            waiters = {send_task} if guard is None else {send_task, guard}
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)

            # The guard wins when both are ready: a late response is discarded.
            if guard is not None and guard.done():
                await self._discard(send_task)
                timings = Timings(start, _now_ms())
                if cancel is not None:
                    return Err(RequestCancelledError(method=method, url=url, timings=timings))
                return Err(RequestTimeoutError(timeout=timeout, method=method, url=url, timings=timings))

            try:
                response, data = send_task.result()
            except httpx.TimeoutException as e:
                timings = Timings(start, _now_ms())
                logger.debug("Transport timed out", exc_info=e)
                return Err(
                    RequestTimeoutError(timeout=timeout or 0, method=method, url=url, timings=timings)
                )
            except ResponseTooLargeError as e:
                e.timings = Timings(start, _now_ms())
                return Err(e)
            except (httpx.HTTPError, httpx.StreamError, OSError) as e:
                return Err(NetworkError(e, method=method, url=url, timings=Timings(start, _now_ms())))

            if stream:
                data = ResponseStream(response, client)
                keep_client = True
            return Ok(
                ResponseEnvelope(
                    status=response.status_code,
                    status_text=response.reason_phrase,
                    headers=response.headers,
                    data=data,
                    timings=Timings(start, _now_ms()),
                    method=method,
                    url=url,
                )
            )
        finally:
            if timer is not None:
                timer.cancel()
            if guard is not None and not guard.done():
                guard.cancel()
            if not send_task.done():
                await self._discard(send_task)
            if not keep_client:
                await client.aclose()

    async def _send(self, client: httpx.AsyncClient, request: httpx.Request, stream: bool):
        response = await client.send(request, stream=True)
        if stream:
            return response, None
        try:
            content = await self._read_limited(response, request.method, str(request.url))
        finally:
            await response.aclose()
        return response, parse_body(content, response.headers.get("Content-Type", ""), response.charset_encoding)

    async def _read_limited(self, response: httpx.Response, method: str, url: str) -> bytes:
        limit = self.config.max_body_size
        chunks = []
        size = 0
        async for chunk in response.aiter_bytes():
            size += len(chunk)
            if limit and size > limit:
                raise ResponseTooLargeError(limit=limit, method=method, url=url)
            chunks.append(chunk)
        return b"".join(chunks)

    @staticmethod
    async def _discard(task: asyncio.Future) -> None:
        """Cancel ``task`` and release whatever it produced."""
        if not task.done():
            task.cancel()
        try:
            result = await task
        except asyncio.CancelledError:
            if task.cancelled():
                return
            raise
        except Exception:
            logger.debug("Discarded request failed", exc_info=True)
            return
        response = result[0]
        await response.aclose()
