from __future__ import annotations

import argparse
import asyncio
import base64
import contextlib
import logging
import sys
from dataclasses import replace
from typing import IO, Any, Callable, Dict, List, Optional

import httpx

from httx.builder import parse_cli_args
from httx.cli._output import render_data
from httx.client import HttxClient, ResponseStream, check_status
from httx.config import HttxConfig, resolve_config
from httx.errors import EXIT_ERROR, EXIT_NETWORK_ERROR, EXIT_OK, HttxError, InvalidArgumentError, RequestError
from httx.headers import set_header
from httx.models import RequestDescriptor, ResponseEnvelope
from httx.result import Outcome
from httx.urls import resolve_url

logger = logging.getLogger(__name__)

PRINT_REQUEST_HEADERS = "H"
PRINT_RESPONSE_HEADERS = "h"
PRINT_RESPONSE_BODY = "b"


def _parse_headers(raw: Optional[List[str]]) -> Dict[str, Optional[str]]:
    """Parse ``-H`` values. ``Name:`` with an empty value removes the header."""
    headers: Dict[str, Optional[str]] = {}
    for h in raw or []:
        if ":" not in h:
            raise InvalidArgumentError(f"Invalid header format '{h}'. Expected 'Key: Value'.")
        key, value = h.split(":", 1)
        key, value = key.strip(), value.strip()
        if not key:
            raise InvalidArgumentError(f"Invalid header format '{h}'. Expected 'Key: Value'.")
        set_header(headers, key, value or None)
    return headers


def _auth_headers(parsed: argparse.Namespace) -> Dict[str, str]:
    if parsed.auth:
        username, _, password = parsed.auth.partition(":")
        token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        return {"Authorization": f"Basic {token}"}
    if parsed.bearer:
        return {"Authorization": f"Bearer {parsed.bearer}"}
    return {}


def _request_headers(parsed: argparse.Namespace, item_headers: Dict[str, Optional[str]]) -> Dict[str, Optional[str]]:
    headers = _parse_headers(parsed.headers)
    for layer in (item_headers, _auth_headers(parsed)):
        for name, value in layer.items():
            set_header(headers, name, value)
    return headers


def _resolve_config(parsed: argparse.Namespace) -> HttxConfig:
    return resolve_config(
        parsed.config,
        timeout=parsed.timeout or None,
        verbose=True if parsed.verbose else None,
        follow_redirects=parsed.follow,
        verify=False if parsed.insecure else None,
        cert=parsed.cert,
        cert_key=parsed.cert_key,
        proxy=parsed.proxy,
    )


def _create_client(config: HttxConfig) -> HttxClient:
    return HttxClient(config, client_name="cli")


def _write(data: Any, out: IO[str]) -> None:
    if isinstance(data, bytes):
        buffer = getattr(out, "buffer", None)
        if buffer is not None:
            buffer.write(data)
            buffer.flush()
        else:
            out.write(data.decode("utf-8", errors="replace"))
    elif data:
        out.write(data)


def _print_request_headers(client: HttxClient, descriptor: RequestDescriptor) -> None:
    url = resolve_url(descriptor.url, client.config.base_url or None, descriptor.query)
    print(f"{descriptor.method} {url}")
    for name, value in client.final_headers(descriptor).items():
        print(f"{name}: {value}")
    print()


def _print_response_headers(envelope: ResponseEnvelope, verbose: bool) -> None:
    if verbose:
        print("\nResponse Headers:")
    print(f"{envelope.status} {envelope.status_text}")
    for key, value in envelope.headers.items():
        print(f"{key}: {value}")
    if verbose:
        print("\nResponse Body:")
    else:
        print()


def _content_length(envelope: ResponseEnvelope) -> Optional[int]:
    try:
        return int(envelope.headers.get("Content-Length", ""))
    except ValueError:
        return None


def _download_progress(total: Optional[int]) -> Callable[[int], None]:
    def report(received: int) -> None:
        if total:
            progress = f"{min(received / total, 1.0) * 100:.1f}%"
        else:
            progress = f"{received} bytes"
        print(f"\rDownloading... {progress}", end="", file=sys.stderr, flush=True)

    return report


async def _stream_body(
    stream: ResponseStream, destination: Optional[str], on_progress: Optional[Callable[[int], None]] = None
) -> None:
    received = 0
    async with stream:
        with (open(destination, "wb") if destination else contextlib.nullcontext()) as f:
            async for chunk in stream:
                if f is not None:
                    f.write(chunk)
                else:
                    _write(chunk, sys.stdout)
                received += len(chunk)
                if on_progress is not None:
                    on_progress(received)
    if on_progress is not None:
        print(file=sys.stderr)


async def _perform(
    client: HttxClient, descriptor: RequestDescriptor, parsed: argparse.Namespace, print_flags: str, verbose: bool
) -> Outcome:
    outcome = await client.execute(descriptor)
    if outcome.is_err():
        return outcome
    envelope = outcome.value
    if PRINT_RESPONSE_HEADERS in print_flags:
        _print_response_headers(envelope, verbose)
    if isinstance(envelope.data, ResponseStream):
        if parsed.download:
            await _stream_body(envelope.data, parsed.output, _download_progress(_content_length(envelope)))
        elif PRINT_RESPONSE_BODY in print_flags or parsed.output:
            await _stream_body(envelope.data, parsed.output)
        else:
            await envelope.data.aclose()
    return outcome


def _print_body(envelope: ResponseEnvelope, parsed: argparse.Namespace) -> None:
    rendered = render_data(envelope.data, output_format=parsed.output_format, pretty=parsed.pretty != "none")
    if parsed.output:
        mode = "wb" if isinstance(rendered, bytes) else "w"
        with open(parsed.output, mode) as f:
            f.write(rendered)
        logger.debug(f"Wrote response body to {parsed.output}")
        return
    _write(rendered, sys.stdout)


def _report_error(error: HttxError, verbose: bool) -> int:
    print(f"Error: {error}", file=sys.stderr)
    if verbose and isinstance(error, RequestError):
        if error.timings is not None:
            logger.debug(f"Failed after {error.timings.duration:.2f}ms: {error.method} {error.url}")
        cause = getattr(error, "cause", None)
        if cause is not None:
            logger.debug("Underlying error", exc_info=cause)
    return error.exit_code


def _report_output_error(error: Exception) -> int:
    """Errors after the response arrived: writing the body out, or the connection dropping mid-stream."""
    print(f"Error: {error}", file=sys.stderr)
    if isinstance(error, (httpx.HTTPError, httpx.StreamError)):
        return EXIT_NETWORK_ERROR
    return EXIT_ERROR


def run(parsed: argparse.Namespace) -> int:
    try:
        config = _resolve_config(parsed)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    verbose = config.verbose
    if verbose:
        logging.getLogger("httx").setLevel(logging.DEBUG)
    print_flags = parsed.print_flags or (
        PRINT_RESPONSE_HEADERS + PRINT_RESPONSE_BODY if verbose else PRINT_RESPONSE_BODY
    )

    try:
        parsed_args = parse_cli_args(
            parsed.items,
            parsed.content_mode,
            base_url=config.base_url or None,
            timeout=parsed.timeout,
            stream=parsed.stream or parsed.download,
        )
        descriptor = replace(
            parsed_args.descriptor, headers=_request_headers(parsed, parsed_args.descriptor.headers)
        )
        client = _create_client(config)
        if PRINT_REQUEST_HEADERS in print_flags:
            _print_request_headers(client, descriptor)
    except HttxError as e:
        return _report_error(e, verbose)

    try:
        outcome = asyncio.run(_perform(client, descriptor, parsed, print_flags, verbose))
        if outcome.is_err():
            return _report_error(outcome.error, verbose)

        envelope = outcome.value
        if not isinstance(envelope.data, ResponseStream) and (PRINT_RESPONSE_BODY in print_flags or parsed.output):
            _print_body(envelope, parsed)
    except (OSError, httpx.HTTPError, httpx.StreamError) as e:
        return _report_output_error(e)

    if verbose:
        print(f"\nRequest completed in {envelope.timings.duration:.2f}ms")

    checked = check_status(outcome)
    if checked.is_err():
        return _report_error(checked.error, verbose)
    return EXIT_OK
