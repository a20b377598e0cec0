"""Compile ``[method] <url> [item...]`` argument lists into request descriptors."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from httx.errors import InvalidArgumentError, MissingUrlError
from httx.headers import set_header
from httx.models import (
    Body,
    ContentMode,
    Empty,
    FieldKind,
    HttpMethod,
    MultipartField,
    MultipartFields,
    PlainFields,
    RequestDescriptor,
)
from httx.tokens import ClassifiedToken, TokenKind, classify
from httx.urls import infer_scheme, looks_like_host, validate_url

logger = logging.getLogger(__name__)

MODE_FLAGS = {
    "-j": ContentMode.JSON,
    "--json": ContentMode.JSON,
    "-f": ContentMode.FORM,
    "--form": ContentMode.FORM,
    "-m": ContentMode.MULTIPART,
    "--multipart": ContentMode.MULTIPART,
}

_BRACKET_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
_BRACKET_SEGMENT_RE = re.compile(r"\[([^\[\]]*)\]")
_FILE_TYPE_RE = re.compile(r"^(.*);type=([^;]+)$")


@dataclass(frozen=True)
class ParsedArgs:
    descriptor: RequestDescriptor
    unmatched: Tuple[str, ...] = ()


@dataclass
class _Items:
    headers: Dict[str, Optional[str]] = field(default_factory=dict)
    query: Dict[str, List[str]] = field(default_factory=dict)
    body_items: List[ClassifiedToken] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)

    @property
    def has_files(self) -> bool:
        return any(item.kind == TokenKind.FILE_UPLOAD for item in self.body_items)


def is_flag(token: str) -> bool:
    return len(token) > 1 and token.startswith("-") and not token[1].isdigit()


def split_key(key: str) -> List[str]:
    """``user[address][city]`` -> ``["user", "address", "city"]``; ``tags[]`` -> ``["tags", ""]``."""
    match = _BRACKET_KEY_RE.match(key)
    if not match:
        return [key]
    return [match.group(1)] + _BRACKET_SEGMENT_RE.findall(match.group(2))


def _container_for(segment: str) -> Any:
    return [] if segment == "" else {}


def _insert(container: Any, segments: List[str], value: Any) -> None:
    head, rest = segments[0], segments[1:]
    if isinstance(container, list):
        if not rest:
            container.append(value)
            return
        child = _container_for(rest[0])
        container.append(child)
        _insert(child, rest, value)
        return

    if not rest:
        container[head] = value
        return
    child = container.get(head)
    expected = list if rest[0] == "" else dict
    if not isinstance(child, expected):
        child = expected()
        container[head] = child
    _insert(child, rest, value)


def expand_fields(pairs: Sequence[Tuple[str, Any]]) -> Dict[str, Any]:
    """Build nested fields from bracketed keys; ``[]`` appends to a list."""
    fields: Dict[str, Any] = {}
    for key, value in pairs:
        _insert(fields, split_key(key), value)
    return fields


def parse_raw_json(value: str) -> Any:
    """Parse a ``key:=value`` value, keeping the literal string when it is not JSON."""
    try:
        return json.loads(value)
    except ValueError:
        logger.debug("Value '%s' is not valid JSON, using it as a string", value)
        return value


def split_file_value(value: str) -> Tuple[str, Optional[str]]:
    """``photo.jpg;type=image/png`` -> ``("photo.jpg", "image/png")``."""
    match = _FILE_TYPE_RE.match(value)
    if match:
        return match.group(1), match.group(2).strip()
    return value, None


def _looks_like_url(token: str) -> bool:
    if "://" in token or token.startswith((":", "/")):
        return True
    item = classify(token)
    if item.kind in (TokenKind.UNMATCHED, TokenKind.HEADER):
        return True
    return any(c in item.key for c in "/?#")


def _build_body(items: _Items, content_mode: ContentMode) -> Body:
    if not items.body_items:
        return Empty()

    if content_mode == ContentMode.MULTIPART:
        fields: List[MultipartField] = []
        for item in items.body_items:
            if item.kind == TokenKind.FILE_UPLOAD:
                path, content_type = split_file_value(item.value)
                fields.append(MultipartField(item.key, FieldKind.FILE, path, content_type))
            elif item.kind == TokenKind.RAW_JSON:
                value = parse_raw_json(item.value)
                text = value if isinstance(value, str) else json.dumps(value)
                fields.append(MultipartField(item.key, FieldKind.TEXT, text))
            else:
                fields.append(MultipartField(item.key, FieldKind.TEXT, item.value))
        return MultipartFields(tuple(fields))

    pairs = [
        (item.key, parse_raw_json(item.value) if item.kind == TokenKind.RAW_JSON else item.value)
        for item in items.body_items
    ]
    return PlainFields(expand_fields(pairs))


def _fold(tokens: Sequence[str]) -> _Items:
    items = _Items()
    for token in tokens:
        item = classify(token)
        if item.kind == TokenKind.HEADER:
            set_header(items.headers, item.key, item.value)
        elif item.kind == TokenKind.QUERY:
            items.query.setdefault(item.key, []).append(item.value)
        elif item.is_body_item:
            items.body_items.append(item)
        else:
            logger.warning(f"Ignoring unrecognized argument '{token}'")
            items.unmatched.append(token)
    return items


def parse_cli_args(
    args: Sequence[str],
    content_mode: Optional[ContentMode] = None,
    *,
    base_url: Optional[str] = None,
    timeout: Optional[int] = None,
    stream: bool = False,
) -> ParsedArgs:
    """Compile an argument list into a request descriptor.

    Content mode flags (``-j``, ``-f``, ``-m`` and long forms) may appear anywhere;
    the last one wins, after ``content_mode``. Any file item forces multipart.
    Data items without a mode imply JSON. With ``base_url``, a URL that is not a host
    (``/users``, ``users``) stays relative and is resolved against it on execution.

    Raises:
        InvalidArgumentError: On an unknown flag
        MissingUrlError: If no URL is given and there is no ``base_url``
        InvalidUrlError: If the URL is not valid after scheme inference
    """
    positional: List[str] = []
    for token in args:
        if token in MODE_FLAGS:
            content_mode = MODE_FLAGS[token]
        elif is_flag(token):
            raise InvalidArgumentError(f"Unknown flag: {token}")
        else:
            positional.append(token)

    method = HttpMethod.GET
    if positional:
        parsed_method = HttpMethod.parse(positional[0])
        if parsed_method is not None:
            method = parsed_method
            positional = positional[1:]

    url: Optional[str] = None
    if positional and _looks_like_url(positional[0]):
        url = positional[0]
        positional = positional[1:]

    items = _fold(positional)

    if url is None:
        if not base_url:
            raise MissingUrlError()
        url = ""
    elif not base_url or looks_like_host(url):
        url = validate_url(infer_scheme(url))

    if items.has_files:
        content_mode = ContentMode.MULTIPART
    elif content_mode is None:
        content_mode = ContentMode.JSON if items.body_items else ContentMode.NONE

    descriptor = RequestDescriptor(
        method=method.value,
        url=url,
        headers=items.headers,
        query=items.query,
        body=_build_body(items, content_mode),
        content_mode=content_mode,
        timeout=timeout,
        stream=stream,
    )
    return ParsedArgs(descriptor=descriptor, unmatched=tuple(items.unmatched))
