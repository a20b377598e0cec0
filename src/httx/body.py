"""Body encoding per content mode."""

from __future__ import annotations

import json
import logging
import mimetypes
import os
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import urlencode

from httx.errors import FileAccessError, InvalidBodyTypeError
from httx.models import (
    Body,
    ContentMode,
    Empty,
    FieldKind,
    MultipartField,
    MultipartFields,
    PlainFields,
    RawBinary,
    RawText,
)

log = logging.getLogger(__name__)

DEFAULT_FILE_CONTENT_TYPE = "application/octet-stream"


def serialize_value(value: Any) -> Any:
    """Convert a value into something ``json.dumps`` accepts.

    Supports:
    - None, dict, list, tuple, primitives (passed through)
    - Objects with model_dump(), to_json() or to_dict() (duck typing)
    - Nested objects inside containers are recursively serialized

    Raises:
        TypeError: If a value type is not supported
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, bytes):
        raise TypeError("bytes cannot be serialized as JSON")
    if isinstance(value, dict):
        return {str(k): serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    if hasattr(value, "model_dump") and callable(value.model_dump):  # Pydantic v2
        return serialize_value(value.model_dump())
    if hasattr(value, "to_json") and callable(value.to_json):
        return serialize_value(value.to_json())
    if hasattr(value, "to_dict") and callable(value.to_dict):
        return serialize_value(value.to_dict())
    raise TypeError(
        f"Cannot serialize value of type {type(value).__name__}. Expected dict, list, primitive, or Serializable."
    )


def coerce_body(value: Any) -> Body:
    """Turn a loosely typed library body into one of the body variants."""
    if value is None:
        return Empty()
    if isinstance(value, (Empty, PlainFields, RawText, RawBinary, MultipartFields)):
        return value
    if isinstance(value, str):
        return RawText(value)
    if isinstance(value, (bytes, bytearray)):
        return RawBinary(bytes(value))
    if isinstance(value, dict):
        return PlainFields(value)
    if isinstance(value, (list, tuple)) and value and all(isinstance(f, MultipartField) for f in value):
        return MultipartFields(tuple(value))
    try:
        serialized = serialize_value(value)
    except TypeError as e:
        raise InvalidBodyTypeError(str(e)) from None
    if not isinstance(serialized, dict):
        raise InvalidBodyTypeError(f"Unsupported body type: {type(value).__name__}")
    return PlainFields(serialized)


def form_scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def flatten_fields(fields: Any, prefix: str = "") -> List[Tuple[str, str]]:
    """Flatten nested fields using bracket notation: ``user[address][city]``, ``tags[]``."""
    pairs: List[Tuple[str, str]] = []
    if isinstance(fields, dict):
        for key, value in fields.items():
            name = f"{prefix}[{key}]" if prefix else str(key)
            if isinstance(value, (dict, list)):
                pairs.extend(flatten_fields(value, name))
            else:
                pairs.append((name, form_scalar(value)))
    elif isinstance(fields, list):
        for value in fields:
            name = f"{prefix}[]"
            if isinstance(value, dict):
                pairs.extend(flatten_fields(value, name))
            else:
                pairs.append((name, form_scalar(value)))
    else:
        pairs.append((prefix, form_scalar(fields)))
    return pairs


MultipartEntry = Tuple[str, Tuple[Optional[str], Any, Optional[str]]]


class EncodedBody:
    """A body ready to hand to httpx.

    Holds files opened for a multipart upload; they are closed by ``close()``
    (or on leaving the ``with`` block), whatever the outcome of the transfer.
    """

    def __init__(
        self,
        content: Union[bytes, Any, None] = None,
        files: Optional[List[MultipartEntry]] = None,
        stack: Optional[ExitStack] = None,
    ):
        self.content = content
        self.files = files
        self._stack = stack or ExitStack()

    def request_kwargs(self) -> Dict[str, Any]:
        if self.files is not None:
            return {"files": self.files}
        if self.content is not None:
            return {"content": self.content}
        return {}

    def close(self) -> None:
        self._stack.close()

    def __enter__(self) -> EncodedBody:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _open_multipart(fields: Tuple[MultipartField, ...]) -> EncodedBody:
    stack = ExitStack()
    entries: List[MultipartEntry] = []
    try:
        for f in fields:
            if f.kind == FieldKind.FILE:
                path = os.path.expanduser(f.value)
                try:
                    handle = stack.enter_context(open(path, "rb"))
                except OSError as e:
                    raise FileAccessError(f.value, f.key, e) from e
                filename = Path(path).name
                content_type = f.content_type or mimetypes.guess_type(filename)[0] or DEFAULT_FILE_CONTENT_TYPE
                entries.append((f.key, (filename, handle, content_type)))
            else:
                # A None filename makes httpx send a plain form field.
                entries.append((f.key, (None, f.value, f.content_type)))
    except BaseException:
        stack.close()
        raise
    log.debug("Prepared multipart body with %d field(s)", len(entries))
    return EncodedBody(files=entries, stack=stack)


def _fields_to_multipart(fields: PlainFields) -> Tuple[MultipartField, ...]:
    return tuple(MultipartField(key, FieldKind.TEXT, value) for key, value in flatten_fields(dict(fields.fields)))


def encode_body(body: Body, content_mode: ContentMode) -> EncodedBody:
    """Serialize ``body`` for ``content_mode``.

    Raises:
        InvalidBodyTypeError: If the body shape cannot be sent in that mode
        FileAccessError: If a multipart file cannot be opened
    """
    if isinstance(body, Empty):
        return EncodedBody()

    if isinstance(body, (RawText, RawBinary)):
        if content_mode == ContentMode.MULTIPART:
            raise InvalidBodyTypeError("A raw body cannot be sent as multipart")
        content = body.text.encode("utf-8") if isinstance(body, RawText) else body.data
        return EncodedBody(content=content)

    if isinstance(body, PlainFields):
        if content_mode == ContentMode.JSON:
            try:
                payload = serialize_value(dict(body.fields))
            except TypeError as e:
                raise InvalidBodyTypeError(str(e)) from None
            return EncodedBody(content=json.dumps(payload).encode("utf-8"))
        if content_mode == ContentMode.FORM:
            return EncodedBody(content=urlencode(flatten_fields(dict(body.fields))).encode("utf-8"))
        if content_mode == ContentMode.MULTIPART:
            return _open_multipart(_fields_to_multipart(body))
        raise InvalidBodyTypeError("Fields need a content mode (json, form or multipart) to be sent")

    if isinstance(body, MultipartFields):
        if content_mode == ContentMode.MULTIPART:
            return _open_multipart(body.fields)
        raise InvalidBodyTypeError(f"Multipart fields cannot be sent with content mode '{content_mode.value}'")

    raise InvalidBodyTypeError(f"Unsupported body type: {type(body).__name__}")
