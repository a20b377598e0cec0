"""Classification of ``key<sep>value`` request items given on the command line."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class TokenKind(str, Enum):
    HEADER = "header"
    QUERY = "query"
    DATA = "data"
    RAW_JSON = "rawJson"
    FILE_UPLOAD = "fileUpload"
    UNMATCHED = "unmatched"


SEP_RAW_JSON = ":="
SEP_FILE_UPLOAD = "@"
SEP_QUERY = "=="
SEP_HEADER = ":"
SEP_DATA = "="

# Multi-character separators first: "a:=1" would also match the header and data shapes.
_PATTERNS = (
    (TokenKind.RAW_JSON, re.compile(r"^([^:=@]+):=(.+)$", re.DOTALL)),
    (TokenKind.FILE_UPLOAD, re.compile(r"^([^:=@]+)@(.+)$", re.DOTALL)),
    (TokenKind.QUERY, re.compile(r"^([^:=@]+)==(.+)$", re.DOTALL)),
    (TokenKind.HEADER, re.compile(r"^([^:=@]+):(.+)$", re.DOTALL)),
    (TokenKind.DATA, re.compile(r"^([^:=@]+)=(.+)$", re.DOTALL)),
)


@dataclass(frozen=True)
class ClassifiedToken:
    kind: TokenKind
    key: str
    value: str

    @property
    def is_body_item(self) -> bool:
        return self.kind in (TokenKind.DATA, TokenKind.RAW_JSON, TokenKind.FILE_UPLOAD)


def classify(token: str) -> ClassifiedToken:
    """Classify one argument. Never fails: unknown shapes come back as ``UNMATCHED``."""
    for kind, pattern in _PATTERNS:
        match = pattern.match(token)
        if match:
            return ClassifiedToken(kind=kind, key=match.group(1), value=match.group(2))
    return ClassifiedToken(kind=TokenKind.UNMATCHED, key="", value=token)
