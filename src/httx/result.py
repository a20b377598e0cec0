"""Tagged success/failure values returned by every request operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar, Union

if TYPE_CHECKING:
    from httx.errors import HttxError
    from httx.models import ResponseEnvelope

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
R = TypeVar("R")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self):
        raise ValueError(f"Called unwrap_err on Ok: {self.value!r}")

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        return Ok(fn(self.value))

    def match(self, on_ok: Callable[[T], R], on_err: Callable[[Any], R]) -> R:
        return on_ok(self.value)


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self):
        """Raise the carried error. Only meant for callers who prefer exceptions."""
        if isinstance(self.error, BaseException):
            raise self.error
        raise ValueError(f"Called unwrap on Err: {self.error!r}")

    def unwrap_err(self) -> E:
        return self.error

    def map(self, fn: Callable[[Any], Any]) -> Err[E]:
        return self

    def match(self, on_ok: Callable[[Any], R], on_err: Callable[[E], R]) -> R:
        return on_err(self.error)


Outcome = Union[Ok["ResponseEnvelope"], Err["HttxError"]]
