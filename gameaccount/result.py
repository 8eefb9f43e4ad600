"""
Result type returned by public Account operations.

Account methods never let a domain failure escape as an exception. Service
functions raise AccountError subclasses; the `returns_result` decorator turns
them into `AccountResult.failure(...)` at the public boundary. Errors that are
not AccountErrors are bugs and propagate unchanged.
"""

import functools
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from gameaccount.exceptions import AccountError, ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class AccountResult(Generic[T]):
    """Either a value (`error is None`) or exactly one AccountError."""

    value: T | None = None
    error: AccountError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        """Return the value, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: T | None = None) -> "AccountResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AccountError) -> "AccountResult[T]":
        return cls(error=error)


def returns_result(func: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap a sync or async method so AccountErrors become failed results."""

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> AccountResult:
            try:
                value = await func(*args, **kwargs)
            except AccountError as exc:
                return AccountResult.failure(exc)
            return AccountResult.success(value)

        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> AccountResult:
        try:
            value = func(*args, **kwargs)
        except AccountError as exc:
            return AccountResult.failure(exc)
        return AccountResult.success(value)

    return wrapper
