from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True, slots=True)
class Result(Generic[T, E]):
    """
    Success or failure of one step.

    Result.ok(value) / Result.err(error). A failed Result carries the exception
    instead of raising it, so a caller can stop at the first failure and decide
    itself whether to raise (see unwrap).
    """

    value: Optional[T] = None
    error: Optional[E] = None

    @staticmethod
    def ok(value: T) -> "Result[T, E]":
        return Result(value=value)

    @staticmethod
    def err(error: E) -> "Result[T, E]":
        return Result(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def is_err(self) -> bool:
        return self.error is not None

    def map(self, fn: Callable[[T], U]) -> "Result[U, E]":
        return Result.ok(fn(self.value)) if self.is_ok else self  # type: ignore[return-value]

    def bind(self, fn: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        return fn(self.value) if self.is_ok else self  # type: ignore[return-value]

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Err({self.error!r})" if self.is_err else f"Ok({self.value!r})"
