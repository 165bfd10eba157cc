"""Result helpers used to compose fail-closed pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, Tuple, Type, TypeVar


T = TypeVar("T")
E = TypeVar("E", bound=BaseException)
U = TypeVar("U")


@dataclass(slots=True)
class Result(Generic[T, E]):
    """Discriminated union capturing either a success value or an error."""

    value: Optional[T] = None
    error: Optional[E] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(value=value)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(error=error)

    @classmethod
    def capture(
        cls,
        func: Callable[..., T],
        *args: object,
        errors: Tuple[Type[E], ...],
        **kwargs: object,
    ) -> "Result[T, E]":
        """Run ``func`` and turn any of ``errors`` into an error result.

        Exceptions outside ``errors`` propagate unchanged.
        """

        try:
            return cls.ok(func(*args, **kwargs))
        except errors as exc:
            return cls.err(exc)

    def is_ok(self) -> bool:
        return self.error is None

    def is_err(self) -> bool:
        return self.error is not None

    def and_then(self, func: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        """Feed the success value into ``func``; errors pass through untouched."""

        if self.error is not None:
            return Result.err(self.error)
        return func(self.value)  # type: ignore[arg-type]

    def unwrap(self) -> T:
        if self.error is not None:
            raise RuntimeError(f"Tried to unwrap error result: {self.error}") from self.error
        return self.value  # type: ignore[return-value]

    def unwrap_err(self) -> E:
        if self.error is None:
            raise RuntimeError("Tried to unwrap the error of a successful result")
        return self.error


__all__ = ["Result"]
