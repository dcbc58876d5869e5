"""Result types returned by use cases and repository ports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


class ResultContractError(RuntimeError):
    """Raised when a result is built or read against its contract."""


@dataclass(frozen=True, slots=True)
class MaybeErrorResult(Generic[E]):
    """Success without a payload, or a failure carrying an error."""

    succeeded: bool
    _error: E | None = None

    def __post_init__(self) -> None:
        if self.succeeded and self._error is not None:
            raise ResultContractError("A succeeded result cannot carry an error.")
        if not self.succeeded and self._error is None:
            raise ResultContractError("A failed result must carry an error.")

    @classmethod
    def success(cls) -> MaybeErrorResult[E]:
        return cls(succeeded=True)

    @classmethod
    def failure(cls, error: E) -> MaybeErrorResult[E]:
        return cls(succeeded=False, _error=error)

    @property
    def error(self) -> E:
        if self.succeeded:
            raise ResultContractError("Cannot read the error of a succeeded result.")
        return self._error  # type: ignore[return-value]

    def try_success(self) -> tuple[bool, E | None]:
        """Return ``(succeeded, error)`` for unpacking at call sites."""

        return self.succeeded, self._error


@dataclass(frozen=True, slots=True)
class ValueOrErrorResult(Generic[T, E]):
    """Success carrying a value, or a failure carrying an error."""

    succeeded: bool
    _value: T | None = None
    _error: E | None = None

    def __post_init__(self) -> None:
        if self.succeeded:
            if self._value is None:
                raise ResultContractError("A succeeded result must carry a value.")
            if self._error is not None:
                raise ResultContractError("A succeeded result cannot carry an error.")
        else:
            if self._error is None:
                raise ResultContractError("A failed result must carry an error.")
            if self._value is not None:
                raise ResultContractError("A failed result cannot carry a value.")

    @classmethod
    def success(cls, value: T) -> ValueOrErrorResult[T, E]:
        return cls(succeeded=True, _value=value)

    @classmethod
    def failure(cls, error: E) -> ValueOrErrorResult[T, E]:
        return cls(succeeded=False, _error=error)

    @property
    def value(self) -> T:
        if not self.succeeded:
            raise ResultContractError("Cannot read the value of a failed result.")
        return self._value  # type: ignore[return-value]

    @property
    def error(self) -> E:
        if self.succeeded:
            raise ResultContractError("Cannot read the error of a succeeded result.")
        return self._error  # type: ignore[return-value]

    def try_success(self) -> tuple[bool, T | None, E | None]:
        """Return ``(succeeded, value, error)`` for unpacking at call sites."""

        return self.succeeded, self._value, self._error
