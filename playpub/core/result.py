"""Result type for explicit error handling.

Every step of a publish run can fail in a way the caller must look at
(the step name decides whether the edit is orphaned), so fallible
functions return ``Ok`` or ``Err`` instead of raising.

Usage:
    result = open_edit(package)
    match result:
        case Ok(edit):
            console.success(f"opened edit {edit.id}")
        case Err(error):
            console.error(error.pretty())
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Represents a successful result containing a value.

    Attributes:
        value: The success value.
    """

    value: T

    def unwrap(self) -> T:
        """Returns the contained value."""
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Represents a failed result containing an error.

    Attributes:
        error: The error value.
    """

    error: E

    def unwrap(self) -> None:
        """Raises ValueError with the error.

        Raises:
            ValueError: Always, containing the error.
        """
        raise ValueError(f"called unwrap on Err: {self.error}")

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
