"""Result type for boundaries that report failures as values.

The board manager raises typed exceptions. Adapters that talk to an agent
(tool calls) must never raise, so they convert those exceptions into an
``Err`` carrying a readable message and return successful payloads as ``Ok``.

Example usage:
    >>> def parse_priority(raw: str) -> Result[int, str]:
    ...     if not raw.isdigit() or int(raw) > 4:
    ...         return Err(f"Invalid priority: {raw}")
    ...     return Ok(int(raw))
    ...
    >>> result = parse_priority("1")
    >>> if isinstance(result, Ok):
    ...     print(f"P{result.value}")
    P1
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result.

    Attributes:
        value: The success value of type T.
    """

    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed result.

    Attributes:
        error: The error value of type E.
    """

    error: E


# Using Union here as TypeVar aliases don't work with | syntax at runtime
Result = Union[Ok[T], Err[E]]  # noqa: UP007

