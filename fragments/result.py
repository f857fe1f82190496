"""Explicit success/error results returned by the fragment service."""

from dataclasses import dataclass
from typing import Any, Union

from fragments.exceptions import FragmentsError


@dataclass(frozen=True)
class Ok:
    value: Any = None

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: FragmentsError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def status_code(self) -> int:
        return self.error.status_code


Result = Union[Ok, Err]


def unwrap(result: Result) -> Any:
    """
    Return the value of an Ok result, or raise the error carried by an Err.

    Args:
        result: Result returned by a service operation

    Returns:
        The wrapped value

    Raises:
        FragmentsError: The error carried by an Err result
    """
    if isinstance(result, Err):
        raise result.error
    return result.value
