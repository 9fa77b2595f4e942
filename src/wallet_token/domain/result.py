"""Result values returned by the verification gates.

Each gate returns either ``Ok(value)`` or ``Err(error)``. Callers branch on
``is_ok`` and stop at the first ``Err``; ``unwrap()`` turns the result back
into a value or raises the carried exception.
"""

from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar, Union

from wallet_token.domain.exceptions import TokenError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful gate outcome."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed gate outcome carrying the classified error."""

    error: TokenError

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        raise self.error


Result = Union[Ok[T], Err]
