import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from finflow.domain import Account, Goal, Transaction

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):
    """A value that may be missing. Lookups and goal plans return one of these."""

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    def is_some(self) -> bool:
        return isinstance(self, Some)

    def is_none(self) -> bool:
        return not self.is_some()


@dataclass(frozen=True)
class Some(Maybe[T]):
    value: T

    def map(self, f: Callable[[T], U]) -> Maybe[U]:
        return Some(f(self.value))

    def bind(self, f: Callable[[T], Maybe[U]]) -> Maybe[U]:
        return f(self.value)

    def get_or_else(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> Maybe[U]:
        return Nothing()

    def bind(self, f: Callable[[T], Maybe[U]]) -> Maybe[U]:
        return Nothing()

    def get_or_else(self, default: T) -> T:
        return default


class Either(Generic[E, T], ABC):
    """Result of a validated operation: Right(value) on success, Left(error) otherwise.

    Errors are plain dicts carrying at least an ``error`` code and a ``message``.
    """

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def get_error(self) -> E:
        pass

    def is_right(self) -> bool:
        return isinstance(self, Right)

    def is_left(self) -> bool:
        return not self.is_right()


@dataclass(frozen=True)
class Right(Either[E, T]):
    value: T

    def map(self, f: Callable[[T], U]) -> Either[E, U]:
        return Right(f(self.value))

    def bind(self, f: Callable[[T], Either[E, U]]) -> Either[E, U]:
        return f(self.value)

    def get_or_else(self, default: T) -> T:
        return self.value

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")


@dataclass(frozen=True)
class Left(Either[E, T]):
    error: E

    def map(self, f: Callable[[T], U]) -> Either[E, U]:
        return self

    def bind(self, f: Callable[[T], Either[E, U]]) -> Either[E, U]:
        return self

    def get_or_else(self, default: T) -> T:
        return default

    def get_error(self) -> E:
        return self.error


def failure(code: str, message: str, **context: Any) -> Left:
    return Left({"error": code, "message": message, **context})


def pipe(x, *funcs):
    """Pipe a value through a series of functions.

    pipe(x, f, g, h) == h(g(f(x)))
    """
    res = x
    for f in funcs:
        res = f(res)
    return res


def _find(items: Iterable, pred: Callable[[Any], bool]) -> Maybe:
    for item in items:
        if pred(item):
            return Some(item)
    return Nothing()


def safe_account(accs: tuple[Account, ...], acc_id: Optional[str]) -> Maybe[Account]:
    return _find(accs, lambda a: a.id == acc_id)


def safe_goal(goals: tuple[Goal, ...], goal_id: str) -> Maybe[Goal]:
    return _find(goals, lambda g: g.id == goal_id)


def safe_transaction(trans: tuple[Transaction, ...], tx_id: str) -> Maybe[Transaction]:
    return _find(trans, lambda t: t.id == tx_id)


def require_account(accs: tuple[Account, ...], acc_id: Optional[str]) -> Either[dict, Account]:
    found = safe_account(accs, acc_id)
    if found.is_none():
        return failure(
            "account_not_found",
            f"Account with ID {acc_id} does not exist",
            account_id=acc_id,
        )
    return Right(found.get_or_else(None))


def require_positive(amount: float, field: str = "amount") -> Either[dict, float]:
    if amount is None or math.isnan(amount) or amount <= 0:
        return failure("invalid_amount", f"{field} must be greater than zero", amount=amount)
    return Right(amount)


def require_text(value: Optional[str], field: str) -> Either[dict, str]:
    if value is None or not value.strip():
        return failure("missing_field", f"{field} is required", field=field)
    return Right(value)
