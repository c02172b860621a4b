from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from finflow.domain import Transaction, INCOME, EXPENSE, TRANSFER

HISTORY_DAYS = 15


@dataclass(frozen=True)
class DayTotals:
    date: str
    income: float
    expense: float


def iter_transactions(
    trans: Iterable[Transaction], pred: Callable[[Transaction], bool]
) -> Iterator[Transaction]:
    for t in trans:
        if pred(t):
            yield t


def daily_totals(trans: Iterable[Transaction], days: int = HISTORY_DAYS) -> tuple[DayTotals, ...]:
    """Income and expense per day, oldest first, limited to the latest ``days`` days on record."""
    income: dict[str, float] = defaultdict(float)
    expense: dict[str, float] = defaultdict(float)
    seen: set[str] = set()
    for t in iter_transactions(trans, lambda t: t.kind != TRANSFER):
        seen.add(t.date)
        if t.kind == INCOME:
            income[t.date] += t.amount
        elif t.kind == EXPENSE:
            expense[t.date] += t.amount

    ordered = sorted(seen)[-days:] if days > 0 else []
    return tuple(DayTotals(date=d, income=income[d], expense=expense[d]) for d in ordered)


def category_totals(
    trans: Iterable[Transaction], categories: tuple[str, ...], kind: str
) -> dict[str, float]:
    """Sum per category for one kind. Categories no longer in the list are left out."""
    known = set(categories)
    totals: dict[str, float] = {}
    for t in iter_transactions(trans, lambda t: t.kind == kind and t.category in known):
        totals[t.category] = totals.get(t.category, 0) + t.amount
    return totals


def expense_by_category(trans: Iterable[Transaction], categories: tuple[str, ...]) -> dict[str, float]:
    return category_totals(trans, categories, EXPENSE)


def income_by_category(trans: Iterable[Transaction], categories: tuple[str, ...]) -> dict[str, float]:
    return category_totals(trans, categories, INCOME)


def top_categories(totals: dict[str, float], k: int) -> Iterator[tuple[str, float]]:
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    for name, total in ordered[: max(0, k)]:
        yield name, total
