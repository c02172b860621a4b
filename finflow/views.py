from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from finflow.domain import AppState, Account, Transaction, REMOVED_ACCOUNT_NAME, TRANSFER
from finflow.functional import pipe, safe_account

Predicate = Callable[[Transaction], bool]


def by_search(term: str) -> Predicate:
    needle = term.lower()

    def _filter(t: Transaction) -> bool:
        return needle in t.description.lower()

    return _filter


def by_category(category: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.category == category

    return _filter


def by_account(acc_id: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.account_id == acc_id

    return _filter


def by_kind(kind: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.kind == kind

    return _filter


def all_of(*preds: Predicate) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return all(p(t) for p in preds)

    return _filter


def moment(t: Transaction) -> datetime:
    try:
        return datetime.fromisoformat(f"{t.date}T{t.time}")
    except ValueError:
        return datetime.min


def filter_transactions(
    trans: tuple[Transaction, ...],
    search: str = "",
    category: Optional[str] = None,
    account_id: Optional[str] = None,
    kind: Optional[str] = None,
) -> tuple[Transaction, ...]:
    """Records matching every given filter, newest first. ``None`` disables a filter."""
    preds = [by_search(search)]
    if category is not None:
        preds.append(by_category(category))
    if account_id is not None:
        preds.append(by_account(account_id))
    if kind is not None:
        preds.append(by_kind(kind))

    return pipe(
        trans,
        lambda ts: filter(all_of(*preds), ts),
        lambda ts: sorted(ts, key=moment, reverse=True),
        tuple,
    )


def account_label(accs: tuple[Account, ...], t: Transaction) -> tuple[str, bool]:
    """Name to show for a record's account and whether that account was removed."""
    found = safe_account(accs, t.account_id)
    if found.is_some():
        return found.get_or_else(None).name, False
    return t.account_name or REMOVED_ACCOUNT_NAME, True


@dataclass(frozen=True)
class OrphanReport:
    categories: tuple[str, ...]
    account_ids: tuple[str, ...]

    @property
    def is_clean(self) -> bool:
        return not self.categories and not self.account_ids


def orphan_report(state: AppState) -> OrphanReport:
    """Category names and account ids referenced by records but no longer defined.

    Transfer legs carry a fixed category of their own and are not checked for it.
    """
    known_categories = set(state.categories)
    known_accounts = {a.id for a in state.accounts}
    categories: dict[str, None] = {}
    accounts: dict[str, None] = {}
    for t in state.transactions:
        if t.kind != TRANSFER and t.category not in known_categories:
            categories[t.category] = None
        if t.account_id not in known_accounts:
            accounts[t.account_id] = None
    return OrphanReport(categories=tuple(categories), account_ids=tuple(accounts))
