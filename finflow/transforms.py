"""Whole-state replacement mutations.

Each function takes the current ``AppState`` and returns a new one (or an
``Either`` when the input can be rejected). Nothing here mutates its
arguments.
"""
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from finflow.domain import (
    Account, AppState, Transaction, DEFAULT_ACCOUNT_COLOR, FREQUENCIES,
    REMOVED_ACCOUNT_NAME, TRANSACTION_KINDS, TRANSFER,
)
from finflow.functional import (
    Either, Right, failure, require_positive, require_text, safe_account, safe_transaction,
)
from finflow.transfers import new_id, remove_transaction, stamp


def utc_now_iso(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def touch(state: AppState, now: Optional[datetime] = None) -> AppState:
    return replace(state, last_sync=utc_now_iso(now))


def snapshot_name(accs: tuple[Account, ...], acc_id: str, fallback: Optional[str] = None) -> str:
    return safe_account(accs, acc_id).map(lambda a: a.name).get_or_else(
        fallback or REMOVED_ACCOUNT_NAME
    )


def _check_entry(
    description: str, amount: float, kind: str, frequency: Optional[str]
) -> Either[dict, None]:
    for checked in (require_text(description, "description"), require_positive(amount)):
        if checked.is_left():
            return checked
    if kind not in TRANSACTION_KINDS or kind == TRANSFER:
        # transfers only come in pairs, see finflow.transfers
        return failure("invalid_kind", f"Unsupported transaction kind {kind!r}", kind=kind)
    if frequency is not None and frequency not in FREQUENCIES:
        return failure("invalid_frequency", f"Unknown frequency {frequency!r}", frequency=frequency)
    return Right(None)


def add_transaction(
    state: AppState,
    description: str,
    amount: float,
    kind: str,
    category: str,
    account_id: str,
    now: datetime,
    is_recurring: bool = False,
    frequency: Optional[str] = None,
    id_factory: Callable[[], str] = new_id,
) -> Either[dict, AppState]:
    checked = _check_entry(description, amount, kind, frequency)
    if checked.is_left():
        return checked
    account = safe_account(state.accounts, account_id)
    if account.is_none():
        return failure(
            "account_not_found",
            f"Account with ID {account_id} does not exist",
            account_id=account_id,
        )
    date, time = stamp(now)
    tx = Transaction(
        id=id_factory(),
        description=description,
        amount=amount,
        kind=kind,
        category=category,
        account_id=account_id,
        account_name=account.get_or_else(None).name,
        date=date,
        time=time,
        is_recurring=is_recurring,
        frequency=frequency if is_recurring and frequency else "none",
    )
    return Right(replace(state, transactions=state.transactions + (tx,)))


def edit_transaction(
    state: AppState,
    tx_id: str,
    now: datetime,
    description: Optional[str] = None,
    amount: Optional[float] = None,
    kind: Optional[str] = None,
    category: Optional[str] = None,
    account_id: Optional[str] = None,
    is_recurring: Optional[bool] = None,
    frequency: Optional[str] = None,
) -> Either[dict, AppState]:
    """Apply an explicit edit; unspecified fields keep their value.

    The account may point at an account that was removed since the record
    was written (the record keeps its old name snapshot in that case).
    """
    found = safe_transaction(state.transactions, tx_id)
    if found.is_none():
        return failure("transaction_not_found", f"Transaction {tx_id} does not exist", transaction_id=tx_id)
    old = found.get_or_else(None)
    if old.is_transfer_leg:
        return failure(
            "transfer_not_editable",
            "Transfer legs can only be deleted, not edited",
            transaction_id=tx_id,
        )

    new_kind = kind if kind is not None else old.kind
    new_description = description if description is not None else old.description
    new_amount = amount if amount is not None else old.amount
    recurring = is_recurring if is_recurring is not None else bool(old.is_recurring)
    new_frequency = frequency if frequency is not None else old.frequency
    checked = _check_entry(new_description, new_amount, new_kind, new_frequency)
    if checked.is_left():
        return checked

    new_account_id = account_id if account_id is not None else old.account_id
    updated = replace(
        old,
        description=new_description,
        amount=new_amount,
        kind=new_kind,
        category=category if category is not None else old.category,
        account_id=new_account_id,
        account_name=snapshot_name(state.accounts, new_account_id, old.account_name),
        is_recurring=recurring,
        frequency=(new_frequency or "none") if recurring else "none",
        is_edited=True,
        updated_at=utc_now_iso(now),
    )
    return Right(replace(
        state,
        transactions=tuple(updated if t.id == tx_id else t for t in state.transactions),
    ))


def delete_transaction(state: AppState, tx_id: str) -> Either[dict, AppState]:
    if safe_transaction(state.transactions, tx_id).is_none():
        return failure("transaction_not_found", f"Transaction {tx_id} does not exist", transaction_id=tx_id)
    return Right(replace(state, transactions=remove_transaction(state.transactions, tx_id)))


def add_category(state: AppState, name: str) -> Either[dict, AppState]:
    checked = require_text(name, "category")
    if checked.is_left():
        return checked
    name = name.strip()
    if name in state.categories:
        return failure("duplicate_category", f"Category {name!r} already exists", category=name)
    return Right(replace(state, categories=state.categories + (name,)))


def rename_category(state: AppState, old_name: str, new_name: str) -> Either[dict, AppState]:
    """Rename a category and every record that references it, in one step."""
    if old_name not in state.categories:
        return failure("category_not_found", f"Category {old_name!r} does not exist", category=old_name)
    checked = require_text(new_name, "category")
    if checked.is_left():
        return checked
    new_name = new_name.strip()
    if new_name == old_name:
        return Right(state)
    if new_name in state.categories:
        return failure("duplicate_category", f"Category {new_name!r} already exists", category=new_name)
    return Right(replace(
        state,
        categories=tuple(new_name if c == old_name else c for c in state.categories),
        transactions=tuple(
            replace(t, category=new_name) if t.category == old_name else t
            for t in state.transactions
        ),
    ))


def delete_category(state: AppState, name: str) -> Either[dict, AppState]:
    # records keep the name; they become orphan references
    if name not in state.categories:
        return failure("category_not_found", f"Category {name!r} does not exist", category=name)
    return Right(replace(state, categories=tuple(c for c in state.categories if c != name)))


def add_account(
    state: AppState,
    name: str,
    color: str = DEFAULT_ACCOUNT_COLOR,
    id_factory: Callable[[], str] = new_id,
) -> Either[dict, AppState]:
    checked = require_text(name, "account name")
    if checked.is_left():
        return checked
    account = Account(id=id_factory(), name=name.strip(), color=color)
    return Right(replace(state, accounts=state.accounts + (account,)))


def rename_account(state: AppState, acc_id: str, new_name: str) -> Either[dict, AppState]:
    """Rename an account and the name snapshot on all of its records, in one step."""
    if safe_account(state.accounts, acc_id).is_none():
        return failure("account_not_found", f"Account with ID {acc_id} does not exist", account_id=acc_id)
    checked = require_text(new_name, "account name")
    if checked.is_left():
        return checked
    new_name = new_name.strip()
    return Right(replace(
        state,
        accounts=tuple(replace(a, name=new_name) if a.id == acc_id else a for a in state.accounts),
        transactions=tuple(
            replace(t, account_name=new_name) if t.account_id == acc_id else t
            for t in state.transactions
        ),
    ))


def delete_account(state: AppState, acc_id: str) -> Either[dict, AppState]:
    """Remove an account. A goal reserve takes its goal with it; records stay."""
    found = safe_account(state.accounts, acc_id)
    if found.is_none():
        return failure("account_not_found", f"Account with ID {acc_id} does not exist", account_id=acc_id)
    goals = state.goals
    if found.get_or_else(None).is_goal_account:
        goals = tuple(g for g in goals if g.linked_account_id != acc_id)
    return Right(replace(
        state,
        accounts=tuple(a for a in state.accounts if a.id != acc_id),
        goals=goals,
    ))
