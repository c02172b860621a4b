"""Paired transfer records.

A transfer is stored as two ``transfer`` records sharing one
``linked_transfer_id``: the debit leg on the paying account (it carries
``destination_account_id``) and the credit leg on the receiving account.
Both legs are always added together and always removed together.
"""
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional
from uuid import uuid4

from finflow.domain import AppState, Transaction, TRANSFER, TRANSFER_CATEGORY
from finflow.functional import (
    Either, Maybe, Nothing, Right, Some, failure, require_account, require_positive,
)


def new_id() -> str:
    return str(uuid4())


def stamp(now: datetime) -> tuple[str, str]:
    """Calendar date and clock time as stored on records."""
    return now.date().isoformat(), now.strftime("%H:%M")


def build_transfer_legs(
    state: AppState,
    source_id: str,
    dest_id: str,
    amount: float,
    now: datetime,
    description_out: Optional[str] = None,
    description_in: Optional[str] = None,
    category: str = TRANSFER_CATEGORY,
    id_factory: Callable[[], str] = new_id,
) -> Either[dict, tuple[Transaction, Transaction]]:
    checked = require_positive(amount)
    if checked.is_left():
        return checked
    if source_id == dest_id:
        return failure(
            "same_account",
            "Source and destination accounts must be different",
            account_id=source_id,
        )
    source = require_account(state.accounts, source_id)
    if source.is_left():
        return source
    dest = require_account(state.accounts, dest_id)
    if dest.is_left():
        return dest

    src_acc = source.get_or_else(None)
    dst_acc = dest.get_or_else(None)
    date, time = stamp(now)
    link = id_factory()

    debit = Transaction(
        id=id_factory(),
        description=description_out or f"Transferência para {dst_acc.name}",
        amount=amount,
        kind=TRANSFER,
        category=category,
        account_id=src_acc.id,
        account_name=src_acc.name,
        date=date,
        time=time,
        linked_transfer_id=link,
        destination_account_id=dst_acc.id,
    )
    credit = Transaction(
        id=id_factory(),
        description=description_in or f"Transferência de {src_acc.name}",
        amount=amount,
        kind=TRANSFER,
        category=category,
        account_id=dst_acc.id,
        account_name=dst_acc.name,
        date=date,
        time=time,
        linked_transfer_id=link,
    )
    return Right((debit, credit))


def append_transfer(state: AppState, legs: tuple[Transaction, Transaction]) -> AppState:
    return replace(state, transactions=state.transactions + tuple(legs))


def create_transfer(
    state: AppState,
    source_id: str,
    dest_id: str,
    amount: float,
    now: datetime,
    **leg_options,
) -> Either[dict, AppState]:
    """Validate and append both legs in one new state.

    XP is not touched here; the caller awards it for the action that
    triggered the transfer.
    """
    return build_transfer_legs(state, source_id, dest_id, amount, now, **leg_options).map(
        lambda legs: append_transfer(state, legs)
    )


def remove_transaction(trans: tuple[Transaction, ...], tx_id: str) -> tuple[Transaction, ...]:
    """Drop a record; a transfer leg takes its sibling with it."""
    target = next((t for t in trans if t.id == tx_id), None)
    if target is None:
        return trans
    if target.is_transfer_leg:
        link = target.linked_transfer_id
        return tuple(t for t in trans if t.linked_transfer_id != link)
    return tuple(t for t in trans if t.id != tx_id)


def sibling_leg(trans: tuple[Transaction, ...], leg: Transaction) -> Maybe[Transaction]:
    if not leg.is_transfer_leg:
        return Nothing()
    for t in trans:
        if t.linked_transfer_id == leg.linked_transfer_id and t.id != leg.id:
            return Some(t)
    return Nothing()


def check_transfer_pairs(trans: tuple[Transaction, ...]) -> Either[dict, tuple[Transaction, ...]]:
    groups: dict[str, list[Transaction]] = defaultdict(list)
    for t in trans:
        if t.kind == TRANSFER and not t.is_transfer_leg:
            return failure(
                "broken_transfer_pair",
                f"Transfer {t.id} has no linked transfer id",
                transaction_id=t.id,
            )
        if t.is_transfer_leg:
            groups[t.linked_transfer_id].append(t)

    for link, legs in groups.items():
        debits = [t for t in legs if t.is_debit_leg]
        if len(legs) != 2 or len(debits) != 1:
            return failure(
                "broken_transfer_pair",
                f"Transfer {link} must have exactly one debit and one credit leg",
                linked_transfer_id=link,
                legs=len(legs),
            )
        first, second = legs
        if (first.amount, first.date, first.time) != (second.amount, second.date, second.time):
            return failure(
                "broken_transfer_pair",
                f"Legs of transfer {link} disagree on amount, date or time",
                linked_transfer_id=link,
            )
    return Right(trans)
