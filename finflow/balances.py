from dataclasses import dataclass

from finflow.domain import Account, Transaction, INCOME, EXPENSE, TRANSFER


@dataclass(frozen=True)
class Totals:
    income: float
    expenses: float
    net: float


def signed_amount(t: Transaction) -> float:
    """Effect of one record on the balance of its own account."""
    if t.kind == INCOME:
        return t.amount
    if t.kind == EXPENSE:
        return -t.amount
    if t.kind == TRANSFER:
        return -t.amount if t.destination_account_id else t.amount
    return 0


def account_balances(trans: tuple[Transaction, ...], accs: tuple[Account, ...]) -> dict[str, float]:
    """Current balance for every known account.

    Every account starts at zero. Records pointing at an account id that is
    not in ``accs`` are skipped and never create a new key.
    """
    balances: dict[str, float] = {a.id: 0 for a in accs}
    for t in trans:
        if t.account_id in balances:
            balances[t.account_id] += signed_amount(t)
    return balances


def unaccounted_transactions(
    trans: tuple[Transaction, ...], accs: tuple[Account, ...]
) -> tuple[Transaction, ...]:
    """Records left out of ``account_balances`` because their account is gone."""
    known = {a.id for a in accs}
    return tuple(filter(lambda t: t.account_id not in known, trans))


def totals(trans: tuple[Transaction, ...]) -> Totals:
    # transfers move money between accounts and are left out of the summary
    income = sum(t.amount for t in trans if t.kind == INCOME)
    expenses = sum(t.amount for t in trans if t.kind == EXPENSE)
    return Totals(income=income, expenses=expenses, net=income - expenses)
