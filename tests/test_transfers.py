from datetime import datetime
from itertools import count

from finflow.domain import Account, AppState, Transaction
from finflow.balances import account_balances
from finflow.transfers import (
    build_transfer_legs, check_transfer_pairs, create_transfer, remove_transaction, sibling_leg,
)

NOW = datetime(2025, 9, 1, 14, 5)


def ids():
    counter = count(1)
    return lambda: f"id{next(counter)}"


def make_state(*trans):
    return AppState(
        transactions=tuple(trans),
        accounts=(
            Account(id="x", name="Carteira", color="#10b981"),
            Account(id="y", name="Banco", color="#3b82f6"),
            Account(id="z", name="Poupança", color="#3b82f6"),
        ),
        categories=("Lazer",),
        goals=(),
        xp=0,
        last_sync="2025-09-01T00:00:00+00:00",
    )


def make_tx(id, acc_id, kind, amount):
    return Transaction(
        id=id, description=id, amount=amount, kind=kind, category="Lazer",
        account_id=acc_id, account_name=acc_id, date="2025-08-01", time="09:00",
    )


def test_transfer_creates_two_linked_legs():
    state = make_state()
    new_state = create_transfer(state, "x", "y", 100, NOW, id_factory=ids()).get_or_else(None)

    assert new_state is not None
    debit, credit = new_state.transactions
    assert debit.linked_transfer_id == credit.linked_transfer_id
    assert debit.linked_transfer_id
    assert debit.account_id == "x" and debit.destination_account_id == "y"
    assert credit.account_id == "y" and credit.destination_account_id is None
    assert (debit.amount, debit.date, debit.time) == (credit.amount, credit.date, credit.time)
    assert (debit.date, debit.time) == ("2025-09-01", "14:05")
    assert debit.description == "Transferência para Banco"
    assert credit.description == "Transferência de Carteira"


def test_transfer_moves_balances():
    state = make_state(make_tx("seed", "x", "income", 500))
    new_state = create_transfer(state, "x", "y", 100, NOW).get_or_else(None)
    before = account_balances(state.transactions, state.accounts)
    after = account_balances(new_state.transactions, new_state.accounts)
    assert after["x"] == before["x"] - 100
    assert after["y"] == before["y"] + 100
    assert after["z"] == before["z"]


def test_transfer_does_not_touch_xp():
    state = make_state()
    assert create_transfer(state, "x", "y", 10, NOW).get_or_else(None).xp == 0


def test_same_account_is_rejected():
    result = create_transfer(make_state(), "x", "x", 100, NOW)
    assert result.is_left()
    assert result.get_error()["error"] == "same_account"


def test_non_positive_amount_is_rejected():
    for amount in (0, -5):
        result = create_transfer(make_state(), "x", "y", amount, NOW)
        assert result.get_error()["error"] == "invalid_amount"


def test_unknown_account_is_rejected():
    result = build_transfer_legs(make_state(), "x", "nope", 10, NOW)
    assert result.is_left()
    assert result.get_error()["error"] == "account_not_found"
    assert result.get_error()["account_id"] == "nope"


def test_deleting_either_leg_removes_both():
    base = make_state(make_tx("keep", "z", "income", 70))
    state = create_transfer(base, "x", "y", 100, NOW, id_factory=ids()).get_or_else(None)
    debit, credit = state.transactions[1:]

    for target in (debit.id, credit.id):
        remaining = remove_transaction(state.transactions, target)
        assert len(state.transactions) - len(remaining) == 2
        assert [t.id for t in remaining] == ["keep"]
        assert account_balances(remaining, state.accounts)["z"] == 70


def test_deleting_plain_record_removes_only_it():
    trans = (make_tx("a", "x", "income", 1), make_tx("b", "x", "expense", 1))
    assert [t.id for t in remove_transaction(trans, "a")] == ["b"]
    assert remove_transaction(trans, "missing") == trans


def test_sibling_leg_lookup():
    state = create_transfer(make_state(), "x", "y", 5, NOW, id_factory=ids()).get_or_else(None)
    debit, credit = state.transactions
    assert sibling_leg(state.transactions, debit).get_or_else(None) == credit
    assert sibling_leg(state.transactions, credit).get_or_else(None) == debit
    assert sibling_leg(state.transactions, make_tx("p", "x", "income", 1)).is_none()


def test_pair_check_accepts_complete_pairs():
    state = create_transfer(make_state(), "x", "y", 5, NOW).get_or_else(None)
    assert check_transfer_pairs(state.transactions).is_right()


def test_pair_check_rejects_lonely_leg():
    state = create_transfer(make_state(), "x", "y", 5, NOW).get_or_else(None)
    result = check_transfer_pairs(state.transactions[:1])
    assert result.is_left()
    assert result.get_error()["error"] == "broken_transfer_pair"


def test_pair_check_rejects_transfer_without_link():
    lonely = make_tx("t", "x", "transfer", 5)
    assert check_transfer_pairs((lonely,)).get_error()["error"] == "broken_transfer_pair"
