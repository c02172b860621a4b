from datetime import datetime
from itertools import count

from finflow.domain import Account, AppState, Goal
from finflow.transforms import (
    add_account, add_category, add_transaction, delete_account, delete_category,
    delete_transaction, edit_transaction, rename_account, rename_category,
)
from finflow.transfers import create_transfer

NOW = datetime(2025, 9, 1, 14, 5)
LATER = datetime(2025, 9, 2, 9, 0)


def ids():
    counter = count(1)
    return lambda: f"id{next(counter)}"


def make_state():
    return AppState(
        transactions=(),
        accounts=(
            Account(id="a1", name="Carteira", color="#10b981"),
            Account(id="a2", name="Banco", color="#3b82f6"),
            Account(id="r1", name="Meta: Carro", color="#10b981", is_goal_account=True),
        ),
        categories=("Alimentação", "Lazer"),
        goals=(Goal(id="g1", name="Carro", target=5000, linked_account_id="r1"),),
        xp=0,
        last_sync="2025-09-01T00:00:00+00:00",
    )


def with_expense(state=None):
    state = state or make_state()
    return add_transaction(state, "Mercado", 42.5, "expense", "Alimentação", "a1", NOW,
                           id_factory=ids()).get_or_else(None)


def test_add_transaction_stamps_record():
    state = with_expense()
    tx = state.transactions[0]
    assert (tx.id, tx.account_name, tx.date, tx.time) == ("id1", "Carteira", "2025-09-01", "14:05")
    assert tx.frequency == "none"
    assert tx.is_recurring is False
    assert tx.is_edited is None


def test_add_transaction_keeps_recurrence_intent():
    state = add_transaction(make_state(), "Aluguel", 900, "expense", "Lazer", "a1", NOW,
                            is_recurring=True, frequency="monthly").get_or_else(None)
    assert state.transactions[0].frequency == "monthly"


def test_add_transaction_validation():
    state = make_state()
    assert add_transaction(state, "", 1, "expense", "Lazer", "a1", NOW).get_error()["error"] == "missing_field"
    assert add_transaction(state, "x", 0, "expense", "Lazer", "a1", NOW).get_error()["error"] == "invalid_amount"
    assert add_transaction(state, "x", 1, "transfer", "Lazer", "a1", NOW).get_error()["error"] == "invalid_kind"
    assert add_transaction(state, "x", 1, "expense", "Lazer", "zz", NOW).get_error()["error"] == "account_not_found"


def test_add_transaction_does_not_mutate_input():
    state = make_state()
    with_expense(state)
    assert state.transactions == ()


def test_edit_transaction_marks_record():
    state = with_expense()
    edited = edit_transaction(state, "id1", LATER, amount=50, category="Lazer", account_id="a2").get_or_else(None)
    tx = edited.transactions[0]
    assert (tx.amount, tx.category, tx.account_id, tx.account_name) == (50, "Lazer", "a2", "Banco")
    assert tx.description == "Mercado"
    assert tx.is_edited is True
    assert tx.updated_at == LATER.isoformat()
    assert (tx.date, tx.time) == ("2025-09-01", "14:05")


def test_edit_rejects_invalid_values_and_transfer_legs():
    state = with_expense()
    assert edit_transaction(state, "id1", LATER, amount=-1).get_error()["error"] == "invalid_amount"
    assert edit_transaction(state, "nope", LATER).get_error()["error"] == "transaction_not_found"
    state = create_transfer(state, "a1", "a2", 10, NOW).get_or_else(None)
    leg = state.transactions[1]
    assert edit_transaction(state, leg.id, LATER, amount=5).get_error()["error"] == "transfer_not_editable"


def test_delete_transaction_removes_transfer_pair():
    state = create_transfer(with_expense(), "a1", "a2", 10, NOW).get_or_else(None)
    leg = state.transactions[2]
    after = delete_transaction(state, leg.id).get_or_else(None)
    assert [t.id for t in after.transactions] == ["id1"]
    assert delete_transaction(after, leg.id).is_left()


def test_rename_category_updates_records():
    state = with_expense()
    renamed = rename_category(state, "Alimentação", "Comida").get_or_else(None)
    assert renamed.categories == ("Comida", "Lazer")
    assert renamed.transactions[0].category == "Comida"


def test_rename_category_rejects_duplicates():
    result = rename_category(make_state(), "Alimentação", "Lazer")
    assert result.get_error()["error"] == "duplicate_category"
    assert rename_category(make_state(), "Nope", "X").get_error()["error"] == "category_not_found"
    assert rename_category(make_state(), "Lazer", "Lazer").get_or_else(None) == make_state()


def test_add_and_delete_category():
    state = add_category(make_state(), " Pets ").get_or_else(None)
    assert state.categories[-1] == "Pets"
    assert add_category(state, "Pets").get_error()["error"] == "duplicate_category"
    assert add_category(state, "  ").get_error()["error"] == "missing_field"


def test_delete_category_keeps_records():
    state = delete_category(with_expense(), "Alimentação").get_or_else(None)
    assert state.categories == ("Lazer",)
    assert state.transactions[0].category == "Alimentação"


def test_rename_account_updates_snapshots_together():
    state = rename_account(with_expense(), "a1", "Carteira Física").get_or_else(None)
    assert next(a for a in state.accounts if a.id == "a1").name == "Carteira Física"
    assert state.transactions[0].account_name == "Carteira Física"
    assert rename_account(state, "zz", "x").get_error()["error"] == "account_not_found"


def test_add_account():
    state = add_account(make_state(), "Corretora", id_factory=ids()).get_or_else(None)
    acc = state.accounts[-1]
    assert (acc.id, acc.name, acc.color, acc.is_goal_account) == ("id1", "Corretora", "#3b82f6", None)


def test_delete_plain_account_keeps_goals_and_records():
    state = delete_account(with_expense(), "a1").get_or_else(None)
    assert [a.id for a in state.accounts] == ["a2", "r1"]
    assert len(state.goals) == 1
    assert len(state.transactions) == 1


def test_delete_goal_account_cascades_to_goal():
    state = delete_account(make_state(), "r1").get_or_else(None)
    assert state.goals == ()
    assert [a.id for a in state.accounts] == ["a1", "a2"]
