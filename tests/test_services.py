import json
from datetime import date, datetime, timezone
from itertools import count

from finflow.balances import account_balances
from finflow.domain import UserLevel, default_state
from finflow.events import GOAL_CREATED, build_event_bus
from finflow.goals import MOVE_IN
from finflow.persistence import parse_document
from finflow.services import DashboardService, LedgerStore, default_dashboard

NOW = datetime(2025, 9, 1, 14, 5, tzinfo=timezone.utc)


def make_store(**kwargs):
    counter = count(1)
    return LedgerStore(
        default_state("2025-01-01T00:00:00+00:00"),
        clock=lambda: NOW,
        id_factory=lambda: f"id{next(counter)}",
        **kwargs,
    )


def test_transaction_awards_xp_and_refreshes_sync():
    store = make_store()
    result = store.add_transaction("Mercado", 40, "expense", "Alimentação", "1")
    assert result.is_right()
    assert store.state.xp == 25
    assert store.state.last_sync == NOW.isoformat()
    assert store.state.transactions[0].id == "id1"


def test_transfer_awards_thirty_and_moves_money():
    store = make_store()
    before = account_balances(store.state.transactions, store.state.accounts)
    store.create_transfer("1", "2", 100)
    state = store.state
    after = account_balances(state.transactions, state.accounts)

    assert state.xp == 30
    assert len(state.transactions) == 2
    assert state.transactions[0].linked_transfer_id == state.transactions[1].linked_transfer_id
    assert after["1"] == before["1"] - 100
    assert after["2"] == before["2"] + 100


def test_goal_flow_awards():
    store = make_store()
    store.create_goal("Viagem", 1200, "2026-01-01")
    assert store.state.xp == 100
    goal = store.state.goals[0]
    store.move_goal_value(goal.id, MOVE_IN, 300)
    assert store.state.xp == 150
    store.set_goal_cadence(goal.id, "daily")
    store.edit_goal(goal.id, "Viagem longa", 2000)
    assert store.state.xp == 150


def test_rejection_leaves_state_untouched():
    commits = []
    store = make_store(on_commit=commits.append)
    before = store.state

    for result in (
        store.create_transfer("1", "1", 10),
        store.create_transfer("1", "2", 0),
        store.add_transaction("", 10, "expense", "Lazer", "1"),
        store.rename_category("Lazer", "Saúde"),
        store.delete_goal("missing"),
    ):
        assert result.is_left()

    assert store.state is before
    assert commits == []


def test_on_commit_receives_every_new_state():
    commits = []
    store = make_store(on_commit=commits.append)
    store.add_category("Pets")
    store.rename_account("1", "Carteira Física")
    assert len(commits) == 2
    assert commits[-1] is store.state


def test_edit_changes_kind_account_and_recurrence():
    store = make_store()
    store.add_transaction("Freela", 300, "expense", "Lazer", "1")
    tx_id = store.state.transactions[0].id
    result = store.edit_transaction(
        tx_id, kind="income", account_id="2", is_recurring=True, frequency="monthly",
    )
    tx = result.get_or_else(None).transactions[0]
    assert (tx.kind, tx.account_id, tx.account_name) == ("income", "2", "Banco Principal")
    assert (tx.is_recurring, tx.frequency) == (True, "monthly")
    assert store.state.xp == 25


def test_delete_transfer_leg_removes_pair_without_xp_change():
    store = make_store()
    store.add_transaction("Salário", 1000, "income", "Salário", "1")
    store.create_transfer("1", "2", 100)
    xp = store.state.xp
    credit = store.state.transactions[-1]
    store.delete_transaction(credit.id)
    assert len(store.state.transactions) == 1
    assert store.state.xp == xp


def test_account_and_category_management():
    store = make_store()
    store.add_account("Corretora", color="#123456")
    acc = store.state.accounts[-1]
    assert acc.color == "#123456"
    store.delete_account(acc.id)
    store.add_category("Pets")
    store.delete_category("Pets")
    assert "Pets" not in store.state.categories
    assert store.state.xp == 0


def test_import_replaces_everything_or_nothing():
    source = make_store()
    source.add_transaction("Mercado", 40, "expense", "Alimentação", "1")
    exported = source.export_document()

    target = make_store()
    assert target.import_document("garbage").is_left()
    assert target.state.transactions == ()

    assert target.import_document(exported).is_right()
    assert target.state.transactions == source.state.transactions
    assert target.state.xp == 25


def test_failed_save_keeps_previous_state():
    def broken_disk(state):
        raise OSError("disk full")

    store = make_store(on_commit=broken_disk)
    before = store.state
    result = store.add_transaction("Mercado", 40, "expense", "Alimentação", "1")
    assert result.get_error()["error"] == "save_failed"
    assert store.state is before


def test_import_with_foreign_goal_reserve_changes_nothing():
    doc = json.loads(make_store().export_document())
    doc["goals"] = [
        {"id": "g1", "name": "Casa", "target": 100, "linkedAccountId": "1"},
        {"id": "g2", "name": "Carro", "target": 100, "linkedAccountId": "1"},
    ]
    store = make_store()
    before = store.state
    assert store.import_document(json.dumps(doc).encode("utf-8")).is_left()
    assert store.state is before
    assert [a.id for a in store.state.accounts] == ["1", "2"]


def test_export_round_trip():
    store = make_store()
    store.add_transaction("Mercado", 40, "expense", "Alimentação", "1")
    store.create_goal("Casa", 900)
    text = store.export_document()
    assert json.loads(text)["xp"] == 125
    assert parse_document(text).get_or_else(None) == store.state


def test_custom_bus_controls_rewards():
    bus = build_event_bus()
    bus.subscribe(GOAL_CREATED, lambda event, payload: {"xp_delta": 400})
    store = make_store(bus=bus)
    store.create_goal("Casa", 900)
    assert store.state.xp == 500


def test_default_dashboard_snapshot():
    store = make_store()
    store.add_transaction("Salário", 1000, "income", "Salário", "1")
    store.add_transaction("Cinema", 50, "expense", "Lazer", "2")
    store.create_goal("Casa", 900, "2025-10-01")
    goal = store.state.goals[0]
    store.move_goal_value(goal.id, MOVE_IN, 300, "1")

    report = default_dashboard(today=date(2025, 9, 1)).snapshot(store.state)
    result = report["result"]
    assert result["balances"]["1"] == 700
    assert result["balances"]["2"] == -50
    assert result["balances"][goal.linked_account_id] == 300
    assert result["totals"].net == 950
    assert result["level"].name == UserLevel.POUPADOR
    assert result["goals"][0].progress == 300 / 900 * 100
    assert result["goals"][0].plan.get_or_else(None).amount == 600
    assert [d.date for d in result["daily"]] == ["2025-09-01"]
    assert result["expense_by_category"] == {"Lazer": 50}
    assert result["income_by_category"] == {"Salário": 1000}
    assert result["orphans"].is_clean
    assert [s["projection"] for s in report["steps"]][:3] == [
        "balances_projection", "totals_projection", "level_projection",
    ]


def test_dashboard_projections_see_earlier_results():
    seen = {}

    def first(state, acc):
        return {"count": len(state.transactions)}

    def second(state, acc):
        seen.update(acc)
        return {"double": acc["count"] * 2}

    report = DashboardService([first, second]).snapshot(default_state("x"))
    assert seen == {"count": 0}
    assert report["result"] == {"count": 0, "double": 0}
