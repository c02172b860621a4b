from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional, Sequence, Union

from finflow import goals as goal_ops
from finflow import transforms
from finflow.aggregates import HISTORY_DAYS, daily_totals, expense_by_category, income_by_category
from finflow.balances import account_balances, totals
from finflow.domain import AppState
from finflow.events import (
    EventBus, build_event_bus, collect_xp,
    TRANSACTION_CREATED, TRANSFER_COMPLETED, GOAL_CREATED, GOAL_MOVEMENT,
)
from finflow.functional import Either, Right, failure
from finflow.leveling import award, get_level
from finflow.log import get_logger
from finflow.persistence import dumps_document, parse_document
from finflow.transfers import create_transfer, new_id
from finflow.views import orphan_report

logger = get_logger(__name__)


class LedgerStore:
    """Owns the application state and applies every change as one replacement.

    Each mutating method returns the ``Either`` produced by the engine. On
    ``Left`` the held state is left exactly as it was. On ``Right`` the new
    state gets its XP award (from the event bus) and a fresh ``last_sync``,
    is handed to ``on_commit`` and only then replaces the old one. A save that
    fails with ``OSError`` turns into a ``save_failed`` rejection.
    """

    def __init__(
        self,
        state: AppState,
        bus: Optional[EventBus] = None,
        on_commit: Optional[Callable[[AppState], None]] = None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = new_id,
    ):
        self._state = state
        self._bus = bus if bus is not None else build_event_bus()
        self._on_commit = on_commit
        self._clock = clock
        self._id_factory = id_factory

    @property
    def state(self) -> AppState:
        return self._state

    def _commit(
        self,
        action: str,
        result: Either[dict, AppState],
        event: Optional[str] = None,
        **context: Any,
    ) -> Either[dict, AppState]:
        if result.is_left():
            err = result.get_error()
            logger.warning("mutation_rejected", action=action, error=err.get("error"), **context)
            return result

        new_state = result.get_or_else(None)
        xp_delta = collect_xp(self._bus.publish(event, {"action": action, **context})) if event else 0
        now = self._clock().astimezone(timezone.utc)
        new_state = replace(new_state, xp=award(new_state.xp, xp_delta), last_sync=now.isoformat())
        if self._on_commit is not None:
            try:
                self._on_commit(new_state)
            except OSError as exc:
                logger.exception("state_save_failed", action=action, **context)
                return failure("save_failed", f"Could not save the change: {exc}", action=action)
        self._state = new_state
        logger.info("mutation_applied", action=action, xp_delta=xp_delta, **context)
        return Right(new_state)

    # transactions

    def add_transaction(self, description: str, amount: float, kind: str, category: str,
                        account_id: str, is_recurring: bool = False,
                        frequency: Optional[str] = None) -> Either[dict, AppState]:
        result = transforms.add_transaction(
            self._state, description, amount, kind, category, account_id, self._clock(),
            is_recurring=is_recurring, frequency=frequency, id_factory=self._id_factory,
        )
        return self._commit("add_transaction", result, TRANSACTION_CREATED, kind=kind, account_id=account_id)

    def edit_transaction(self, tx_id: str, **changes: Any) -> Either[dict, AppState]:
        result = transforms.edit_transaction(self._state, tx_id, self._clock(), **changes)
        return self._commit("edit_transaction", result, transaction_id=tx_id)

    def delete_transaction(self, tx_id: str) -> Either[dict, AppState]:
        result = transforms.delete_transaction(self._state, tx_id)
        return self._commit("delete_transaction", result, transaction_id=tx_id)

    def create_transfer(self, source_id: str, dest_id: str, amount: float) -> Either[dict, AppState]:
        result = create_transfer(
            self._state, source_id, dest_id, amount, self._clock(), id_factory=self._id_factory
        )
        return self._commit(
            "create_transfer", result, TRANSFER_COMPLETED, source_id=source_id, dest_id=dest_id
        )

    # goals

    def create_goal(self, name: str, target: float, deadline: Optional[str] = None,
                    category: Optional[str] = None) -> Either[dict, AppState]:
        result = goal_ops.create_goal(
            self._state, name, target, deadline=deadline, category=category,
            id_factory=self._id_factory,
        )
        return self._commit("create_goal", result, GOAL_CREATED, name=name)

    def edit_goal(self, goal_id: str, name: str, target: float, deadline: Optional[str] = None,
                  category: Optional[str] = None) -> Either[dict, AppState]:
        result = goal_ops.edit_goal(self._state, goal_id, name, target, deadline=deadline, category=category)
        return self._commit("edit_goal", result, goal_id=goal_id)

    def delete_goal(self, goal_id: str) -> Either[dict, AppState]:
        return self._commit("delete_goal", goal_ops.delete_goal(self._state, goal_id), goal_id=goal_id)

    def set_goal_cadence(self, goal_id: str, cadence: str) -> Either[dict, AppState]:
        result = goal_ops.set_goal_cadence(self._state, goal_id, cadence)
        return self._commit("set_goal_cadence", result, goal_id=goal_id, cadence=cadence)

    def move_goal_value(self, goal_id: str, direction: str, amount: float,
                        counter_account_id: Optional[str] = None) -> Either[dict, AppState]:
        result = goal_ops.move_goal_value(
            self._state, goal_id, direction, amount, self._clock(),
            counter_account_id=counter_account_id, id_factory=self._id_factory,
        )
        return self._commit("move_goal_value", result, GOAL_MOVEMENT, goal_id=goal_id, direction=direction)

    # categories and accounts

    def add_category(self, name: str) -> Either[dict, AppState]:
        return self._commit("add_category", transforms.add_category(self._state, name), category=name)

    def rename_category(self, old_name: str, new_name: str) -> Either[dict, AppState]:
        result = transforms.rename_category(self._state, old_name, new_name)
        return self._commit("rename_category", result, old_name=old_name, new_name=new_name)

    def delete_category(self, name: str) -> Either[dict, AppState]:
        return self._commit("delete_category", transforms.delete_category(self._state, name), category=name)

    def add_account(self, name: str, color: Optional[str] = None) -> Either[dict, AppState]:
        options = {"color": color} if color else {}
        result = transforms.add_account(self._state, name, id_factory=self._id_factory, **options)
        return self._commit("add_account", result, name=name)

    def rename_account(self, acc_id: str, new_name: str) -> Either[dict, AppState]:
        result = transforms.rename_account(self._state, acc_id, new_name)
        return self._commit("rename_account", result, account_id=acc_id)

    def delete_account(self, acc_id: str) -> Either[dict, AppState]:
        return self._commit("delete_account", transforms.delete_account(self._state, acc_id), account_id=acc_id)

    # whole document

    def import_document(self, raw: Union[str, bytes]) -> Either[dict, AppState]:
        """Replace everything with an external document; a bad document changes nothing."""
        return self._commit("import_document", parse_document(raw))

    def export_document(self) -> str:
        return dumps_document(self._state)


Projection = Callable[[AppState, Dict[str, Any]], Dict[str, Any]]


class DashboardService:
    """Runs injected read-side projections over a state and collects their outputs.

    projections: sequence of functions taking (state, acc) -> dict (partial results);
    ``acc`` holds everything produced by the projections that ran before.
    """

    def __init__(self, projections: Sequence[Projection]):
        self.projections = projections

    def snapshot(self, state: AppState) -> Dict[str, Any]:
        report = {"last_sync": state.last_sync, "steps": [], "result": {}}
        acc: Dict[str, Any] = {}
        for proj in self.projections:
            out = proj(state, acc)
            report["steps"].append({"projection": getattr(proj, "__name__", str(proj)), "output": out})
            acc.update(out)
        report["result"] = acc
        return report


def balances_projection(state: AppState, acc: Dict[str, Any]) -> Dict[str, Any]:
    return {"balances": account_balances(state.transactions, state.accounts)}


def totals_projection(state: AppState, acc: Dict[str, Any]) -> Dict[str, Any]:
    return {"totals": totals(state.transactions)}


def level_projection(state: AppState, acc: Dict[str, Any]) -> Dict[str, Any]:
    return {"level": get_level(state.xp)}


def goals_projection_for(today: Optional[date] = None) -> Projection:
    def goals_projection(state: AppState, acc: Dict[str, Any]) -> Dict[str, Any]:
        return {"goals": goal_ops.goal_statuses(state, today=today)}

    return goals_projection


def daily_projection_for(days: int = HISTORY_DAYS) -> Projection:
    def daily_projection(state: AppState, acc: Dict[str, Any]) -> Dict[str, Any]:
        return {"daily": daily_totals(state.transactions, days)}

    return daily_projection


def categories_projection(state: AppState, acc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "expense_by_category": expense_by_category(state.transactions, state.categories),
        "income_by_category": income_by_category(state.transactions, state.categories),
    }


def orphans_projection(state: AppState, acc: Dict[str, Any]) -> Dict[str, Any]:
    return {"orphans": orphan_report(state)}


def default_dashboard(history_days: int = HISTORY_DAYS, today: Optional[date] = None) -> DashboardService:
    return DashboardService([
        balances_projection,
        totals_projection,
        level_projection,
        goals_projection_for(today),
        daily_projection_for(history_days),
        categories_projection,
        orphans_projection,
    ])
