"""The persisted state document.

The document is one JSON object with ``transactions``, ``accounts``,
``categories``, ``goals``, ``xp`` and ``lastSync``. Field names follow the
stored (camelCase) format; the engine works on ``finflow.domain`` types.

Imported documents are untrusted. ``parse_document`` validates the whole
document against the schema below, then checks that every transfer has both
of its legs and that every goal owns its own reserve account, and only then
builds an ``AppState``. Any failure rejects the document as a whole.
"""
import json
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from finflow.domain import Account, AppState, Goal, Transaction
from finflow.functional import Either, Right, failure
from finflow.goals import check_goal_reserves
from finflow.transfers import check_transfer_pairs


class _Record(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid", populate_by_name=True)


class AccountRecord(_Record):
    id: str = Field(min_length=1)
    name: str
    color: str
    is_goal_account: Optional[bool] = Field(default=None, alias="isGoalAccount")


class TransactionRecord(_Record):
    id: str = Field(min_length=1)
    description: str
    amount: float = Field(ge=0)
    type: Literal["income", "expense", "transfer"]
    category: str
    account_id: str = Field(alias="accountId")
    account_name: str = Field(alias="accountName")
    date: str
    time: str
    is_edited: Optional[bool] = Field(default=None, alias="isEdited")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    is_recurring: Optional[bool] = Field(default=None, alias="isRecurring")
    frequency: Optional[Literal["none", "daily", "weekly", "monthly", "yearly"]] = None
    linked_transfer_id: Optional[str] = Field(default=None, alias="linkedTransferId")
    destination_account_id: Optional[str] = Field(default=None, alias="destinationAccountId")


class GoalRecord(_Record):
    id: str = Field(min_length=1)
    name: str
    target: float = Field(ge=0)
    current: float = 0
    deadline: Optional[str] = None
    category: Optional[str] = None
    save_frequency: Optional[Literal["daily", "monthly", "yearly"]] = Field(
        default=None, alias="saveFrequency"
    )
    linked_account_id: str = Field(alias="linkedAccountId")


class StateDocument(_Record):
    transactions: list[TransactionRecord]
    accounts: list[AccountRecord]
    categories: list[str]
    goals: list[GoalRecord]
    xp: int = Field(ge=0)
    last_sync: str = Field(alias="lastSync")


def _to_state(doc: StateDocument) -> AppState:
    return AppState(
        transactions=tuple(
            Transaction(
                id=r.id,
                description=r.description,
                amount=r.amount,
                kind=r.type,
                category=r.category,
                account_id=r.account_id,
                account_name=r.account_name,
                date=r.date,
                time=r.time,
                is_edited=r.is_edited,
                updated_at=r.updated_at,
                is_recurring=r.is_recurring,
                frequency=r.frequency,
                linked_transfer_id=r.linked_transfer_id,
                destination_account_id=r.destination_account_id,
            )
            for r in doc.transactions
        ),
        accounts=tuple(
            Account(id=r.id, name=r.name, color=r.color, is_goal_account=r.is_goal_account)
            for r in doc.accounts
        ),
        categories=tuple(doc.categories),
        goals=tuple(
            Goal(
                id=r.id,
                name=r.name,
                target=r.target,
                linked_account_id=r.linked_account_id,
                current=r.current,
                deadline=r.deadline,
                category=r.category,
                cadence=r.save_frequency,
            )
            for r in doc.goals
        ),
        xp=doc.xp,
        last_sync=doc.last_sync,
    )


def _to_document(state: AppState) -> StateDocument:
    return StateDocument(
        transactions=[
            TransactionRecord(
                id=t.id,
                description=t.description,
                amount=t.amount,
                type=t.kind,
                category=t.category,
                account_id=t.account_id,
                account_name=t.account_name,
                date=t.date,
                time=t.time,
                is_edited=t.is_edited,
                updated_at=t.updated_at,
                is_recurring=t.is_recurring,
                frequency=t.frequency,
                linked_transfer_id=t.linked_transfer_id,
                destination_account_id=t.destination_account_id,
            )
            for t in state.transactions
        ],
        accounts=[
            AccountRecord(id=a.id, name=a.name, color=a.color, is_goal_account=a.is_goal_account)
            for a in state.accounts
        ],
        categories=list(state.categories),
        goals=[
            GoalRecord(
                id=g.id,
                name=g.name,
                target=g.target,
                current=g.current,
                deadline=g.deadline,
                category=g.category,
                save_frequency=g.cadence,
                linked_account_id=g.linked_account_id,
            )
            for g in state.goals
        ],
        xp=state.xp,
        last_sync=state.last_sync,
    )


def _rejected(exc: ValidationError) -> Either[dict, AppState]:
    errors = exc.errors(include_url=False, include_input=False)
    if any(e["type"] == "json_invalid" for e in errors):
        return failure("invalid_json", "The file is not valid JSON", details=errors)
    return failure(
        "invalid_document",
        f"The file does not match the expected format ({len(errors)} problem(s))",
        details=errors,
    )


def parse_document(raw: Union[str, bytes]) -> Either[dict, AppState]:
    """Validate an untrusted document; uploads may be passed as raw bytes."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            return failure("invalid_json", "The file is not valid UTF-8 text", position=exc.start)
    try:
        doc = StateDocument.model_validate_json(raw)
    except ValidationError as exc:
        return _rejected(exc)
    state = _to_state(doc)
    return (
        check_transfer_pairs(state.transactions)
        .bind(lambda _: check_goal_reserves(state.goals, state.accounts))
        .map(lambda _: state)
    )


def dump_document(state: AppState) -> dict:
    return _to_document(state).model_dump(by_alias=True, exclude_none=True)


def dumps_document(state: AppState) -> str:
    return json.dumps(dump_document(state), ensure_ascii=False, indent=2)


def load_state(path: str, fallback: AppState) -> Either[dict, AppState]:
    """Read the document at ``path``; a missing file yields ``fallback``."""
    p = Path(path)
    if not p.exists():
        return Right(fallback)
    return parse_document(p.read_bytes())


def save_state(path: str, state: AppState) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    tmp.write_text(dumps_document(state), encoding="utf-8")
    tmp.replace(p)
