from dataclasses import dataclass
from enum import Enum
from typing import Optional

INCOME = "income"
EXPENSE = "expense"
TRANSFER = "transfer"
TRANSACTION_KINDS = (INCOME, EXPENSE, TRANSFER)

FREQUENCIES = ("none", "daily", "weekly", "monthly", "yearly")
CADENCES = ("daily", "monthly", "yearly")
DEFAULT_CADENCE = "monthly"

TRANSFER_CATEGORY = "Transferência"
GOAL_CATEGORY = "Investimentos"
GOAL_ACCOUNT_COLOR = "#10b981"
DEFAULT_ACCOUNT_COLOR = "#3b82f6"
REMOVED_ACCOUNT_NAME = "Conta Removida"


class UserLevel(str, Enum):
    POUPADOR = "Poupador"
    INVESTIDOR = "Investidor"
    ESTRATEGISTA = "Estrategista"
    MESTRE = "Mestre das Finanças"


@dataclass(frozen=True)
class Account:
    id: str
    name: str
    color: str
    is_goal_account: Optional[bool] = None  # None: flag absent in the stored document


@dataclass(frozen=True)
class Transaction:
    id: str
    description: str
    amount: float        # magnitude, never signed
    kind: str            # income | expense | transfer
    category: str
    account_id: str
    account_name: str    # snapshot taken at write time
    date: str            # e.g. "2025-09-01"
    time: str            # e.g. "14:05"
    is_edited: Optional[bool] = None
    updated_at: Optional[str] = None
    is_recurring: Optional[bool] = None
    frequency: Optional[str] = None
    linked_transfer_id: Optional[str] = None
    destination_account_id: Optional[str] = None  # set on the debit leg only

    @property
    def is_transfer_leg(self) -> bool:
        return self.linked_transfer_id is not None and self.linked_transfer_id != ""

    @property
    def is_debit_leg(self) -> bool:
        return self.kind == TRANSFER and bool(self.destination_account_id)


@dataclass(frozen=True)
class Goal:
    id: str
    name: str
    target: float
    linked_account_id: str
    current: float = 0   # legacy field, progress comes from the linked account
    deadline: Optional[str] = None
    category: Optional[str] = None
    cadence: Optional[str] = None

    @property
    def effective_cadence(self) -> str:
        return self.cadence or DEFAULT_CADENCE


@dataclass(frozen=True)
class AppState:
    transactions: tuple[Transaction, ...]
    accounts: tuple[Account, ...]
    categories: tuple[str, ...]
    goals: tuple[Goal, ...]
    xp: int
    last_sync: str


DEFAULT_ACCOUNTS = (
    Account(id="1", name="Carteira", color="#10b981"),
    Account(id="2", name="Banco Principal", color="#3b82f6"),
)

DEFAULT_CATEGORIES = (
    "Alimentação",
    "Transporte",
    "Lazer",
    "Saúde",
    "Educação",
    "Salário",
    "Investimentos",
)


def default_state(last_sync: str) -> AppState:
    return AppState(
        transactions=(),
        accounts=DEFAULT_ACCOUNTS,
        categories=DEFAULT_CATEGORIES,
        goals=(),
        xp=0,
        last_sync=last_sync,
    )
