from typing import Callable, Dict, List, NamedTuple
from datetime import datetime, timezone

from finflow.leveling import XP_TRANSACTION, XP_TRANSFER, XP_GOAL_CREATED, XP_GOAL_MOVEMENT

__all__ = [
    'Event', 'EventBus', 'build_event_bus', 'xp_reward_handler', 'collect_xp',
    'TRANSACTION_CREATED', 'TRANSFER_COMPLETED', 'GOAL_CREATED', 'GOAL_MOVEMENT',
]

TRANSACTION_CREATED = "TRANSACTION_CREATED"
TRANSFER_COMPLETED = "TRANSFER_COMPLETED"
GOAL_CREATED = "GOAL_CREATED"
GOAL_MOVEMENT = "GOAL_MOVEMENT"

XP_REWARDS = {
    TRANSACTION_CREATED: XP_TRANSACTION,
    TRANSFER_COMPLETED: XP_TRANSFER,
    GOAL_CREATED: XP_GOAL_CREATED,
    GOAL_MOVEMENT: XP_GOAL_MOVEMENT,
}


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        if name not in self._subscribers:
            return []
        event = Event(name=name, ts=datetime.now(timezone.utc).isoformat(), payload=payload)
        return [handler(event, payload) for handler in self._subscribers[name]]


def xp_reward_handler(event: Event, payload: dict) -> dict:
    return {"xp_delta": XP_REWARDS.get(event.name, 0)}


def collect_xp(results: List[dict]) -> int:
    return sum(r.get("xp_delta", 0) for r in results)


def build_event_bus() -> EventBus:
    bus = EventBus()
    for name in XP_REWARDS:
        bus.subscribe(name, xp_reward_handler)
    return bus
