"""Pending action lifecycle and execution against the ledger."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Protocol, TypeVar
from uuid import uuid4

from nutrition_chat.domain.actions import (
    TERMINAL_STATUSES,
    ActionStatus,
    ActionType,
    ClearDayPayload,
    ClearRangePayload,
    DeleteMealPayload,
    EditMealPayload,
    MealPayload,
    PendingAction,
    ProfilePayload,
    WaterPayload,
    WeightPayload,
)
from nutrition_chat.domain.chat import SessionContext
from nutrition_chat.domain.errors import ActionNotFoundError, ActionStateError
from nutrition_chat.domain.ledger import (
    DayLedgerEntry,
    MealEntry,
    MealFood,
    MealType,
    meal_total,
)
from nutrition_chat.services.temporal import iter_dates

_logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT")

_MEAL_NAMES = {
    MealType.BREAKFAST: "Frühstück",
    MealType.LUNCH: "Mittagessen",
    MealType.DINNER: "Abendessen",
    MealType.SNACK: "Snack",
}


class LedgerGateway(Protocol):
    """Persistence interface for per-day ledger entries."""

    async def get_entry(self, day: date) -> DayLedgerEntry | None:
        """Return the ledger entry for a day, if present."""

    async def add_meal(self, day: date, meal: MealEntry) -> None:
        """Append a meal to a day."""

    async def update_water(self, day: date, delta_liters: float) -> float:
        """Apply a signed water delta and return the new total."""

    async def delete_meal(self, day: date, meal_id: str) -> None:
        """Remove a meal from a day."""

    async def update_meal(
        self, day: date, meal_id: str, changes: dict[str, object]
    ) -> None:
        """Apply field changes to a meal."""

    async def clear_day(self, day: date) -> None:
        """Remove every meal of a day."""

    async def set_weight(self, day: date, weight_kg: float) -> None:
        """Record the body weight for a day."""


class ProfileRepository(Protocol):
    """Persistence interface for the user profile."""

    def get_profile(self) -> dict[str, object]:
        """Return the stored profile fields."""

    def update_profile(self, updates: dict[str, object]) -> dict[str, object]:
        """Merge updates into the profile and return it."""


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class PendingActionManager:
    """Hold proposed actions until the user confirms or rejects them.

    Actions run one at a time. Settled actions stay visible for a short
    grace period so a client can render the outcome. Failed ones stay
    visible with their error.
    """

    ledger: LedgerGateway
    profiles: ProfileRepository
    session: SessionContext
    clock: Callable[[], datetime] = _utc_now
    completed_grace_seconds: float = 3
    rejected_grace_seconds: float = 2
    inter_action_delay_seconds: float = 0
    _actions: dict[str, PendingAction] = field(default_factory=dict, init=False)
    _handlers: dict[ActionType, Callable[[PendingAction], Awaitable[None]]] = field(
        default_factory=dict, init=False
    )

    def __post_init__(self) -> None:
        self._handlers = {
            ActionType.ADD_MEAL: self._add_meal,
            ActionType.ADD_WATER: self._add_water,
            ActionType.DELETE_MEAL: self._delete_meal,
            ActionType.EDIT_MEAL: self._edit_meal,
            ActionType.CLEAR_DAY: self._clear_day,
            ActionType.CLEAR_RANGE: self._clear_range,
            ActionType.UPDATE_PROFILE: self._update_profile,
            ActionType.TRACK_WEIGHT: self._track_weight,
        }
        missing = set(ActionType) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for action types: {sorted(missing)}")

    def register(self, actions: Iterable[PendingAction]) -> None:
        """Track newly proposed actions."""
        for action in actions:
            self._actions[action.id] = action

    def get(self, action_id: str) -> PendingAction:
        """Return a tracked action by id."""
        action = self._actions.get(action_id)
        if action is None:
            raise ActionNotFoundError(f"Unknown action {action_id}")
        return action

    def active_actions(self, group_id: str | None = None) -> list[PendingAction]:
        """Return visible actions in proposal order, purging expired ones."""
        now = self.clock()
        for action_id, action in list(self._actions.items()):
            if self._expired(action, now):
                del self._actions[action_id]
        return [
            action
            for action in self._actions.values()
            if group_id is None or action.group_id == group_id
        ]

    async def confirm(self, action_id: str) -> PendingAction:
        """Execute a single pending action."""
        action = self._require_pending(self.get(action_id))
        await self.execute(action)
        return action

    def reject(self, action_id: str) -> PendingAction:
        """Reject a single pending action without touching the ledger."""
        action = self._require_pending(self.get(action_id))
        self._settle(action, ActionStatus.REJECTED)
        return action

    async def confirm_all(self, group_id: str) -> list[PendingAction]:
        """Execute every pending action of a group in proposal order."""
        actions = self._pending_in_group(group_id)
        await self.execute_all(actions)
        return actions

    def reject_all(self, group_id: str) -> list[PendingAction]:
        """Reject every pending action of a group."""
        actions = self._pending_in_group(group_id)
        for action in actions:
            self._settle(action, ActionStatus.REJECTED)
        return actions

    async def execute(self, action: PendingAction) -> None:
        """Run one action, recording failure on the action instead of raising."""
        if action.status is not ActionStatus.PENDING:
            raise ActionStateError(f"Action {action.id} is {action.status}")
        action.status = ActionStatus.EXECUTING
        action.error = None
        try:
            await self._handlers[action.type](action)
        except Exception as exc:
            _logger.warning("Action %s (%s) failed: %s", action.id, action.type, exc)
            action.error = str(exc) or type(exc).__name__
            self._settle(action, ActionStatus.FAILED)
        else:
            self._settle(action, ActionStatus.COMPLETED)
        finally:
            if action.status is ActionStatus.EXECUTING:
                self._settle(action, ActionStatus.FAILED)

    async def execute_all(self, actions: list[PendingAction]) -> None:
        """Run actions strictly one after another."""
        for index, action in enumerate(actions):
            if index and self.inter_action_delay_seconds > 0:
                await asyncio.sleep(self.inter_action_delay_seconds)
            await self.execute(action)

    def _pending_in_group(self, group_id: str) -> list[PendingAction]:
        actions = [
            action for action in self._actions.values() if action.group_id == group_id
        ]
        if not actions:
            raise ActionNotFoundError(f"Unknown action group {group_id}")
        return [action for action in actions if action.status is ActionStatus.PENDING]

    def _require_pending(self, action: PendingAction) -> PendingAction:
        if action.status is not ActionStatus.PENDING:
            raise ActionStateError(f"Action {action.id} is {action.status}")
        return action

    def _settle(self, action: PendingAction, status: ActionStatus) -> None:
        action.status = status
        action.settled_at = self.clock()

    def _expired(self, action: PendingAction, now: datetime) -> bool:
        if action.settled_at is None or action.status not in TERMINAL_STATUSES:
            return False
        grace = (
            self.completed_grace_seconds
            if action.status is ActionStatus.COMPLETED
            else self.rejected_grace_seconds
        )
        return now - action.settled_at >= timedelta(seconds=grace)

    async def _add_meal(self, action: PendingAction) -> None:
        payload = _expect(action, MealPayload)
        by_date: dict[date, list[MealFood]] = {}
        for food in payload.foods:
            day = food.target_date if payload.multi_day else None
            by_date.setdefault(day or payload.target_date, []).append(food)

        if not payload.multi_day:
            await self._write_meal(payload.target_date, payload.meal_type, by_date)
            return

        previous = self.session.selected_date
        try:
            for day in by_date:
                self.session.selected_date = day
                await self._write_meal(day, payload.meal_type, by_date)
        finally:
            self.session.selected_date = previous

    async def _write_meal(
        self, day: date, meal_type: MealType, by_date: dict[date, list[MealFood]]
    ) -> None:
        foods = tuple(by_date[day])
        meal = MealEntry(
            id=uuid4().hex,
            name=_MEAL_NAMES[meal_type],
            meal_type=meal_type,
            foods=foods,
            total=meal_total(foods),
            time=self.clock().strftime("%H:%M"),
        )
        await self.ledger.add_meal(day, meal)

    async def _add_water(self, action: PendingAction) -> None:
        payload = _expect(action, WaterPayload)
        await self.ledger.update_water(payload.target_date, payload.amount_liters)

    async def _delete_meal(self, action: PendingAction) -> None:
        payload = _expect(action, DeleteMealPayload)
        meal_id = payload.meal_id or await self._find_meal_id(
            payload.target_date, payload.meal_name
        )
        await self.ledger.delete_meal(payload.target_date, meal_id)

    async def _edit_meal(self, action: PendingAction) -> None:
        payload = _expect(action, EditMealPayload)
        meal_id = payload.meal_id or await self._find_meal_id(
            payload.target_date, payload.meal_name
        )
        await self.ledger.update_meal(payload.target_date, meal_id, payload.changes)

    async def _find_meal_id(self, day: date, name: str | None) -> str:
        entry = await self.ledger.get_entry(day)
        needle = (name or "").strip().lower()
        meals = entry.meals if entry else ()
        if needle:
            for meal in meals:
                if meal.name.lower() == needle:
                    return meal.id
            for meal in meals:
                names = [meal.name, *(food.name for food in meal.foods)]
                if any(needle in candidate.lower() for candidate in names):
                    return meal.id
        raise LookupError(f"Mahlzeit '{name}' am {day.isoformat()} nicht gefunden")

    async def _clear_day(self, action: PendingAction) -> None:
        payload = _expect(action, ClearDayPayload)
        await self.ledger.clear_day(payload.target_date)

    async def _clear_range(self, action: PendingAction) -> None:
        payload = _expect(action, ClearRangePayload)
        for day in iter_dates(payload.start_date, payload.end_date):
            await self.ledger.clear_day(day)

    async def _update_profile(self, action: PendingAction) -> None:
        payload = _expect(action, ProfilePayload)
        await asyncio.to_thread(self.profiles.update_profile, payload.updates)

    async def _track_weight(self, action: PendingAction) -> None:
        payload = _expect(action, WeightPayload)
        await asyncio.to_thread(
            self.profiles.update_profile, {"weight": payload.weight_kg}
        )
        await self.ledger.set_weight(payload.target_date, payload.weight_kg)


def _expect(action: PendingAction, kind: type[PayloadT]) -> PayloadT:
    if not isinstance(action.payload, kind):
        raise TypeError(f"{action.type} carries {type(action.payload).__name__}")
    return action.payload
