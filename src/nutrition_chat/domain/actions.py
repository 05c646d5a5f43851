"""Domain models for confirmable pending actions."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum

from nutrition_chat.domain.ledger import MealFood, MealType


class ActionType(StrEnum):
    """Kinds of ledger mutations a conversation can propose."""

    ADD_MEAL = "add_meal"
    ADD_WATER = "add_water"
    DELETE_MEAL = "delete_meal"
    EDIT_MEAL = "edit_meal"
    CLEAR_DAY = "clear_day"
    CLEAR_RANGE = "clear_range"
    UPDATE_PROFILE = "update_profile"
    TRACK_WEIGHT = "track_weight"


class ActionStatus(StrEnum):
    """Lifecycle states of a pending action."""

    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class MealPayload:
    """Foods to add as one meal, or as one meal per date for multi-day batches."""

    target_date: date
    meal_type: MealType
    foods: tuple[MealFood, ...]
    multi_day: bool = False


@dataclass(frozen=True)
class WaterPayload:
    """Signed water delta in liters."""

    target_date: date
    amount_liters: float


@dataclass(frozen=True)
class DeleteMealPayload:
    """Meal to delete, by id or by name."""

    target_date: date
    meal_id: str | None = None
    meal_name: str | None = None


@dataclass(frozen=True)
class EditMealPayload:
    """Changes to apply to a meal, found by id or by name."""

    target_date: date
    changes: dict[str, object]
    meal_id: str | None = None
    meal_name: str | None = None


@dataclass(frozen=True)
class ClearDayPayload:
    """Day whose meals are removed."""

    target_date: date


@dataclass(frozen=True)
class ClearRangePayload:
    """Inclusive range of days whose meals are removed."""

    start_date: date
    end_date: date


@dataclass(frozen=True)
class ProfilePayload:
    """Profile fields to update."""

    updates: dict[str, object]


@dataclass(frozen=True)
class WeightPayload:
    """Body weight measurement for a day."""

    target_date: date
    weight_kg: float


ActionPayload = (
    MealPayload
    | WaterPayload
    | DeleteMealPayload
    | EditMealPayload
    | ClearDayPayload
    | ClearRangePayload
    | ProfilePayload
    | WeightPayload
)

PAYLOAD_TYPES: dict[ActionType, type] = {
    ActionType.ADD_MEAL: MealPayload,
    ActionType.ADD_WATER: WaterPayload,
    ActionType.DELETE_MEAL: DeleteMealPayload,
    ActionType.EDIT_MEAL: EditMealPayload,
    ActionType.CLEAR_DAY: ClearDayPayload,
    ActionType.CLEAR_RANGE: ClearRangePayload,
    ActionType.UPDATE_PROFILE: ProfilePayload,
    ActionType.TRACK_WEIGHT: WeightPayload,
}

TERMINAL_STATUSES = frozenset({ActionStatus.COMPLETED, ActionStatus.REJECTED})


@dataclass
class PendingAction:
    """User-confirmable unit of work against the ledger."""

    id: str
    group_id: str
    type: ActionType
    description: str
    payload: ActionPayload
    status: ActionStatus = ActionStatus.PENDING
    error: str | None = None
    settled_at: datetime | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        expected = PAYLOAD_TYPES[self.type]
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.type} expects {expected.__name__}, "
                f"got {type(self.payload).__name__}"
            )
