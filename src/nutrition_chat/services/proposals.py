"""Turn action drafts into confirmable pending actions."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from uuid import uuid4

from nutrition_chat.domain.actions import (
    ActionPayload,
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
from nutrition_chat.domain.ledger import MealFood, MealType, meal_total
from nutrition_chat.domain.nutrition import MacroProfile
from nutrition_chat.services.extraction import DEFAULT_WATER_LITERS, determine_meal_type
from nutrition_chat.services.nutrition import NutritionService
from nutrition_chat.services.payload import ActionDraft, FoodDraft
from nutrition_chat.services.temporal import describe_date

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProposalContext:
    """Request-wide inputs shared by every draft of one message."""

    reference_date: date
    utterance: str
    hour: int


class DraftRejectedError(ValueError):
    """Draft lacks the data its action type needs."""


def _fmt(value: float) -> str:
    return f"{value:g}"


def _new_id() -> str:
    return uuid4().hex


@dataclass
class ActionProposer:
    """Resolve foods and build typed, described pending actions."""

    nutrition: NutritionService

    async def propose(
        self, drafts: list[ActionDraft], group_id: str, context: ProposalContext
    ) -> list[PendingAction]:
        """Build one pending action per usable draft."""
        builders = self._builders()
        actions: list[PendingAction] = []
        for draft in drafts:
            try:
                description, payload = await builders[draft.type](draft, context)
            except DraftRejectedError as exc:
                _logger.warning("Skipping %s draft: %s", draft.type, exc)
                continue
            actions.append(
                PendingAction(
                    id=_new_id(),
                    group_id=group_id,
                    type=draft.type,
                    description=description,
                    payload=payload,
                )
            )
        return actions

    def _builders(
        self,
    ) -> dict[
        ActionType,
        Callable[[ActionDraft, ProposalContext], Awaitable[tuple[str, ActionPayload]]],
    ]:
        return {
            ActionType.ADD_MEAL: self._add_meal,
            ActionType.ADD_WATER: _add_water,
            ActionType.DELETE_MEAL: _delete_meal,
            ActionType.EDIT_MEAL: _edit_meal,
            ActionType.CLEAR_DAY: _clear_day,
            ActionType.CLEAR_RANGE: _clear_range,
            ActionType.UPDATE_PROFILE: _update_profile,
            ActionType.TRACK_WEIGHT: _track_weight,
        }

    async def _add_meal(
        self, draft: ActionDraft, context: ProposalContext
    ) -> tuple[str, MealPayload]:
        if not draft.foods:
            raise DraftRejectedError("no foods")
        target = _target(draft, context)
        foods = tuple([await self._resolve_food(food) for food in draft.foods])
        multi_day = any(
            food.target_date is not None and food.target_date != target
            for food in foods
        )
        meal_type = _meal_type(draft.meal_type, context)

        names = ", ".join(food.name for food in foods)
        if multi_day:
            days = len({food.target_date or target for food in foods})
            when = f"an {days} Tagen"
        else:
            when = describe_date(target, context.reference_date)
        total = meal_total(foods)
        description = (
            f"{names} {when} hinzufügen\n"
            f"{_fmt(total.calories)} kcal • {_fmt(total.protein_g)}g Protein • "
            f"{_fmt(total.carbs_g)}g Kohlenhydrate • {_fmt(total.fat_g)}g Fett"
        )
        payload = MealPayload(
            target_date=target, meal_type=meal_type, foods=foods, multi_day=multi_day
        )
        return description, payload

    async def _resolve_food(self, food: FoodDraft) -> MealFood:
        estimate = None
        if food.calories > 0:
            estimate = MacroProfile(
                calories=food.calories,
                protein_g=food.protein,
                carbs_g=food.carbs,
                fat_g=food.fat,
            )
        resolved = await self.nutrition.resolve(food.name, food.portion, estimate)
        return MealFood(
            id=_new_id(),
            name=resolved.display_name,
            portion=resolved.portion,
            nutrition=resolved.nutrition,
            record_id=resolved.record.id if resolved.record else None,
            confidence=resolved.confidence,
            source=resolved.source.value,
            target_date=date.fromisoformat(food.target_date)
            if food.target_date
            else None,
        )


def _target(draft: ActionDraft, context: ProposalContext) -> date:
    if draft.target_date:
        return date.fromisoformat(draft.target_date)
    return context.reference_date


def _meal_type(raw: str | None, context: ProposalContext) -> MealType:
    if raw:
        try:
            return MealType(raw.strip().lower())
        except ValueError:
            _logger.warning("Unknown meal type %r", raw)
    return determine_meal_type(context.utterance, context.hour)


async def _add_water(
    draft: ActionDraft, context: ProposalContext
) -> tuple[str, WaterPayload]:
    target = _target(draft, context)
    amount = draft.amount or DEFAULT_WATER_LITERS
    when = describe_date(target, context.reference_date)
    verb = "hinzufügen" if amount > 0 else "entfernen"
    description = f"{_fmt(abs(amount))}L Wasser {when} {verb}"
    return description, WaterPayload(target_date=target, amount_liters=amount)


async def _delete_meal(
    draft: ActionDraft, context: ProposalContext
) -> tuple[str, DeleteMealPayload]:
    if not (draft.meal_id or draft.meal_name):
        raise DraftRejectedError("no meal id or name")
    target = _target(draft, context)
    label = draft.meal_name or draft.meal_id
    when = describe_date(target, context.reference_date)
    payload = DeleteMealPayload(
        target_date=target, meal_id=draft.meal_id, meal_name=draft.meal_name
    )
    return f"Mahlzeit '{label}' {when} löschen", payload


async def _edit_meal(
    draft: ActionDraft, context: ProposalContext
) -> tuple[str, EditMealPayload]:
    if not (draft.meal_id or draft.meal_name):
        raise DraftRejectedError("no meal id or name")
    if not draft.changes:
        raise DraftRejectedError("no changes")
    target = _target(draft, context)
    label = draft.meal_name or draft.meal_id
    when = describe_date(target, context.reference_date)
    fields = ", ".join(sorted(draft.changes))
    payload = EditMealPayload(
        target_date=target,
        changes=dict(draft.changes),
        meal_id=draft.meal_id,
        meal_name=draft.meal_name,
    )
    return f"Mahlzeit '{label}' {when} bearbeiten ({fields})", payload


async def _clear_day(
    draft: ActionDraft, context: ProposalContext
) -> tuple[str, ClearDayPayload]:
    target = _target(draft, context)
    when = describe_date(target, context.reference_date)
    return f"Alle Mahlzeiten {when} löschen", ClearDayPayload(target_date=target)


async def _clear_range(
    draft: ActionDraft, context: ProposalContext
) -> tuple[str, ClearRangePayload]:
    if not (draft.start_date and draft.end_date):
        raise DraftRejectedError("incomplete date range")
    start = date.fromisoformat(draft.start_date)
    end = date.fromisoformat(draft.end_date)
    description = (
        f"Alle Mahlzeiten vom {start.strftime('%d.%m.%Y')} "
        f"bis {end.strftime('%d.%m.%Y')} löschen"
    )
    return description, ClearRangePayload(start_date=start, end_date=end)


async def _update_profile(
    draft: ActionDraft, context: ProposalContext
) -> tuple[str, ProfilePayload]:
    if not draft.updates:
        raise DraftRejectedError("no profile updates")
    fields = ", ".join(sorted(draft.updates))
    payload = ProfilePayload(updates=dict(draft.updates))
    return f"Profil aktualisieren: {fields}", payload


async def _track_weight(
    draft: ActionDraft, context: ProposalContext
) -> tuple[str, WeightPayload]:
    weight = draft.weight or draft.updates.get("weight")
    if not isinstance(weight, int | float) or weight <= 0:
        raise DraftRejectedError("no weight")
    target = _target(draft, context)
    when = describe_date(target, context.reference_date)
    description = f"Gewicht {_fmt(float(weight))} kg {when} eintragen"
    return description, WeightPayload(target_date=target, weight_kg=float(weight))
