"""Supabase repository for the per-day nutrition ledger."""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import date

from supabase import Client

from nutrition_chat.adapters.supabase_rows import (
    macros_from_row,
    macros_to_row,
    portion_from_row,
    portion_to_row,
)
from nutrition_chat.domain.ledger import (
    DayLedgerEntry,
    MealEntry,
    MealFood,
    MealType,
    adjust_water,
)
from nutrition_chat.services.actions import LedgerGateway

_logger = logging.getLogger(__name__)

_TABLE = "day_entries"
_EDITABLE_FIELDS = {
    "name": "name",
    "time": "time",
    "mealType": "meal_type",
    "meal_type": "meal_type",
}


@dataclass
class SupabaseLedgerRepository(LedgerGateway):
    """Supabase-backed ledger storing one row per profile and day.

    Every mutation reads the whole day, changes it and writes it back.
    """

    client: Client
    profile_id: str

    async def get_entry(self, day: date) -> DayLedgerEntry | None:
        """Return the ledger entry for a day, if present."""
        return await asyncio.to_thread(self._load, day)

    async def add_meal(self, day: date, meal: MealEntry) -> None:
        """Append a meal to a day."""
        await asyncio.to_thread(self._add_meal, day, meal)

    async def update_water(self, day: date, delta_liters: float) -> float:
        """Apply a signed water delta and return the new total."""
        return await asyncio.to_thread(self._update_water, day, delta_liters)

    async def delete_meal(self, day: date, meal_id: str) -> None:
        """Remove a meal from a day."""
        await asyncio.to_thread(self._delete_meal, day, meal_id)

    async def update_meal(
        self, day: date, meal_id: str, changes: dict[str, object]
    ) -> None:
        """Apply field changes to a meal."""
        await asyncio.to_thread(self._update_meal, day, meal_id, changes)

    async def clear_day(self, day: date) -> None:
        """Remove every meal of a day."""
        await asyncio.to_thread(self._clear_day, day)

    async def set_weight(self, day: date, weight_kg: float) -> None:
        """Record the body weight for a day."""
        await asyncio.to_thread(self._set_weight, day, weight_kg)

    def _load(self, day: date) -> DayLedgerEntry | None:
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("profile_id", self.profile_id)
            .eq("date", day.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def _load_or_empty(self, day: date) -> DayLedgerEntry:
        return self._load(day) or DayLedgerEntry(date=day)

    def _save(self, entry: DayLedgerEntry) -> None:
        self.client.table(_TABLE).upsert(
            {"profile_id": self.profile_id, **_entry_to_row(entry)},
            on_conflict="profile_id,date",
        ).execute()

    def _add_meal(self, day: date, meal: MealEntry) -> None:
        entry = self._load_or_empty(day)
        self._save(replace(entry, meals=(*entry.meals, meal)))

    def _update_water(self, day: date, delta_liters: float) -> float:
        entry = self._load_or_empty(day)
        water = adjust_water(entry.water, delta_liters)
        self._save(replace(entry, water=water))
        return water

    def _delete_meal(self, day: date, meal_id: str) -> None:
        entry = self._load_or_empty(day)
        meals = tuple(meal for meal in entry.meals if meal.id != meal_id)
        if len(meals) == len(entry.meals):
            raise LookupError(f"Meal {meal_id} not found on {day.isoformat()}")
        self._save(replace(entry, meals=meals))

    def _update_meal(self, day: date, meal_id: str, changes: dict[str, object]) -> None:
        entry = self._load_or_empty(day)
        updated = False
        meals: list[MealEntry] = []
        for meal in entry.meals:
            if meal.id == meal_id:
                meal = _apply_changes(meal, changes)
                updated = True
            meals.append(meal)
        if not updated:
            raise LookupError(f"Meal {meal_id} not found on {day.isoformat()}")
        self._save(replace(entry, meals=tuple(meals)))

    def _clear_day(self, day: date) -> None:
        entry = self._load(day)
        if entry is None:
            return
        self._save(replace(entry, meals=()))

    def _set_weight(self, day: date, weight_kg: float) -> None:
        entry = self._load_or_empty(day)
        self._save(replace(entry, weight_kg=weight_kg))


def _apply_changes(meal: MealEntry, changes: dict[str, object]) -> MealEntry:
    updates: dict[str, object] = {}
    for key, value in changes.items():
        field_name = _EDITABLE_FIELDS.get(key)
        if field_name is None:
            _logger.warning("Ignoring unsupported meal change %r", key)
            continue
        updates[field_name] = MealType(value) if field_name == "meal_type" else value
    return replace(meal, **updates)


def _entry_to_row(entry: DayLedgerEntry) -> dict[str, object]:
    return {
        "date": entry.date.isoformat(),
        "meals": [_meal_to_row(meal) for meal in entry.meals],
        "water": entry.water,
        "notes": entry.notes,
        "mood": entry.mood,
        "weight_kg": entry.weight_kg,
    }


def _meal_to_row(meal: MealEntry) -> dict[str, object]:
    return {
        "id": meal.id,
        "name": meal.name,
        "meal_type": meal.meal_type.value,
        "time": meal.time,
        "source": meal.source,
        "foods": [_food_to_row(food) for food in meal.foods],
        "total": macros_to_row(meal.total),
    }


def _food_to_row(food: MealFood) -> dict[str, object]:
    return {
        "id": food.id,
        "name": food.name,
        "portion": portion_to_row(food.portion),
        "nutrition": macros_to_row(food.nutrition),
        "record_id": food.record_id,
        "confidence": food.confidence,
        "source": food.source,
        "target_date": food.target_date.isoformat() if food.target_date else None,
    }


def _parse_entry(row: dict[str, object]) -> DayLedgerEntry:
    weight = row.get("weight_kg")
    return DayLedgerEntry(
        date=date.fromisoformat(str(row["date"])),
        meals=tuple(_parse_meal(meal) for meal in row.get("meals") or []),
        water=float(row.get("water") or 0),
        notes=row.get("notes"),
        mood=row.get("mood"),
        weight_kg=float(weight) if weight is not None else None,
    )


def _parse_meal(row: dict[str, object]) -> MealEntry:
    return MealEntry(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        meal_type=MealType(row.get("meal_type") or MealType.SNACK),
        foods=tuple(_parse_food(food) for food in row.get("foods") or []),
        total=macros_from_row(row.get("total")),
        time=row.get("time"),
        source=str(row.get("source") or "ai_chat"),
    )


def _parse_food(row: dict[str, object]) -> MealFood:
    target = row.get("target_date")
    return MealFood(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        portion=portion_from_row(row.get("portion") or {}),
        nutrition=macros_from_row(row.get("nutrition")),
        record_id=row.get("record_id"),
        confidence=int(row.get("confidence") or 0),
        source=str(row.get("source") or "ai-estimation"),
        target_date=date.fromisoformat(str(target)) if target else None,
    )
