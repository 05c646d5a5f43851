"""Domain models for the per-day nutrition ledger."""

from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from nutrition_chat.domain.nutrition import MacroProfile, Portion, round_half_up


class MealType(StrEnum):
    """Meal slot within a day."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


@dataclass(frozen=True)
class MealFood:
    """Food inside a meal with portion-scaled nutrition."""

    id: str
    name: str
    portion: Portion
    nutrition: MacroProfile
    record_id: str | None = None
    confidence: int = 50
    source: str = "ai-estimation"
    target_date: date | None = None


@dataclass(frozen=True)
class MealEntry:
    """Meal stored on a ledger day."""

    id: str
    name: str
    meal_type: MealType
    foods: tuple[MealFood, ...]
    total: MacroProfile
    time: str | None = None
    source: str = "ai_chat"


@dataclass(frozen=True)
class DayLedgerEntry:
    """Aggregate record for a single calendar day."""

    date: date
    meals: tuple[MealEntry, ...] = ()
    water: float = 0.0
    notes: str | None = None
    mood: str | None = None
    weight_kg: float | None = None


def adjust_water(current: float, delta_liters: float) -> float:
    """Apply a signed delta, clamp at zero and round to the nearest quarter liter."""
    return round_half_up(max(0.0, current + delta_liters) * 4) / 4


def meal_total(foods: tuple[MealFood, ...] | list[MealFood]) -> MacroProfile:
    """Sum the nutrition of a meal's foods."""
    total = MacroProfile.zero()
    for food in foods:
        total = total + food.nutrition
    return MacroProfile(
        calories=round_half_up(total.calories),
        protein_g=round_half_up(total.protein_g, 1),
        carbs_g=round_half_up(total.carbs_g, 1),
        fat_g=round_half_up(total.fat_g, 1),
    )
