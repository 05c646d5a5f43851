"""Nutrition domain models."""

import math
from dataclasses import dataclass, field
from enum import StrEnum


@dataclass(frozen=True)
class MacroProfile:
    """Macronutrient profile for a food item or portion."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float | None = None
    sugar_g: float | None = None
    sodium_mg: float | None = None

    @classmethod
    def zero(cls) -> "MacroProfile":
        """Return an empty profile."""
        return cls(0.0, 0.0, 0.0, 0.0)

    def __add__(self, other: "MacroProfile") -> "MacroProfile":
        return MacroProfile(
            calories=self.calories + other.calories,
            protein_g=self.protein_g + other.protein_g,
            carbs_g=self.carbs_g + other.carbs_g,
            fat_g=self.fat_g + other.fat_g,
        )


@dataclass(frozen=True)
class Portion:
    """Named portion with its weight in grams."""

    name: str
    grams: float


class RecordOrigin(StrEnum):
    """Knowledge base tier a nutrition record comes from."""

    USER_CUSTOM = "user-custom"
    SYSTEM_CURATED = "system-curated"
    REMOTE_LOOKUP = "remote-lookup"


class ResolutionSource(StrEnum):
    """How a food's nutrition was determined."""

    DATABASE_MATCH = "database-match"
    AI_ESTIMATION = "ai-estimation"


@dataclass(frozen=True)
class NutritionRecord:
    """Food entry with macros per 100g."""

    id: str
    name: str
    category: str
    per_100g: MacroProfile
    common_portions: tuple[Portion, ...] = ()
    aliases: frozenset[str] = field(default_factory=frozenset)
    origin: RecordOrigin = RecordOrigin.SYSTEM_CURATED
    brand: str | None = None


@dataclass(frozen=True)
class ResolvedFoodItem:
    """Food term matched against the knowledge base with scaled nutrition."""

    source_name: str
    record: NutritionRecord | None
    portion: Portion
    nutrition: MacroProfile
    confidence: int
    source: ResolutionSource

    @property
    def display_name(self) -> str:
        """Name shown to the user."""
        return self.record.name if self.record else self.source_name

    @property
    def is_trustworthy(self) -> bool:
        """Whether the match is strong enough to trust the database values."""
        return self.confidence >= 70


@dataclass(frozen=True)
class ExtractedFoodMention:
    """Single food unit found in an utterance."""

    raw_term: str
    normalized_term: str
    quantity: float = 1
    unit: str | None = None
    portion_hint: str | None = None
    estimate: MacroProfile | None = None


@dataclass(frozen=True)
class WaterMention:
    """Water intake found in an utterance."""

    amount_liters: float


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a calculator does, halves away from zero for positive values."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor
