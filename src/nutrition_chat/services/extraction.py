"""Rule-based extraction of food, water and meal-time mentions."""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import lru_cache

from nutrition_chat.domain.ledger import MealType
from nutrition_chat.domain.nutrition import ExtractedFoodMention, WaterMention
from nutrition_chat.services.catalog import FOOD_LEXICON, LexiconEntry

WRITTEN_NUMBERS: dict[str, int] = {
    "einen": 1,
    "eine": 1,
    "ein": 1,
    "eins": 1,
    "zwei": 2,
    "drei": 3,
    "vier": 4,
    "fünf": 5,
    "sechs": 6,
    "sieben": 7,
    "acht": 8,
    "neun": 9,
    "zehn": 10,
}

MAX_UNITS_PER_FOOD = 20
DEFAULT_WATER_LITERS = 0.25

_UNIT_WORDS = (
    r"x|stück|portionen?|scheiben?|gläser|glas|becher|schüsseln?|teller|tassen?"
)
_CONSUMPTION_VERBS = r"gegessen|getrunken|gehabt|hatte|habe|esse|trinke"
_MEAL_PHRASES = (
    r"(?:zum|am|beim|mit)\s+(?:frühstück|mittagessen|abendessen|snack)"
)
_NUMBER_WORDS = "|".join(WRITTEN_NUMBERS)


@dataclass(frozen=True)
class _MatcherTemplate:
    """Pattern template around a term; ``{term}`` is replaced per entry."""

    name: str
    template: str


MATCHER_TEMPLATES: tuple[_MatcherTemplate, ...] = (
    _MatcherTemplate(
        "quantified",
        rf"(?:\d+\s*)?(?:(?:{_UNIT_WORDS})\s*)?\b(?P<term>{{term}})\b",
    ),
    _MatcherTemplate(
        "consumed", rf"\b(?P<term>{{term}})\s*(?:{_CONSUMPTION_VERBS})\b"
    ),
    _MatcherTemplate(
        "counted", rf"\b(?:{_NUMBER_WORDS})\s+(?P<term>{{term}})\b"
    ),
    _MatcherTemplate("meal_time", rf"\b(?P<term>{{term}})\s+{_MEAL_PHRASES}"),
)

_WATER_WORD = re.compile(r"wassers?\b")
_WATER_UNITS = re.compile(
    r"\b(?:liter|l|ml|milliliter|glas|gläser|flasche|flaschen)\b"
)
_COUNT = rf"\b(\d+(?:[.,]\d+)?|{_NUMBER_WORDS})"
_LITERS = re.compile(rf"{_COUNT}\s*(?:liter|l)\b")
_MILLILITERS = re.compile(rf"{_COUNT}\s*(?:ml|milliliter)\b")
_GLASSES = re.compile(rf"{_COUNT}\s*(?:glas|gläser)\b")
_BOTTLES = re.compile(rf"{_COUNT}\s*(?:flasche|flaschen)\b")
_BARE_NUMBER = re.compile(r"(\d+(?:[.,]\d+)?)")

_MEAL_KEYWORDS: tuple[tuple[MealType, tuple[str, ...]], ...] = (
    (MealType.BREAKFAST, ("frühstück", "morgens")),
    (MealType.LUNCH, ("mittag",)),
    (MealType.DINNER, ("abend",)),
    (MealType.SNACK, ("snack", "zwischendurch", "zwischenmahlzeit")),
)


def _term_pattern(entry: LexiconEntry) -> str:
    forms = "|".join(
        re.escape(form) for form in sorted(entry.forms, key=len, reverse=True)
    )
    suffix = "(?:s|en|n)?" if entry.inflects else ""
    return f"(?:{forms}){suffix}"


@lru_cache(maxsize=256)
def _matchers_for(entry: LexiconEntry) -> tuple[re.Pattern[str], ...]:
    term = _term_pattern(entry)
    return tuple(
        re.compile(template.template.replace("{term}", term))
        for template in MATCHER_TEMPLATES
    )


def extract_foods(
    utterance: str, lexicon: Iterable[LexiconEntry] = FOOD_LEXICON
) -> list[ExtractedFoodMention]:
    """Find lexicon foods in ``utterance``, one mention per eaten unit."""
    text = utterance.lower()
    mentions: list[ExtractedFoodMention] = []
    seen: set[str] = set()
    for entry in lexicon:
        normalized = entry.name
        if normalized.lower() in seen:
            continue
        match = _first_match(text, _matchers_for(entry))
        if match is None:
            continue
        seen.add(normalized.lower())
        raw_term = match.group("term")
        quantity, unit = _quantity_before(text, raw_term)
        mentions.extend(
            ExtractedFoodMention(
                raw_term=raw_term,
                normalized_term=normalized,
                quantity=1,
                unit=unit,
                portion_hint=entry.portion_hint,
                estimate=entry.estimate,
            )
            for _ in range(quantity)
        )
    return mentions


def _first_match(
    text: str, matchers: Iterable[re.Pattern[str]]
) -> re.Match[str] | None:
    for matcher in matchers:
        match = matcher.search(text)
        if match:
            return match
    return None


def _quantity_before(text: str, raw_term: str) -> tuple[int, str | None]:
    term = re.escape(raw_term)
    digit = re.search(rf"(\d+)\s*(?:({_UNIT_WORDS})\s*)?\b{term}\b", text)
    if digit:
        unit = digit.group(2) if digit.group(2) != "x" else None
        return _clamp_units(int(digit.group(1))), unit
    written = re.search(
        rf"\b({_NUMBER_WORDS})\s+(?:({_UNIT_WORDS})\s+)?{term}\b", text
    )
    if written:
        return WRITTEN_NUMBERS[written.group(1)], written.group(2)
    return 1, None


def _clamp_units(value: int) -> int:
    return max(1, min(value, MAX_UNITS_PER_FOOD))


def names_water(utterance: str) -> bool:
    """Whether water itself is named, e.g. "Wasser" or "Mineralwasser"."""
    return bool(_WATER_WORD.search(utterance.lower()))


def has_water_keyword(utterance: str) -> bool:
    """Whether the utterance talks about water or drink volumes."""
    text = utterance.lower()
    return bool(_WATER_WORD.search(text) or _WATER_UNITS.search(text))


def extract_water(utterance: str) -> WaterMention | None:
    """Detect a water intake and its volume in liters."""
    if not has_water_keyword(utterance):
        return None
    text = utterance.lower()
    strategies: tuple[tuple[re.Pattern[str], Callable[[float], float]], ...] = (
        (_LITERS, lambda value: value),
        (_MILLILITERS, lambda value: value / 1000),
        (_GLASSES, lambda value: value * 0.25),
        (_BOTTLES, lambda value: value * 0.5),
    )
    for pattern, convert in strategies:
        match = pattern.search(text)
        if match:
            amount = convert(_parse_count(match.group(1)))
            if amount > 0:
                return WaterMention(amount_liters=amount)

    match = _BARE_NUMBER.search(text)
    if match:
        value = _parse_count(match.group(1))
        amount = value / 1000 if value > 10 else value  # noqa: PLR2004
        if amount > 0:
            return WaterMention(amount_liters=amount)
    return WaterMention(amount_liters=DEFAULT_WATER_LITERS)


def _parse_count(token: str) -> float:
    if token in WRITTEN_NUMBERS:
        return float(WRITTEN_NUMBERS[token])
    return float(token.replace(",", "."))


def determine_meal_type(utterance: str | None, hour: int) -> MealType:
    """Meal slot from keywords in the utterance, else from the hour of day."""
    if utterance:
        text = utterance.lower()
        for meal_type, keywords in _MEAL_KEYWORDS:
            if any(keyword in text for keyword in keywords):
                return meal_type
    if hour < 10:  # noqa: PLR2004
        return MealType.BREAKFAST
    if hour < 15:  # noqa: PLR2004
        return MealType.LUNCH
    if hour < 20:  # noqa: PLR2004
        return MealType.DINNER
    return MealType.SNACK
