"""Nutrition resolver over custom, curated and remote food records."""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Protocol

import httpx

from nutrition_chat.adapters.openfoodfacts_client import ProductLookupClient
from nutrition_chat.domain.nutrition import (
    MacroProfile,
    NutritionRecord,
    Portion,
    RecordOrigin,
    ResolutionSource,
    ResolvedFoodItem,
    round_half_up,
)
from nutrition_chat.services.cache import Cache
from nutrition_chat.services.catalog import SYSTEM_CATALOG, Catalog

TRUSTED_SCORE = 70
ESTIMATION_CONFIDENCE = 50
GENERIC_KCAL_PER_100G = 200.0
MIN_ESTIMATED_GRAMS = 10
MAX_ESTIMATED_GRAMS = 1000
PORTION_SNAP_TOLERANCE = 0.3
KJ_THRESHOLD = 1000
KJ_PER_KCAL = 4.184

_ORIGIN_RANK = {
    RecordOrigin.USER_CUSTOM: 0,
    RecordOrigin.SYSTEM_CURATED: 1,
    RecordOrigin.REMOTE_LOOKUP: 2,
}
_MIN_SUBSTRING_LENGTH = 3
_GRAMS = re.compile(r"(\d+(?:[.,]\d+)?)\s*g\b", re.IGNORECASE)
_CATEGORY_KEYWORDS = (
    ("fruit", ("fruit", "obst")),
    ("vegetable", ("vegetable", "gemüse")),
    ("meat", ("meat", "fleisch")),
    ("dairy", ("dairy", "milch")),
    ("grain", ("grain", "getreide", "bread", "brot")),
    ("snack", ("snack", "sweet", "süß")),
    ("beverage", ("beverage", "getränk")),
)

_logger = logging.getLogger(__name__)


class CustomFoodRepository(Protocol):
    """Persistence interface for user-defined foods."""

    def list_foods(self) -> list[NutritionRecord]:
        """Return every custom food."""

    def save_food(self, record: NutritionRecord) -> NutritionRecord:
        """Persist a custom food and return it."""


@dataclass(frozen=True)
class _Candidate:
    score: int
    record: NutritionRecord

    @property
    def sort_key(self) -> tuple[int, int, int, str]:
        return (
            -self.score,
            _ORIGIN_RANK[self.record.origin],
            len(self.record.name),
            self.record.id,
        )


@dataclass
class NutritionService:
    """Resolve food terms to portion-scaled nutrition."""

    custom_foods: CustomFoodRepository
    product_client: ProductLookupClient
    cache: Cache
    catalog: Catalog = field(default_factory=lambda: SYSTEM_CATALOG)
    search_ttl_seconds: int = 3600
    page_size: int = 3
    debug: bool = False

    async def resolve(
        self,
        term: str,
        portion_hint: str | None = None,
        estimate: MacroProfile | None = None,
    ) -> ResolvedFoodItem:
        """Match a term against the knowledge base and scale its nutrition."""
        needle = term.strip().lower()
        candidates = [
            _Candidate(score, record)
            for record in [*self.custom_foods.list_foods(), *self.catalog.records]
            if (score := _score_local(needle, record)) > 0
        ]
        best_local = max((candidate.score for candidate in candidates), default=0)
        if best_local < TRUSTED_SCORE:
            remote = await self.search_products(term)
            candidates.extend(
                _Candidate(score, record)
                for record in remote
                if (score := _score_remote(needle, record)) > 0
            )

        winner = min(candidates, key=lambda c: c.sort_key, default=None)
        if winner is not None and winner.score >= TRUSTED_SCORE:
            if self.debug:
                _logger.info(
                    "Resolved %r to %s (score=%s)", term, winner.record.id, winner.score
                )
            return _database_match(term, winner, portion_hint, estimate)
        return self._estimate(term, estimate)

    async def search_products(
        self, query: str, limit: int | None = None
    ) -> list[NutritionRecord]:
        """Search remote products with caching; failures yield no candidates."""
        page_size = limit or self.page_size
        cache_key = f"off:search:{query.lower()}:{page_size}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        try:
            payload = await self.product_client.search_products(
                query, page_size=page_size
            )
        except (httpx.HTTPError, ValueError) as exc:
            _logger.warning("Product lookup failed for %r: %s", query, exc)
            return []

        records = [
            record
            for product in payload.get("products") or []
            if isinstance(product, dict)
            and (record := _parse_product(product)) is not None
        ]
        self.cache.set(cache_key, records, ttl_seconds=self.search_ttl_seconds)
        if self.debug:
            _logger.info("Product search: query=%s results=%s", query, len(records))
        return records

    def promote(self, record: NutritionRecord) -> NutritionRecord:
        """Store a record as a user-custom food."""
        return self.custom_foods.save_food(
            replace(record, origin=RecordOrigin.USER_CUSTOM)
        )

    def _estimate(self, term: str, estimate: MacroProfile | None) -> ResolvedFoodItem:
        nutrition = estimate or MacroProfile.zero()
        if nutrition.calories > 0:
            density = self._reference_density(term)
            grams = round_half_up(nutrition.calories / density * 100)
            grams = min(max(grams, MIN_ESTIMATED_GRAMS), MAX_ESTIMATED_GRAMS)
        else:
            grams = 100
        grams = int(grams)
        return ResolvedFoodItem(
            source_name=term,
            record=None,
            portion=Portion(name=f"{grams}g (geschätzt)", grams=grams),
            nutrition=nutrition,
            confidence=ESTIMATION_CONFIDENCE,
            source=ResolutionSource.AI_ESTIMATION,
        )

    def _reference_density(self, term: str) -> float:
        lowered = term.lower()
        for word in [lowered, *lowered.split()]:
            record = self.catalog.find(word)
            if record is not None and record.per_100g.calories > 0:
                return record.per_100g.calories
        return GENERIC_KCAL_PER_100G


def _score_local(needle: str, record: NutritionRecord) -> int:
    name = record.name.lower()
    if name == needle:
        return 100
    if needle in record.aliases:
        return 90
    if _contains_either(needle, name):
        return 80
    if any(_contains_either(needle, alias) for alias in record.aliases):
        return 70
    return 0


def _score_remote(needle: str, record: NutritionRecord) -> int:
    name = record.name.lower()
    if name == needle:
        return 95
    if _contains_either(needle, name):
        return 75
    needle_words = {word for word in needle.split() if len(word) > 2}  # noqa: PLR2004
    if needle_words & {word for word in name.split() if len(word) > 2}:  # noqa: PLR2004
        return 60
    return 0


def _contains_either(left: str, right: str) -> bool:
    shorter, longer = sorted((left, right), key=len)
    return len(shorter) >= _MIN_SUBSTRING_LENGTH and shorter in longer


def _database_match(
    term: str,
    candidate: _Candidate,
    portion_hint: str | None,
    estimate: MacroProfile | None,
) -> ResolvedFoodItem:
    record = candidate.record
    portion = _choose_portion(record, portion_hint, estimate)
    return ResolvedFoodItem(
        source_name=term,
        record=record,
        portion=portion,
        nutrition=scale_macros(record.per_100g, portion.grams),
        confidence=candidate.score,
        source=ResolutionSource.DATABASE_MATCH,
    )


def _choose_portion(
    record: NutritionRecord,
    portion_hint: str | None,
    estimate: MacroProfile | None,
) -> Portion:
    if portion_hint:
        hint = portion_hint.strip().lower()
        for portion in record.common_portions:
            label = portion.name.lower()
            if hint in label or label in hint:
                return portion

    per_100g_calories = record.per_100g.calories
    if estimate is not None and estimate.calories > 0 and per_100g_calories > 0:
        raw_grams = estimate.calories / per_100g_calories * 100
        nearest = min(
            record.common_portions,
            key=lambda portion: abs(portion.grams - raw_grams),
            default=None,
        )
        if (
            nearest is not None
            and abs(nearest.grams - raw_grams) / raw_grams <= PORTION_SNAP_TOLERANCE
        ):
            return nearest
        grams = int(round_half_up(raw_grams))
        return Portion(name=f"{grams}g", grams=grams)

    if record.common_portions:
        return record.common_portions[0]
    return Portion(name="100g", grams=100)


def scale_macros(per_100g: MacroProfile, grams: float) -> MacroProfile:
    """Scale per-100g macros to a portion and round for display."""
    factor = grams / 100
    return MacroProfile(
        calories=round_half_up(per_100g.calories * factor),
        protein_g=round_half_up(per_100g.protein_g * factor, 1),
        carbs_g=round_half_up(per_100g.carbs_g * factor, 1),
        fat_g=round_half_up(per_100g.fat_g * factor, 1),
        fiber_g=_scale_optional(per_100g.fiber_g, factor),
        sugar_g=_scale_optional(per_100g.sugar_g, factor),
        sodium_mg=_scale_optional(per_100g.sodium_mg, factor),
    )


def _scale_optional(value: float | None, factor: float) -> float | None:
    if value is None:
        return None
    return round_half_up(value * factor, 1)


def _parse_product(product: dict[str, object]) -> NutritionRecord | None:
    """Normalise a raw product into a remote record."""
    nutriments = product.get("nutriments")
    if not isinstance(nutriments, dict):
        nutriments = {}
    name = str(product.get("product_name_de") or product.get("product_name") or "")
    name = name.strip()

    calories = _number(nutriments.get("energy-kcal_100g"))
    if calories is None:
        energy = _number(nutriments.get("energy_100g"))
        if energy is not None:
            calories = energy / KJ_PER_KCAL if energy > KJ_THRESHOLD else energy
    protein = _number(nutriments.get("proteins_100g"))
    carbs = _number(nutriments.get("carbohydrates_100g"))
    fat = _number(nutriments.get("fat_100g"))

    has_nutrition = any(value for value in (calories, protein, carbs, fat))
    if not name and not has_nutrition:
        return None

    sodium_g = _number(nutriments.get("sodium_100g"))
    if sodium_g is None:
        salt_g = _number(nutriments.get("salt_100g"))
        sodium_g = salt_g * 0.4 if salt_g is not None else None

    brands = str(product.get("brands") or "")
    brand = brands.split(",")[0].strip() or None
    aliases = {part.strip().lower() for part in brands.split(",") if part.strip()}
    english_name = str(product.get("product_name") or "").strip().lower()
    if english_name and english_name != name.lower():
        aliases.add(english_name)

    return NutritionRecord(
        id=f"openfoodfacts-{product.get('code') or name.lower()}",
        name=name or "Unbekanntes Produkt",
        category=_category(str(product.get("categories") or "")),
        per_100g=MacroProfile(
            calories=round_half_up(calories or 0.0),
            protein_g=protein or 0.0,
            carbs_g=carbs or 0.0,
            fat_g=fat or 0.0,
            fiber_g=_number(nutriments.get("fiber_100g")),
            sugar_g=_number(nutriments.get("sugars_100g")),
            sodium_mg=round_half_up(sodium_g * 1000, 1) if sodium_g else None,
        ),
        common_portions=_product_portions(product),
        aliases=frozenset(aliases),
        origin=RecordOrigin.REMOTE_LOOKUP,
        brand=brand,
    )


def _product_portions(product: dict[str, object]) -> tuple[Portion, ...]:
    portions: list[Portion] = []
    serving = _grams_in(product.get("serving_size"))
    if serving:
        portions.append(Portion(name=f"1 Portion ({serving:g}g)", grams=serving))
    portions.append(Portion(name="100g", grams=100))
    package = _grams_in(product.get("quantity"))
    if package and 100 < package <= 1000:  # noqa: PLR2004
        portions.append(Portion(name=f"1 Packung ({package:g}g)", grams=package))
    return tuple(portions)


def _grams_in(value: object) -> float | None:
    if not isinstance(value, str):
        return None
    match = _GRAMS.search(value)
    if match is None:
        return None
    grams = float(match.group(1).replace(",", "."))
    return grams if grams > 0 else None


def _category(categories: str) -> str:
    lowered = categories.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "other"


def _number(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
