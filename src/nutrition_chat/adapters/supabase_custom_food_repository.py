"""Supabase repository for user-defined foods."""

from dataclasses import dataclass

from supabase import Client

from nutrition_chat.adapters.supabase_rows import (
    macros_from_row,
    macros_to_row,
    portion_from_row,
    portion_to_row,
)
from nutrition_chat.domain.nutrition import NutritionRecord, RecordOrigin
from nutrition_chat.services.nutrition import CustomFoodRepository


@dataclass
class SupabaseCustomFoodRepository(CustomFoodRepository):
    """Supabase implementation for custom foods of one profile."""

    client: Client
    profile_id: str

    def list_foods(self) -> list[NutritionRecord]:
        """Return every custom food of the profile."""
        response = (
            self.client.table("custom_foods")
            .select("*")
            .eq("profile_id", self.profile_id)
            .execute()
        )
        return [_parse_record(row) for row in response.data or []]

    def save_food(self, record: NutritionRecord) -> NutritionRecord:
        """Insert or replace a custom food and return it."""
        response = (
            self.client.table("custom_foods")
            .upsert(
                {
                    "id": record.id,
                    "profile_id": self.profile_id,
                    "name": record.name,
                    "category": record.category,
                    "brand": record.brand,
                    "per_100g": macros_to_row(record.per_100g),
                    "common_portions": [
                        portion_to_row(portion) for portion in record.common_portions
                    ],
                    "aliases": sorted(record.aliases),
                },
                on_conflict="id",
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to save custom food")
        return _parse_record(response.data[0])


def _parse_record(row: dict[str, object]) -> NutritionRecord:
    return NutritionRecord(
        id=str(row["id"]),
        name=str(row["name"]),
        category=str(row.get("category") or "other"),
        per_100g=macros_from_row(row.get("per_100g")),
        common_portions=tuple(
            portion_from_row(portion) for portion in row.get("common_portions") or []
        ),
        aliases=frozenset(str(alias).lower() for alias in row.get("aliases") or []),
        origin=RecordOrigin.USER_CUSTOM,
        brand=row.get("brand"),
    )
