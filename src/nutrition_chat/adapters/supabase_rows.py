"""Row conversions shared by the Supabase repositories."""

from nutrition_chat.domain.nutrition import MacroProfile, Portion

_OPTIONAL_MACROS = ("fiber_g", "sugar_g", "sodium_mg")


def macros_to_row(macros: MacroProfile) -> dict[str, float]:
    row = {
        "calories": macros.calories,
        "protein_g": macros.protein_g,
        "carbs_g": macros.carbs_g,
        "fat_g": macros.fat_g,
    }
    for name in _OPTIONAL_MACROS:
        value = getattr(macros, name)
        if value is not None:
            row[name] = value
    return row


def macros_from_row(row: dict[str, object] | None) -> MacroProfile:
    row = row or {}
    return MacroProfile(
        calories=float(row.get("calories") or 0),
        protein_g=float(row.get("protein_g") or 0),
        carbs_g=float(row.get("carbs_g") or 0),
        fat_g=float(row.get("fat_g") or 0),
        fiber_g=_optional_float(row.get("fiber_g")),
        sugar_g=_optional_float(row.get("sugar_g")),
        sodium_mg=_optional_float(row.get("sodium_mg")),
    )


def portion_to_row(portion: Portion) -> dict[str, object]:
    return {"name": portion.name, "grams": portion.grams}


def portion_from_row(row: dict[str, object]) -> Portion:
    return Portion(name=str(row.get("name") or ""), grams=float(row.get("grams") or 0))


def _optional_float(value: object) -> float | None:
    return float(value) if value is not None else None
