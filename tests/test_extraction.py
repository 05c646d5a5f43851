"""Tests for rule-based food and water extraction."""

import pytest

from nutrition_chat.domain.ledger import MealType
from nutrition_chat.services.extraction import (
    DEFAULT_WATER_LITERS,
    MAX_UNITS_PER_FOOD,
    determine_meal_type,
    extract_foods,
    extract_water,
    has_water_keyword,
    names_water,
)


def _names(utterance: str) -> list[str]:
    return [mention.normalized_term for mention in extract_foods(utterance)]


def test_digit_quantity_yields_one_mention_per_unit() -> None:
    mentions = extract_foods("2 Äpfel und eine Banane")

    assert [m.normalized_term for m in mentions] == ["Apfel", "Apfel", "Banane"]
    assert all(m.quantity == 1 for m in mentions)
    assert mentions[0].raw_term == "äpfel"
    assert mentions[0].portion_hint == "1 mittelgroßer"
    assert mentions[0].estimate is not None
    assert mentions[0].estimate.calories == 52


def test_three_apples_eaten() -> None:
    assert _names("3 Äpfel gegessen") == ["Apfel", "Apfel", "Apfel"]


def test_written_quantity() -> None:
    assert _names("drei Eier zum Frühstück") == ["Ei", "Ei", "Ei"]


def test_unit_word_between_count_and_food() -> None:
    mentions = extract_foods("2 Scheiben Brot")
    assert len(mentions) == 2
    assert mentions[0].unit == "scheiben"


def test_quantity_is_capped() -> None:
    assert len(extract_foods("50 Äpfel")) == MAX_UNITS_PER_FOOD


def test_compound_words_do_not_match_their_parts() -> None:
    assert _names("eine Wassermelone") == ["Wassermelone"]
    assert _names("ein Butterbrot") == ["Butterbrot"]
    assert _names("Tortellini mit Käsesoße") == ["Tortellini", "Käsesoße"]


def test_food_followed_by_consumption_verb() -> None:
    assert _names("Pizza gegessen") == ["Pizza"]


def test_no_food_mentions() -> None:
    assert extract_foods("Hallo, wie geht es dir?") == []


@pytest.mark.parametrize(
    ("utterance", "liters"),
    [
        ("2 Gläser Wasser", 0.5),
        ("zwei Gläser Wasser", 0.5),
        ("1,5 Liter Wasser getrunken", 1.5),
        ("500ml Wasser", 0.5),
        ("eine Flasche Mineralwasser", 0.5),
        ("Wasser", DEFAULT_WATER_LITERS),
        ("Wasser 2", 2.0),
        ("Wasser 330", 0.33),
    ],
)
def test_extract_water(utterance: str, liters: float) -> None:
    water = extract_water(utterance)
    assert water is not None
    assert water.amount_liters == pytest.approx(liters)


def test_water_keyword_detection() -> None:
    assert extract_water("eine Wassermelone") is None
    assert extract_water("Ich habe getrunken") is None
    assert not names_water("ein Glas Milch")
    assert has_water_keyword("ein Glas Milch")
    assert names_water("Mineralwasser")


@pytest.mark.parametrize(
    ("utterance", "hour", "expected"),
    [
        ("Müsli zum Frühstück", 19, MealType.BREAKFAST),
        ("Nudeln zum Mittagessen", 8, MealType.LUNCH),
        ("heute Abend Pizza", 9, MealType.DINNER),
        ("ein Snack", 12, MealType.SNACK),
        ("Apfel", 7, MealType.BREAKFAST),
        ("Apfel", 12, MealType.LUNCH),
        ("Apfel", 18, MealType.DINNER),
        ("Apfel", 22, MealType.SNACK),
        (None, 14, MealType.LUNCH),
    ],
)
def test_determine_meal_type(
    utterance: str | None, hour: int, expected: MealType
) -> None:
    assert determine_meal_type(utterance, hour) == expected
