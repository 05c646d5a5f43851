"""Tests for German relative date resolution."""

from datetime import date, timedelta

import pytest

from nutrition_chat.services.temporal import (
    build_alias_table,
    correct_date,
    describe_date,
    find_alias,
    is_within_window,
    iter_dates,
    parse_iso_date,
    resolve_date,
)

FRIDAY = date(2025, 1, 10)


@pytest.mark.parametrize(
    ("phrase", "expected"),
    [
        ("heute", date(2025, 1, 10)),
        ("gestern", date(2025, 1, 9)),
        ("vorgestern", date(2025, 1, 8)),
        ("morgen", date(2025, 1, 11)),
        ("Vor 3 Tagen", date(2025, 1, 7)),
        ("vor drei Tagen", date(2025, 1, 7)),
        ("vor einem Tag", date(2025, 1, 9)),
        ("vor 2 Wochen", date(2024, 12, 27)),
        ("letzte Woche", date(2025, 1, 3)),
        ("am Montag", date(2025, 1, 6)),
        ("Freitag", date(2025, 1, 10)),
        ("letzten Montag", date(2024, 12, 30)),
    ],
)
def test_resolve_date_phrases(phrase: str, expected: date) -> None:
    assert resolve_date(phrase, FRIDAY) == expected


def test_resolve_date_prefers_earliest_relative_keyword() -> None:
    text = "Gestern hatte ich einen Apfel und heute eine Banane"
    assert resolve_date(text, FRIDAY) == date(2025, 1, 9)


def test_vorgestern_is_not_read_as_gestern() -> None:
    assert resolve_date("ich habe vorgestern Pizza gegessen", FRIDAY) == date(
        2025, 1, 8
    )


def test_morgen_after_weekday_is_time_of_day() -> None:
    assert resolve_date("Montag morgen Müsli", FRIDAY) == date(2025, 1, 6)


def test_resolve_date_without_expression() -> None:
    assert resolve_date("Ein Apfel", FRIDAY) is None


def test_alias_table_agrees_with_resolver() -> None:
    table = build_alias_table("", FRIDAY)

    assert table["gestern"] == date(2025, 1, 9)
    assert table["vor 5 tagen"] == date(2025, 1, 5)
    assert table["vor fünf tagen"] == date(2025, 1, 5)
    for phrase, resolved in table.items():
        assert resolve_date(phrase, FRIDAY) == resolved


def test_alias_table_includes_large_day_counts_from_message() -> None:
    table = build_alias_table("vor 14 Tagen gab es Lachs", FRIDAY)
    assert table["vor 14 tagen"] == date(2024, 12, 27)


def test_find_alias_uses_longest_phrase() -> None:
    table = build_alias_table("", FRIDAY)
    assert find_alias("Ich hatte letzten Montag Reis", table) == date(2024, 12, 30)
    assert find_alias("nichts besonderes", table) is None


def test_correct_date_replaces_placeholder_and_out_of_range_dates() -> None:
    utterance = "gestern Pizza"
    table = build_alias_table(utterance, FRIDAY)

    placeholder = correct_date("0000-00-00", utterance, FRIDAY, table, FRIDAY)
    ancient = correct_date("2019-05-01", utterance, FRIDAY, table, FRIDAY)
    far_future = correct_date("2027-05-01", "Pizza", FRIDAY, table, FRIDAY)

    assert placeholder == date(2025, 1, 9)
    assert ancient == date(2025, 1, 9)
    assert far_future == FRIDAY


def test_correct_date_skips_replacements_outside_window() -> None:
    utterance = "vor 500 tagen hatte ich einen Apfel"
    table = build_alias_table(utterance, FRIDAY)
    untrusted = (FRIDAY + timedelta(days=400)).isoformat()

    replaced = correct_date(untrusted, utterance, FRIDAY, table, FRIDAY)
    missing = correct_date(None, utterance, FRIDAY, table, date(2025, 1, 4))
    stale_fallback = correct_date(None, "Banane", FRIDAY, table, date(2020, 1, 1))

    assert table["vor 500 tagen"] == date(2023, 8, 29)
    assert replaced == FRIDAY
    assert missing == date(2025, 1, 4)
    assert stale_fallback == FRIDAY


def test_correct_date_uses_first_replacement_inside_window() -> None:
    utterance = "vor 500 tagen, nein gestern"
    table = build_alias_table(utterance, FRIDAY)

    assert correct_date("2019-05-01", utterance, FRIDAY, table, FRIDAY) == date(
        2025, 1, 9
    )


def test_correct_date_keeps_valid_dates_and_uses_fallback() -> None:
    table = build_alias_table("", FRIDAY)
    selected = date(2025, 1, 4)

    assert correct_date("2025-01-05", "", FRIDAY, table, selected) == date(
        2025, 1, 5
    )
    assert correct_date(None, "Banane", FRIDAY, table, selected) == selected
    assert correct_date(None, "vorgestern", FRIDAY, table, selected) == date(
        2025, 1, 8
    )


def test_window_and_iso_parsing() -> None:
    assert is_within_window(date(2024, 1, 11), FRIDAY)
    assert not is_within_window(date(2024, 1, 10), FRIDAY, days=364)
    assert parse_iso_date("2025-02-30") is None
    assert parse_iso_date("10.01.2025") is None
    assert parse_iso_date(" 2025-01-10 ") == FRIDAY


@pytest.mark.parametrize(
    ("target", "expected"),
    [
        (date(2025, 1, 10), "heute"),
        (date(2025, 1, 9), "gestern"),
        (date(2025, 1, 8), "vorgestern"),
        (date(2025, 1, 11), "morgen"),
        (date(2025, 1, 6), "vor 4 Tagen"),
        (date(2024, 12, 31), "am 31.12.2024"),
    ],
)
def test_describe_date(target: date, expected: str) -> None:
    assert describe_date(target, FRIDAY) == expected


def test_iter_dates_is_inclusive() -> None:
    days = list(iter_dates(date(2024, 12, 30), date(2025, 1, 2)))
    assert days == [
        date(2024, 12, 30),
        date(2024, 12, 31),
        date(2025, 1, 1),
        date(2025, 1, 2),
    ]
    assert list(iter_dates(date(2025, 1, 2), date(2025, 1, 1))) == []


NUMBER_WORDS = ["ein", "zwei", "drei", "vier", "fünf"]
NUMBER_WORDS += ["sechs", "sieben", "acht", "neun", "zehn"]


@pytest.mark.parametrize("days", range(1, 11))
def test_days_ago_in_digits_and_words(days: int) -> None:
    expected = FRIDAY - timedelta(days=days)

    assert resolve_date(f"vor {days} tagen", FRIDAY) == expected
    assert resolve_date(f"vor {NUMBER_WORDS[days - 1]} tagen", FRIDAY) == expected


@pytest.mark.parametrize("offset", range(7))
def test_weekday_resolution_is_self_consistent(offset: int) -> None:
    reference = FRIDAY + timedelta(days=offset)

    last_monday = resolve_date("letzten montag", reference)
    this_monday = resolve_date("am montag", reference)

    assert last_monday is not None
    assert this_monday is not None
    assert last_monday.weekday() == 0
    assert (reference - last_monday).days >= 7
    assert this_monday.weekday() == 0
    assert 0 <= (reference - this_monday).days < 7


@pytest.mark.parametrize(
    "phrase",
    [
        "vor 1000000 tagen",
        "vor 99999999999999999999 tagen",
        "vor 1000000 wochen",
    ],
)
def test_unrepresentable_offsets_resolve_to_nothing(phrase: str) -> None:
    assert resolve_date(phrase, FRIDAY) is None


def test_alias_table_skips_unrepresentable_day_counts() -> None:
    table = build_alias_table("vor 20 tagen und vor 1000000 tagen", FRIDAY)

    assert table["vor 20 tagen"] == date(2024, 12, 21)
    assert "vor 1000000 tagen" not in table
