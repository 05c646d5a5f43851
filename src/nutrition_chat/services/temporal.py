"""Resolution of German relative date expressions."""

import logging
import re
from collections.abc import Iterator
from datetime import date, timedelta

_logger = logging.getLogger(__name__)

WEEKDAYS: dict[str, int] = {
    "montag": 0,
    "dienstag": 1,
    "mittwoch": 2,
    "donnerstag": 3,
    "freitag": 4,
    "samstag": 5,
    "sonntag": 6,
}

DAY_NUMBER_WORDS: dict[str, int] = {
    "einem": 1,
    "einer": 1,
    "eins": 1,
    "ein": 1,
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

_WEEK_NUMBER_WORDS = {"einer": 1, "zwei": 2, "drei": 3, "vier": 4}

_RELATIVE_DAYS = (
    (re.compile(r"\bheute\b"), 0),
    (re.compile(r"\bvorgestern\b"), -2),
    (re.compile(r"\bgestern\b"), -1),
    (re.compile(r"\bmorgen\b"), 1),
)

_DAYS_AGO = re.compile(
    r"\bvor\s+(\d+|" + "|".join(DAY_NUMBER_WORDS) + r")\s+tag(?:e|en)?\b"
)
_WEEKS_AGO = re.compile(
    r"\b(?:vor|letzten?)\s+(\d+|" + "|".join(_WEEK_NUMBER_WORDS) + r")\s+wochen?\b"
)
_LAST_WEEK = re.compile(r"\b(?:letzte|letzten|vorige|vorigen)\s+woche\b")
_WEEKDAY = re.compile(
    r"\b(?:(letzten|letzter|vorigen)\s+)?(?:am\s+)?(" + "|".join(WEEKDAYS) + r")\b"
)
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MAX_COUNT_DIGITS = 9

_WEEKDAY_PREFIXES = ("", "am ", "letzten ", "letzter ", "vorigen ")


def resolve_date(phrase: str, reference_date: date) -> date | None:
    """Resolve the first recognised date expression in ``phrase``.

    Relative keywords win over day counts, day counts over week counts and
    week counts over weekday names. Returns ``None`` when nothing matches or
    the offset leaves the calendar.
    """
    text = phrase.lower()

    earliest: tuple[int, int] | None = None
    for pattern, offset in _RELATIVE_DAYS:
        for match in pattern.finditer(text):
            # "Montag morgen" names a time of day, not tomorrow
            if offset == 1 and _follows_weekday(text, match.start()):
                continue
            if earliest is None or match.start() < earliest[0]:
                earliest = (match.start(), offset)
            break
    if earliest is not None:
        return reference_date + timedelta(days=earliest[1])

    match = _DAYS_AGO.search(text)
    if match:
        days = _to_number(match.group(1), DAY_NUMBER_WORDS)
        return _days_before(reference_date, days)

    match = _WEEKS_AGO.search(text)
    if match:
        weeks = _to_number(match.group(1), _WEEK_NUMBER_WORDS)
        return _days_before(reference_date, weeks, unit_days=7)
    if _LAST_WEEK.search(text):
        return reference_date - timedelta(weeks=1)

    match = _WEEKDAY.search(text)
    if match:
        days_back = (reference_date.weekday() - WEEKDAYS[match.group(2)]) % 7
        if match.group(1):
            days_back += 7
        return reference_date - timedelta(days=days_back)

    return None


def build_alias_table(message: str, reference_date: date) -> dict[str, date]:
    """Map every recognised date phrase to its date for ``reference_date``."""
    phrases = ["heute", "gestern", "vorgestern", "morgen"]
    for weekday in WEEKDAYS:
        phrases.extend(f"{prefix}{weekday}" for prefix in _WEEKDAY_PREFIXES)
    for count in range(1, 11):
        phrases.extend((f"vor {count} tag", f"vor {count} tagen"))
    for word in DAY_NUMBER_WORDS:
        phrases.extend((f"vor {word} tag", f"vor {word} tagen"))
    phrases.extend(("vor einer woche", "letzte woche", "letzten woche"))
    for count in range(2, 5):
        phrases.append(f"vor {count} wochen")

    for match in _DAYS_AGO.finditer(message.lower()):
        number = match.group(1)
        if number.isdigit() and (len(number) > 2 or int(number) > 10):  # noqa: PLR2004
            phrases.append(match.group(0))

    table: dict[str, date] = {}
    for phrase in phrases:
        resolved = resolve_date(phrase, reference_date)
        if resolved is not None:
            table[phrase] = resolved
    return table


def find_alias(utterance: str, alias_table: dict[str, date]) -> date | None:
    """Return the date of the longest alias phrase found in ``utterance``."""
    text = utterance.lower()
    for phrase in sorted(alias_table, key=len, reverse=True):
        if re.search(rf"\b{re.escape(phrase)}\b", text):
            return alias_table[phrase]
    return None


def is_within_window(candidate: date, reference_date: date, days: int = 365) -> bool:
    """Whether ``candidate`` lies within ``days`` of the reference date."""
    return abs((candidate - reference_date).days) <= days


def parse_iso_date(value: object) -> date | None:
    """Parse a strict ``YYYY-MM-DD`` string."""
    if not isinstance(value, str) or not _ISO_DATE.match(value.strip()):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def correct_date(  # noqa: PLR0913
    raw: object,
    utterance: str,
    reference_date: date,
    alias_table: dict[str, date],
    fallback: date,
    window_days: int = 365,
) -> date:
    """Validate a model supplied date and replace it when it cannot be trusted.

    Every candidate must fall within ``window_days`` of the reference date.
    Out of window candidates are skipped, ending at the reference date.
    """
    if raw is None or raw == "":
        return _first_in_window(
            (resolve_date(utterance, reference_date), fallback),
            reference_date,
            window_days,
        )

    parsed = parse_iso_date(raw)
    if parsed is not None and is_within_window(parsed, reference_date, window_days):
        return parsed

    replacement = _first_in_window(
        (find_alias(utterance, alias_table), resolve_date(utterance, reference_date)),
        reference_date,
        window_days,
    )
    _logger.warning(
        "Replaced untrusted date %r with %s", raw, replacement.isoformat()
    )
    return replacement


def describe_date(target: date, reference_date: date) -> str:
    """German phrase for ``target`` relative to the reference date."""
    days_back = (reference_date - target).days
    if days_back == 0:
        return "heute"
    if days_back == 1:
        return "gestern"
    if days_back == 2:  # noqa: PLR2004
        return "vorgestern"
    if days_back == -1:
        return "morgen"
    if 2 < days_back <= 7:  # noqa: PLR2004
        return f"vor {days_back} Tagen"
    return f"am {target.strftime('%d.%m.%Y')}"


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def _first_in_window(
    candidates: tuple[date | None, ...], reference_date: date, window_days: int
) -> date:
    for candidate in candidates:
        if candidate is not None and is_within_window(
            candidate, reference_date, window_days
        ):
            return candidate
    return reference_date


def _to_number(token: str, words: dict[str, int]) -> int | None:
    if not token.isdigit():
        return words[token]
    # longer counts are past any calendar offset
    return int(token) if len(token) <= _MAX_COUNT_DIGITS else None


def _days_before(
    reference_date: date, count: int | None, unit_days: int = 1
) -> date | None:
    if count is None:
        return None
    try:
        return reference_date - timedelta(days=count * unit_days)
    except OverflowError:
        _logger.debug("Date offset of %s days out of range", count * unit_days)
        return None


def _follows_weekday(text: str, position: int) -> bool:
    preceding = text[:position].split()
    return bool(preceding) and preceding[-1] in WEEKDAYS
