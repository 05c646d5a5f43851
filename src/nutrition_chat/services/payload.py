"""Extraction and repair of the structured payload embedded in model replies."""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from nutrition_chat.domain.actions import ActionType
from nutrition_chat.services.extraction import extract_foods, extract_water, names_water
from nutrition_chat.services.temporal import (
    correct_date,
    is_within_window,
    resolve_date,
)

START_MARKER = "---JSON_START---"
END_MARKER = "---JSON_END---"
MIN_REPLY_LENGTH = 10
DEFAULT_REPLY = "Lebensmittel erfasst!"
TRUNCATED_REPLY = (
    "Die Antwort war zu lang und wurde abgeschnitten. Bitte versuchen Sie es "
    "mit einer kürzeren Nachricht oder teilen Sie die Informationen auf "
    "mehrere Nachrichten auf."
)
RECOVERED_NOTE = (
    "Die Antwort wurde abgeschnitten. Die erkannten Einträge wurden "
    "wiederhergestellt, bitte prüfen Sie sie vor dem Bestätigen."
)
UNRECOVERED_NOTE = (
    "Die Antwort wurde abgeschnitten und konnte nicht vollständig "
    "ausgewertet werden."
)

_CLOSERS = {"{": "}", "[": "]"}
_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_MARKER_REGION = re.compile(
    re.escape(START_MARKER) + r".*?(?:" + re.escape(END_MARKER) + r"|$)", re.DOTALL
)

_logger = logging.getLogger(__name__)


class RepairStatus(StrEnum):
    """Outcome of a truncation repair attempt."""

    COMPLETE = "complete"
    REPAIRED = "repaired"
    UNRECOVERABLE = "unrecoverable"


class PayloadStatus(StrEnum):
    """How the structured payload of a model reply was obtained."""

    COMPLETE = "complete"
    REPAIRED = "repaired"
    TRUNCATED = "truncated"
    UNPARSEABLE = "unparseable"
    ABSENT = "absent"


class FoodDraft(BaseModel):
    """Food as proposed by the model, macros for the eaten amount."""

    model_config = ConfigDict(extra="ignore")

    name: str
    calories: float = 0.0
    protein: float = Field(
        default=0.0, validation_alias=AliasChoices("protein", "eiweiss")
    )
    carbs: float = Field(
        default=0.0, validation_alias=AliasChoices("carbs", "kohlenhydrate")
    )
    fat: float = Field(default=0.0, validation_alias=AliasChoices("fat", "fett"))
    portion: str | None = None
    target_date: str | None = Field(
        default=None, validation_alias=AliasChoices("targetDate", "target_date", "date")
    )


class ActionDraft(BaseModel):
    """Action as proposed by the model, before date correction."""

    model_config = ConfigDict(extra="ignore")

    type: ActionType
    foods: list[FoodDraft] = Field(default_factory=list)
    meal_type: str | None = Field(
        default=None, validation_alias=AliasChoices("mealType", "meal_type")
    )
    target_date: str | None = Field(
        default=None, validation_alias=AliasChoices("targetDate", "target_date", "date")
    )
    amount: float | None = None
    start_date: str | None = Field(
        default=None, validation_alias=AliasChoices("startDate", "start_date")
    )
    end_date: str | None = Field(
        default=None, validation_alias=AliasChoices("endDate", "end_date")
    )
    meal_id: str | None = Field(
        default=None, validation_alias=AliasChoices("mealId", "meal_id")
    )
    meal_name: str | None = Field(
        default=None, validation_alias=AliasChoices("mealName", "meal_name")
    )
    changes: dict[str, object] = Field(
        default_factory=dict, validation_alias=AliasChoices("newData", "changes")
    )
    updates: dict[str, object] = Field(default_factory=dict)
    weight: float | None = None


class ModelPayload(BaseModel):
    """Structured object embedded between the payload markers."""

    model_config = ConfigDict(extra="ignore")

    text: str = ""
    actions: list[ActionDraft] = Field(default_factory=list)

    @field_validator("text", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("actions", mode="before")
    @classmethod
    def _drop_invalid_actions(cls, value: object) -> list[object]:
        if not isinstance(value, list):
            return []
        kept: list[object] = []
        for item in value:
            try:
                kept.append(ActionDraft.model_validate(item))
            except ValidationError as exc:
                kind = item.get("type") if isinstance(item, dict) else type(item)
                _logger.warning(
                    "Dropping invalid action %s (%s errors)", kind, exc.error_count()
                )
        return kept


@dataclass(frozen=True)
class RepairResult:
    """Result of closing a truncated JSON fragment."""

    status: RepairStatus
    data: object | None = None
    appended: str = ""


@dataclass(frozen=True)
class ParsedResponse:
    """Model reply split into payload and user-facing text."""

    status: PayloadStatus
    is_complete: bool
    payload: ModelPayload | None
    reply_text: str
    recovery_note: str | None = None


@dataclass(frozen=True)
class Interpretation:
    """Drafts to propose for one user message."""

    drafts: list[ActionDraft]
    reply_text: str
    is_complete: bool = True
    recovery_note: str | None = None
    used_fallback: bool = False
    extraction_failed: bool = False


@dataclass
class _ScanState:
    stack: list[str] = field(default_factory=list)
    in_string: bool = False
    escaped: bool = False
    mismatched: bool = False
    # (offset, open brackets) right before each structural comma
    commas: list[tuple[int, tuple[str, ...]]] = field(default_factory=list)


def _scan(fragment: str) -> _ScanState:
    state = _ScanState()
    for index, char in enumerate(fragment):
        if state.in_string:
            if state.escaped:
                state.escaped = False
            elif char == "\\":
                state.escaped = True
            elif char == '"':
                state.in_string = False
            continue
        if char == '"':
            state.in_string = True
        elif char in _CLOSERS:
            state.stack.append(char)
        elif char in "}]":
            if not state.stack or _CLOSERS[state.stack[-1]] != char:
                state.mismatched = True
                return state
            state.stack.pop()
        elif char == ",":
            state.commas.append((index, tuple(state.stack)))
    return state


def _closers_for(stack: list[str] | tuple[str, ...]) -> str:
    return "".join(_CLOSERS[opener] for opener in reversed(stack))


def _try_load(text: str) -> object | None:
    try:
        return json.loads(text)
    except ValueError:
        return None


def repair_truncated_json(fragment: str) -> RepairResult:
    """Close a truncated JSON fragment with exactly the missing closers.

    An unterminated string is closed and a dangling comma dropped before the
    missing brackets are appended in nesting order. When the last member is
    itself cut off, the fragment is shortened to the previous complete member.
    """
    text = fragment.strip()
    data = _try_load(text)
    if data is not None:
        return RepairResult(RepairStatus.COMPLETE, data)

    state = _scan(text)
    if state.mismatched or not text:
        return RepairResult(RepairStatus.UNRECOVERABLE)

    body = text
    if state.in_string:
        body = body[:-1] if state.escaped else body
        body += '"'
    body = body.rstrip()
    if body.endswith(","):
        body = body[:-1]
    elif body.endswith(":"):
        body += "null"
    appended = body[len(text) :] if body.startswith(text) else ""
    closers = _closers_for(state.stack)
    data = _try_load(body + closers)
    if data is not None:
        return RepairResult(RepairStatus.REPAIRED, data, appended + closers)

    for offset, stack in reversed(state.commas):
        closers = _closers_for(stack)
        data = _try_load(text[:offset] + closers)
        if data is not None:
            return RepairResult(RepairStatus.REPAIRED, data, closers)
    return RepairResult(RepairStatus.UNRECOVERABLE)


def _to_payload(data: object) -> ModelPayload | None:
    if not isinstance(data, dict):
        return None
    try:
        return ModelPayload.model_validate(data)
    except ValidationError as exc:
        _logger.warning("Model payload rejected: %s", exc.error_count())
        return None


def parse_model_text(text: str) -> ParsedResponse:
    """Locate, parse and if needed repair the payload of a model reply."""
    if START_MARKER in text:
        after_start = text.split(START_MARKER, 1)[1]
        if END_MARKER in after_start:
            body = after_start.split(END_MARKER, 1)[0]
            result = repair_truncated_json(body)
            payload = _to_payload(result.data)
            if payload is None:
                return ParsedResponse(
                    PayloadStatus.UNPARSEABLE, True, None, clean_reply(text)
                )
            status = (
                PayloadStatus.COMPLETE
                if result.status is RepairStatus.COMPLETE
                else PayloadStatus.REPAIRED
            )
            return ParsedResponse(status, True, payload, extract_reply(text, payload))

        result = repair_truncated_json(after_start)
        payload = _to_payload(result.data)
        if payload is None:
            _logger.warning("Truncated payload could not be repaired")
            return ParsedResponse(
                PayloadStatus.TRUNCATED,
                False,
                None,
                clean_reply(text),
                UNRECOVERED_NOTE,
            )
        _logger.warning("Truncated payload repaired with %r", result.appended)
        return ParsedResponse(
            PayloadStatus.REPAIRED,
            False,
            payload,
            extract_reply(text, payload),
            RECOVERED_NOTE,
        )

    stripped = _FENCE.sub("", text).strip()
    first_brace = stripped.find("{")
    if first_brace == -1:
        return ParsedResponse(PayloadStatus.ABSENT, True, None, stripped)

    candidates = [stripped, stripped[first_brace : stripped.rfind("}") + 1]]
    for candidate in candidates:
        payload = _to_payload(_try_load(candidate)) if candidate else None
        if payload is not None:
            return ParsedResponse(
                PayloadStatus.COMPLETE, True, payload, extract_reply(text, payload)
            )

    if _scan(stripped[first_brace:]).stack:
        return ParsedResponse(
            PayloadStatus.TRUNCATED, False, None, clean_reply(text), UNRECOVERED_NOTE
        )
    return ParsedResponse(PayloadStatus.UNPARSEABLE, True, None, clean_reply(text))


def clean_reply(text: str) -> str:
    """Remove payload residue from text shown to the user."""
    without_regions = _MARKER_REGION.sub("", text)
    without_regions = without_regions.replace(END_MARKER, "")
    without_fences = _FENCE.sub("", without_regions)
    lines = [
        line
        for line in without_fences.splitlines()
        if not _looks_like_json(line.strip())
    ]
    return "\n".join(lines).strip()


def _looks_like_json(line: str) -> bool:
    return bool(line) and (line[0] in "{[" or line[-1] in "}]" or line in {"],", "},"})


def extract_reply(text: str, payload: ModelPayload | None) -> str:
    """Choose the text shown to the user for a model reply."""
    if END_MARKER in text:
        trailing = clean_reply(text.split(END_MARKER, 1)[1])
        if len(trailing) > MIN_REPLY_LENGTH:
            return trailing
    if payload is not None and payload.text.strip():
        return clean_reply(payload.text)
    return DEFAULT_REPLY


def fallback_drafts(
    utterance: str, reference_date: date, selected_date: date, window_days: int = 365
) -> list[ActionDraft]:
    """Build drafts from the user's own words when the model gave no payload."""
    target = resolve_date(utterance, reference_date)
    if target is None or not is_within_window(target, reference_date, window_days):
        target = selected_date
    drafts: list[ActionDraft] = []
    mentions = extract_foods(utterance)
    if mentions:
        foods = [
            FoodDraft(
                name=mention.normalized_term,
                calories=mention.estimate.calories if mention.estimate else 0.0,
                protein=mention.estimate.protein_g if mention.estimate else 0.0,
                carbs=mention.estimate.carbs_g if mention.estimate else 0.0,
                fat=mention.estimate.fat_g if mention.estimate else 0.0,
                portion=mention.portion_hint,
            )
            for mention in mentions
        ]
        drafts.append(
            ActionDraft(
                type=ActionType.ADD_MEAL, foods=foods, target_date=target.isoformat()
            )
        )
    water = extract_water(utterance)
    if water is not None and (names_water(utterance) or not mentions):
        drafts.append(
            ActionDraft(
                type=ActionType.ADD_WATER,
                amount=water.amount_liters,
                target_date=target.isoformat(),
            )
        )
    return drafts


@dataclass
class ActionParser:
    """Turn model text into date-corrected action drafts."""

    window_days: int = 365

    def interpret(  # noqa: PLR0913
        self,
        model_text: str,
        utterance: str,
        reference_date: date,
        selected_date: date,
        alias_table: dict[str, date],
    ) -> Interpretation:
        """Parse a model reply, falling back to rule-based extraction."""
        parsed = parse_model_text(model_text)
        if parsed.payload is not None:
            drafts = [
                self._correct(
                    draft, utterance, reference_date, selected_date, alias_table
                )
                for draft in parsed.payload.actions
            ]
            return Interpretation(
                drafts=drafts,
                reply_text=parsed.reply_text,
                is_complete=parsed.is_complete,
                recovery_note=parsed.recovery_note,
            )

        drafts = fallback_drafts(
            utterance, reference_date, selected_date, self.window_days
        )
        if parsed.status is PayloadStatus.ABSENT:
            reply = parsed.reply_text or (DEFAULT_REPLY if drafts else "")
            return Interpretation(drafts=drafts, reply_text=reply, used_fallback=True)

        _logger.warning(
            "Model payload %s, rule-based extraction found %s drafts",
            parsed.status,
            len(drafts),
        )
        if not drafts:
            return Interpretation(
                drafts=[],
                reply_text=TRUNCATED_REPLY,
                is_complete=parsed.is_complete,
                recovery_note=parsed.recovery_note,
                used_fallback=True,
                extraction_failed=True,
            )
        reply = parsed.reply_text
        if len(reply) <= MIN_REPLY_LENGTH:
            reply = DEFAULT_REPLY
        return Interpretation(
            drafts=drafts,
            reply_text=reply,
            is_complete=parsed.is_complete,
            recovery_note=parsed.recovery_note,
            used_fallback=True,
        )

    def _correct(  # noqa: PLR0913
        self,
        draft: ActionDraft,
        utterance: str,
        reference_date: date,
        selected_date: date,
        alias_table: dict[str, date],
    ) -> ActionDraft:
        def fix(raw: str | None, fallback: date = selected_date) -> str:
            return correct_date(
                raw, utterance, reference_date, alias_table, fallback, self.window_days
            ).isoformat()

        if draft.type is ActionType.UPDATE_PROFILE:
            return draft
        if draft.type is ActionType.CLEAR_RANGE:
            start = fix(draft.start_date)
            end = fix(draft.end_date, date.fromisoformat(start))
            start, end = sorted((start, end))
            return draft.model_copy(update={"start_date": start, "end_date": end})

        target = fix(draft.target_date)
        action_date = date.fromisoformat(target)
        foods = [
            food.model_copy(update={"target_date": fix(food.target_date, action_date)})
            if food.target_date
            else food
            for food in draft.foods
        ]
        return draft.model_copy(update={"target_date": target, "foods": foods})
