"""Pydantic models for the chat HTTP API."""

from dataclasses import asdict
from datetime import date, datetime

from pydantic import BaseModel, Field

from nutrition_chat.domain.actions import ActionStatus, ActionType, PendingAction
from nutrition_chat.domain.chat import ChatReply, SessionContext
from nutrition_chat.domain.nutrition import (
    MacroProfile,
    NutritionRecord,
    Portion,
    RecordOrigin,
)


class MessageRequest(BaseModel):
    """User message sent to a chat session."""

    text: str = Field(min_length=1, max_length=4000)


class SelectedDateRequest(BaseModel):
    """Day that new entries default to."""

    selected_date: date


class ActionView(BaseModel):
    """Pending action as shown to the client."""

    id: str
    group_id: str
    type: ActionType
    description: str
    status: ActionStatus
    error: str | None = None
    settled_at: datetime | None = None
    payload: dict[str, object]

    @classmethod
    def from_action(cls, action: PendingAction) -> "ActionView":
        """Build a view from a domain action."""
        return cls(
            id=action.id,
            group_id=action.group_id,
            type=action.type,
            description=action.description,
            status=action.status,
            error=action.error,
            settled_at=action.settled_at,
            payload=asdict(action.payload),
        )


class ChatReplyView(BaseModel):
    """Reply to a chat message."""

    text: str
    group_id: str
    is_complete: bool
    failed: bool
    actions: list[ActionView]

    @classmethod
    def from_reply(cls, reply: ChatReply) -> "ChatReplyView":
        """Build a view from a domain reply."""
        return cls(
            text=reply.text,
            group_id=reply.group_id,
            is_complete=reply.is_complete,
            failed=reply.failed,
            actions=[ActionView.from_action(action) for action in reply.actions],
        )


class ActionListView(BaseModel):
    """Actions currently visible in a session."""

    actions: list[ActionView]


class SessionView(BaseModel):
    """Session state without the model history."""

    session_id: str
    selected_date: date

    @classmethod
    def from_session(cls, session: SessionContext) -> "SessionView":
        """Build a view from a session context."""
        return cls(session_id=session.session_id, selected_date=session.selected_date)


class MacrosView(BaseModel):
    """Macros per 100g."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float | None = None
    sugar_g: float | None = None
    sodium_mg: float | None = None


class PortionView(BaseModel):
    name: str
    grams: float = Field(gt=0)


class FoodView(BaseModel):
    """Nutrition record as exchanged with the client."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: str = "other"
    brand: str | None = None
    per_100g: MacrosView
    common_portions: list[PortionView] = Field(default_factory=list)
    aliases: list[str] = Field(default_factory=list)
    origin: RecordOrigin = RecordOrigin.REMOTE_LOOKUP

    @classmethod
    def from_record(cls, record: NutritionRecord) -> "FoodView":
        """Build a view from a domain record."""
        return cls(
            id=record.id,
            name=record.name,
            category=record.category,
            brand=record.brand,
            per_100g=MacrosView(**asdict(record.per_100g)),
            common_portions=[
                PortionView(name=portion.name, grams=portion.grams)
                for portion in record.common_portions
            ],
            aliases=sorted(record.aliases),
            origin=record.origin,
        )

    def to_record(self) -> NutritionRecord:
        return NutritionRecord(
            id=self.id,
            name=self.name,
            category=self.category,
            per_100g=MacroProfile(**self.per_100g.model_dump()),
            common_portions=tuple(
                Portion(name=portion.name, grams=portion.grams)
                for portion in self.common_portions
            ),
            aliases=frozenset(alias.lower() for alias in self.aliases),
            origin=self.origin,
            brand=self.brand,
        )


class FoodListView(BaseModel):
    foods: list[FoodView]
