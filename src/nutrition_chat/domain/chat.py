"""Domain models for conversation sessions."""

from dataclasses import dataclass, field
from datetime import date
from typing import Literal

from nutrition_chat.domain.actions import PendingAction


@dataclass(frozen=True)
class ChatTurn:
    """One message in the model conversation history."""

    role: Literal["user", "model"]
    content: str


@dataclass
class SessionContext:
    """Mutable state of a single conversation."""

    session_id: str
    selected_date: date
    history: list[ChatTurn] = field(default_factory=list)


@dataclass(frozen=True)
class ChatReply:
    """Reply to a user message with the actions proposed for confirmation."""

    text: str
    group_id: str
    actions: list[PendingAction]
    is_complete: bool = True
    failed: bool = False
