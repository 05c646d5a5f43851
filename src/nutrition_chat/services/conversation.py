"""Conversation driver: one user message in, proposed actions out."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol
from uuid import uuid4

from nutrition_chat.domain.chat import ChatReply, ChatTurn, SessionContext
from nutrition_chat.domain.errors import GatewayError, ModelTimeoutError
from nutrition_chat.services.actions import PendingActionManager
from nutrition_chat.services.payload import ActionParser
from nutrition_chat.services.prompts import build_system_context
from nutrition_chat.services.proposals import ActionProposer, ProposalContext
from nutrition_chat.services.temporal import build_alias_table

_logger = logging.getLogger(__name__)


class ModelClient(Protocol):
    """Interface for the conversational language model."""

    async def send(
        self, message: str, history: list[ChatTurn], system_context: str
    ) -> str:
        """Send a message with prior turns and return the raw reply text."""


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class SessionRegistry:
    """Session contexts and their action managers, keyed by session id."""

    manager_factory: Callable[[SessionContext], PendingActionManager]
    today: Callable[[], date] = date.today
    _sessions: dict[str, SessionContext] = field(default_factory=dict, init=False)
    _managers: dict[str, PendingActionManager] = field(
        default_factory=dict, init=False
    )

    def get(self, session_id: str) -> SessionContext:
        """Return the session, creating it on first use."""
        session = self._sessions.get(session_id)
        if session is None:
            session = SessionContext(session_id=session_id, selected_date=self.today())
            self._sessions[session_id] = session
            self._managers[session_id] = self.manager_factory(session)
        return session

    def manager(self, session_id: str) -> PendingActionManager:
        """Return the action manager bound to a session."""
        self.get(session_id)
        return self._managers[session_id]

    def set_selected_date(self, session_id: str, selected: date) -> SessionContext:
        """Change the day new entries default to."""
        session = self.get(session_id)
        session.selected_date = selected
        return session


@dataclass
class ConversationService:
    """Send user messages to the model and turn replies into pending actions."""

    model_client: ModelClient
    parser: ActionParser
    proposer: ActionProposer
    sessions: SessionRegistry
    clock: Callable[[], datetime] = _local_now
    model_timeout_seconds: float = 30
    debug: bool = False

    async def handle_message(self, session_id: str, text: str) -> ChatReply:
        """Process one user message for a session."""
        message = text.strip()
        if not message:
            raise ValueError("Message must not be empty")

        session = self.sessions.get(session_id)
        now = self.clock()
        reference_date = now.date()
        alias_table = build_alias_table(message, reference_date)
        system_context = build_system_context(reference_date, alias_table)
        group_id = uuid4().hex

        try:
            model_text = await asyncio.wait_for(
                self.model_client.send(message, list(session.history), system_context),
                timeout=self.model_timeout_seconds,
            )
        except TimeoutError:
            _logger.warning(
                "Model call timed out after %ss", self.model_timeout_seconds
            )
            return ChatReply(
                text=ModelTimeoutError.user_message,
                group_id=group_id,
                actions=[],
                failed=True,
            )
        except GatewayError as exc:
            _logger.warning("Model call failed: %s", exc)
            return ChatReply(
                text=exc.user_message, group_id=group_id, actions=[], failed=True
            )

        if self.debug:
            _logger.info("Model reply for %s: %s", session_id, model_text)

        interpretation = self.parser.interpret(
            model_text,
            message,
            reference_date,
            session.selected_date,
            alias_table,
        )
        actions = await self.proposer.propose(
            interpretation.drafts,
            group_id,
            ProposalContext(
                reference_date=reference_date, utterance=message, hour=now.hour
            ),
        )
        self.sessions.manager(session_id).register(actions)

        reply = interpretation.reply_text
        if interpretation.recovery_note:
            reply = f"{reply}\n\n{interpretation.recovery_note}"
        session.history.append(ChatTurn(role="user", content=message))
        session.history.append(ChatTurn(role="model", content=model_text))
        return ChatReply(
            text=reply,
            group_id=group_id,
            actions=actions,
            is_complete=interpretation.is_complete,
            failed=interpretation.extraction_failed,
        )
