"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from nutrition_chat.api.models import (
    ActionListView,
    ActionView,
    ChatReplyView,
    FoodListView,
    FoodView,
    MessageRequest,
    SelectedDateRequest,
    SessionView,
)
from nutrition_chat.app_logging import configure_logging
from nutrition_chat.containers import AppContainer
from nutrition_chat.domain.errors import ActionNotFoundError, ActionStateError
from nutrition_chat.services.actions import PendingActionManager


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(debug=container.settings.debug)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(ActionNotFoundError)
    async def not_found(_request: Request, exc: ActionNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ActionStateError)
    async def conflict(_request: Request, exc: ActionStateError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def invalid(_request: Request, exc: ValueError) -> JSONResponse:
        logger.info("Rejected request: %s", exc)
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/foods/search")
    async def search_foods(
        request: Request, q: str = Query(min_length=2, max_length=200)
    ) -> FoodListView:
        """Search the remote product database."""
        state_container: AppContainer = request.app.state.container
        records = await state_container.nutrition_service.search_products(q)
        return FoodListView(foods=[FoodView.from_record(r) for r in records])

    @app.post("/foods/custom")
    async def promote_food(body: FoodView, request: Request) -> FoodView:
        """Keep a food as a user-custom record for later lookups."""
        state_container: AppContainer = request.app.state.container
        record = await asyncio.to_thread(
            state_container.nutrition_service.promote, body.to_record()
        )
        return FoodView.from_record(record)

    @app.post("/sessions/{session_id}/messages")
    async def send_message(
        session_id: str, body: MessageRequest, request: Request
    ) -> ChatReplyView:
        """Send a message and return the proposed actions."""
        state_container: AppContainer = request.app.state.container
        reply = await state_container.conversation_service.handle_message(
            session_id, body.text
        )
        return ChatReplyView.from_reply(reply)

    @app.put("/sessions/{session_id}/selected-date")
    async def set_selected_date(
        session_id: str, body: SelectedDateRequest, request: Request
    ) -> SessionView:
        """Change the day new entries default to."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_registry.set_selected_date(
            session_id, body.selected_date
        )
        return SessionView.from_session(session)

    @app.get("/sessions/{session_id}/actions")
    async def list_actions(
        session_id: str, request: Request, group_id: str | None = None
    ) -> ActionListView:
        """Return the actions still visible in a session."""
        manager = _manager(request, session_id)
        actions = manager.active_actions(group_id)
        return ActionListView(actions=[ActionView.from_action(a) for a in actions])

    @app.post("/sessions/{session_id}/actions/{action_id}/confirm")
    async def confirm_action(
        session_id: str, action_id: str, request: Request
    ) -> ActionView:
        """Execute one pending action."""
        action = await _manager(request, session_id).confirm(action_id)
        return ActionView.from_action(action)

    @app.post("/sessions/{session_id}/actions/{action_id}/reject")
    async def reject_action(
        session_id: str, action_id: str, request: Request
    ) -> ActionView:
        """Reject one pending action."""
        action = _manager(request, session_id).reject(action_id)
        return ActionView.from_action(action)

    @app.post("/sessions/{session_id}/groups/{group_id}/confirm")
    async def confirm_group(
        session_id: str, group_id: str, request: Request
    ) -> ActionListView:
        """Execute every pending action proposed for one message."""
        actions = await _manager(request, session_id).confirm_all(group_id)
        return ActionListView(actions=[ActionView.from_action(a) for a in actions])

    @app.post("/sessions/{session_id}/groups/{group_id}/reject")
    async def reject_group(
        session_id: str, group_id: str, request: Request
    ) -> ActionListView:
        """Reject every pending action proposed for one message."""
        actions = _manager(request, session_id).reject_all(group_id)
        return ActionListView(actions=[ActionView.from_action(a) for a in actions])

    return app


def _manager(request: Request, session_id: str) -> PendingActionManager:
    state_container: AppContainer = request.app.state.container
    return state_container.session_registry.manager(session_id)
