"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutrition_chat.adapters.openai_chat_client import OpenAIChatClient
from nutrition_chat.adapters.openfoodfacts_client import HttpxOpenFoodFactsClient
from nutrition_chat.adapters.supabase_custom_food_repository import (
    SupabaseCustomFoodRepository,
)
from nutrition_chat.adapters.supabase_ledger_repository import (
    SupabaseLedgerRepository,
)
from nutrition_chat.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from nutrition_chat.config import Settings
from nutrition_chat.domain.chat import SessionContext
from nutrition_chat.services.actions import PendingActionManager
from nutrition_chat.services.cache import InMemoryCache
from nutrition_chat.services.conversation import ConversationService, SessionRegistry
from nutrition_chat.services.nutrition import NutritionService
from nutrition_chat.services.payload import ActionParser
from nutrition_chat.services.proposals import ActionProposer


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    nutrition_service: NutritionService
    session_registry: SessionRegistry
    conversation_service: ConversationService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    profile_id = resolved_settings.profile_id
    ledger_repository = SupabaseLedgerRepository(supabase_client, profile_id)
    custom_food_repository = SupabaseCustomFoodRepository(supabase_client, profile_id)
    profile_repository = SupabaseProfileRepository(supabase_client, profile_id)

    product_client = HttpxOpenFoodFactsClient.create(
        base_url=resolved_settings.off_base_url,
        user_agent=resolved_settings.off_user_agent,
        timeout_seconds=resolved_settings.lookup_timeout_seconds,
    )
    model_client = OpenAIChatClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
        temperature=resolved_settings.openai_temperature,
        timeout_seconds=resolved_settings.model_timeout_seconds,
    )
    nutrition_service = NutritionService(
        custom_foods=custom_food_repository,
        product_client=product_client,
        cache=InMemoryCache(),
        page_size=resolved_settings.off_page_size,
        debug=resolved_settings.debug,
    )

    def manager_for(session: SessionContext) -> PendingActionManager:
        return PendingActionManager(
            ledger=ledger_repository,
            profiles=profile_repository,
            session=session,
            completed_grace_seconds=resolved_settings.completed_grace_seconds,
            rejected_grace_seconds=resolved_settings.rejected_grace_seconds,
            inter_action_delay_seconds=resolved_settings.inter_action_delay_seconds,
        )

    session_registry = SessionRegistry(manager_factory=manager_for)
    conversation_service = ConversationService(
        model_client=model_client,
        parser=ActionParser(window_days=resolved_settings.date_window_days),
        proposer=ActionProposer(nutrition_service),
        sessions=session_registry,
        model_timeout_seconds=resolved_settings.model_timeout_seconds,
        debug=resolved_settings.debug,
    )

    async def close_resources() -> None:
        await product_client.close()
        await model_client.close()

    return AppContainer(
        settings=resolved_settings,
        nutrition_service=nutrition_service,
        session_registry=session_registry,
        conversation_service=conversation_service,
        close_resources=close_resources,
    )
