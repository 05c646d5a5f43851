"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta

import pytest

from nutrition_chat.adapters.openfoodfacts_client import ProductLookupClient
from nutrition_chat.config import Settings
from nutrition_chat.containers import AppContainer
from nutrition_chat.domain.chat import ChatTurn, SessionContext
from nutrition_chat.domain.ledger import DayLedgerEntry, MealEntry, adjust_water
from nutrition_chat.domain.nutrition import NutritionRecord
from nutrition_chat.services.actions import (
    LedgerGateway,
    PendingActionManager,
    ProfileRepository,
)
from nutrition_chat.services.cache import InMemoryCache
from nutrition_chat.services.conversation import (
    ConversationService,
    ModelClient,
    SessionRegistry,
)
from nutrition_chat.services.nutrition import CustomFoodRepository, NutritionService
from nutrition_chat.services.payload import ActionParser
from nutrition_chat.services.proposals import ActionProposer

REFERENCE_NOW = datetime(2025, 1, 10, 12, 30, tzinfo=UTC)


@dataclass
class FixedClock:
    """Clock returning a settable instant."""

    now: datetime = REFERENCE_NOW

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class InMemoryLedger(LedgerGateway):
    """In-memory ledger recording every write in order."""

    entries: dict[date, DayLedgerEntry] = field(default_factory=dict)
    writes: list[tuple[str, date]] = field(default_factory=list)
    fail_on: set[str] = field(default_factory=set)

    def _entry(self, day: date) -> DayLedgerEntry:
        return self.entries.get(day) or DayLedgerEntry(date=day)

    def _record(self, operation: str, day: date) -> None:
        if operation in self.fail_on:
            raise RuntimeError(f"{operation} failed")
        self.writes.append((operation, day))

    async def get_entry(self, day: date) -> DayLedgerEntry | None:
        return self.entries.get(day)

    async def add_meal(self, day: date, meal: MealEntry) -> None:
        self._record("add_meal", day)
        entry = self._entry(day)
        self.entries[day] = replace(entry, meals=(*entry.meals, meal))

    async def update_water(self, day: date, delta_liters: float) -> float:
        self._record("update_water", day)
        entry = self._entry(day)
        water = adjust_water(entry.water, delta_liters)
        self.entries[day] = replace(entry, water=water)
        return water

    async def delete_meal(self, day: date, meal_id: str) -> None:
        self._record("delete_meal", day)
        entry = self._entry(day)
        meals = tuple(meal for meal in entry.meals if meal.id != meal_id)
        self.entries[day] = replace(entry, meals=meals)

    async def update_meal(
        self, day: date, meal_id: str, changes: dict[str, object]
    ) -> None:
        self._record("update_meal", day)
        entry = self._entry(day)
        meals = tuple(
            replace(meal, name=str(changes.get("name", meal.name)))
            if meal.id == meal_id
            else meal
            for meal in entry.meals
        )
        self.entries[day] = replace(entry, meals=meals)

    async def clear_day(self, day: date) -> None:
        self._record("clear_day", day)
        self.entries[day] = replace(self._entry(day), meals=())

    async def set_weight(self, day: date, weight_kg: float) -> None:
        self._record("set_weight", day)
        self.entries[day] = replace(self._entry(day), weight_kg=weight_kg)

    def meals_on(self, day: date) -> tuple[MealEntry, ...]:
        entry = self.entries.get(day)
        return entry.meals if entry else ()


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile store."""

    profile: dict[str, object] = field(default_factory=dict)

    def get_profile(self) -> dict[str, object]:
        return dict(self.profile)

    def update_profile(self, updates: dict[str, object]) -> dict[str, object]:
        self.profile.update(updates)
        return dict(self.profile)


@dataclass
class InMemoryCustomFoodRepository(CustomFoodRepository):
    """In-memory custom food store."""

    foods: list[NutritionRecord] = field(default_factory=list)

    def list_foods(self) -> list[NutritionRecord]:
        return list(self.foods)

    def save_food(self, record: NutritionRecord) -> NutritionRecord:
        self.foods = [food for food in self.foods if food.id != record.id]
        self.foods.append(record)
        return record


@dataclass
class FakeProductClient(ProductLookupClient):
    """Fake product search returning a fixed payload."""

    payload: dict[str, object] = field(default_factory=lambda: {"products": []})
    error: Exception | None = None
    queries: list[str] = field(default_factory=list)

    async def search_products(
        self, query: str, page_size: int = 3
    ) -> dict[str, object]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass
class FakeModelClient(ModelClient):
    """Fake model client replaying queued replies."""

    replies: list[str] = field(default_factory=list)
    error: Exception | None = None
    calls: list[tuple[str, list[ChatTurn], str]] = field(default_factory=list)

    async def send(
        self, message: str, history: list[ChatTurn], system_context: str
    ) -> str:
        self.calls.append((message, history, system_context))
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else ""


def model_reply(payload: str, text: str = "Alles klar, ich habe es notiert.") -> str:
    """Wrap a JSON payload the way the model is instructed to."""
    return f"---JSON_START---\n{payload}\n---JSON_END---\n{text}"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="openai-key",
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def profiles() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def custom_foods() -> InMemoryCustomFoodRepository:
    return InMemoryCustomFoodRepository()


@pytest.fixture
def product_client() -> FakeProductClient:
    return FakeProductClient()


@pytest.fixture
def model_client() -> FakeModelClient:
    return FakeModelClient()


@pytest.fixture
def session() -> SessionContext:
    return SessionContext(session_id="s-1", selected_date=REFERENCE_NOW.date())


@pytest.fixture
def manager(
    ledger: InMemoryLedger,
    profiles: InMemoryProfileRepository,
    session: SessionContext,
    clock: FixedClock,
) -> PendingActionManager:
    return PendingActionManager(
        ledger=ledger, profiles=profiles, session=session, clock=clock
    )


@pytest.fixture
def nutrition_service(
    custom_foods: InMemoryCustomFoodRepository, product_client: FakeProductClient
) -> NutritionService:
    return NutritionService(
        custom_foods=custom_foods, product_client=product_client, cache=InMemoryCache()
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    ledger: InMemoryLedger,
    profiles: InMemoryProfileRepository,
    model_client: FakeModelClient,
    nutrition_service: NutritionService,
    clock: FixedClock,
) -> AppContainer:
    def manager_for(session: SessionContext) -> PendingActionManager:
        return PendingActionManager(
            ledger=ledger, profiles=profiles, session=session, clock=clock
        )

    registry = SessionRegistry(
        manager_factory=manager_for, today=lambda: clock().date()
    )
    conversation_service = ConversationService(
        model_client=model_client,
        parser=ActionParser(),
        proposer=ActionProposer(nutrition_service),
        sessions=registry,
        clock=clock,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        nutrition_service=nutrition_service,
        session_registry=registry,
        conversation_service=conversation_service,
        close_resources=close_resources,
    )
