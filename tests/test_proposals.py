"""Tests for turning drafts into pending actions."""

import asyncio
from datetime import date

from nutrition_chat.domain.actions import (
    ActionStatus,
    ActionType,
    ClearRangePayload,
    MealPayload,
    PendingAction,
    WaterPayload,
    WeightPayload,
)
from nutrition_chat.domain.ledger import MealType
from nutrition_chat.services.nutrition import NutritionService
from nutrition_chat.services.payload import ActionDraft, FoodDraft
from nutrition_chat.services.proposals import ActionProposer, ProposalContext

CONTEXT = ProposalContext(reference_date=date(2025, 1, 10), utterance="", hour=13)


def _propose(
    nutrition_service: NutritionService,
    drafts: list[ActionDraft],
    context: ProposalContext = CONTEXT,
) -> list[PendingAction]:
    proposer = ActionProposer(nutrition_service)
    return asyncio.run(proposer.propose(drafts, "group-1", context))


def test_meal_proposal_resolves_foods_and_describes_totals(
    nutrition_service: NutritionService,
) -> None:
    draft = ActionDraft(
        type=ActionType.ADD_MEAL,
        target_date="2025-01-09",
        meal_type="dinner",
        foods=[FoodDraft(name="Hähnchenbrust")],
    )

    (action,) = _propose(nutrition_service, [draft])

    assert action.status is ActionStatus.PENDING
    assert action.group_id == "group-1"
    assert action.description == (
        "Hähnchenbrust gestern hinzufügen\n"
        "297 kcal • 55.8g Protein • 0g Kohlenhydrate • 6.5g Fett"
    )
    assert isinstance(action.payload, MealPayload)
    assert action.payload.meal_type is MealType.DINNER
    assert action.payload.target_date == date(2025, 1, 9)
    food = action.payload.foods[0]
    assert food.record_id == "chicken-breast-001"
    assert food.confidence == 100
    assert food.source == "database-match"


def test_meal_with_foods_on_several_days_is_multi_day(
    nutrition_service: NutritionService,
) -> None:
    draft = ActionDraft(
        type=ActionType.ADD_MEAL,
        target_date="2025-01-10",
        foods=[
            FoodDraft(name="Apfel", target_date="2025-01-09"),
            FoodDraft(name="Banane", target_date="2025-01-10"),
        ],
    )

    (action,) = _propose(nutrition_service, [draft])

    assert isinstance(action.payload, MealPayload)
    assert action.payload.multi_day
    assert action.description.startswith("Apfel, Banane an 2 Tagen hinzufügen")


def test_unknown_meal_type_falls_back_to_time_of_day(
    nutrition_service: NutritionService,
) -> None:
    draft = ActionDraft(
        type=ActionType.ADD_MEAL,
        meal_type="brunch",
        foods=[FoodDraft(name="Ei")],
    )
    context = ProposalContext(
        reference_date=date(2025, 1, 10), utterance="Ei", hour=21
    )

    (action,) = _propose(nutrition_service, [draft], context)

    assert isinstance(action.payload, MealPayload)
    assert action.payload.meal_type is MealType.SNACK
    assert action.payload.target_date == date(2025, 1, 10)


def test_water_defaults_and_signed_amounts(
    nutrition_service: NutritionService,
) -> None:
    drafts = [
        ActionDraft(type=ActionType.ADD_WATER, target_date="2025-01-10"),
        ActionDraft(type=ActionType.ADD_WATER, target_date="2025-01-08", amount=-0.5),
    ]

    added, removed = _propose(nutrition_service, drafts)

    assert isinstance(added.payload, WaterPayload)
    assert added.payload.amount_liters == 0.25
    assert added.description == "0.25L Wasser heute hinzufügen"
    assert removed.description == "0.5L Wasser vorgestern entfernen"


def test_other_action_types_get_german_descriptions(
    nutrition_service: NutritionService,
) -> None:
    drafts = [
        ActionDraft(
            type=ActionType.DELETE_MEAL, target_date="2025-01-10", meal_name="Pizza"
        ),
        ActionDraft(type=ActionType.CLEAR_DAY, target_date="2025-01-09"),
        ActionDraft(
            type=ActionType.CLEAR_RANGE,
            start_date="2025-01-01",
            end_date="2025-01-03",
        ),
        ActionDraft(type=ActionType.UPDATE_PROFILE, updates={"height": 180}),
        ActionDraft(
            type=ActionType.TRACK_WEIGHT, target_date="2025-01-10", weight=72.5
        ),
    ]

    actions = _propose(nutrition_service, drafts)

    assert [action.description for action in actions] == [
        "Mahlzeit 'Pizza' heute löschen",
        "Alle Mahlzeiten gestern löschen",
        "Alle Mahlzeiten vom 01.01.2025 bis 03.01.2025 löschen",
        "Profil aktualisieren: height",
        "Gewicht 72.5 kg heute eintragen",
    ]
    assert isinstance(actions[2].payload, ClearRangePayload)
    assert isinstance(actions[4].payload, WeightPayload)
    assert len({action.id for action in actions}) == len(actions)


def test_unusable_drafts_are_skipped(nutrition_service: NutritionService) -> None:
    drafts = [
        ActionDraft(type=ActionType.ADD_MEAL),
        ActionDraft(type=ActionType.DELETE_MEAL, target_date="2025-01-10"),
        ActionDraft(type=ActionType.TRACK_WEIGHT),
        ActionDraft(type=ActionType.CLEAR_DAY, target_date="2025-01-10"),
    ]

    actions = _propose(nutrition_service, drafts)

    assert [action.type for action in actions] == [ActionType.CLEAR_DAY]
