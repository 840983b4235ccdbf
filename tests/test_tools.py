"""Tests for the mutating tools in crema.tools.shots and crema.tools.catalog."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from crema.core.errors import ErrorKind
from crema.core.types import ToolInvocation
from crema.domain.models import Bag, ChangeType, EquipmentType
from crema.tools import build_registry
from crema.tools.catalog import format_day, parse_equipment_type, parse_roast_date
from crema.tools.shots import NO_BAG_MESSAGE

from .conftest import NOW


def run_tool(context, tool: str, /, **arguments):
    return asyncio.run(build_registry().execute(ToolInvocation(tool, arguments), context))


SHOT = {"doseGrams": 18, "outputGrams": 36, "timeSeconds": 28}


class TestLogShot:
    def test_confirmation_message(self, context) -> None:
        outcome = run_tool(context, "logShot", **SHOT, rating=3)
        assert outcome.success
        assert outcome.message == (
            "Shot logged: 18g → 36g in 28s, rated 3/4 (using Ethiopia Yirgacheffe)"
        )
        assert outcome.entity_ref == 2

    def test_decimal_values_render_plainly(self, context) -> None:
        outcome = run_tool(
            context, "logShot", doseGrams=18.5, outputGrams=40, timeSeconds=30.25
        )
        assert outcome.message.startswith("Shot logged: 18.5g → 40g in 30.25s (using")

    def test_inherits_from_last_shot(self, context, store) -> None:
        run_tool(context, "logShot", **SHOT)
        shot = store.shots[2]
        assert shot.grind_setting == "5.5"
        assert shot.drink_type == "Espresso"
        assert shot.machine.name == "Decent DE1"
        assert shot.grinder.name == "Niche Zero"
        assert shot.made_by.name == "David"
        assert shot.made_for.name == "Angie"
        assert shot.timestamp == NOW

    def test_default_rating_is_average(self, context, store) -> None:
        run_tool(context, "logShot", **SHOT)
        # Spoken 2/4 is stored as 3 of 5.
        assert store.shots[2].rating == 3

    def test_explicit_values_win(self, context, store) -> None:
        run_tool(
            context,
            "logShot",
            **SHOT,
            grindSetting="6",
            drinkType="Latte",
            madeBy="angie",
            madeFor="dav",
        )
        shot = store.shots[2]
        assert shot.grind_setting == "6"
        assert shot.drink_type == "Latte"
        assert shot.made_by.name == "Angie"
        assert shot.made_for.name == "David"

    def test_unknown_person_keeps_inherited_value(self, context, store) -> None:
        outcome = run_tool(context, "logShot", **SHOT, madeBy="Zed")
        assert outcome.success
        assert store.shots[2].made_by.name == "David"

    def test_named_bean(self, context, store) -> None:
        outcome = run_tool(context, "logShot", **SHOT, beanName="prologue")
        assert outcome.message.endswith("(using Prologue Blend)")
        assert store.shots[2].bag_id == 2

    def test_unknown_bean(self, context, store) -> None:
        outcome = run_tool(context, "logShot", **SHOT, beanName="Kona")
        assert not outcome.success
        assert outcome.error_kind is ErrorKind.NOT_FOUND
        assert "Kona" in outcome.message
        assert len(store.shots) == 1

    def test_bean_without_active_bag(self, context, store) -> None:
        outcome = run_tool(context, "logShot", **SHOT, beanName="Colombia Huila")
        assert not outcome.success
        assert outcome.message == "No active bag of Colombia Huila found. Please add a bag first."

    def test_no_active_bag(self, context, store) -> None:
        store.complete_bag(1)
        store.complete_bag(2)
        outcome = run_tool(context, "logShot", **SHOT)
        assert outcome.message == NO_BAG_MESSAGE
        assert len(store.shots) == 1

    def test_most_recently_used_bag(self, context, store) -> None:
        run_tool(context, "logShot", **SHOT, beanName="Prologue")
        outcome = run_tool(context, "logShot", **SHOT)
        assert outcome.message.endswith("(using Prologue Blend)")

    def test_notifies(self, context, notifier) -> None:
        run_tool(context, "logShot", **SHOT)
        assert notifier.types == [ChangeType.SHOT_CREATED]

    def test_service_failure_is_a_fixed_sentence(self, context, store) -> None:
        async def broken(shot):
            raise RuntimeError("disk full")

        store.create_shot = broken
        outcome = run_tool(context, "logShot", **SHOT)
        assert outcome.message == "Sorry, I couldn't log that shot. Please try again."
        assert outcome.error_kind is ErrorKind.UNKNOWN


class TestRateAndNotes:
    def test_rate_last_shot(self, context, store, notifier) -> None:
        outcome = run_tool(context, "rateLastShot", rating=4)
        assert outcome.message == "Rated your last shot 4/4"
        assert store.shots[1].rating == 5
        assert notifier.types == [ChangeType.SHOT_UPDATED]

    def test_rate_without_shots(self, context, store) -> None:
        store.shots.clear()
        outcome = run_tool(context, "rateLastShot", rating=2)
        assert not outcome.success
        assert outcome.error_kind is ErrorKind.NOT_FOUND

    def test_notes_append(self, context, store) -> None:
        run_tool(context, "addTastingNotes", notes="chocolate")
        outcome = run_tool(context, "addTastingNotes", notes="bright acidity")
        assert outcome.message == 'Added tasting notes to your last shot: "bright acidity"'
        assert store.shots[1].tasting_notes == "chocolate; bright acidity"


class TestCatalogTools:
    def test_add_bean(self, context, store, notifier) -> None:
        outcome = run_tool(context, "addBean", name="Kenya AA", roaster="Onyx")
        assert outcome.message == "Added bean: Kenya AA from Onyx"
        assert store.beans[outcome.entity_ref].name == "Kenya AA"
        assert notifier.types == [ChangeType.BEAN_CREATED]

    def test_add_duplicate_bean(self, context) -> None:
        outcome = run_tool(context, "addBean", name="prologue blend")
        assert not outcome.success
        assert "already exists" in outcome.message

    def test_add_bag(self, context, store) -> None:
        outcome = run_tool(context, "addBag", beanName="huila", roastDate="3 days ago")
        assert outcome.message == "Added bag of Colombia Huila roasted Mar 9"
        assert store.bags[outcome.entity_ref].roast_date == date(2025, 3, 9)

    def test_add_bag_default_date(self, context, store) -> None:
        outcome = run_tool(context, "addBag", beanName="Prologue")
        assert outcome.message == "Added bag of Prologue Blend"
        assert store.bags[outcome.entity_ref].roast_date == NOW.date()

    def test_add_bag_unknown_bean(self, context) -> None:
        outcome = run_tool(context, "addBag", beanName="Kona")
        assert outcome.error_kind is ErrorKind.NOT_FOUND

    def test_add_equipment(self, context, store) -> None:
        outcome = run_tool(context, "addEquipment", name="Normcore", type="Tamper")
        assert outcome.message == "Added tamper: Normcore"
        assert store.equipment[outcome.entity_ref].type is EquipmentType.TAMPER

    def test_add_other_equipment(self, context) -> None:
        outcome = run_tool(context, "addEquipment", name="Scale", type="scale")
        assert outcome.message == "Added equipment: Scale"

    def test_add_profile(self, context, store, notifier) -> None:
        outcome = run_tool(context, "addProfile", name="Sam")
        assert outcome.message == "Added profile for Sam"
        assert store.profiles[outcome.entity_ref].name == "Sam"
        assert notifier.types == [ChangeType.PROFILE_CREATED]


class TestParsing:
    @pytest.mark.parametrize(
        ("spoken", "expected"),
        [
            ("machine", EquipmentType.MACHINE),
            ("Espresso Machine", EquipmentType.MACHINE),
            ("coffee grinder", EquipmentType.GRINDER),
            ("puckscreen", EquipmentType.PUCK_SCREEN),
            ("puck screen", EquipmentType.PUCK_SCREEN),
            ("kettle", EquipmentType.OTHER),
            (None, EquipmentType.OTHER),
        ],
    )
    def test_equipment_type(self, spoken, expected) -> None:
        assert parse_equipment_type(spoken) is expected

    @pytest.mark.parametrize(
        ("spoken", "expected"),
        [
            (None, date(2025, 3, 12)),
            ("today", date(2025, 3, 12)),
            ("yesterday", date(2025, 3, 11)),
            ("10 days ago", date(2025, 3, 2)),
            ("2025-02-20", date(2025, 2, 20)),
            ("March 1st", date(2025, 3, 1)),
            ("December 20", date(2024, 12, 20)),
            ("sometime last week", date(2025, 3, 12)),
        ],
    )
    def test_roast_date(self, spoken, expected) -> None:
        assert parse_roast_date(spoken, date(2025, 3, 12)) == expected

    def test_format_day(self) -> None:
        assert format_day(date(2025, 3, 4)) == "Mar 4"


def test_completed_bags_are_not_offered(store) -> None:
    store.bags[3] = Bag(3, bean_id=3, roast_date=date(2025, 3, 1), is_complete=True)
    bags = asyncio.run(store.get_active_bags_for_shot_logging())
    assert [b.id for b in bags] == [1, 2]
