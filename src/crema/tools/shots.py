"""Mutating tools that log and annotate shots."""

from __future__ import annotations

from typing import Any

from crema.core.constants import MAX_RATING, MIN_RATING
from crema.core.env import LOGGER
from crema.core.errors import ErrorKind
from crema.core.resolve import fill_defaults, find_by_name
from crema.core.text import format_number
from crema.core.types import CommandOutcome
from crema.domain.models import ChangeType, NewShot, ShotUpdate
from crema.tools.registry import ToolContext, ToolDefinition, ToolKind, ToolParameter

RATING_MESSAGE = "Rating must be between 0 and 4."
SHOT_VALUES_MESSAGE = "Please provide valid dose, output, and time values."
NO_BAG_MESSAGE = "No active coffee bag found. Please add a bag first before logging shots."


def rating_param(name: str, description: str, required: bool = False) -> ToolParameter:
    return ToolParameter(
        name,
        "integer",
        description,
        required=required,
        minimum=MIN_RATING,
        maximum=MAX_RATING,
        invalid_message=RATING_MESSAGE,
    )


def _amount(name: str, description: str) -> ToolParameter:
    return ToolParameter(
        name,
        "number",
        description,
        required=True,
        positive=True,
        invalid_message=SHOT_VALUES_MESSAGE,
    )


def _num(value: float) -> str:
    return format_number(value) or str(value)


async def log_shot(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    services = ctx.services
    dose = args["doseGrams"]
    output = args["outputGrams"]
    seconds = args["timeSeconds"]

    bags = await services.bags.get_active_bags_for_shot_logging()
    bean_name = args.get("beanName")
    if bean_name:
        bean = find_by_name(await services.beans.get_all_active_beans(), bean_name)
        if bean is None:
            return CommandOutcome.fail(
                f"Bean '{bean_name}' not found. Please add the bean first or check the name.",
                ErrorKind.NOT_FOUND,
            )
        bag = next((b for b in bags if b.bean_id == bean.id), None)
        if bag is None:
            return CommandOutcome.fail(
                f"No active bag of {bean.name} found. Please add a bag first.",
                ErrorKind.NOT_FOUND,
            )
    else:
        bag = bags[0] if bags else None
        if bag is None:
            return CommandOutcome.fail(NO_BAG_MESSAGE, ErrorKind.NOT_FOUND)

    explicit: dict[str, Any] = {
        "grind_setting": args.get("grindSetting"),
        "drink_type": args.get("drinkType"),
        "rating": args.get("rating"),
        "bean_id": bag.bean_id,
        "bag_id": bag.id,
    }
    if args.get("madeBy") or args.get("madeFor"):
        profiles = await services.profiles.get_all_profiles()
        for key, arg in (("made_by_id", "madeBy"), ("made_for_id", "madeFor")):
            if not args.get(arg):
                continue
            profile = find_by_name(profiles, args[arg])
            if profile is None:
                # The person is optional; keep the inherited value.
                LOGGER.warning("Profile %r not found for %s", args[arg], arg)
            else:
                explicit[key] = profile.id

    last = await services.shots.get_most_recent_shot()
    resolved = fill_defaults(explicit, last)

    shot = NewShot(
        timestamp=ctx.clock(),
        bag_id=bag.id,
        dose_in=dose,
        grind_setting=resolved.grind_setting,
        expected_time=seconds,
        expected_output=output,
        drink_type=resolved.drink_type,
        actual_time=seconds,
        actual_output=output,
        rating=resolved.rating + 1,
        tasting_notes=args.get("tastingNotes"),
        made_by_id=resolved.made_by_id,
        made_for_id=resolved.made_for_id,
        machine_id=resolved.machine_id,
        grinder_id=resolved.grinder_id,
        accessory_ids=resolved.accessory_ids,
    )
    ctx.ensure_not_cancelled()
    record = await services.shots.create_shot(shot)
    ctx.notify(ChangeType.SHOT_CREATED, record)

    message = f"Shot logged: {_num(dose)}g → {_num(output)}g in {_num(seconds)}s"
    if args.get("rating") is not None:
        message += f", rated {args['rating']}/4"
    message += f" (using {bag.bean_name})"
    LOGGER.info("Shot logged successfully via voice, ID: %s, BagId: %s", record.id, bag.id)
    return CommandOutcome.ok(message, entity_ref=record.id)


async def rate_last_shot(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    rating = args["rating"]
    shots = ctx.services.shots
    last = await shots.get_most_recent_shot()
    if last is None:
        return CommandOutcome.fail("No shots found to rate. Log a shot first.", ErrorKind.NOT_FOUND)

    ctx.ensure_not_cancelled()
    updated = await shots.update_shot(
        last.id, ShotUpdate(rating=rating + 1, drink_type=last.drink_type)
    )
    ctx.notify(ChangeType.SHOT_UPDATED, updated)
    LOGGER.info("Last shot rated via voice: %s, shot ID: %s", rating, last.id)
    return CommandOutcome.ok(f"Rated your last shot {rating}/4", entity_ref=last.id)


async def add_tasting_notes(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    notes = args["notes"]
    shots = ctx.services.shots
    last = await shots.get_most_recent_shot()
    if last is None:
        return CommandOutcome.fail(
            "No shots found to add notes to. Log a shot first.", ErrorKind.NOT_FOUND
        )

    combined = f"{last.tasting_notes}; {notes}" if last.tasting_notes else notes
    ctx.ensure_not_cancelled()
    updated = await shots.update_shot(
        last.id, ShotUpdate(tasting_notes=combined, drink_type=last.drink_type)
    )
    ctx.notify(ChangeType.SHOT_UPDATED, updated)
    LOGGER.info("Tasting notes added via voice to shot ID: %s", last.id)
    return CommandOutcome.ok(
        f'Added tasting notes to your last shot: "{notes}"', entity_ref=last.id
    )


SHOT_TOOLS = (
    ToolDefinition(
        name="logShot",
        description=(
            "Logs a new espresso shot. Dose, output and time are required; "
            "everything else is inherited from the previous shot."
        ),
        kind=ToolKind.MUTATING,
        handler=log_shot,
        returns="a one-sentence confirmation of the logged shot.",
        failure_message="Sorry, I couldn't log that shot. Please try again.",
        parameters=(
            _amount("doseGrams", "Coffee dose in grams"),
            _amount("outputGrams", "Espresso output/yield in grams"),
            _amount("timeSeconds", "Extraction time in seconds"),
            rating_param("rating", "Shot rating from 0-4 (0=terrible, 4=excellent)"),
            ToolParameter("tastingNotes", "string", "Tasting notes describing the shot flavor"),
            ToolParameter("beanName", "string", "Bean to use; defaults to the most recently used bag"),
            ToolParameter("madeBy", "string", "Who made the shot"),
            ToolParameter("madeFor", "string", "Who the shot was made for"),
            ToolParameter("grindSetting", "string", "Grinder setting"),
            ToolParameter("drinkType", "string", "Drink type, e.g. Espresso or Latte"),
        ),
    ),
    ToolDefinition(
        name="rateLastShot",
        description="Rates the most recently logged shot.",
        kind=ToolKind.MUTATING,
        handler=rate_last_shot,
        returns="a one-sentence confirmation of the new rating.",
        failure_message="Sorry, I couldn't rate that shot. Please try again.",
        parameters=(rating_param("rating", "Rating from 0-4 (0=terrible, 4=excellent)", required=True),),
    ),
    ToolDefinition(
        name="addTastingNotes",
        description="Adds tasting notes to the most recently logged shot.",
        kind=ToolKind.MUTATING,
        handler=add_tasting_notes,
        returns="a one-sentence confirmation quoting the notes.",
        failure_message="Sorry, I couldn't add those tasting notes. Please try again.",
        parameters=(
            ToolParameter(
                "notes",
                "string",
                "Tasting notes describing flavor, body, acidity, etc.",
                required=True,
                invalid_message="Please provide tasting notes to add.",
            ),
        ),
    ),
)
