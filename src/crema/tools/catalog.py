"""Mutating tools for beans, bags, equipment and people."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Any

from crema.core.env import LOGGER
from crema.core.errors import ErrorKind
from crema.core.resolve import find_by_name
from crema.core.types import CommandOutcome
from crema.domain.models import (
    ChangeType,
    EquipmentType,
    NewBag,
    NewBean,
    NewEquipment,
    NewProfile,
)
from crema.tools.registry import ToolContext, ToolDefinition, ToolKind, ToolParameter

_EQUIPMENT_TYPES = {
    "machine": EquipmentType.MACHINE,
    "espresso machine": EquipmentType.MACHINE,
    "grinder": EquipmentType.GRINDER,
    "coffee grinder": EquipmentType.GRINDER,
    "tamper": EquipmentType.TAMPER,
    "puckscreen": EquipmentType.PUCK_SCREEN,
    "puck screen": EquipmentType.PUCK_SCREEN,
}

_DAYS_AGO_RE = re.compile(r"(\d+)\s+days?\s+ago")
_ORDINAL_RE = re.compile(r"(\d+)(st|nd|rd|th)\b")
_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%B %d %Y", "%b %d %Y", "%d %B %Y", "%d %b %Y")
_MONTH_DAY_FORMATS = ("%B %d", "%b %d", "%d %B", "%d %b")


def parse_equipment_type(text: str | None) -> EquipmentType:
    return _EQUIPMENT_TYPES.get((text or "").strip().lower(), EquipmentType.OTHER)


def format_day(day: date) -> str:
    """``Mar 4`` style, no zero padding."""
    return f"{day:%b} {day.day}"


def parse_roast_date(text: str | None, today: date) -> date:
    """Parse a spoken roast date; anything unrecognised means *today*."""
    if not text:
        return today
    phrase = text.strip().lower()
    if phrase == "today":
        return today
    if phrase == "yesterday":
        return today - timedelta(days=1)
    match = _DAYS_AGO_RE.search(phrase)
    if match:
        return today - timedelta(days=int(match.group(1)))

    phrase = _ORDINAL_RE.sub(r"\1", phrase).replace(",", " ")
    phrase = " ".join(phrase.split())
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(phrase, fmt).date()
        except ValueError:
            continue
    for fmt in _MONTH_DAY_FORMATS:
        try:
            # strptime defaults to 1900, which has no Feb 29.
            parsed = datetime.strptime(f"{phrase} {today.year}", f"{fmt} %Y").date()
        except ValueError:
            continue
        if parsed > today:
            parsed = parsed.replace(year=today.year - 1)
        return parsed
    LOGGER.debug("Unrecognised roast date %r; using today", text)
    return today


async def add_bean(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    name = args["name"]
    roaster = args.get("roaster")
    ctx.ensure_not_cancelled()
    result = await ctx.services.beans.create_bean(
        NewBean(name=name, roaster=roaster, origin=args.get("origin"))
    )
    if not result.success or result.data is None:
        return CommandOutcome.fail(result.error_message or "Failed to create bean.")

    bean = result.data
    ctx.notify(ChangeType.BEAN_CREATED, bean)
    LOGGER.info("Bean created successfully via voice: %s, ID: %s", name, bean.id)
    message = f"Added bean: {name}"
    if roaster:
        message += f" from {roaster}"
    return CommandOutcome.ok(message, entity_ref=bean.id)


async def add_bag(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    bean_name = args["beanName"]
    bean = find_by_name(await ctx.services.beans.get_all_active_beans(), bean_name)
    if bean is None:
        return CommandOutcome.fail(
            f"Bean '{bean_name}' not found. Please add the bean first or check the name.",
            ErrorKind.NOT_FOUND,
        )

    spoken_date = args.get("roastDate")
    roast_date = parse_roast_date(spoken_date, ctx.clock().date())
    ctx.ensure_not_cancelled()
    result = await ctx.services.bags.create_bag(NewBag(bean_id=bean.id, roast_date=roast_date))
    if not result.success or result.data is None:
        return CommandOutcome.fail(result.error_message or "Failed to create bag.")

    bag = result.data
    ctx.notify(ChangeType.BAG_CREATED, bag)
    LOGGER.info("Bag created successfully via voice for bean: %s, ID: %s", bean.name, bag.id)
    message = f"Added bag of {bean.name}"
    if spoken_date:
        message += f" roasted {format_day(roast_date)}"
    return CommandOutcome.ok(message, entity_ref=bag.id)


async def add_equipment(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    name = args["name"]
    kind = parse_equipment_type(args.get("type"))
    ctx.ensure_not_cancelled()
    equipment = await ctx.services.equipment.create_equipment(NewEquipment(name=name, type=kind))
    ctx.notify(ChangeType.EQUIPMENT_CREATED, equipment)
    LOGGER.info("Equipment created successfully via voice: %s, ID: %s", name, equipment.id)
    return CommandOutcome.ok(f"Added {kind.label}: {name}", entity_ref=equipment.id)


async def add_profile(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    name = args["name"]
    ctx.ensure_not_cancelled()
    profile = await ctx.services.profiles.create_profile(NewProfile(name=name))
    ctx.notify(ChangeType.PROFILE_CREATED, profile)
    LOGGER.info("Profile created successfully via voice: %s, ID: %s", name, profile.id)
    return CommandOutcome.ok(f"Added profile for {name}", entity_ref=profile.id)


EQUIPMENT_TYPE_HELP = "'machine', 'grinder', 'tamper', 'puck screen', or 'other'"

CATALOG_TOOLS = (
    ToolDefinition(
        name="addBean",
        description="Creates a new coffee bean entry.",
        kind=ToolKind.MUTATING,
        handler=add_bean,
        returns="a one-sentence confirmation naming the bean.",
        failure_message="Sorry, I couldn't add that bean. Please try again.",
        parameters=(
            ToolParameter(
                "name",
                "string",
                "Name of the coffee bean",
                required=True,
                invalid_message="Please provide a bean name.",
            ),
            ToolParameter("roaster", "string", "Roaster company name"),
            ToolParameter("origin", "string", "Origin country or region"),
        ),
    ),
    ToolDefinition(
        name="addBag",
        description="Creates a new bag of an existing coffee bean.",
        kind=ToolKind.MUTATING,
        handler=add_bag,
        returns="a one-sentence confirmation naming the bean and roast date.",
        failure_message="Sorry, I couldn't add that bag. Please try again.",
        parameters=(
            ToolParameter(
                "beanName",
                "string",
                "Name of the bean for this bag",
                required=True,
                invalid_message="Please provide the bean name for this bag.",
            ),
            ToolParameter(
                "roastDate",
                "string",
                "Roast date (YYYY-MM-DD, 'today', 'yesterday', or days ago like '3 days ago')",
            ),
        ),
    ),
    ToolDefinition(
        name="addEquipment",
        description="Creates new coffee equipment (machine, grinder, tamper, etc.).",
        kind=ToolKind.MUTATING,
        handler=add_equipment,
        returns="a one-sentence confirmation naming the equipment and its type.",
        failure_message="Sorry, I couldn't add that equipment. Please try again.",
        parameters=(
            ToolParameter(
                "name",
                "string",
                "Equipment name",
                required=True,
                invalid_message="Please provide an equipment name.",
            ),
            ToolParameter(
                "type",
                "string",
                f"Type of equipment: {EQUIPMENT_TYPE_HELP}",
                required=True,
                invalid_message=f"Please say what kind of equipment it is: {EQUIPMENT_TYPE_HELP}.",
            ),
        ),
    ),
    ToolDefinition(
        name="addProfile",
        description="Creates a new user profile.",
        kind=ToolKind.MUTATING,
        handler=add_profile,
        returns="a one-sentence confirmation naming the person.",
        failure_message="Sorry, I couldn't add that profile. Please try again.",
        parameters=(
            ToolParameter(
                "name",
                "string",
                "Person's name",
                required=True,
                invalid_message="Please provide a name for the profile.",
            ),
        ),
    ),
)
