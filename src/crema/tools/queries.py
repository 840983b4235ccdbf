"""Read-only query tools. None of these touch a mutating service call."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Any

from crema.core.constants import DEFAULT_RESULT_LIMIT, MAX_RESULT_LIMIT, SHOT_HISTORY_PAGE_SIZE
from crema.core.env import LOGGER
from crema.core.types import CommandOutcome
from crema.domain.models import BagSummary, Bean, ShotRecord
from crema.tools.catalog import EQUIPMENT_TYPE_HELP, format_day, parse_equipment_type
from crema.tools.registry import ToolContext, ToolDefinition, ToolKind, ToolParameter
from crema.tools.shots import rating_param

INFO_FAILURE = "Sorry, I couldn't get that information. Please try again."


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def cap_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_RESULT_LIMIT
    return max(1, min(limit, MAX_RESULT_LIMIT))


def period_window(
    period: str | None, now: datetime
) -> tuple[datetime | None, datetime | None] | None:
    """Return the ``[start, end)`` window for a spoken period.

    ``None`` means no filtering: no period, "all time", or an unknown phrase.
    Weeks start on Sunday.
    """
    key = (period or "").strip().lower()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if key == "today":
        return midnight, None
    if key == "yesterday":
        return midnight - timedelta(days=1), midnight
    if key in ("this week", "week"):
        return midnight - timedelta(days=(midnight.weekday() + 1) % 7), None
    if key in ("this month", "month"):
        return midnight.replace(day=1), None
    return None


def _contains(value: str | None, needle: str) -> bool:
    return value is not None and needle.casefold() in value.casefold()


def select_shots(
    shots: Iterable[ShotRecord],
    now: datetime,
    *,
    bean_name: str | None = None,
    made_by: str | None = None,
    made_for: str | None = None,
    min_rating: int | None = None,
    period: str | None = None,
) -> list[ShotRecord]:
    """Apply the shared shot filters. *min_rating* is on the spoken 0-4 scale."""
    result = list(shots)
    if bean_name:
        result = [s for s in result if s.bean is not None and _contains(s.bean.name, bean_name)]
    if made_by:
        result = [s for s in result if s.made_by is not None and _contains(s.made_by.name, made_by)]
    if made_for:
        result = [
            s for s in result if s.made_for is not None and _contains(s.made_for.name, made_for)
        ]
    if min_rating is not None:
        threshold = min_rating + 1
        result = [s for s in result if s.rating is not None and s.rating >= threshold]
    window = period_window(period, now)
    if window is not None:
        start, end = window
        result = [
            s
            for s in result
            if (start is None or s.timestamp >= start) and (end is None or s.timestamp < end)
        ]
    return result


async def _history(ctx: ToolContext) -> list[ShotRecord]:
    page = await ctx.services.shots.get_shot_history(0, SHOT_HISTORY_PAGE_SIZE)
    return list(page.items)


# ---------------------------------------------------------------------------
# Shots
# ---------------------------------------------------------------------------


async def get_shot_count(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    now = ctx.clock()
    period = args.get("period") or "all time"
    bean_name, made_by, made_for = args.get("beanName"), args.get("madeBy"), args.get("madeFor")
    min_rating = args.get("minRating")
    shots = select_shots(
        await _history(ctx),
        now,
        bean_name=bean_name,
        made_by=made_by,
        made_for=made_for,
        min_rating=min_rating,
        period=period,
    )
    count = len(shots)
    period_desc = f" {period.lower()}" if period_window(period, now) is not None else ""
    LOGGER.info("Shot count queried via voice: period=%s, count=%d", period, count)

    if made_by:
        return CommandOutcome.ok(f"{made_by} has made {plural(count, 'shot')}{period_desc}")

    parts = []
    if bean_name:
        parts.append(f"with {bean_name}")
    if made_for:
        parts.append(f"made for {made_for}")
    if min_rating is not None:
        parts.append(f"rated {min_rating}+ stars")
    filter_desc = (" " + " ".join(parts)) if parts else ""
    return CommandOutcome.ok(f"You've pulled {plural(count, 'shot')}{filter_desc}{period_desc}")


async def get_last_shot(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    shot = await ctx.services.shots.get_most_recent_shot()
    if shot is None:
        return CommandOutcome.fail("No shots found. Log a shot first.")

    clock = f"{shot.timestamp.hour % 12 or 12}:{shot.timestamp:%M %p}"
    when = f"{format_day(shot.timestamp)} at {clock}"
    lines = [
        f"Last shot (ID: {shot.id}, {when}):",
        f"• Dose: {shot.dose_in:.1f}g in → {shot.output:.1f}g out",
        f"• Time: {shot.time:.0f} seconds",
        f"• Grind: {shot.grind_setting}",
        f"• Drink: {shot.drink_type}",
    ]
    if shot.rating is not None:
        lines.append(f"• Rating: {shot.rating - 1}/4")
    if shot.bean is not None:
        by = f" by {shot.bean.roaster}" if shot.bean.roaster else ""
        lines.append(f"• Bean: {shot.bean.name}{by}")
    if shot.machine is not None:
        lines.append(f"• Machine: {shot.machine.name}")
    if shot.grinder is not None:
        lines.append(f"• Grinder: {shot.grinder.name}")
    if shot.made_by is not None:
        lines.append(f"• Made by: {shot.made_by.name}")
    if shot.made_for is not None:
        lines.append(f"• Made for: {shot.made_for.name}")
    if shot.tasting_notes:
        lines.append(f"• Notes: {shot.tasting_notes}")
    LOGGER.info("Retrieved last shot details via voice, ID: %s", shot.id)
    return CommandOutcome.ok("\n".join(lines), entity_ref=shot.id)


def _shot_filter_description(args: dict[str, Any]) -> str:
    parts = []
    if args.get("beanName"):
        parts.append(f"{args['beanName']} bean")
    if args.get("madeBy"):
        parts.append(f"made by {args['madeBy']}")
    if args.get("madeFor"):
        parts.append(f"made for {args['madeFor']}")
    if args.get("minRating") is not None:
        parts.append(f"{args['minRating']}+ rating")
    if args.get("period"):
        parts.append(args["period"])
    return ", ".join(parts) if parts else "all"


async def find_shots(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    history = await _history(ctx)
    if not history:
        return CommandOutcome.ok("No shots found in your history.")

    matches = select_shots(
        history,
        ctx.clock(),
        bean_name=args.get("beanName"),
        made_by=args.get("madeBy"),
        made_for=args.get("madeFor"),
        min_rating=args.get("minRating"),
        period=args.get("period"),
    )
    results = matches[: cap_limit(args.get("limit"))]
    description = _shot_filter_description(args)
    if not results:
        return CommandOutcome.ok(f"No shots found matching: {description}")

    header = f"Found {plural(len(results), 'shot')}"
    if description != "all":
        header += f" matching {description}"
    lines = [header + ":"]
    for shot in results:
        rating = f" ({shot.rating - 1}/4)" if shot.rating is not None else ""
        bean = shot.bean.name if shot.bean is not None else "unknown bean"
        lines.append(
            f"• ID:{shot.id} {format_day(shot.timestamp)}: {shot.dose_in:.1f}g→"
            f"{shot.output:.1f}g, {shot.time:.0f}s{rating} [{bean}]"
        )
    LOGGER.info("Found %d shots via voice query", len(results))
    return CommandOutcome.ok("\n".join(lines))


# ---------------------------------------------------------------------------
# Beans and bags
# ---------------------------------------------------------------------------


def _filter_beans(
    beans: Sequence[Bean],
    roaster: str | None = None,
    origin: str | None = None,
    name: str | None = None,
) -> list[Bean]:
    result = list(beans)
    if roaster:
        result = [b for b in result if _contains(b.roaster, roaster)]
    if origin:
        result = [b for b in result if _contains(b.origin, origin)]
    if name:
        result = [b for b in result if _contains(b.name, name)]
    return result


def _bean_filter_description(
    roaster: str | None = None, origin: str | None = None, name: str | None = None
) -> str:
    parts = []
    if roaster:
        parts.append(f"from {roaster}")
    if origin:
        parts.append(f"origin {origin}")
    if name:
        parts.append(f"named '{name}'")
    return ", ".join(parts)


def _found(count: int, noun: str, description: str, shown: int, items: list[str]) -> str:
    text = f"Found {plural(count, noun)}"
    if description:
        text += f" {description}"
    if count > shown:
        text += f" (showing {shown} of {count})"
    return f"{text}: {'; '.join(items)}"


async def get_bean_count(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    roaster, origin = args.get("roaster"), args.get("origin")
    beans = _filter_beans(await ctx.services.beans.get_all_active_beans(), roaster, origin)
    description = _bean_filter_description(roaster, origin)
    message = f"You have {plural(len(beans), 'unique bean')}"
    return CommandOutcome.ok(f"{message} {description}" if description else message)


async def find_beans(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    roaster, origin, name = args.get("roaster"), args.get("origin"), args.get("name")
    beans = _filter_beans(await ctx.services.beans.get_all_active_beans(), roaster, origin, name)
    description = _bean_filter_description(roaster, origin, name)
    if not beans:
        return CommandOutcome.ok(f"No beans found {description}".rstrip())

    limit = cap_limit(args.get("limit"))
    items = []
    for bean in beans[:limit]:
        parts = [bean.name]
        if bean.roaster:
            parts.append(f"by {bean.roaster}")
        if bean.origin:
            parts.append(f"from {bean.origin}")
        if bean.average_rating:
            parts.append(f"({bean.average_rating:.1f}★)")
        items.append(" ".join(parts))
    return CommandOutcome.ok(_found(len(beans), "bean", description, limit, items))


async def get_bag_count(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    include_completed = args.get("includeCompleted")
    if include_completed is None:
        include_completed = True
    total = active = 0
    for bean in await ctx.services.beans.get_all_active_beans():
        bags = await ctx.services.bags.get_bag_summaries_for_bean(bean.id, include_completed)
        total += len(bags)
        active += sum(1 for b in bags if not b.is_complete)
    if include_completed:
        return CommandOutcome.ok(
            f"You have {plural(total, 'bag')} total ({active} active, {total - active} finished)"
        )
    return CommandOutcome.ok(f"You have {plural(active, 'active bag')}")


async def find_bags(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    bean_name, roaster = args.get("beanName"), args.get("roaster")
    active_only = args.get("activeOnly")
    if active_only is None:
        active_only = True

    beans = _filter_beans(await ctx.services.beans.get_all_active_beans(), roaster, name=bean_name)
    matches: list[BagSummary] = []
    for bean in beans:
        bags = await ctx.services.bags.get_bag_summaries_for_bean(bean.id, not active_only)
        matches.extend(b for b in bags if not (active_only and b.is_complete))
    matches.sort(key=lambda b: b.roast_date, reverse=True)

    parts = []
    if bean_name:
        parts.append(f"of {bean_name}")
    if roaster:
        parts.append(f"from {roaster}")
    if active_only:
        parts.append("(active only)")
    description = " ".join(parts)
    if not matches:
        return CommandOutcome.ok(f"No bags found {description}".rstrip())

    limit = cap_limit(args.get("limit"))
    items = []
    for bag in matches[:limit]:
        words = [bag.bean_name, f"roasted {format_day(bag.roast_date)}"]
        if bag.shot_count:
            words.append(plural(bag.shot_count, "shot"))
        if bag.is_complete:
            words.append("(finished)")
        items.append(" ".join(words))
    return CommandOutcome.ok(_found(len(matches), "bag", description, limit, items))


# ---------------------------------------------------------------------------
# Equipment and profiles
# ---------------------------------------------------------------------------


async def get_equipment_count(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    spoken_type = args.get("type")
    equipment = await ctx.services.equipment.get_all_active_equipment()
    if spoken_type:
        kind = parse_equipment_type(spoken_type)
        equipment = [e for e in equipment if e.type is kind]
    type_desc = f" ({spoken_type})" if spoken_type else ""
    count = len(equipment)
    noun = "piece" if count == 1 else "pieces"
    return CommandOutcome.ok(f"You have {count} {noun} of equipment{type_desc}")


async def find_equipment(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    spoken_type, name = args.get("type"), args.get("name")
    equipment = list(await ctx.services.equipment.get_all_active_equipment())
    if spoken_type:
        kind = parse_equipment_type(spoken_type)
        equipment = [e for e in equipment if e.type is kind]
    if name:
        equipment = [e for e in equipment if _contains(e.name, name)]

    parts = []
    if spoken_type:
        parts.append(f"type '{spoken_type}'")
    if name:
        parts.append(f"named '{name}'")
    description = ", ".join(parts)
    if not equipment:
        return CommandOutcome.ok(f"No equipment found {description}".rstrip())

    limit = cap_limit(args.get("limit"))
    items = [f"{e.name} ({e.type.label})" for e in equipment[:limit]]
    return CommandOutcome.ok(_found(len(equipment), "item", description, limit, items))


async def get_profile_count(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    profiles = await ctx.services.profiles.get_all_profiles()
    return CommandOutcome.ok(f"You have {plural(len(profiles), 'user profile')}")


async def find_profiles(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    name = args.get("name")
    profiles = list(await ctx.services.profiles.get_all_profiles())
    if name:
        profiles = [p for p in profiles if _contains(p.name, name)]
    if not profiles:
        if name:
            return CommandOutcome.ok(f"No profiles found matching '{name}'")
        return CommandOutcome.ok("No user profiles found")

    limit = cap_limit(args.get("limit"))
    count = len(profiles)
    text = f"Found {plural(count, 'profile')}"
    if name:
        text += f" matching '{name}'"
    if count > limit:
        text += f" (showing {limit} of {count})"
    listing = ", ".join(f"ID:{p.id} {p.name}" for p in profiles[:limit])
    return CommandOutcome.ok(f"{text}: {listing}")


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------

_LIMIT = ToolParameter("limit", "integer", "How many results to return (default 5, max 10)")
_PERIOD = ToolParameter(
    "period", "string", "Period: 'today', 'yesterday', 'this week', 'this month' or 'all time'"
)
_BEAN_NAME = ToolParameter("beanName", "string", "Filter by bean name")
_MADE_BY = ToolParameter("madeBy", "string", "Filter by who made the shot")
_MADE_FOR = ToolParameter("madeFor", "string", "Filter by who the shot was made for")
_MIN_RATING = rating_param("minRating", "Filter by minimum rating (0-4)")
_TYPE = ToolParameter("type", "string", f"Optional equipment type filter: {EQUIPMENT_TYPE_HELP}")


def _query(name, description, handler, returns, failure, *parameters) -> ToolDefinition:
    return ToolDefinition(
        name=name,
        description=description,
        kind=ToolKind.QUERY,
        handler=handler,
        returns=returns,
        failure_message=failure,
        parameters=parameters,
    )


QUERY_TOOLS = (
    _query(
        "getShotCount", "Gets the shot count for a time period.", get_shot_count,
        "a one-sentence count.", INFO_FAILURE,
        _PERIOD, _BEAN_NAME, _MADE_BY, _MADE_FOR, _MIN_RATING,
    ),
    _query(
        "getLastShot",
        "Gets details about the most recent shot including all settings and values.",
        get_last_shot, "a bulleted summary of the last shot.",
        "Sorry, I couldn't retrieve that information. Please try again.",
    ),
    _query(
        "findShots",
        "Finds and summarizes shots matching criteria (bean, rating, person, time period).",
        find_shots, "a bulleted list of at most 10 matching shots.",
        "Sorry, I couldn't search for shots. Please try again.",
        _BEAN_NAME, _MADE_BY, _MADE_FOR, _MIN_RATING, _PERIOD, _LIMIT,
    ),
    _query(
        "getBeanCount", "Gets the count of unique beans the user has tried.", get_bean_count,
        "a one-sentence count.", INFO_FAILURE,
        ToolParameter("roaster", "string", "Optional roaster name to filter by"),
        ToolParameter("origin", "string", "Optional origin to filter by (e.g., 'Ethiopia')"),
    ),
    _query(
        "findBeans", "Finds and lists beans matching the search criteria.", find_beans,
        "a one-line list of matching beans.",
        "Sorry, I couldn't search for beans. Please try again.",
        ToolParameter("roaster", "string", "Optional roaster name (e.g., 'Storyville')"),
        ToolParameter("origin", "string", "Optional origin (e.g., 'Ethiopia', 'Kenya')"),
        ToolParameter("name", "string", "Optional bean name to search for"),
        _LIMIT,
    ),
    _query(
        "getBagCount", "Gets the count of bags (physical bags of coffee) the user has.",
        get_bag_count, "a one-sentence count.", INFO_FAILURE,
        ToolParameter(
            "includeCompleted", "boolean",
            "Whether to include completed/finished bags (default true)",
        ),
    ),
    _query(
        "findBags", "Finds and lists bags matching the search criteria.", find_bags,
        "a one-line list of matching bags.",
        "Sorry, I couldn't search for bags. Please try again.",
        ToolParameter("beanName", "string", "Optional bean name to filter by"),
        ToolParameter("roaster", "string", "Optional roaster name to filter by"),
        ToolParameter(
            "activeOnly", "boolean",
            "Whether to include only active (not finished) bags (default true)",
        ),
        _LIMIT,
    ),
    _query(
        "getEquipmentCount", "Gets the count of equipment items the user has.",
        get_equipment_count, "a one-sentence count.", INFO_FAILURE,
        _TYPE,
    ),
    _query(
        "findEquipment", "Finds and lists equipment matching the search criteria.",
        find_equipment, "a one-line list of matching equipment.",
        "Sorry, I couldn't search for equipment. Please try again.",
        _TYPE, ToolParameter("name", "string", "Optional name to search for"), _LIMIT,
    ),
    _query(
        "getProfileCount", "Gets the count of user profiles.", get_profile_count,
        "a one-sentence count.", INFO_FAILURE,
    ),
    _query(
        "findProfiles", "Finds and lists user profiles.", find_profiles,
        "a one-line list of profiles with their IDs.",
        "Sorry, I couldn't search for profiles. Please try again.",
        ToolParameter("name", "string", "Optional name to search for"), _LIMIT,
    ),
)
