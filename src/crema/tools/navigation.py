"""Navigational tools and the fixed page table they route to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from crema.core.env import LOGGER
from crema.core.errors import ErrorKind
from crema.core.types import CommandOutcome
from crema.tools.registry import ToolContext, ToolDefinition, ToolKind, ToolParameter
from crema.tools.shots import rating_param


@dataclass(frozen=True, slots=True)
class Destination:
    route: str
    display_name: str
    description: str
    aliases: tuple[str, ...] = ()


DESTINATIONS: tuple[Destination, ...] = (
    Destination(
        "//shots",
        "New Shot",
        "Log a new espresso shot with dose, yield, time, grind setting and rating.",
        ("new shot", "log shot", "shot logging", "new", "log", "record shot",
         "pull shot", "make coffee", "espresso"),
    ),
    Destination(
        "//history",
        "Activity",
        "Shot history and activity feed. Review past shots, ratings and trends.",
        ("activity", "history", "feed", "my shots", "shot history", "past shots",
         "all shots", "activity feed", "timeline"),
    ),
    Destination(
        "//settings",
        "Settings",
        "App settings. Manage beans, equipment, user profiles and preferences.",
        ("settings", "preferences", "options", "config", "configuration", "setup"),
    ),
    Destination(
        "profiles",
        "User Profiles",
        "Manage the people who make or receive espresso drinks.",
        ("profiles", "users", "people", "baristas", "profile management",
         "user management", "who", "person"),
    ),
    Destination(
        "beans",
        "Coffee Beans",
        "Manage the coffee beans in your collection.",
        ("beans", "coffee beans", "bean management", "coffee", "varieties"),
    ),
    Destination(
        "equipment",
        "Equipment",
        "Manage machines, grinders, tampers and other gear.",
        ("equipment", "gear", "machines", "grinders", "tools", "equipment management"),
    ),
    Destination(
        "bean-detail",
        "Bean Details",
        "Details of one coffee bean: origin, roaster and tasting notes.",
        ("bean detail", "bean info", "coffee detail"),
    ),
    Destination(
        "bag-detail",
        "Bag Details",
        "Details of one bag of coffee: roast date and shot history.",
        ("bag detail", "bag info"),
    ),
    Destination(
        "equipment-detail",
        "Equipment Details",
        "Details of one piece of equipment.",
        ("equipment detail", "gear detail"),
    ),
    Destination(
        "profile-form",
        "Profile Form",
        "Add or edit a user profile.",
        ("add profile", "edit profile", "new profile"),
    ),
)


def find_destination(
    name: str | None, destinations: tuple[Destination, ...] = DESTINATIONS
) -> Destination | None:
    """Look up a page by route, then display name, exact alias, partial alias."""
    needle = (name or "").strip().lower()
    if not needle:
        return None
    for dest in destinations:
        route = dest.route.lower()
        if route in (needle, f"//{needle}") or route.lstrip("/") == needle:
            return dest
    for dest in destinations:
        if dest.display_name.lower() == needle:
            return dest
    for dest in destinations:
        if needle in dest.aliases:
            return dest
    for dest in destinations:
        if any(needle in alias or alias in needle for alias in dest.aliases):
            return dest
    return None


async def get_available_pages(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    lines = ["Available pages:"]
    lines.extend(
        f"- {d.display_name} (route: {d.route}): {d.description}" for d in DESTINATIONS
    )
    return CommandOutcome.ok("\n".join(lines))


async def navigate_to(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    page = args["pageName"]
    dest = find_destination(page)
    if dest is None:
        names = ", ".join(d.display_name for d in DESTINATIONS)
        return CommandOutcome.fail(
            f"Unknown page '{page}'. Available pages: {names}. "
            "Use getAvailablePages for more details.",
            ErrorKind.NOT_FOUND,
        )
    ctx.navigate(dest.route)
    LOGGER.info("Navigating via voice to: %s (%s)", dest.route, dest.display_name)
    return CommandOutcome.ok(f"I've taken you to {dest.display_name}.", route=dest.route)


async def navigate_to_shot_detail(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    route = f"shot-logging?shotId={args['shotId']}"
    ctx.navigate(route)
    return CommandOutcome.ok("I've opened the shot details.", route=route)


async def navigate_to_profile_detail(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    route = f"profile-form?profileId={args['profileId']}"
    ctx.navigate(route)
    return CommandOutcome.ok("I've opened the profile details.", route=route)


def history_route(
    bean_name: str | None, period: str | None, min_rating: int | None
) -> str:
    params = []
    if bean_name:
        params.append(f"bean={quote(bean_name, safe='')}")
    if period:
        params.append(f"period={quote(period, safe='')}")
    if min_rating is not None:
        params.append(f"minRating={min_rating}")
    return "//history" + ("?" + "&".join(params) if params else "")


async def filter_shots(ctx: ToolContext, args: dict[str, Any]) -> CommandOutcome:
    bean_name = args.get("beanName")
    period = args.get("period")
    min_rating = args.get("minRating")
    route = history_route(bean_name, period, min_rating)
    ctx.navigate(route)

    parts = []
    if bean_name:
        parts.append(f"{bean_name} bean")
    if period:
        parts.append(period)
    if min_rating is not None:
        parts.append(f"{min_rating}+ stars")
    LOGGER.info("Filtering shots via voice and navigating to activity feed: %s", route)
    return CommandOutcome.ok(f"Showing shots: {', '.join(parts) or 'all'}", route=route)


def _id_param(name: str, description: str) -> ToolParameter:
    return ToolParameter(
        name, "integer", description, required=True, minimum=1,
        invalid_message=f"Please provide a valid {name}.",
    )


NAVIGATION_TOOLS = (
    ToolDefinition(
        name="getAvailablePages",
        description=(
            "Gets the pages in the app that can be navigated to. "
            "Call this to discover navigation options before navigating."
        ),
        kind=ToolKind.NAVIGATIONAL,
        handler=get_available_pages,
        returns="a bulleted list of pages with routes and descriptions.",
        failure_message="Error discovering available pages.",
    ),
    ToolDefinition(
        name="navigateTo",
        description="Navigates to a page in the app. Use getAvailablePages first if unsure.",
        kind=ToolKind.NAVIGATIONAL,
        handler=navigate_to,
        returns="a one-sentence confirmation naming the page, or the list of valid pages.",
        failure_message="Sorry, I couldn't navigate there. Please try again.",
        parameters=(
            ToolParameter(
                "pageName",
                "string",
                "Page name or alias to navigate to (e.g., 'activity', 'new shot', 'settings')",
                required=True,
                invalid_message="Please say which page to open.",
            ),
        ),
    ),
    ToolDefinition(
        name="navigateToShotDetail",
        description=(
            "Opens a specific shot's detail page by shot ID. Use after findShots or "
            "getLastShot when the user says 'show me' a specific shot."
        ),
        kind=ToolKind.NAVIGATIONAL,
        handler=navigate_to_shot_detail,
        returns="a one-sentence confirmation.",
        failure_message="Sorry, I couldn't open that shot. Please try again.",
        parameters=(_id_param("shotId", "The shot ID to open"),),
    ),
    ToolDefinition(
        name="navigateToProfileDetail",
        description=(
            "Opens a specific profile's edit page by profile ID. Use after findProfiles "
            "when the user says 'show me' a specific profile."
        ),
        kind=ToolKind.NAVIGATIONAL,
        handler=navigate_to_profile_detail,
        returns="a one-sentence confirmation.",
        failure_message="Sorry, I couldn't open that profile. Please try again.",
        parameters=(_id_param("profileId", "The profile ID to open"),),
    ),
    ToolDefinition(
        name="filterShots",
        description="Filters shots by criteria and navigates to the activity feed.",
        kind=ToolKind.NAVIGATIONAL,
        handler=filter_shots,
        returns="a one-sentence summary of the applied filter.",
        failure_message="Sorry, I couldn't filter those shots. Please try again.",
        parameters=(
            ToolParameter("beanName", "string", "Filter by bean name"),
            ToolParameter("period", "string", "Filter by period: 'today', 'this week', 'this month'"),
            rating_param("minRating", "Filter by minimum rating (0-4)"),
        ),
    ),
)
