"""Name resolution and default inheritance for tool arguments."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, TypeVar

from crema.core.constants import DEFAULT_DRINK_TYPE, DEFAULT_GRIND_SETTING, DEFAULT_RATING
from crema.core.types import ResolvedContext
from crema.domain.models import ShotRecord


class Named(Protocol):
    @property
    def id(self) -> int: ...

    @property
    def name(self) -> str: ...


N = TypeVar("N", bound=Named)


def find_by_name(candidates: Iterable[N], query: str | None) -> N | None:
    """Return the first candidate whose name contains *query* or vice versa.

    Comparison is case-insensitive. An empty query matches nothing.
    """
    needle = (query or "").strip().casefold()
    if not needle:
        return None
    for candidate in candidates:
        name = (candidate.name or "").strip().casefold()
        if name and (needle in name or name in needle):
            return candidate
    return None


def resolve_by_name(candidates: Iterable[Named], query: str | None) -> int | None:
    match = find_by_name(candidates, query)
    return match.id if match is not None else None


def fill_defaults(
    explicit: Mapping[str, Any], most_recent: ShotRecord | None
) -> ResolvedContext:
    """Complete optional shot fields.

    *explicit* holds values the user actually gave, keyed by
    :class:`ResolvedContext` field name; ``None`` means "not given". Missing
    fields come from *most_recent*, then from the hard defaults. Rating is
    never inherited. Relational fields without a previous shot stay unset.
    """

    def pick(key: str, inherited: Any, default: Any = None) -> Any:
        value = explicit.get(key)
        if value is not None:
            return value
        if most_recent is not None and inherited not in (None, ""):
            return inherited
        return default

    last = most_recent
    accessories = explicit.get("accessory_ids")
    if accessories is None:
        accessories = tuple(a.id for a in last.accessories) if last else ()

    return ResolvedContext(
        grind_setting=pick("grind_setting", last and last.grind_setting, DEFAULT_GRIND_SETTING),
        drink_type=pick("drink_type", last and last.drink_type, DEFAULT_DRINK_TYPE),
        rating=explicit.get("rating") if explicit.get("rating") is not None else DEFAULT_RATING,
        made_by_id=pick("made_by_id", last and last.made_by and last.made_by.id),
        made_for_id=pick("made_for_id", last and last.made_for and last.made_for.id),
        machine_id=pick("machine_id", last and last.machine and last.machine.id),
        grinder_id=pick("grinder_id", last and last.grinder and last.grinder.id),
        accessory_ids=tuple(accessories),
        bean_id=explicit.get("bean_id"),
        bag_id=explicit.get("bag_id"),
    )
