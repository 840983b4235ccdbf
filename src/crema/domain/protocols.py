"""Structural type protocols for the domain collaborators.

The voice pipeline only ever talks to these interfaces; it never touches
storage directly.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from crema.domain.models import (
    Bag,
    BagSummary,
    Bean,
    ChangeType,
    Equipment,
    NewBag,
    NewBean,
    NewEquipment,
    NewProfile,
    NewShot,
    OperationResult,
    Page,
    ShotRecord,
    ShotUpdate,
    UserProfile,
)


class ShotService(Protocol):
    async def get_most_recent_shot(self) -> ShotRecord | None: ...

    async def create_shot(self, shot: NewShot) -> ShotRecord: ...

    async def update_shot(self, shot_id: int, update: ShotUpdate) -> ShotRecord: ...

    async def get_shot_history(self, page_index: int, page_size: int) -> Page[ShotRecord]: ...


class BeanService(Protocol):
    async def create_bean(self, bean: NewBean) -> OperationResult[Bean]: ...

    async def get_all_active_beans(self) -> Sequence[Bean]: ...


class BagService(Protocol):
    async def create_bag(self, bag: NewBag) -> OperationResult[Bag]: ...

    async def get_active_bags_for_shot_logging(self) -> Sequence[BagSummary]:
        """Active bags, most recently used first."""
        ...

    async def get_bag_summaries_for_bean(
        self, bean_id: int, include_completed: bool
    ) -> Sequence[BagSummary]: ...


class EquipmentService(Protocol):
    async def create_equipment(self, equipment: NewEquipment) -> Equipment: ...

    async def get_all_active_equipment(self) -> Sequence[Equipment]: ...


class ProfileService(Protocol):
    async def create_profile(self, profile: NewProfile) -> UserProfile: ...

    async def get_all_profiles(self) -> Sequence[UserProfile]: ...


class ChangeNotifier(Protocol):
    def notify(self, change_type: ChangeType, entity: Any = None) -> None: ...


class Navigator(Protocol):
    def navigate(self, route: str) -> None: ...


@dataclass(frozen=True, slots=True)
class DomainServices:
    """Bundle of collaborators handed to the tool handlers."""

    shots: ShotService
    beans: BeanService
    bags: BagService
    equipment: EquipmentService
    profiles: ProfileService
    notifier: ChangeNotifier
    navigator: Navigator | None = None
