"""In-memory implementation of every domain service.

Used by the CLI and the test suite. One :class:`InMemoryStore` satisfies the
shot, bean, bag, equipment and profile service protocols at once.
"""

from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import date, datetime, timedelta

from crema.domain.errors import EntityNotFoundError, ValidationError
from crema.domain.models import (
    Bag,
    BagSummary,
    Bean,
    Equipment,
    EquipmentType,
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
from crema.domain.notifier import DataChangeNotifier
from crema.domain.protocols import ChangeNotifier, DomainServices, Navigator


class InMemoryStore:
    def __init__(self) -> None:
        self.beans: dict[int, Bean] = {}
        self.bags: dict[int, Bag] = {}
        self.equipment: dict[int, Equipment] = {}
        self.profiles: dict[int, UserProfile] = {}
        self.shots: dict[int, ShotRecord] = {}
        self._ids = {
            kind: itertools.count(1)
            for kind in ("bean", "bag", "equipment", "profile", "shot")
        }

    def services(
        self,
        notifier: ChangeNotifier | None = None,
        navigator: Navigator | None = None,
    ) -> DomainServices:
        return DomainServices(
            shots=self,
            beans=self,
            bags=self,
            equipment=self,
            profiles=self,
            notifier=notifier if notifier is not None else DataChangeNotifier(),
            navigator=navigator,
        )

    # -- shots -------------------------------------------------------------

    async def get_most_recent_shot(self) -> ShotRecord | None:
        if not self.shots:
            return None
        return max(self.shots.values(), key=lambda s: (s.timestamp, s.id))

    async def create_shot(self, shot: NewShot) -> ShotRecord:
        errors = _validate_new_shot(shot)
        if errors:
            raise ValidationError(errors)
        bag = self.bags.get(shot.bag_id)
        if bag is None:
            raise EntityNotFoundError("Bag", shot.bag_id)

        record = ShotRecord(
            id=next(self._ids["shot"]),
            timestamp=shot.timestamp,
            bag_id=bag.id,
            bean=self.beans.get(bag.bean_id),
            dose_in=shot.dose_in,
            grind_setting=shot.grind_setting,
            expected_time=shot.expected_time,
            expected_output=shot.expected_output,
            drink_type=shot.drink_type,
            actual_time=shot.actual_time,
            actual_output=shot.actual_output,
            rating=shot.rating,
            tasting_notes=shot.tasting_notes,
            machine=self._optional(self.equipment, shot.machine_id),
            grinder=self._optional(self.equipment, shot.grinder_id),
            accessories=tuple(
                self.equipment[i] for i in shot.accessory_ids if i in self.equipment
            ),
            made_by=self._optional(self.profiles, shot.made_by_id),
            made_for=self._optional(self.profiles, shot.made_for_id),
        )
        self.shots[record.id] = record
        return record

    async def update_shot(self, shot_id: int, update: ShotUpdate) -> ShotRecord:
        record = self.shots.get(shot_id)
        if record is None:
            raise EntityNotFoundError("ShotRecord", shot_id)
        if update.rating is not None and not 1 <= update.rating <= 5:
            raise ValidationError({"rating": ["Rating must be between 1 and 5 stars"]})

        changes: dict[str, object] = {}
        if update.rating is not None:
            changes["rating"] = update.rating
        if update.tasting_notes is not None:
            changes["tasting_notes"] = update.tasting_notes
        if update.drink_type:
            changes["drink_type"] = update.drink_type
        record = replace(record, **changes)
        self.shots[shot_id] = record
        return record

    async def get_shot_history(self, page_index: int, page_size: int) -> Page[ShotRecord]:
        ordered = sorted(self.shots.values(), key=lambda s: (s.timestamp, s.id), reverse=True)
        start = page_index * page_size
        return Page(
            items=ordered[start : start + page_size],
            total_count=len(ordered),
            page_index=page_index,
            page_size=page_size,
        )

    # -- beans -------------------------------------------------------------

    async def create_bean(self, bean: NewBean) -> OperationResult[Bean]:
        name = (bean.name or "").strip()
        if not name:
            return OperationResult.fail("Name is required")
        if len(name) > 100:
            return OperationResult.fail("Name must be 100 characters or less")
        if any(b.name.casefold() == name.casefold() for b in self.beans.values() if b.is_active):
            return OperationResult.fail(f"A bean named '{name}' already exists.")
        record = Bean(
            id=next(self._ids["bean"]),
            name=name,
            roaster=bean.roaster,
            origin=bean.origin,
            notes=bean.notes,
        )
        self.beans[record.id] = record
        return OperationResult.ok(record)

    async def get_all_active_beans(self) -> list[Bean]:
        result = []
        for bean in sorted(self.beans.values(), key=lambda b: b.name.casefold()):
            if not bean.is_active:
                continue
            ratings = [
                s.rating
                for s in self.shots.values()
                if s.rating is not None and s.bean is not None and s.bean.id == bean.id
            ]
            average = sum(ratings) / len(ratings) if ratings else None
            result.append(replace(bean, average_rating=average))
        return result

    # -- bags --------------------------------------------------------------

    async def create_bag(self, bag: NewBag) -> OperationResult[Bag]:
        if bag.bean_id not in self.beans:
            return OperationResult.fail("Bean not found")
        if bag.roast_date > date.today():
            return OperationResult.fail("Roast date cannot be in the future")
        if bag.notes and len(bag.notes) > 500:
            return OperationResult.fail("Notes cannot exceed 500 characters")
        record = Bag(
            id=next(self._ids["bag"]),
            bean_id=bag.bean_id,
            roast_date=bag.roast_date,
            notes=bag.notes,
        )
        self.bags[record.id] = record
        return OperationResult.ok(record)

    async def get_active_bags_for_shot_logging(self) -> list[BagSummary]:
        active = [b for b in self.bags.values() if b.is_active and not b.is_complete]

        def last_used(bag: Bag) -> datetime:
            times = [s.timestamp for s in self.shots.values() if s.bag_id == bag.id]
            return max(times, default=datetime.min)

        active.sort(key=lambda b: (last_used(b), b.roast_date, b.id), reverse=True)
        return [self._summary(b) for b in active]

    async def get_bag_summaries_for_bean(
        self, bean_id: int, include_completed: bool
    ) -> list[BagSummary]:
        bags = [
            b
            for b in self.bags.values()
            if b.bean_id == bean_id and b.is_active and (include_completed or not b.is_complete)
        ]
        bags.sort(key=lambda b: b.roast_date, reverse=True)
        return [self._summary(b) for b in bags]

    def complete_bag(self, bag_id: int) -> Bag:
        bag = self.bags.get(bag_id)
        if bag is None:
            raise EntityNotFoundError("Bag", bag_id)
        self.bags[bag_id] = bag = replace(bag, is_complete=True)
        return bag

    # -- equipment ---------------------------------------------------------

    async def create_equipment(self, equipment: NewEquipment) -> Equipment:
        name = (equipment.name or "").strip()
        if not name:
            raise ValidationError({"name": ["Name is required"]})
        record = Equipment(
            id=next(self._ids["equipment"]),
            name=name,
            type=equipment.type,
            notes=equipment.notes,
        )
        self.equipment[record.id] = record
        return record

    async def get_all_active_equipment(self) -> list[Equipment]:
        return sorted(
            (e for e in self.equipment.values() if e.is_active),
            key=lambda e: e.name.casefold(),
        )

    # -- profiles ----------------------------------------------------------

    async def create_profile(self, profile: NewProfile) -> UserProfile:
        name = (profile.name or "").strip()
        if not name:
            raise ValidationError({"name": ["Name is required"]})
        record = UserProfile(id=next(self._ids["profile"]), name=name)
        self.profiles[record.id] = record
        return record

    async def get_all_profiles(self) -> list[UserProfile]:
        return sorted(self.profiles.values(), key=lambda p: p.name.casefold())

    # -- helpers -----------------------------------------------------------

    @staticmethod
    def _optional(table: dict, key: int | None):
        return table.get(key) if key is not None else None

    def _summary(self, bag: Bag) -> BagSummary:
        bean = self.beans.get(bag.bean_id)
        return BagSummary(
            id=bag.id,
            bean_id=bag.bean_id,
            bean_name=bean.name if bean else "Unknown",
            roast_date=bag.roast_date,
            is_complete=bag.is_complete,
            shot_count=sum(1 for s in self.shots.values() if s.bag_id == bag.id),
        )


def _validate_new_shot(shot: NewShot) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    if shot.dose_in <= 0:
        errors["dose_in"] = ["Dose must be greater than 0 grams"]
    if shot.expected_time <= 0:
        errors["expected_time"] = ["Shot time must be greater than 0 seconds"]
    if shot.expected_output <= 0:
        errors["expected_output"] = ["Output must be greater than 0 grams"]
    if not (shot.grind_setting or "").strip():
        errors["grind_setting"] = ["Grind setting is required"]
    if not (shot.drink_type or "").strip():
        errors["drink_type"] = ["Drink type is required"]
    if shot.rating is not None and not 1 <= shot.rating <= 5:
        errors["rating"] = ["Rating must be between 1 and 5"]
    return errors


def seed_demo(store: InMemoryStore, now: datetime | None = None) -> InMemoryStore:
    """Populate *store* with a small, realistic data set for the CLI."""
    now = now or datetime.now()
    beans = [
        Bean(1, "Ethiopia Yirgacheffe", roaster="Storyville", origin="Ethiopia"),
        Bean(2, "Prologue Blend", roaster="Storyville"),
        Bean(3, "Colombia Huila", roaster="Onyx", origin="Colombia"),
    ]
    for bean in beans:
        store.beans[bean.id] = bean
    store.bags[1] = Bag(1, bean_id=1, roast_date=(now - timedelta(days=9)).date())
    store.bags[2] = Bag(2, bean_id=2, roast_date=(now - timedelta(days=4)).date())
    store.equipment[1] = Equipment(1, "Decent DE1", EquipmentType.MACHINE)
    store.equipment[2] = Equipment(2, "Niche Zero", EquipmentType.GRINDER)
    store.profiles[1] = UserProfile(1, "David")
    store.profiles[2] = UserProfile(2, "Angie")
    store.shots[1] = ShotRecord(
        id=1,
        timestamp=now - timedelta(hours=20),
        bag_id=1,
        bean=beans[0],
        dose_in=18.0,
        grind_setting="5.5",
        expected_time=28.0,
        expected_output=36.0,
        drink_type="Espresso",
        actual_time=29.0,
        actual_output=37.0,
        rating=4,
        machine=store.equipment[1],
        grinder=store.equipment[2],
        made_by=store.profiles[1],
        made_for=store.profiles[2],
    )
    for kind, table in (
        ("bean", store.beans),
        ("bag", store.bags),
        ("equipment", store.equipment),
        ("profile", store.profiles),
        ("shot", store.shots),
    ):
        store._ids[kind] = itertools.count(max(table, default=0) + 1)
    return store
