"""Records exchanged with the domain services.

These are plain value objects. Storage, identity allocation and
relationship loading belong to the service implementations.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class EquipmentType(Enum):
    MACHINE = "machine"
    GRINDER = "grinder"
    TAMPER = "tamper"
    PUCK_SCREEN = "puck screen"
    OTHER = "other"

    @property
    def label(self) -> str:
        return "equipment" if self is EquipmentType.OTHER else self.value


class ChangeType(Enum):
    """Kind of data change broadcast after a successful mutation."""

    BEAN_CREATED = 1
    BEAN_UPDATED = 2
    BAG_CREATED = 3
    BAG_UPDATED = 4
    SHOT_CREATED = 5
    SHOT_UPDATED = 6
    SHOT_DELETED = 7
    EQUIPMENT_CREATED = 8
    EQUIPMENT_UPDATED = 9
    PROFILE_CREATED = 10
    PROFILE_UPDATED = 11


@dataclass(frozen=True, slots=True)
class Bean:
    id: int
    name: str
    roaster: str | None = None
    origin: str | None = None
    notes: str | None = None
    is_active: bool = True
    average_rating: float | None = None


@dataclass(frozen=True, slots=True)
class Bag:
    id: int
    bean_id: int
    roast_date: date
    is_complete: bool = False
    is_active: bool = True
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class BagSummary:
    """A bag joined with its bean name and usage count."""

    id: int
    bean_id: int
    bean_name: str
    roast_date: date
    is_complete: bool = False
    shot_count: int = 0


@dataclass(frozen=True, slots=True)
class Equipment:
    id: int
    name: str
    type: EquipmentType = EquipmentType.OTHER
    notes: str | None = None
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class UserProfile:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class ShotRecord:
    """A logged shot with its related records resolved.

    ``rating`` is stored on the 1-5 service scale.
    """

    id: int
    timestamp: datetime
    bag_id: int
    dose_in: float
    grind_setting: str
    expected_time: float
    expected_output: float
    drink_type: str
    bean: Bean | None = None
    actual_time: float | None = None
    actual_output: float | None = None
    rating: int | None = None
    tasting_notes: str | None = None
    machine: Equipment | None = None
    grinder: Equipment | None = None
    accessories: tuple[Equipment, ...] = ()
    made_by: UserProfile | None = None
    made_for: UserProfile | None = None

    @property
    def output(self) -> float:
        return self.actual_output if self.actual_output is not None else self.expected_output

    @property
    def time(self) -> float:
        return self.actual_time if self.actual_time is not None else self.expected_time


@dataclass(frozen=True, slots=True)
class NewShot:
    timestamp: datetime
    bag_id: int
    dose_in: float
    grind_setting: str
    expected_time: float
    expected_output: float
    drink_type: str
    actual_time: float | None = None
    actual_output: float | None = None
    rating: int | None = None
    tasting_notes: str | None = None
    made_by_id: int | None = None
    made_for_id: int | None = None
    machine_id: int | None = None
    grinder_id: int | None = None
    accessory_ids: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class ShotUpdate:
    """Partial shot update; ``None`` fields are left unchanged."""

    rating: int | None = None
    tasting_notes: str | None = None
    drink_type: str | None = None


@dataclass(frozen=True, slots=True)
class NewBean:
    name: str
    roaster: str | None = None
    origin: str | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class NewBag:
    bean_id: int
    roast_date: date
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class NewEquipment:
    name: str
    type: EquipmentType = EquipmentType.OTHER
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class NewProfile:
    name: str


@dataclass(frozen=True, slots=True)
class OperationResult(Generic[T]):
    """Explicit success/failure result for services that validate input."""

    success: bool
    data: T | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, data: T) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str) -> "OperationResult[T]":
        return cls(success=False, error_message=message)


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    total_count: int = 0
    page_index: int = 0
    page_size: int = 0
