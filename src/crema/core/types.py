"""Value types shared across the voice-command pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from crema.core.errors import ErrorKind


@dataclass(frozen=True, slots=True)
class VoiceCommandRequest:
    """A raw speech-to-text transcript as issued by the user."""

    transcript: str
    issued_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True, slots=True)
class ToolInvocation:
    """A tool call chosen by the model.

    ``arguments`` is ``None`` when the model sent arguments that could not be
    decoded as a JSON object.
    """

    tool_name: str
    arguments: dict[str, Any] | None
    call_id: str = ""


@dataclass(frozen=True, slots=True)
class CommandOutcome:
    """Result of executing one tool, or of a whole command.

    Attributes:
        success: Whether the action completed.
        message: Literal sentence shown to the user.
        entity_ref: Id of the record created or changed, if any.
        route: Destination the app was asked to navigate to, if any.
        error_kind: Failure tag when ``success`` is false.
    """

    success: bool
    message: str
    entity_ref: int | None = None
    route: str | None = None
    error_kind: ErrorKind | None = None

    @classmethod
    def ok(cls, message: str, **kwargs: Any) -> CommandOutcome:
        return cls(True, message, **kwargs)

    @classmethod
    def fail(cls, message: str, kind: ErrorKind = ErrorKind.VALIDATION) -> CommandOutcome:
        return cls(False, message, error_kind=kind)


@dataclass(frozen=True, slots=True)
class ResolvedContext:
    """Per-invocation values inherited from the last shot or resolved by name."""

    grind_setting: str
    drink_type: str
    rating: int
    made_by_id: int | None = None
    made_for_id: int | None = None
    machine_id: int | None = None
    grinder_id: int | None = None
    accessory_ids: tuple[int, ...] = ()
    bean_id: int | None = None
    bag_id: int | None = None


class DispatchState(Enum):
    IDLE = "idle"
    NORMALIZING = "normalizing"
    DISPATCHING = "dispatching"
    TOOL_EXECUTING = "tool_executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Interpretation:
    """Everything one interpret call produced.

    Attributes:
        transcript: The transcript as received.
        normalized: The transcript after vocabulary normalization.
        success: False for failures, cancellation and empty input.
        message: Literal reply for the user.
        state: Final dispatcher state.
        error_kind: Failure tag, ``None`` unless the command failed or was
            cancelled.
        outcomes: Per-tool outcomes in execution order.
        client: Name of the model client that handled the command.
    """

    transcript: str
    normalized: str
    success: bool
    message: str
    state: DispatchState
    error_kind: ErrorKind | None = None
    outcomes: tuple[CommandOutcome, ...] = ()
    client: str | None = None
