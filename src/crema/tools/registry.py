"""Tool catalogue: data-described domain actions the model can invoke.

Each :class:`ToolDefinition` carries its argument contract. Validation is
generic and runs before the handler, so a handler only ever sees arguments
that satisfy the declared types and bounds.
"""

from __future__ import annotations

import math
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from crema.core.env import LOGGER
from crema.core.errors import ErrorKind, OperationCancelled
from crema.core.types import CommandOutcome, ToolInvocation
from crema.domain.models import ChangeType
from crema.domain.protocols import DomainServices

ParamType = Literal["string", "integer", "number", "boolean"]


class ToolKind(Enum):
    MUTATING = "mutating"
    NAVIGATIONAL = "navigational"
    QUERY = "query"


@dataclass(frozen=True, slots=True)
class ToolParameter:
    """One named argument of a tool.

    Attributes:
        name: Argument name as the model sees it.
        type: JSON-schema scalar type.
        description: Shown to the model.
        required: Missing values fail validation.
        minimum: Inclusive lower bound for numbers.
        maximum: Inclusive upper bound for numbers.
        positive: Require a value strictly greater than zero.
        choices: Allowed string values, compared case-insensitively.
        invalid_message: Corrective sentence used when the value is missing
            or out of bounds.
    """

    name: str
    type: ParamType
    description: str
    required: bool = False
    minimum: float | None = None
    maximum: float | None = None
    positive: bool = False
    choices: tuple[str, ...] = ()
    invalid_message: str | None = None

    def schema(self) -> dict[str, Any]:
        prop: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.minimum is not None:
            prop["minimum"] = self.minimum
        if self.maximum is not None:
            prop["maximum"] = self.maximum
        if self.positive:
            prop["exclusiveMinimum"] = 0
        if self.choices:
            prop["enum"] = list(self.choices)
        return prop


Handler = Callable[["ToolContext", dict[str, Any]], Awaitable[CommandOutcome]]


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """A named action with its argument contract and return contract.

    ``returns`` documents the sentence the handler produces; it is also
    appended to the description the model sees.
    """

    name: str
    description: str
    kind: ToolKind
    handler: Handler
    returns: str
    failure_message: str
    parameters: tuple[ToolParameter, ...] = ()

    def schema(self) -> dict[str, Any]:
        """OpenAI function-calling schema for this tool."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": f"{self.description} Returns {self.returns}",
                "parameters": {
                    "type": "object",
                    "properties": {p.name: p.schema() for p in self.parameters},
                    "required": [p.name for p in self.parameters if p.required],
                },
            },
        }

    def validate(self, arguments: dict[str, Any]) -> tuple[dict[str, Any], str | None]:
        """Coerce *arguments* to the declared types.

        Returns the cleaned arguments and ``None``, or an empty dict and the
        corrective sentence for the first invalid parameter. Unknown
        arguments are dropped.
        """
        cleaned: dict[str, Any] = {}
        for param in self.parameters:
            value = _coerce(param, arguments.get(param.name))
            if value is _INVALID or (value is None and param.required):
                return {}, param.invalid_message or _default_message(param)
            if value is not None and not _in_bounds(param, value):
                return {}, param.invalid_message or _default_message(param)
            cleaned[param.name] = value
        return cleaned, None


_INVALID = object()


def _default_message(param: ToolParameter) -> str:
    if param.choices:
        return f"Please provide {param.name} as one of: {', '.join(param.choices)}."
    return f"Please provide a valid {param.name}."


def _coerce(param: ToolParameter, value: Any) -> Any:
    if value is None:
        return None
    if param.type == "string":
        text = str(value).strip()
        return text or None
    if param.type == "boolean":
        if isinstance(value, bool):
            return value
        lowered = str(value).strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
        return _INVALID
    if isinstance(value, bool):
        return _INVALID
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            value = float(value)
        except ValueError:
            return _INVALID
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return _INVALID
    if param.type == "integer":
        if float(value) != int(value):
            return _INVALID
        return int(value)
    return float(value)


def _in_bounds(param: ToolParameter, value: Any) -> bool:
    if param.choices:
        return str(value).lower() in {c.lower() for c in param.choices}
    if param.type not in ("integer", "number"):
        return True
    if param.positive and value <= 0:
        return False
    if param.minimum is not None and value < param.minimum:
        return False
    if param.maximum is not None and value > param.maximum:
        return False
    return True


@dataclass(slots=True)
class ToolContext:
    """What a handler may touch: domain services, the clock, the cancel flag."""

    services: DomainServices
    clock: Callable[[], datetime] = datetime.now
    cancelled: Callable[[], bool] | None = None

    def ensure_not_cancelled(self) -> None:
        """Call immediately before the one domain mutation a handler performs."""
        if self.cancelled is not None and self.cancelled():
            raise OperationCancelled()

    def notify(self, change_type: ChangeType, entity: Any) -> None:
        try:
            self.services.notifier.notify(change_type, entity)
        except Exception:
            LOGGER.warning("Change notification failed: %s", change_type.name, exc_info=True)

    def navigate(self, route: str) -> None:
        navigator = self.services.navigator
        if navigator is None:
            LOGGER.debug("No navigator attached; skipping navigation to %s", route)
            return
        try:
            navigator.navigate(route)
        except Exception:
            LOGGER.error("Error navigating to %s", route, exc_info=True)


class ToolRegistry:
    """Fixed, read-only set of tools, looked up by name."""

    def __init__(self, definitions: Iterable[ToolDefinition]) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        for definition in definitions:
            if definition.name in self._tools:
                raise ValueError(f"Duplicate tool name: {definition.name}")
            self._tools[definition.name] = definition

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def schemas(self) -> list[dict[str, Any]]:
        return [tool.schema() for tool in self._tools.values()]

    async def execute(self, invocation: ToolInvocation, context: ToolContext) -> CommandOutcome:
        """Validate and run one invocation.

        Handler failures become the tool's fixed failure sentence.
        :class:`OperationCancelled` propagates.
        """
        tool = self._tools.get(invocation.tool_name)
        if tool is None:
            LOGGER.warning("Model requested unknown tool %r", invocation.tool_name)
            return CommandOutcome.fail(f"Unknown action '{invocation.tool_name}'.")
        if invocation.arguments is None:
            LOGGER.warning("Undecodable arguments for %s", tool.name)
            return CommandOutcome.fail(f"I couldn't read the details for {tool.name}.")

        arguments, problem = tool.validate(invocation.arguments)
        LOGGER.info("%s tool called: %s", tool.name, arguments or invocation.arguments)
        if problem is not None:
            LOGGER.info("%s rejected: %s", tool.name, problem)
            return CommandOutcome.fail(problem)

        try:
            return await tool.handler(context, arguments)
        except OperationCancelled:
            raise
        except Exception:
            LOGGER.exception("Error running %s", tool.name)
            return CommandOutcome.fail(tool.failure_message, ErrorKind.UNKNOWN)
