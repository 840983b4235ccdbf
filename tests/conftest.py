"""Shared test fixtures: scripted model clients and a seeded store. No network."""

from __future__ import annotations

import asyncio
import itertools
import json
from datetime import datetime
from typing import Any

import pytest

from crema.ai.clients import ModelReply, ToolCall
from crema.ai.selector import ClientCapabilityState, ClientSelector
from crema.dispatch import CommandDispatcher
from crema.domain.memory import InMemoryStore, seed_demo
from crema.domain.models import ChangeType
from crema.domain.protocols import DomainServices
from crema.tools import build_registry
from crema.tools.registry import ToolContext

# A Wednesday, so "this week" starts three days earlier.
NOW = datetime(2025, 3, 12, 9, 30)

_call_ids = itertools.count(1)


def tool_call(name: str, **arguments: Any) -> ToolCall:
    return ToolCall(id=f"call_{next(_call_ids)}", name=name, arguments=json.dumps(arguments))


def calls(*tool_calls: ToolCall) -> ModelReply:
    return ModelReply(tool_calls=tool_calls)


def text(reply: str) -> ModelReply:
    return ModelReply(text=reply)


class ScriptedChatClient:
    """Chat client that replays pre-recorded replies in order.

    A reply may be an exception, which is turned into a tagged failure the
    same way the litellm client does it. Once the script runs out the last
    entry repeats.
    """

    def __init__(
        self,
        *replies: ModelReply | BaseException,
        name: str = "cloud",
        supports_tools: bool = True,
        delay: float = 0.0,
    ) -> None:
        self.replies = list(replies) or [text("")]
        self.name = name
        self.supports_tools = supports_tools
        self.delay = delay
        self.requests: list[tuple[list[dict[str, Any]], list[dict[str, Any]] | None]] = []
        self.on_call = None

    async def get_response(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelReply:
        self.requests.append(([dict(m) for m in messages], tools))
        if self.on_call is not None:
            self.on_call(len(self.requests))
        if self.delay:
            await asyncio.sleep(self.delay)
        index = min(len(self.requests), len(self.replies)) - 1
        reply = self.replies[index]
        if isinstance(reply, BaseException):
            return ModelReply.failure(reply)
        return reply

    @property
    def call_count(self) -> int:
        return len(self.requests)


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[tuple[ChangeType, Any]] = []

    def notify(self, change_type: ChangeType, entity: Any) -> None:
        self.events.append((change_type, entity))

    @property
    def types(self) -> list[ChangeType]:
        return [t for t, _ in self.events]


class RecordingNavigator:
    def __init__(self) -> None:
        self.routes: list[str] = []

    def navigate(self, route: str) -> None:
        self.routes.append(route)


@pytest.fixture
def store() -> InMemoryStore:
    return seed_demo(InMemoryStore(), now=NOW)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture
def services(
    store: InMemoryStore, notifier: RecordingNotifier, navigator: RecordingNavigator
) -> DomainServices:
    return store.services(notifier=notifier, navigator=navigator)


@pytest.fixture
def context(services: DomainServices) -> ToolContext:
    return ToolContext(services, clock=lambda: NOW)


def make_dispatcher(
    context: ToolContext,
    cloud: ScriptedChatClient | None,
    *,
    local: ScriptedChatClient | None = None,
    state: ClientCapabilityState | None = None,
    local_supports_tools: bool = False,
    **kwargs: Any,
) -> CommandDispatcher:
    selector = ClientSelector(
        state if state is not None else ClientCapabilityState(),
        lambda: cloud,
        local_client=local,
        local_supports_tools=local_supports_tools,
    )
    return CommandDispatcher(build_registry(), selector, context, **kwargs)
