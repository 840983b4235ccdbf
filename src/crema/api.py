"""Public API for crema voice commands.

Typical usage::

    from crema.api import build_service
    from crema.domain.memory import InMemoryStore, seed_demo

    store = seed_demo(InMemoryStore())
    service = build_service(store.services())
    outcome = asyncio.run(service.process_command("log shot 18 in 36 out 28 seconds"))
    print(outcome.message)

Importing this module does not import litellm; the first model call does.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping

from crema.ai.clients import ChatClient
from crema.ai.selector import ClientCapabilityState, ClientSelector
from crema.apps.config import (
    ConfigSource,
    CremaConfig,
    cloud_client_factory,
    local_client as build_local_client,
)
from crema.core.text import Normalizer
from crema.core.types import CommandOutcome, Interpretation, VoiceCommandRequest
from crema.dispatch import CommandDispatcher
from crema.domain.protocols import DomainServices
from crema.tools import build_registry
from crema.tools.registry import ToolContext


class VoiceCommandService:
    """The surface a UI layer talks to.

    Both calls interpret and execute in one step; neither raises for model,
    tool or cancellation failures.
    """

    __slots__ = ("dispatcher",)

    def __init__(self, dispatcher: CommandDispatcher) -> None:
        self.dispatcher = dispatcher

    async def interpret(
        self,
        transcript: str | VoiceCommandRequest,
        cancel: asyncio.Event | None = None,
    ) -> Interpretation:
        """Run one command and return the full interpretation record."""
        if not isinstance(transcript, VoiceCommandRequest):
            transcript = VoiceCommandRequest(transcript or "")
        return await self.dispatcher.run(transcript, cancel)

    async def process_command(
        self,
        transcript: str | VoiceCommandRequest,
        cancel: asyncio.Event | None = None,
    ) -> CommandOutcome:
        """Run one command and collapse it to a single outcome.

        The entity reference and route come from the last tool outcome that
        carries one.
        """
        result = await self.interpret(transcript, cancel)
        entity_ref = next(
            (o.entity_ref for o in reversed(result.outcomes) if o.entity_ref is not None),
            None,
        )
        route = next(
            (o.route for o in reversed(result.outcomes) if o.route is not None),
            None,
        )
        return CommandOutcome(
            success=result.success,
            message=result.message,
            entity_ref=entity_ref,
            route=route,
            error_kind=result.error_kind,
        )


def build_service(
    services: DomainServices,
    config: CremaConfig | None = None,
    *,
    local_client: ChatClient | None = None,
    cloud_client: ChatClient | None = None,
    state: ClientCapabilityState | None = None,
    environ: Mapping[str, str] | None = None,
) -> VoiceCommandService:
    """Wire a :class:`VoiceCommandService` from config and domain services.

    *cloud_client* and *local_client* replace the clients the config would
    build. Pass the same *state* to every service in a process so a local
    incompatibility found by one is honored by all.
    """
    config = config or CremaConfig()
    ai = config.ai
    if cloud_client is not None:
        def cloud_factory() -> ChatClient | None:
            return cloud_client
    else:
        source = ConfigSource(ai, environ if environ is not None else os.environ)
        cloud_factory = cloud_client_factory(ai, source)

    selector = ClientSelector(
        state if state is not None else ClientCapabilityState(),
        cloud_factory,
        local_client=local_client if local_client is not None else build_local_client(ai),
        local_supports_tools=ai.local_supports_tools,
    )
    dispatcher = CommandDispatcher(
        build_registry(),
        selector,
        ToolContext(services),
        normalizer=Normalizer(config.vocabulary.corrections),
        local_timeout=ai.local_timeout,
        cloud_timeout=ai.cloud_timeout,
        max_tool_rounds=ai.max_tool_rounds,
    )
    return VoiceCommandService(dispatcher)
