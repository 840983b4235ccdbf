"""Tests for crema.api: the public service surface."""

from __future__ import annotations

import asyncio

import pytest

from crema.ai.selector import ClientCapabilityState
from crema.api import VoiceCommandService, build_service
from crema.apps.config import AiConfig, CremaConfig, VocabularyConfig
from crema.core.errors import ErrorKind
from crema.core.types import DispatchState, VoiceCommandRequest

from .conftest import ScriptedChatClient, calls, text, tool_call


class TestProcessCommand:
    def test_log_shot(self, services, store) -> None:
        cloud = ScriptedChatClient(
            calls(tool_call("logShot", doseGrams=18, outputGrams=36, timeSeconds=28, rating=3)),
            text(""),
        )
        service = build_service(services, cloud_client=cloud)
        outcome = asyncio.run(service.process_command("log shot 18 in 36 out 28 seconds rated 3"))
        assert outcome.success
        assert "18g → 36g in 28s, rated 3/4" in outcome.message
        assert outcome.entity_ref == 2
        assert outcome.route is None
        assert len(store.shots) == 2

    def test_route_from_navigation(self, services, navigator) -> None:
        cloud = ScriptedChatClient(calls(tool_call("navigateTo", pageName="beans")), text("Done."))
        outcome = asyncio.run(build_service(services, cloud_client=cloud).process_command("open beans"))
        assert outcome.message == "Done."
        assert outcome.route == "beans"
        assert navigator.routes == ["beans"]

    def test_no_credential(self, services) -> None:
        service = build_service(services, environ={})
        outcome = asyncio.run(service.process_command("how many shots"))
        assert not outcome.success
        assert outcome.error_kind is ErrorKind.CONFIGURATION

    def test_empty(self, services) -> None:
        outcome = asyncio.run(build_service(services, environ={}).process_command(""))
        assert not outcome.success
        assert outcome.message == "I didn't hear a command. Please try again."


class TestInterpret:
    def test_accepts_request(self, services) -> None:
        cloud = ScriptedChatClient(text("Hi."))
        service = build_service(services, cloud_client=cloud)
        result = asyncio.run(service.interpret(VoiceCommandRequest("hello")))
        assert result.state is DispatchState.COMPLETED
        assert result.message == "Hi."

    def test_config_reaches_the_dispatcher(self, services) -> None:
        config = CremaConfig(
            ai=AiConfig(cloud_timeout=3.0, max_tool_rounds=2),
            vocabulary=VocabularyConfig({"la marzocco": "La Marzocco"}),
        )
        cloud = ScriptedChatClient(text("ok"))
        service = build_service(services, config, cloud_client=cloud)
        assert service.dispatcher.cloud_timeout == 3.0
        assert service.dispatcher.max_tool_rounds == 2
        result = asyncio.run(service.interpret("the la marzocco"))
        assert result.normalized == "the La Marzocco"

    def test_shared_capability_state(self, services) -> None:
        state = ClientCapabilityState()
        local = ScriptedChatClient(RuntimeError("does not support tools"), name="local")
        cloud = ScriptedChatClient(text("cloud"))
        config = CremaConfig(ai=AiConfig(local_supports_tools=True))
        first = build_service(services, config, local_client=local, cloud_client=cloud, state=state)
        second = build_service(services, config, local_client=local, cloud_client=cloud, state=state)

        assert asyncio.run(first.interpret("hello")).client == "cloud"
        assert asyncio.run(second.interpret("hello")).client == "cloud"
        assert local.call_count == 1


def test_service_is_slotted(services) -> None:
    service = build_service(services, environ={})
    assert isinstance(service, VoiceCommandService)
    with pytest.raises(AttributeError):
        service.other = 1
