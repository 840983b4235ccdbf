"""Tests for crema.ai.selector: client choice and the capability flag."""

from __future__ import annotations

from crema.ai.selector import ClientCapabilityState, ClientSelector

from .conftest import ScriptedChatClient


class CountingFactory:
    def __init__(self, client) -> None:
        self.client = client
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.client


class TestClientSelector:
    def test_cloud_when_local_cannot_call_tools(self) -> None:
        cloud = ScriptedChatClient()
        local = ScriptedChatClient(name="local")
        selector = ClientSelector(ClientCapabilityState(), lambda: cloud, local, False)
        assert selector.select() is cloud
        assert selector.select(require_tools=False) is local

    def test_local_when_capable(self) -> None:
        cloud = ScriptedChatClient()
        local = ScriptedChatClient(name="local")
        selector = ClientSelector(ClientCapabilityState(), lambda: cloud, local, True)
        assert selector.select() is local
        assert selector.is_local(local)
        assert not selector.is_local(cloud)
        assert selector.select(force_cloud=True) is cloud

    def test_cloud_client_is_built_lazily_once(self) -> None:
        factory = CountingFactory(ScriptedChatClient())
        selector = ClientSelector(ClientCapabilityState(), factory)
        assert factory.calls == 0
        selector.select()
        selector.select()
        assert factory.calls == 1

    def test_missing_credential_yields_none(self) -> None:
        selector = ClientSelector(ClientCapabilityState(), lambda: None)
        assert selector.select() is None

    def test_disable_is_monotonic(self) -> None:
        state = ClientCapabilityState()
        cloud = ScriptedChatClient()
        local = ScriptedChatClient(name="local")
        selector = ClientSelector(state, lambda: cloud, local, True)

        selector.record_incompatibility()
        selector.record_incompatibility()
        assert state.local_client_disabled
        for _ in range(3):
            assert selector.select() is cloud
            assert selector.select(require_tools=False) is cloud

    def test_state_is_shared_between_selectors(self) -> None:
        state = ClientCapabilityState()
        local = ScriptedChatClient(name="local")
        first = ClientSelector(state, ScriptedChatClient, local, True)
        second = ClientSelector(state, ScriptedChatClient, local, True)
        first.record_incompatibility()
        assert second.select() is not local
