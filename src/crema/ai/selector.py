"""Choose between the local and the cloud model client."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from crema.ai.clients import ChatClient
from crema.core.constants import LOCAL_TOOL_CALLING_SUPPORTED
from crema.core.env import LOGGER


@dataclass(slots=True)
class ClientCapabilityState:
    """Session-wide memory of a confirmed local-client incompatibility.

    The flag only ever goes from False to True. Create one per process and
    hand the same instance to every selector.
    """

    local_client_disabled: bool = False

    def disable_local(self) -> None:
        if not self.local_client_disabled:
            LOGGER.warning("Local model disabled for this session; using the cloud model")
        self.local_client_disabled = True


class ClientSelector:
    """Per-request client choice.

    The local client is only used for tool requests when it is present, has
    not been disabled, and the deployment declares it can call tools. The
    cloud client is built on first use; a factory returning ``None`` means
    no credential is configured.
    """

    def __init__(
        self,
        state: ClientCapabilityState,
        cloud_factory: Callable[[], ChatClient | None],
        local_client: ChatClient | None = None,
        local_supports_tools: bool = LOCAL_TOOL_CALLING_SUPPORTED,
    ) -> None:
        self.state = state
        self._cloud_factory = cloud_factory
        self._cloud: ChatClient | None = None
        self.local_client = local_client
        self.local_supports_tools = local_supports_tools

    def local_eligible(self, require_tools: bool = True) -> bool:
        return (
            self.local_client is not None
            and not self.state.local_client_disabled
            and (self.local_supports_tools or not require_tools)
        )

    def select(self, require_tools: bool = True, force_cloud: bool = False) -> ChatClient | None:
        if not force_cloud and self.local_eligible(require_tools):
            LOGGER.debug("Using local model for voice commands")
            return self.local_client

        if self.state.local_client_disabled:
            LOGGER.debug("Local model disabled for this session, using cloud model")
        elif self.local_client is not None and not self.local_supports_tools:
            LOGGER.debug("Local model has no tool calling; routing to cloud model")

        if self._cloud is None:
            self._cloud = self._cloud_factory()
            if self._cloud is None:
                LOGGER.warning("No AI client available for voice commands; set an API key")
        return self._cloud

    def is_local(self, client: ChatClient | None) -> bool:
        return client is not None and client is self.local_client

    def record_incompatibility(self) -> None:
        self.state.disable_local()
