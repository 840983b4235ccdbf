"""Model transport over litellm.

Provider failures never raise out of :meth:`LitellmChatClient.get_response`;
they come back as a :class:`ModelReply` tagged with an :class:`ErrorKind`.
The litellm import is deferred so ``import crema`` stays cheap.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from crema.core.constants import DEFAULT_MAX_TOKENS
from crema.core.env import LOGGER
from crema.core.errors import ErrorKind, is_tool_calling_incompatibility, tag_failure


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A raw function call from the model; ``arguments`` is a JSON string."""

    id: str
    name: str
    arguments: str


@dataclass(frozen=True, slots=True)
class ModelReply:
    """Result of one model round trip.

    Attributes:
        text: Assistant text, stripped.
        tool_calls: Function calls requested by the model, in order.
        error_kind: Set when the call failed.
        incompatible: The failure shows the model cannot call tools.
        detail: Exception summary for logs; never shown to users.
    """

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    error_kind: ErrorKind | None = None
    incompatible: bool = False
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def failure(cls, exc: BaseException) -> ModelReply:
        return cls(
            error_kind=tag_failure(exc),
            incompatible=is_tool_calling_incompatibility(exc),
            detail=f"{type(exc).__name__}: {exc}",
        )

    def assistant_message(self) -> dict[str, Any]:
        """The reply as an OpenAI-format assistant message."""
        message: dict[str, Any] = {"role": "assistant", "content": self.text or None}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in self.tool_calls
            ]
        return message


class ChatClient(Protocol):
    """Anything that can answer a chat request, optionally with tools."""

    name: str
    supports_tools: bool

    async def get_response(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelReply: ...


@dataclass(slots=True)
class LitellmChatClient:
    """Chat client for any litellm model string (``azure/...``, ``ollama/...``)."""

    model: str
    name: str = "cloud"
    api_key: str | None = None
    api_base: str | None = None
    supports_tools: bool = True
    max_tokens: int = DEFAULT_MAX_TOKENS
    flags: dict[str, Any] = field(default_factory=dict)

    async def get_response(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelReply:
        from litellm import acompletion  # deferred import

        kwargs: dict[str, Any] = dict(self.flags)
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        try:
            response = await acompletion(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                **kwargs,
            )
            return parse_response(response)
        except Exception as exc:
            LOGGER.debug("%s model call failed: %s", self.name, exc)
            return ModelReply.failure(exc)


def parse_response(response: Any) -> ModelReply:
    """Read the first choice of a chat completion into a :class:`ModelReply`.

    Raises for a response without choices; the caller tags that as a failure.
    """
    message = response.choices[0].message
    calls = tuple(
        ToolCall(
            id=call.id or f"call_{i}",
            name=call.function.name or "",
            arguments=call.function.arguments or "{}",
        )
        for i, call in enumerate(getattr(message, "tool_calls", None) or ())
    )
    return ModelReply(text=(message.content or "").strip(), tool_calls=calls)
