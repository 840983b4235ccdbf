"""Command dispatcher: transcript in, literal reply out.

One :meth:`CommandDispatcher.run` call walks
``IDLE -> NORMALIZING -> DISPATCHING -> TOOL_EXECUTING -> COMPLETED`` and can
end in ``FAILED`` or ``CANCELLED`` from any state. It never raises for
provider, tool or cancellation failures; every path ends in an
:class:`Interpretation` whose message is safe to show.

Cancellation comes from a caller-supplied :class:`asyncio.Event` or from the
per-client timeout. Each tool runs shielded: once it starts it finishes, so a
mutation is always followed by its notification and is reported in
``Interpretation.outcomes``. Handlers check the cancel flag immediately before
their mutation, so a command cancelled before that point changes nothing.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from crema.ai.clients import ChatClient, ModelReply, ToolCall
from crema.ai.selector import ClientSelector
from crema.core.constants import (
    DEFAULT_CLOUD_TIMEOUT,
    DEFAULT_LOCAL_TIMEOUT,
    DEFAULT_MAX_TOOL_ROUNDS,
    SYSTEM_PROMPT,
)
from crema.core.env import LOGGER
from crema.core.errors import CANCELLED_MESSAGE, ErrorKind, OperationCancelled, user_message
from crema.core.text import normalize
from crema.core.types import (
    CommandOutcome,
    DispatchState,
    Interpretation,
    ToolInvocation,
    VoiceCommandRequest,
)
from crema.tools.registry import ToolContext, ToolRegistry

EMPTY_TRANSCRIPT_MESSAGE = "I didn't hear a command. Please try again."
DEFAULT_REPLY = "Command processed."


class _Cancelled(Exception):
    pass


class _ModelFailed(Exception):
    def __init__(self, reply: ModelReply) -> None:
        super().__init__(reply.detail)
        self.reply = reply


@dataclass(slots=True)
class _Run:
    """Mutable bookkeeping for one command."""

    request: VoiceCommandRequest
    normalized: str = ""
    state: DispatchState = DispatchState.IDLE
    client: ChatClient | None = None
    outcomes: list[CommandOutcome] = field(default_factory=list)
    cancel: asyncio.Event | None = None
    timed_out: bool = False

    def cancelled(self) -> bool:
        return self.timed_out or (self.cancel is not None and self.cancel.is_set())

    def enter(self, state: DispatchState) -> None:
        LOGGER.debug("Dispatch %s -> %s", self.state.name, state.name)
        self.state = state

    def finish(
        self,
        state: DispatchState,
        message: str,
        error_kind: ErrorKind | None = None,
        success: bool | None = None,
    ) -> Interpretation:
        self.enter(state)
        return Interpretation(
            transcript=self.request.transcript,
            normalized=self.normalized,
            success=error_kind is None if success is None else success,
            message=message,
            state=state,
            error_kind=error_kind,
            outcomes=tuple(self.outcomes),
            client=getattr(self.client, "name", None),
        )


class CommandDispatcher:
    def __init__(
        self,
        registry: ToolRegistry,
        selector: ClientSelector,
        context: ToolContext,
        *,
        normalizer: Callable[[str], str] = normalize,
        system_prompt: str = SYSTEM_PROMPT,
        local_timeout: float = DEFAULT_LOCAL_TIMEOUT,
        cloud_timeout: float = DEFAULT_CLOUD_TIMEOUT,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
    ) -> None:
        self.registry = registry
        self.selector = selector
        self.context = context
        self.normalizer = normalizer
        self.system_prompt = system_prompt
        self.local_timeout = local_timeout
        self.cloud_timeout = cloud_timeout
        self.max_tool_rounds = max(1, max_tool_rounds)

    async def run(
        self, request: VoiceCommandRequest, cancel: asyncio.Event | None = None
    ) -> Interpretation:
        run = _Run(request, cancel=cancel)
        if not request.transcript or not request.transcript.strip():
            return run.finish(DispatchState.IDLE, EMPTY_TRANSCRIPT_MESSAGE, success=False)

        run.enter(DispatchState.NORMALIZING)
        run.normalized = self.normalizer(request.transcript)
        LOGGER.debug("Interpreting %r (normalized: %r)", request.transcript, run.normalized)
        if cancel is not None and cancel.is_set():
            return self._cancelled(run)

        run.client = self.selector.select()
        if run.client is None:
            return run.finish(
                DispatchState.FAILED,
                user_message(ErrorKind.CONFIGURATION),
                ErrorKind.CONFIGURATION,
            )

        try:
            return await self._attempt(run, cancel)
        except _ModelFailed as failed:
            reply = failed.reply
            if not (reply.incompatible and self.selector.is_local(run.client) and not run.outcomes):
                return self._model_failure(run, reply)

        LOGGER.warning("Local model cannot call tools, falling back: %s", reply.detail)
        self.selector.record_incompatibility()
        run.client = self.selector.select(force_cloud=True)
        if run.client is None:
            return run.finish(
                DispatchState.FAILED,
                user_message(ErrorKind.CONFIGURATION),
                ErrorKind.CONFIGURATION,
            )
        try:
            return await self._attempt(run, cancel)
        except _ModelFailed as failed:
            return self._model_failure(run, failed.reply)

    # ------------------------------------------------------------------
    # Guarded execution
    # ------------------------------------------------------------------

    async def _attempt(self, run: _Run, cancel: asyncio.Event | None) -> Interpretation:
        timeout = self.local_timeout if self.selector.is_local(run.client) else self.cloud_timeout
        task = asyncio.ensure_future(self._converse(run))
        stopper = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        waiters = {task} if stopper is None else {task, stopper}
        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            run.timed_out = True
            task.cancel()
            raise
        finally:
            if stopper is not None:
                stopper.cancel()

        if task in done:
            try:
                return task.result()
            except _Cancelled:
                return self._cancelled(run)

        if not run.cancelled():
            run.timed_out = True
            LOGGER.info("Voice command timed out after %ss in state %s", timeout, run.state.name)
        else:
            LOGGER.info("Voice command cancelled in state %s", run.state.name)
        task.cancel()
        try:
            await task
        except (asyncio.CancelledError, _Cancelled, _ModelFailed):
            pass
        return self._cancelled(run)

    async def _converse(self, run: _Run) -> Interpretation:
        client = run.client
        assert client is not None
        tools = self.registry.schemas() if client.supports_tools else None
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": run.normalized},
        ]
        context = replace(self.context, cancelled=run.cancelled)

        for round_index in range(self.max_tool_rounds):
            run.enter(DispatchState.DISPATCHING)
            reply = await client.get_response(messages, tools)
            if not reply.ok:
                if run.outcomes:
                    LOGGER.warning("Model follow-up failed after tools ran: %s", reply.detail)
                    return self._tool_summary(run)
                raise _ModelFailed(reply)

            if not reply.tool_calls:
                return self._complete(run, reply.text or self._fallback(run))

            invocations = [_decode(call) for call in reply.tool_calls]
            unknown = [i.tool_name for i in invocations if i.tool_name not in self.registry]
            if unknown:
                LOGGER.warning("Model requested unknown tool(s): %s", ", ".join(unknown))
                if run.outcomes:
                    return self._tool_summary(run)
                return run.finish(
                    DispatchState.FAILED,
                    user_message(ErrorKind.VALIDATION),
                    ErrorKind.VALIDATION,
                )

            messages.append(reply.assistant_message())
            run.enter(DispatchState.TOOL_EXECUTING)
            for call, invocation in zip(reply.tool_calls, invocations):
                if run.cancelled():
                    raise _Cancelled()
                outcome = await self._execute(run, invocation, context)
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "name": call.name,
                        "content": outcome.message,
                    }
                )
            LOGGER.debug("Tool round %d complete", round_index + 1)

        LOGGER.info("Tool round limit (%d) reached", self.max_tool_rounds)
        return self._tool_summary(run)

    async def _execute(
        self, run: _Run, invocation: ToolInvocation, context: ToolContext
    ) -> CommandOutcome:
        job = asyncio.ensure_future(self.registry.execute(invocation, context))
        try:
            outcome = await asyncio.shield(job)
        except asyncio.CancelledError:
            # The tool itself is atomic; let it finish and record it.
            try:
                run.outcomes.append(await job)
            except OperationCancelled:
                pass
            raise
        except OperationCancelled:
            raise _Cancelled() from None
        run.outcomes.append(outcome)
        return outcome

    # ------------------------------------------------------------------
    # Endings
    # ------------------------------------------------------------------

    def _fallback(self, run: _Run) -> str:
        return run.outcomes[-1].message if run.outcomes else DEFAULT_REPLY

    def _complete(self, run: _Run, message: str) -> Interpretation:
        # A failed final tool call makes the whole command a failure.
        last = run.outcomes[-1] if run.outcomes else None
        if last is not None and not last.success:
            return run.finish(DispatchState.COMPLETED, message, last.error_kind, success=False)
        return run.finish(DispatchState.COMPLETED, message)

    def _tool_summary(self, run: _Run) -> Interpretation:
        return self._complete(run, self._fallback(run))

    def _cancelled(self, run: _Run) -> Interpretation:
        # A tool that finished its write is reported, never hidden as cancelled.
        done = [o for o in run.outcomes if o.success]
        if done:
            LOGGER.info("Cancel arrived after %d tool(s) completed", len(done))
            return run.finish(DispatchState.COMPLETED, done[-1].message)
        return run.finish(DispatchState.CANCELLED, CANCELLED_MESSAGE, ErrorKind.CANCELLED)

    def _model_failure(self, run: _Run, reply: ModelReply) -> Interpretation:
        kind = reply.error_kind or ErrorKind.UNKNOWN
        LOGGER.error("Error interpreting voice command %r: %s", run.normalized, reply.detail)
        if kind is ErrorKind.CANCELLED:
            return self._cancelled(run)
        return run.finish(DispatchState.FAILED, user_message(kind), kind)


def _decode(call: ToolCall) -> ToolInvocation:
    try:
        arguments = json.loads(call.arguments) if call.arguments.strip() else {}
    except json.JSONDecodeError:
        arguments = None
    if arguments is not None and not isinstance(arguments, dict):
        arguments = None
    return ToolInvocation(tool_name=call.name, arguments=arguments, call_id=call.id)
