"""Core voice-command logic with no UI or transport dependencies.

Re-exports key symbols for convenience.
"""

from crema.core.errors import ErrorKind, OperationCancelled, user_message
from crema.core.resolve import fill_defaults, find_by_name
from crema.core.text import Normalizer, normalize
from crema.core.types import (
    CommandOutcome,
    DispatchState,
    Interpretation,
    ToolInvocation,
    VoiceCommandRequest,
)

__all__ = [
    "CommandOutcome",
    "DispatchState",
    "ErrorKind",
    "Interpretation",
    "Normalizer",
    "OperationCancelled",
    "ToolInvocation",
    "VoiceCommandRequest",
    "fill_defaults",
    "find_by_name",
    "normalize",
    "user_message",
]
