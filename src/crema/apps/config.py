"""Application-level configuration and model client construction.

Uses litellm for provider-agnostic model access (Azure OpenAI, OpenAI,
Ollama, etc.); the client objects themselves live in :mod:`crema.ai.clients`.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from crema.ai.clients import ChatClient, LitellmChatClient
from crema.core.constants import (
    DEFAULT_API_KEY_ENV,
    DEFAULT_CLOUD_MODEL,
    DEFAULT_CLOUD_TIMEOUT,
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_DIR_ENV,
    DEFAULT_CONFIG_FILE,
    DEFAULT_LOCAL_TIMEOUT,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MAX_TOOL_ROUNDS,
    LOCAL_TOOL_CALLING_SUPPORTED,
)
from crema.core.env import LOGGER


# ---------------------------------------------------------------------------
# Nested config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AiConfig:
    """Model clients, credentials and dispatch limits."""

    cloud_model: str = DEFAULT_CLOUD_MODEL
    api_key: str | None = None
    api_key_env: str = DEFAULT_API_KEY_ENV
    api_base: str | None = None
    local_model: str | None = None
    local_api_base: str | None = None
    local_supports_tools: bool = LOCAL_TOOL_CALLING_SUPPORTED
    local_timeout: float = DEFAULT_LOCAL_TIMEOUT
    cloud_timeout: float = DEFAULT_CLOUD_TIMEOUT
    max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS
    max_tokens: int = DEFAULT_MAX_TOKENS
    flags: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class VocabularyConfig:
    """User corrections applied after the built-in coffee vocabulary."""

    corrections: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CremaConfig:
    """Top-level configuration loaded from ~/.config/crema/config.json."""

    ai: AiConfig = field(default_factory=AiConfig)
    vocabulary: VocabularyConfig = field(default_factory=VocabularyConfig)


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """Read-only credential lookup: the environment first, then the file."""

    ai: AiConfig
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ)

    def api_key(self) -> str | None:
        value = self.environ.get(self.ai.api_key_env, "").strip()
        if value:
            return value
        return (self.ai.api_key or "").strip() or None


# ---------------------------------------------------------------------------
# Config loading helpers
# ---------------------------------------------------------------------------


def _config_dir() -> Path:
    return Path(
        os.environ.get(DEFAULT_CONFIG_DIR_ENV, "") or DEFAULT_CONFIG_DIR,
    ).expanduser()


def _optional_str(section: dict[str, Any], key: str) -> str | None:
    value = section.get(key)
    if value is None:
        return None
    return str(value).strip() or None


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(path: str | None = None) -> CremaConfig:
    """Load crema configuration from a JSON file.

    Reads ``~/.config/crema/config.json`` (or *path*). Supports the
    ``CREMA_CONFIG_DIR`` environment variable to override the config
    directory.

    Returns a default config if the file does not exist or does not hold a
    JSON object. A missing API key is not an error here; the selector
    reports it when a command needs the cloud model.
    """
    config_path = Path(path).expanduser() if path else _config_dir() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        LOGGER.debug("No config at %s; using defaults", config_path)
        return CremaConfig()

    with open(config_path) as f:
        data = json.load(f)

    if not isinstance(data, dict):
        LOGGER.warning("Ignoring %s: expected a JSON object", config_path)
        return CremaConfig()

    # -- ai ----------------------------------------------------------------
    ai_raw = data.get("ai", {})
    ai = AiConfig(
        cloud_model=ai_raw.get("cloud_model", DEFAULT_CLOUD_MODEL),
        api_key=_optional_str(ai_raw, "api_key"),
        api_key_env=ai_raw.get("api_key_env", DEFAULT_API_KEY_ENV),
        api_base=_optional_str(ai_raw, "api_base"),
        local_model=_optional_str(ai_raw, "local_model"),
        local_api_base=_optional_str(ai_raw, "local_api_base"),
        local_supports_tools=bool(
            ai_raw.get("local_supports_tools", LOCAL_TOOL_CALLING_SUPPORTED)
        ),
        local_timeout=float(ai_raw.get("local_timeout", DEFAULT_LOCAL_TIMEOUT)),
        cloud_timeout=float(ai_raw.get("cloud_timeout", DEFAULT_CLOUD_TIMEOUT)),
        max_tool_rounds=int(ai_raw.get("max_tool_rounds", DEFAULT_MAX_TOOL_ROUNDS)),
        max_tokens=int(ai_raw.get("max_tokens", DEFAULT_MAX_TOKENS)),
        flags=dict(ai_raw.get("flags", {})),
    )

    # -- vocabulary.corrections --------------------------------------------
    vocab_raw = data.get("vocabulary", {})
    corrections = {
        str(k): str(v) for k, v in vocab_raw.get("corrections", {}).items() if k
    }

    return CremaConfig(ai=ai, vocabulary=VocabularyConfig(corrections=corrections))


# ---------------------------------------------------------------------------
# Client construction
# ---------------------------------------------------------------------------


def cloud_client_factory(
    ai: AiConfig, source: ConfigSource | None = None,
) -> Callable[[], ChatClient | None]:
    """Return a zero-argument factory for the cloud client.

    The credential is read when the factory runs, so a key exported after
    startup is still picked up on first use. No key means no client.
    """
    source = source or ConfigSource(ai)

    def build() -> ChatClient | None:
        api_key = source.api_key()
        if not api_key:
            LOGGER.debug("No API key in $%s or config", ai.api_key_env)
            return None
        return LitellmChatClient(
            model=ai.cloud_model,
            name="cloud",
            api_key=api_key,
            api_base=ai.api_base,
            max_tokens=ai.max_tokens,
            flags=dict(ai.flags),
        )

    return build


def local_client(ai: AiConfig) -> ChatClient | None:
    if not ai.local_model:
        return None
    return LitellmChatClient(
        model=ai.local_model,
        name="local",
        api_base=ai.local_api_base,
        supports_tools=ai.local_supports_tools,
        max_tokens=ai.max_tokens,
    )
