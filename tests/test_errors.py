"""Tests for crema.core.errors: failure tagging and user messages."""

from __future__ import annotations

import asyncio

import pytest

from crema.core.errors import (
    ErrorKind,
    OperationCancelled,
    is_tool_calling_incompatibility,
    tag_failure,
    user_message,
)


class StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class TestTagFailure:
    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (429, ErrorKind.RATE_LIMITED),
            (401, ErrorKind.CONFIGURATION),
            (403, ErrorKind.CONFIGURATION),
            (500, ErrorKind.CONNECTIVITY),
            (503, ErrorKind.CONNECTIVITY),
            (408, ErrorKind.CONNECTIVITY),
        ],
    )
    def test_status_codes(self, status: int, kind: ErrorKind) -> None:
        assert tag_failure(StatusError("boom", status)) is kind

    @pytest.mark.parametrize(
        ("message", "kind"),
        [
            ("Rate limit exceeded for this deployment", ErrorKind.RATE_LIMITED),
            ("Incorrect API key provided", ErrorKind.CONFIGURATION),
            ("Name resolution failed for host", ErrorKind.CONNECTIVITY),
            ("litellm.Timeout: Request timed out after 30s", ErrorKind.CONNECTIVITY),
            ("something odd happened", ErrorKind.UNKNOWN),
        ],
    )
    def test_keywords(self, message: str, kind: ErrorKind) -> None:
        assert tag_failure(RuntimeError(message)) is kind

    def test_connection_error_type(self) -> None:
        assert tag_failure(ConnectionRefusedError()) is ErrorKind.CONNECTIVITY

    @pytest.mark.parametrize(
        "exc", [asyncio.TimeoutError(), asyncio.CancelledError(), OperationCancelled()]
    )
    def test_cancellation(self, exc: BaseException) -> None:
        assert tag_failure(exc) is ErrorKind.CANCELLED

    def test_cause_is_inspected(self) -> None:
        try:
            try:
                raise ConnectionError("network unreachable")
            except ConnectionError as inner:
                raise RuntimeError("request failed") from inner
        except RuntimeError as outer:
            assert tag_failure(outer) is ErrorKind.CONNECTIVITY


class TestIncompatibility:
    @pytest.mark.parametrize(
        "message",
        [
            "This model does not support tools",
            "Function calling is not available for this model",
            "tools unsupported by provider",
            "Model assets are unavailable",
        ],
    )
    def test_detected(self, message: str) -> None:
        assert is_tool_calling_incompatibility(RuntimeError(message))

    def test_ordinary_failure(self) -> None:
        assert not is_tool_calling_incompatibility(ConnectionError("connection refused"))


class TestUserMessage:
    def test_fixed_strings(self) -> None:
        assert user_message(ErrorKind.CONNECTIVITY) == (
            "Network error. Please check your connection and try again."
        )
        assert user_message(ErrorKind.RATE_LIMITED) == (
            "Too many requests. Please wait a moment and try again."
        )
        assert user_message(ErrorKind.CANCELLED) == "Cancelled"
        assert user_message(ErrorKind.UNKNOWN) == (
            "Sorry, I couldn't process that command. Please try again."
        )

    def test_not_found_echoes_subject(self) -> None:
        assert user_message(ErrorKind.NOT_FOUND, "Kona") == (
            "I couldn't find 'Kona'. Please check the name and try again."
        )

    def test_every_kind_has_a_message(self) -> None:
        for kind in ErrorKind:
            assert user_message(kind)
