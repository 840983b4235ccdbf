"""Tests for the in-memory domain services and the change notifier."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from crema.domain.errors import EntityNotFoundError, ValidationError
from crema.domain.models import ChangeType, NewBag, NewShot, ShotUpdate
from crema.domain.notifier import DataChangeNotifier

from .conftest import NOW


class TestNotifier:
    def test_broadcast_and_unsubscribe(self) -> None:
        notifier = DataChangeNotifier()
        seen = []
        unsubscribe = notifier.subscribe(lambda kind, entity: seen.append((kind, entity)))
        notifier.notify(ChangeType.BEAN_CREATED, "bean")
        unsubscribe()
        notifier.notify(ChangeType.BEAN_UPDATED, "bean")
        assert seen == [(ChangeType.BEAN_CREATED, "bean")]

    def test_failing_subscriber_is_isolated(self) -> None:
        notifier = DataChangeNotifier()
        seen = []

        def broken(kind, entity) -> None:
            raise RuntimeError("view is gone")

        notifier.subscribe(broken)
        notifier.subscribe(lambda kind, entity: seen.append(kind))
        notifier.notify(ChangeType.SHOT_CREATED)
        assert seen == [ChangeType.SHOT_CREATED]


class TestInMemoryStore:
    def test_create_shot_validates(self, store) -> None:
        shot = NewShot(NOW, 1, 0, "5", 28, 36, "Espresso")
        with pytest.raises(ValidationError) as info:
            asyncio.run(store.create_shot(shot))
        assert "dose_in" in info.value.errors

    def test_create_shot_unknown_bag(self, store) -> None:
        shot = NewShot(NOW, 99, 18, "5", 28, 36, "Espresso")
        with pytest.raises(EntityNotFoundError):
            asyncio.run(store.create_shot(shot))

    def test_update_shot_rating_bounds(self, store) -> None:
        with pytest.raises(ValidationError):
            asyncio.run(store.update_shot(1, ShotUpdate(rating=6)))

    def test_future_roast_date_rejected(self, store) -> None:
        result = asyncio.run(store.create_bag(NewBag(1, date(2999, 1, 1))))
        assert not result.success
        assert result.error_message == "Roast date cannot be in the future"

    def test_history_is_newest_first(self, store) -> None:
        asyncio.run(store.create_shot(NewShot(NOW, 2, 18, "5", 28, 36, "Espresso")))
        page = asyncio.run(store.get_shot_history(0, 10))
        assert [s.id for s in page.items] == [2, 1]
        assert page.total_count == 2
