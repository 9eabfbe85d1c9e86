"""Shared pytest fixtures for all foodpick tests."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from foodpick.achievements import AchievementEngine
from foodpick.catalogue import ItemCatalogue
from foodpick.engine import RecommendationEngine
from foodpick.history import HistoryStore
from foodpick.models import Category, EmotionTag, Item
from foodpick.preferences import PreferenceStore
from foodpick.session import FoodieSession
from foodpick.storage import MemoryStorage


TS = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

C = Category
E = EmotionTag


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = TS) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_item(
    item_id: str,
    category: Category = C.LUNCH,
    emotion_tags: tuple[EmotionTag, ...] = (),
    price: float = 10.0,
    score: float = 8.0,
) -> Item:
    return Item(
        item_id=item_id,
        name=f"Item {item_id}",
        category=category,
        emotion_tags=emotion_tags,
        price=price,
        price_performance_score=score,
    )


# ---------------------------------------------------------------------------
# Catalogue fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_items() -> list[Item]:
    """15-item catalogue covering every category."""
    return [
        make_item("1", C.LUNCH, (E.COMFORT, E.ENERGETIC), 15, 9.2),
        make_item("2", C.LUNCH, (E.COMFORT, E.NOSTALGIC), 12, 8.8),
        make_item("3", C.DINNER, (E.HAPPY, E.COMFORT), 14, 8.5),
        make_item("4", C.BREAKFAST, (E.ENERGETIC, E.NOSTALGIC), 8, 9.5),
        make_item("5", C.DINNER, (E.EXCITING, E.COMFORT), 18, 8.7),
        make_item("6", C.BREAKFAST, (E.ENERGETIC, E.HAPPY), 6, 9.8),
        make_item("7", C.DRINK, (E.HAPPY, E.RELAXING), 12, 8.3),
        make_item("8", C.LUNCH, (E.COMFORT, E.ENERGETIC), 10, 9.0),
        make_item("9", C.DESSERT, (E.HAPPY, E.RELAXING), 8, 8.9),
        make_item("10", C.LUNCH, (E.COMFORT, E.ENERGETIC), 13, 8.6),
        make_item("11", C.SNACK, (E.EXCITING, E.HAPPY), 9, 9.1),
        make_item("12", C.DINNER, (E.COMFORT, E.NOSTALGIC), 16, 8.4),
        make_item("13", C.BREAKFAST, (E.ENERGETIC, E.HAPPY), 7, 9.3),
        make_item("14", C.SNACK, (E.RELAXING, E.EXCITING), 8, 8.8),
        make_item("15", C.SNACK, (E.EXCITING, E.HAPPY), 20, 8.2),
    ]


@pytest.fixture
def catalogue(sample_items) -> ItemCatalogue:
    return ItemCatalogue(sample_items)


# ---------------------------------------------------------------------------
# Store / engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def preference_store(storage) -> PreferenceStore:
    return PreferenceStore(storage)


@pytest.fixture
def history_store(storage, clock) -> HistoryStore:
    return HistoryStore(storage, clock=clock)


@pytest.fixture
def engine(catalogue, preference_store, clock) -> RecommendationEngine:
    return RecommendationEngine(
        catalogue, preference_store, rng=random.Random(1234), clock=clock
    )


@pytest.fixture
def achievement_engine(storage, history_store, preference_store, clock) -> AchievementEngine:
    return AchievementEngine(storage, history_store, preference_store, clock=clock)


@pytest.fixture
def session(catalogue, engine, history_store, achievement_engine) -> FoodieSession:
    return FoodieSession(catalogue, engine, history_store, achievement_engine)
