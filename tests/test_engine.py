"""Tests for foodpick.engine.RecommendationEngine.

The weight-update tests pin down the exact deltas that drive every
personalised draw.
"""

from __future__ import annotations

import random
from collections import Counter
from unittest.mock import MagicMock

import pytest

from conftest import make_item
from foodpick.catalogue import ItemCatalogue
from foodpick.engine import (
    COLD_START_INTERACTIONS,
    RecommendationEngine,
    _WEIGHT_CHOSEN_EMOTION,
    _WEIGHT_LIKED_CATEGORY,
    _WEIGHT_LIKED_EMOTION,
)
from foodpick.models import Category, EmotionTag, Interaction, Preference
from foodpick.preferences import MAX_INTERACTIONS, PreferenceStore
from foodpick.strategies.weighted import PreferenceWeightedStrategy


def _seed_interactions(store: PreferenceStore, n: int, ts) -> None:
    pref = store.load()
    pref.interactions.extend(Interaction("1", ts, False) for _ in range(n))
    store.save(pref)


# ---------------------------------------------------------------------------
# Drawing
# ---------------------------------------------------------------------------


class TestColdStart:
    def test_returns_catalogue_item(self, engine, catalogue) -> None:
        item = engine.draw_recommendation()
        assert catalogue.get_item(item.item_id) == item

    def test_uniform_distribution(self, catalogue, preference_store) -> None:
        eng = RecommendationEngine(catalogue, preference_store, rng=random.Random(42))
        draws = 15_000
        counts = Counter(eng.draw_recommendation().item_id for _ in range(draws))
        assert set(counts) == {i.item_id for i in catalogue.get_all_items()}
        expected = draws / len(catalogue)
        for count in counts.values():
            assert abs(count - expected) < expected * 0.15

    def test_below_threshold_uses_cold_start_strategy(
        self, catalogue, preference_store, clock
    ) -> None:
        cold, warm = MagicMock(), MagicMock()
        cold.pick.return_value = catalogue.get_item("3")
        eng = RecommendationEngine(
            catalogue, preference_store,
            cold_start_strategy=cold, personalised_strategy=warm,
        )
        _seed_interactions(preference_store, COLD_START_INTERACTIONS - 1, clock.now)
        assert eng.draw_recommendation().item_id == "3"
        warm.pick.assert_not_called()

    def test_at_threshold_uses_personalised_strategy(
        self, catalogue, preference_store, clock
    ) -> None:
        cold, warm = MagicMock(), MagicMock()
        warm.pick.return_value = catalogue.get_item("5")
        eng = RecommendationEngine(
            catalogue, preference_store,
            cold_start_strategy=cold, personalised_strategy=warm,
        )
        _seed_interactions(preference_store, COLD_START_INTERACTIONS, clock.now)
        assert eng.draw_recommendation().item_id == "5"
        cold.pick.assert_not_called()


class TestPersonalisedDraw:
    def test_restricted_to_top_five_of_fifteen(
        self, engine, catalogue, preference_store, sample_items
    ) -> None:
        # Six likes spread evenly across categories.
        for item_id in ("1", "3", "4", "7", "9", "11"):
            engine.record_interaction(item_id, True)
        pref = preference_store.load()
        strategy = PreferenceWeightedStrategy()
        scores = strategy.score_items(pref, sample_items)
        pool_ids = {item.item_id for item, _ in strategy.candidate_pool(sample_items, scores)}
        assert len(pool_ids) == 5

        drawn = {engine.draw_recommendation().item_id for _ in range(500)}
        assert drawn <= pool_ids

    def test_draw_does_not_modify_preference(self, engine, preference_store, clock) -> None:
        _seed_interactions(preference_store, 6, clock.now)
        before = preference_store.load()
        for _ in range(20):
            engine.draw_recommendation()
        assert preference_store.load() == before

    def test_empty_catalogue_fails_fast(self, preference_store) -> None:
        eng = RecommendationEngine(ItemCatalogue([]), preference_store)
        with pytest.raises(ValueError):
            eng.draw_recommendation()


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------


class TestRecordInteraction:
    def test_like_adds_category_weight(self, engine, preference_store) -> None:
        engine.record_interaction("1", True)
        pref = preference_store.load()
        assert pref.category_weights[Category.LUNCH] == pytest.approx(1 + _WEIGHT_LIKED_CATEGORY)
        assert pref.category_weights[Category.DINNER] == pytest.approx(1.0)

    def test_like_adds_emotion_weights(self, engine, preference_store) -> None:
        engine.record_interaction("1", True)  # comfort, energetic
        pref = preference_store.load()
        assert pref.emotion_weights[EmotionTag.COMFORT] == pytest.approx(1.3)
        assert pref.emotion_weights[EmotionTag.ENERGETIC] == pytest.approx(1.3)
        assert pref.emotion_weights[EmotionTag.HAPPY] == pytest.approx(1.0)

    def test_explicit_emotion_adds_extra(self, engine, preference_store) -> None:
        engine.record_interaction("1", True, EmotionTag.COMFORT)
        engine.record_interaction("2", True, EmotionTag.RELAXING)
        pref = preference_store.load()
        # comfort: item tag twice + chosen once
        assert pref.emotion_weights[EmotionTag.COMFORT] == pytest.approx(
            1 + 2 * _WEIGHT_LIKED_EMOTION + _WEIGHT_CHOSEN_EMOTION
        )
        # relaxing: chosen only, not on item 2
        assert pref.emotion_weights[EmotionTag.RELAXING] == pytest.approx(
            1 + _WEIGHT_CHOSEN_EMOTION
        )

    def test_dislike_changes_no_weight(self, engine, preference_store) -> None:
        before = preference_store.load()
        engine.record_interaction("1", False, EmotionTag.HAPPY)
        after = preference_store.load()
        assert after.category_weights == before.category_weights
        assert after.emotion_weights == before.emotion_weights
        assert after.price_range == before.price_range
        assert len(after.interactions) == len(before.interactions) + 1

    def test_interaction_logged(self, engine, preference_store, clock) -> None:
        engine.record_interaction("7", True, EmotionTag.HAPPY)
        (interaction,) = preference_store.load().interactions
        assert interaction == Interaction("7", clock.now, True, EmotionTag.HAPPY)

    def test_string_emotion_is_normalised(self, engine, preference_store, clock) -> None:
        engine.record_interaction("7", True, "happy")
        pref = preference_store.load()
        (interaction,) = pref.interactions
        assert interaction == Interaction("7", clock.now, True, EmotionTag.HAPPY)
        assert pref.emotion_weights[EmotionTag.HAPPY] == pytest.approx(
            1 + _WEIGHT_LIKED_EMOTION + _WEIGHT_CHOSEN_EMOTION
        )

    def test_unknown_emotion_string_rejected(self, engine, preference_store) -> None:
        with pytest.raises(ValueError):
            engine.record_interaction("7", True, "bored")
        assert preference_store.load().interactions == []

    def test_unknown_item_is_ignored(self, engine, preference_store) -> None:
        engine.record_interaction("nope", True)
        assert preference_store.load() == Preference()

    def test_log_capped_at_hundred(self, engine, preference_store) -> None:
        for _ in range(MAX_INTERACTIONS + 10):
            engine.record_interaction("1", False)
        assert len(preference_store.load().interactions) == MAX_INTERACTIONS


class TestPriceRange:
    def _engine(self, preference_store, *items) -> RecommendationEngine:
        return RecommendationEngine(ItemCatalogue(items), preference_store)

    def test_expensive_like_widens_max(self, preference_store) -> None:
        eng = self._engine(preference_store, make_item("big", price=60))
        eng.record_interaction("big", True)
        assert preference_store.load().price_range == (0.0, 52.0)

    def test_cheap_like_floors_min_at_zero(self, preference_store) -> None:
        pref = Preference(price_range=(5.0, 52.0))
        preference_store.save(pref)
        eng = self._engine(preference_store, make_item("cheap", price=3))
        eng.record_interaction("cheap", True)
        assert preference_store.load().price_range == (3.0, 52.0)
        preference_store.save(Preference(price_range=(1.0, 52.0)))
        eng.record_interaction("cheap", True)
        assert preference_store.load().price_range[0] == 1.0  # price 3 already inside

    def test_min_never_negative(self, preference_store) -> None:
        preference_store.save(Preference(price_range=(1.5, 50.0)))
        eng = self._engine(preference_store, make_item("free", price=0.5))
        eng.record_interaction("free", True)
        assert preference_store.load().price_range == (0.0, 50.0)

    def test_in_range_like_keeps_range(self, preference_store) -> None:
        eng = self._engine(preference_store, make_item("mid", price=20))
        eng.record_interaction("mid", True)
        assert preference_store.load().price_range == (0.0, 50.0)

    def test_dislike_never_widens(self, preference_store) -> None:
        eng = self._engine(preference_store, make_item("big", price=60))
        eng.record_interaction("big", False)
        assert preference_store.load().price_range == (0.0, 50.0)


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


class TestPreferenceStats:
    def test_defaults_favour_first_declared(self, engine) -> None:
        stats = engine.get_preference_stats()
        assert stats.interaction_count == 0
        assert stats.liked_count == 0
        assert stats.favorite_category is Category.BREAKFAST
        assert stats.favorite_emotion is EmotionTag.HAPPY
        assert stats.price_range == (0.0, 50.0)

    def test_reflects_likes(self, engine) -> None:
        engine.record_interaction("5", True, EmotionTag.EXCITING)  # dinner
        engine.record_interaction("6", False)
        stats = engine.get_preference_stats()
        assert stats.interaction_count == 2
        assert stats.liked_count == 1
        assert stats.favorite_category is Category.DINNER
        assert stats.favorite_emotion is EmotionTag.EXCITING

    def test_reset(self, engine, preference_store) -> None:
        engine.record_interaction("5", True)
        engine.reset_preferences()
        assert preference_store.load() == Preference()
