"""Tests for foodpick.session.FoodieSession."""

from __future__ import annotations

import pytest

from foodpick.history import MAX_HISTORY
from foodpick.models import EmotionTag


class TestDraw:
    def test_logs_undecided_entry(self, session, history_store) -> None:
        draw = session.draw()
        (entry,) = history_store.get_history()
        assert entry.entry_id == draw.entry_id
        assert entry.item == draw.item
        assert entry.liked is False


class TestFeedback:
    def test_one_history_entry_per_draw(self, session, history_store) -> None:
        draw = session.draw()
        session.feedback(draw.entry_id, draw.item.item_id, True, EmotionTag.HAPPY)
        (entry,) = history_store.get_history()
        assert entry.liked is True
        assert entry.emotions == ["happy"]

    def test_updates_preference(self, session, preference_store) -> None:
        draw = session.draw()
        session.feedback(draw.entry_id, draw.item.item_id, True)
        pref = preference_store.load()
        assert len(pref.interactions) == 1
        assert pref.category_weights[draw.item.category] > 1.0

    def test_reports_unlocks_once(self, session) -> None:
        draw = session.draw()
        unlocked = session.feedback(draw.entry_id, draw.item.item_id, False)
        assert "first-draw" in {a.achievement_id for a in unlocked}

        draw = session.draw()
        unlocked = session.feedback(draw.entry_id, draw.item.item_id, False)
        assert "first-draw" not in {a.achievement_id for a in unlocked}

    def test_mismatched_item_is_rejected(self, session, history_store, preference_store) -> None:
        draw = session.draw()
        other = next(
            item_id for item_id in ("1", "13") if item_id != draw.item.item_id
        )
        with pytest.raises(ValueError):
            session.feedback(draw.entry_id, other, True)
        (entry,) = history_store.get_history()
        assert entry.liked is False
        assert preference_store.load().interactions == []

    def test_history_and_preference_agree_on_item(
        self, session, history_store, preference_store
    ) -> None:
        draw = session.draw()
        session.feedback(draw.entry_id, draw.item.item_id, True)
        (entry,) = history_store.get_history()
        (interaction,) = preference_store.load().interactions
        assert entry.item.item_id == interaction.item_id == draw.item.item_id

    def test_string_emotion_accepted(self, session, history_store) -> None:
        draw = session.draw()
        session.feedback(draw.entry_id, draw.item.item_id, True, "comfort")
        assert history_store.get_history()[0].emotions == ["comfort"]

    def test_evicted_entry_is_re_recorded(self, session, history_store, catalogue) -> None:
        item = catalogue.get_item("4")
        session.feedback("long-gone", item.item_id, True)
        (entry,) = history_store.get_history()
        assert entry.item == item
        assert entry.liked is True

    def test_unknown_item_changes_nothing(self, session, history_store, preference_store) -> None:
        session.feedback("long-gone", "nope", True)
        assert history_store.get_history() == []
        assert preference_store.load().interactions == []

    def test_long_session_stays_within_caps(self, session, history_store, preference_store) -> None:
        for i in range(MAX_HISTORY + 10):
            draw = session.draw()
            session.feedback(draw.entry_id, draw.item.item_id, i % 2 == 0)
        assert len(history_store.get_history()) == MAX_HISTORY
        assert len(preference_store.load().interactions) == MAX_HISTORY + 10


class TestVisit:
    def test_visit_reports_nothing_on_first_day(self, session, achievement_engine) -> None:
        assert session.visit() == []
        assert achievement_engine.load_user_stats().consecutive_days == 1

    def test_third_day_unlocks_streak(self, session, clock) -> None:
        session.visit()
        clock.advance(days=1)
        session.visit()
        clock.advance(days=1)
        unlocked = session.visit()
        assert [a.achievement_id for a in unlocked] == ["streak-3"]
