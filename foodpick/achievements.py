"""Achievement engine: visit streaks, stats cache and unlock evaluation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from foodpick.history import HistoryStore
from foodpick.models import (
    Achievement,
    AchievementCategory,
    AchievementRarity,
    Category,
    UserStats,
)
from foodpick.preferences import PreferenceStore
from foodpick.stats import HistoryAggregate, aggregate, consecutive_days
from foodpick.storage import StateStorage

logger = logging.getLogger(__name__)

USER_STATS_KEY = "user_stats"

HIGH_VALUE_SCORE = 9.0
MASTERY_MIN_LIKES = 5
MASTERY_MIN_CATEGORY_WEIGHT = 2.0


# ---------------------------------------------------------------------------
# Evaluation inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EvaluationSignals:
    """Everything an achievement rule may look at during one pass.

    Attributes:
        stats: Counters aggregated from the history log.
        consecutive_days: Current visit streak.
        categories_explored: Categories with at least one draw.
        has_high_value_item: Any drawn item scored at least 9.0 for value.
        preference_mastered: At least 5 liked interactions and some category
            weight above 2.
    """

    stats: HistoryAggregate
    consecutive_days: int
    categories_explored: int
    has_high_value_item: bool
    preference_mastered: bool


Rule = Callable[[EvaluationSignals, int], tuple[int, bool]]


def _counter(metric: Callable[[EvaluationSignals], int]) -> Rule:
    def rule(signals: EvaluationSignals, requirement: int) -> tuple[int, bool]:
        value = metric(signals)
        return min(value, requirement), value >= requirement

    return rule


def _flag(metric: Callable[[EvaluationSignals], bool]) -> Rule:
    def rule(signals: EvaluationSignals, requirement: int) -> tuple[int, bool]:
        met = metric(signals)
        return (1 if met else 0), met

    return rule


def _picky(signals: EvaluationSignals, requirement: int) -> tuple[int, bool]:
    liked, disliked = signals.stats.liked_count, signals.stats.disliked_count
    met = liked >= requirement and disliked >= requirement
    return min(liked, disliked, requirement), met


_draws = _counter(lambda s: s.stats.total_draws)
_unique = _counter(lambda s: s.stats.unique_items_count)
_streak = _counter(lambda s: s.consecutive_days)
_emotions = _counter(lambda s: s.stats.emotion_feedback_count)


# ---------------------------------------------------------------------------
# Static catalogue
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AchievementDefinition:
    """Static configuration of one achievement and the rule that scores it."""

    achievement_id: str
    title: str
    description: str
    icon: str
    category: AchievementCategory
    rarity: AchievementRarity
    requirement: int
    rule: Rule

    def new_state(self) -> Achievement:
        """Return a locked, zero-progress :class:`Achievement` for this definition."""
        return Achievement(
            achievement_id=self.achievement_id,
            title=self.title,
            description=self.description,
            icon=self.icon,
            category=self.category,
            rarity=self.rarity,
            requirement=self.requirement,
        )


_EXPLORATION = AchievementCategory.EXPLORATION
_ACTIVITY = AchievementCategory.ACTIVITY
_PREFERENCE = AchievementCategory.PREFERENCE

ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        "first-draw", "First Bite", "Draw your first recommendation.",
        "🎁", _ACTIVITY, AchievementRarity.COMMON, 1, _draws,
    ),
    AchievementDefinition(
        "food-explorer-10", "Food Explorer", "Discover 10 different dishes.",
        "🧭", _EXPLORATION, AchievementRarity.COMMON, 10, _unique,
    ),
    AchievementDefinition(
        "food-explorer-50", "Seasoned Explorer", "Discover 50 different dishes.",
        "🗺️", _EXPLORATION, AchievementRarity.RARE, 50, _unique,
    ),
    AchievementDefinition(
        "food-explorer-100", "Culinary Cartographer", "Discover 100 different dishes.",
        "🌏", _EXPLORATION, AchievementRarity.LEGENDARY, 100, _unique,
    ),
    AchievementDefinition(
        "all-categories", "Full Menu", "Draw something from every meal category.",
        "🍱", _EXPLORATION, AchievementRarity.RARE, len(Category),
        _counter(lambda s: s.categories_explored),
    ),
    AchievementDefinition(
        "rare-hunter", "Bargain Hunter", "Draw a dish with a value score of 9 or more.",
        "💎", _EXPLORATION, AchievementRarity.RARE, 1,
        _flag(lambda s: s.has_high_value_item),
    ),
    AchievementDefinition(
        "streak-3", "Regular", "Visit 3 days in a row.",
        "🔥", _ACTIVITY, AchievementRarity.COMMON, 3, _streak,
    ),
    AchievementDefinition(
        "streak-7", "Weekly Habit", "Visit 7 days in a row.",
        "📅", _ACTIVITY, AchievementRarity.RARE, 7, _streak,
    ),
    AchievementDefinition(
        "streak-30", "Devotee", "Visit 30 days in a row.",
        "🏆", _ACTIVITY, AchievementRarity.LEGENDARY, 30, _streak,
    ),
    AchievementDefinition(
        "draw-master-50", "Lucky Dipper", "Draw 50 recommendations.",
        "🎲", _ACTIVITY, AchievementRarity.COMMON, 50, _draws,
    ),
    AchievementDefinition(
        "draw-master-100", "Draw Master", "Draw 100 recommendations.",
        "🎰", _ACTIVITY, AchievementRarity.EPIC, 100, _draws,
    ),
    AchievementDefinition(
        "draw-master-500", "Grand Draw Master", "Draw 500 recommendations.",
        "👑", _ACTIVITY, AchievementRarity.LEGENDARY, 500, _draws,
    ),
    AchievementDefinition(
        "emotion-feedback-20", "In Touch", "Tag 20 dishes with how they made you feel.",
        "💬", _PREFERENCE, AchievementRarity.COMMON, 20, _emotions,
    ),
    AchievementDefinition(
        "emotion-feedback-50", "Mood Reader", "Tag 50 dishes with how they made you feel.",
        "💖", _PREFERENCE, AchievementRarity.RARE, 50, _emotions,
    ),
    AchievementDefinition(
        "emotion-feedback-100", "Emotional Gourmet", "Tag 100 dishes with how they made you feel.",
        "🌈", _PREFERENCE, AchievementRarity.EPIC, 100, _emotions,
    ),
    AchievementDefinition(
        "preference-mastery", "Know Thyself",
        "Like 5 dishes and build a clear favourite category.",
        "🧠", _PREFERENCE, AchievementRarity.EPIC, 1,
        _flag(lambda s: s.preference_mastered),
    ),
    AchievementDefinition(
        "picky-foodie", "Picky Foodie", "Like 20 dishes and turn down 20 others.",
        "🧐", _PREFERENCE, AchievementRarity.EPIC, 20, _picky,
    ),
)


@dataclass(frozen=True)
class AchievementCheck:
    """Result of :meth:`AchievementEngine.check_new_achievements`."""

    newly_unlocked: list[Achievement]
    new_stats: UserStats


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class AchievementEngine:
    """Maintains the :class:`~foodpick.models.UserStats` cache and unlocks.

    The cache is rebuilt from the history log on every evaluation pass, so
    it never acts as a second source of truth for counts the log records.
    Only the visit fields are maintained independently, by
    :meth:`record_visit`.

    Unlocks are monotonic: once an achievement is unlocked it stays
    unlocked, keeps its ``unlocked_at`` stamp and reports full progress,
    whatever later passes compute.

    Args:
        storage: Backend holding the stats cache.
        history_store: Source of the history log.
        preference_store: Source of preference-derived signals.
        clock: Returns the current time (UTC) for visit days and unlock stamps.
        definitions: Achievement catalogue to evaluate.
    """

    def __init__(
        self,
        storage: StateStorage,
        history_store: HistoryStore,
        preference_store: PreferenceStore,
        clock: Callable[[], datetime] = _utcnow,
        definitions: tuple[AchievementDefinition, ...] = ACHIEVEMENTS,
    ) -> None:
        self._storage = storage
        self._history_store = history_store
        self._preference_store = preference_store
        self._clock = clock
        self._definitions = definitions

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def initial_stats(self) -> UserStats:
        return UserStats(achievements=[d.new_state() for d in self._definitions])

    def load_user_stats(self) -> UserStats:
        """Return the cached stats with achievements aligned to the definitions.

        Stored progress is kept for known ids; definitions missing from the
        cache start locked, and cached ids no longer defined are dropped.
        Static fields always come from the current definitions.
        """
        document = self._storage.read(USER_STATS_KEY)
        if document is None:
            return self.initial_stats()
        try:
            stats = UserStats.from_dict(document)
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Stored user stats are malformed; reinitialising.")
            return self.initial_stats()

        stored = {a.achievement_id: a for a in stats.achievements}
        merged = []
        for definition in self._definitions:
            fresh = definition.new_state()
            previous = stored.get(definition.achievement_id)
            if previous is not None:
                fresh.progress = previous.progress
                fresh.unlocked = previous.unlocked
                fresh.unlocked_at = previous.unlocked_at
            merged.append(fresh)
        stats.achievements = merged
        stats.total_achievements_unlocked = sum(1 for a in merged if a.unlocked)
        return stats

    def save_user_stats(self, stats: UserStats) -> None:
        self._storage.write(USER_STATS_KEY, stats.to_dict())

    # ------------------------------------------------------------------
    # Visits
    # ------------------------------------------------------------------

    def record_visit(self) -> None:
        """Record today as a visit day and refresh the streak.

        Idempotent within a calendar day (UTC).
        """
        stats = self.load_user_stats()
        today = self._clock().astimezone(timezone.utc).date()
        key = today.isoformat()
        if key in stats.visit_dates:
            return
        stats.visit_dates.append(key)
        stats.last_visit_date = key
        stats.consecutive_days = consecutive_days(stats.visit_dates, today)
        self.save_user_stats(stats)
        logger.info("Recorded visit for %s (streak=%d).", key, stats.consecutive_days)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def update_user_stats(self) -> UserStats:
        """Recompute the stats cache from history and re-evaluate every achievement.

        Returns:
            The freshly persisted :class:`~foodpick.models.UserStats`.
        """
        stats = self.load_user_stats()
        log = self._history_store.load()
        history = log.entries
        preference = self._preference_store.load()

        counters = aggregate(history, log.seen_item_ids)
        stats.total_draws = counters.total_draws
        stats.unique_items_count = counters.unique_items_count
        stats.unique_item_ids = list(counters.unique_item_ids)
        stats.category_stats = dict(counters.category_stats)
        stats.emotion_feedback_count = counters.emotion_feedback_count
        stats.liked_count = counters.liked_count
        stats.disliked_count = counters.disliked_count

        signals = EvaluationSignals(
            stats=counters,
            consecutive_days=stats.consecutive_days,
            categories_explored=sum(1 for n in counters.category_stats.values() if n > 0),
            has_high_value_item=any(
                entry.item.price_performance_score >= HIGH_VALUE_SCORE
                for entry in history
            ),
            preference_mastered=(
                preference.liked_count >= MASTERY_MIN_LIKES
                and any(
                    w > MASTERY_MIN_CATEGORY_WEIGHT
                    for w in preference.category_weights.values()
                )
            ),
        )

        now = self._clock()
        previous = {a.achievement_id: a for a in stats.achievements}
        stats.achievements = [
            self._evaluate(definition, previous.get(definition.achievement_id), signals, now)
            for definition in self._definitions
        ]
        stats.total_achievements_unlocked = sum(1 for a in stats.achievements if a.unlocked)

        self.save_user_stats(stats)
        return stats

    def check_new_achievements(self, old_stats: UserStats) -> AchievementCheck:
        """Run an evaluation pass and report what it unlocked.

        Args:
            old_stats: Snapshot taken before the triggering event.

        Returns:
            An :class:`AchievementCheck` whose ``newly_unlocked`` holds every
            achievement unlocked now but not unlocked (or absent) in
            *old_stats*.
        """
        new_stats = self.update_user_stats()
        newly_unlocked = []
        for achievement in new_stats.achievements:
            old = old_stats.get_achievement(achievement.achievement_id)
            if achievement.unlocked and (old is None or not old.unlocked):
                newly_unlocked.append(achievement)
        if newly_unlocked:
            logger.info(
                "Unlocked achievements: %s",
                ", ".join(a.achievement_id for a in newly_unlocked),
            )
        return AchievementCheck(newly_unlocked=newly_unlocked, new_stats=new_stats)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _evaluate(
        definition: AchievementDefinition,
        previous: Achievement | None,
        signals: EvaluationSignals,
        now: datetime,
    ) -> Achievement:
        """Return a fresh copy of *previous* re-scored against *signals*."""
        achievement = replace(previous) if previous is not None else definition.new_state()
        progress, met = definition.rule(signals, definition.requirement)
        if achievement.unlocked:
            achievement.progress = definition.requirement
            return achievement
        achievement.progress = progress
        if met:
            achievement.unlocked = True
            achievement.unlocked_at = now
            achievement.progress = definition.requirement
        return achievement
