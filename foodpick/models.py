"""Core domain dataclasses shared across all foodpick modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

DEFAULT_WEIGHT = 1.0
DEFAULT_PRICE_RANGE: tuple[float, float] = (0.0, 50.0)


class Category(str, Enum):
    """Meal categories an item belongs to."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"
    DRINK = "drink"
    DESSERT = "dessert"


class EmotionTag(str, Enum):
    """Mood labels attached to items and chosen by the user as feedback."""

    HAPPY = "happy"
    COMFORT = "comfort"
    ENERGETIC = "energetic"
    RELAXING = "relaxing"
    NOSTALGIC = "nostalgic"
    EXCITING = "exciting"


class AchievementCategory(str, Enum):
    EXPLORATION = "exploration"
    ACTIVITY = "activity"
    PREFERENCE = "preference"


class AchievementRarity(str, Enum):
    """Display rarity of an achievement. Has no effect on evaluation."""

    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


# ---------------------------------------------------------------------------
# Catalogue records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Item:
    """A single recommendable food item.

    Attributes:
        item_id: Unique identifier within the catalogue.
        name: Human-readable name.
        category: The meal :class:`Category`.
        emotion_tags: Mood labels associated with the item (may be empty).
        price: Price in the catalogue currency.
        price_performance_score: Value-for-money score in ``[0, 10]``.
        description: Free-text description for display.
        location: Where the item can be bought.
        rating: Average rating (1–5), display only.
        tags: Free-form feature tags, display only.
    """

    item_id: str
    name: str
    category: Category
    emotion_tags: tuple[EmotionTag, ...]
    price: float
    price_performance_score: float
    description: str = ""
    location: str = ""
    rating: float = 0.0
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.price_performance_score <= 10.0:
            raise ValueError(
                f"price_performance_score must be in [0, 10], "
                f"got {self.price_performance_score!r}"
            )
        if self.price < 0:
            raise ValueError(f"price must be non-negative, got {self.price!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "category": self.category.value,
            "emotion_tags": [tag.value for tag in self.emotion_tags],
            "price": self.price,
            "price_performance_score": self.price_performance_score,
            "description": self.description,
            "location": self.location,
            "rating": self.rating,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Item:
        """Build an item from its JSON form.

        Raises:
            ValueError: On an unknown category or emotion tag, or an
                out-of-range score.
            KeyError: If a required field is missing.
        """
        return cls(
            item_id=str(data["item_id"]),
            name=data["name"],
            category=Category(data["category"]),
            emotion_tags=tuple(EmotionTag(t) for t in data.get("emotion_tags", [])),
            price=float(data["price"]),
            price_performance_score=float(data["price_performance_score"]),
            description=data.get("description", ""),
            location=data.get("location", ""),
            rating=float(data.get("rating", 0.0)),
            tags=tuple(data.get("tags", [])),
        )


# ---------------------------------------------------------------------------
# Preference
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Interaction:
    """One feedback event on an item. Created once, never mutated."""

    item_id: str
    timestamp: datetime
    liked: bool
    emotion_feedback: EmotionTag | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "timestamp": _datetime_to_str(self.timestamp),
            "liked": self.liked,
            "emotion_feedback": (
                self.emotion_feedback.value if self.emotion_feedback else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Interaction:
        emotion = data.get("emotion_feedback")
        return cls(
            item_id=str(data["item_id"]),
            timestamp=_str_to_datetime(data["timestamp"]),
            liked=bool(data["liked"]),
            emotion_feedback=EmotionTag(emotion) if emotion else None,
        )


def _default_category_weights() -> dict[Category, float]:
    return {category: DEFAULT_WEIGHT for category in Category}


def _default_emotion_weights() -> dict[EmotionTag, float]:
    return {tag: DEFAULT_WEIGHT for tag in EmotionTag}


@dataclass
class Preference:
    """The user's learned preference model.

    Weights only ever grow (see
    :meth:`~foodpick.engine.RecommendationEngine.record_interaction`), and the
    price range only ever widens.

    Attributes:
        category_weights: Weight per :class:`Category`; every member present.
        emotion_weights: Weight per :class:`EmotionTag`; every member present.
        price_range: Preferred ``(min, max)`` price interval.
        interactions: Feedback log, oldest first, capped by the store.

    Raises:
        ValueError: If a weight mapping is missing an enum member, a weight
            is not strictly positive, or ``min > max``.
    """

    category_weights: dict[Category, float] = field(default_factory=_default_category_weights)
    emotion_weights: dict[EmotionTag, float] = field(default_factory=_default_emotion_weights)
    price_range: tuple[float, float] = DEFAULT_PRICE_RANGE
    interactions: list[Interaction] = field(default_factory=list)

    def __post_init__(self) -> None:
        _validate_weights(self.category_weights, Category)
        _validate_weights(self.emotion_weights, EmotionTag)
        low, high = self.price_range
        if low > high:
            raise ValueError(f"price_range min must be <= max, got {self.price_range!r}")

    @property
    def liked_count(self) -> int:
        return sum(1 for i in self.interactions if i.liked)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category_weights": {k.value: v for k, v in self.category_weights.items()},
            "emotion_weights": {k.value: v for k, v in self.emotion_weights.items()},
            "price_range": list(self.price_range),
            "interactions": [i.to_dict() for i in self.interactions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Preference:
        low, high = data["price_range"]
        return cls(
            category_weights={
                Category(k): float(v) for k, v in data["category_weights"].items()
            },
            emotion_weights={
                EmotionTag(k): float(v) for k, v in data["emotion_weights"].items()
            },
            price_range=(float(low), float(high)),
            interactions=[Interaction.from_dict(i) for i in data.get("interactions", [])],
        )


def _validate_weights(weights: dict[Any, float], enum_cls: type[Enum]) -> None:
    missing = [member.value for member in enum_cls if member not in weights]
    if missing or len(weights) != len(enum_cls):
        raise ValueError(
            f"{enum_cls.__name__} weights must cover every member exactly once; "
            f"missing {missing!r}"
        )
    for key, weight in weights.items():
        if weight <= 0:
            raise ValueError(f"Weight for {key!r} must be positive, got {weight!r}")


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@dataclass
class HistoryItem:
    """A single draw in the history log.

    Attributes:
        entry_id: Locally unique identifier of this entry.
        item: Snapshot of the item at draw time.
        timestamp: When the entry was recorded (UTC).
        liked: Whether the user liked the item.
        emotions: Emotion labels the user attached, if any.
    """

    entry_id: str
    item: Item
    timestamp: datetime
    liked: bool
    emotions: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "item": self.item.to_dict(),
            "timestamp": _datetime_to_str(self.timestamp),
            "liked": self.liked,
            "emotions": list(self.emotions) if self.emotions is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryItem:
        emotions = data.get("emotions")
        return cls(
            entry_id=str(data["entry_id"]),
            item=Item.from_dict(data["item"]),
            timestamp=_str_to_datetime(data["timestamp"]),
            liked=bool(data["liked"]),
            emotions=list(emotions) if emotions is not None else None,
        )


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


@dataclass
class Achievement:
    """Static definition plus per-user progress of one achievement.

    ``unlocked`` moves from ``False`` to ``True`` at most once and
    ``unlocked_at`` is stamped on that transition only.
    """

    achievement_id: str
    title: str
    description: str
    icon: str
    category: AchievementCategory
    rarity: AchievementRarity
    requirement: int
    progress: int = 0
    unlocked: bool = False
    unlocked_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "achievement_id": self.achievement_id,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "category": self.category.value,
            "rarity": self.rarity.value,
            "requirement": self.requirement,
            "progress": self.progress,
            "unlocked": self.unlocked,
            "unlocked_at": (
                _datetime_to_str(self.unlocked_at) if self.unlocked_at else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Achievement:
        unlocked_at = data.get("unlocked_at")
        return cls(
            achievement_id=data["achievement_id"],
            title=data["title"],
            description=data["description"],
            icon=data["icon"],
            category=AchievementCategory(data["category"]),
            rarity=AchievementRarity(data["rarity"]),
            requirement=int(data["requirement"]),
            progress=int(data.get("progress", 0)),
            unlocked=bool(data.get("unlocked", False)),
            unlocked_at=_str_to_datetime(unlocked_at) if unlocked_at else None,
        )


@dataclass
class UserStats:
    """Derived statistics cache, rebuilt from history on every evaluation.

    ``visit_dates``, ``last_visit_date`` and ``consecutive_days`` are the only
    fields maintained independently of the history log.
    """

    total_draws: int = 0
    unique_items_count: int = 0
    unique_item_ids: list[str] = field(default_factory=list)
    consecutive_days: int = 0
    last_visit_date: str = ""
    visit_dates: list[str] = field(default_factory=list)
    category_stats: dict[str, int] = field(default_factory=dict)
    emotion_feedback_count: int = 0
    liked_count: int = 0
    disliked_count: int = 0
    achievements: list[Achievement] = field(default_factory=list)
    total_achievements_unlocked: int = 0

    def get_achievement(self, achievement_id: str) -> Achievement | None:
        for achievement in self.achievements:
            if achievement.achievement_id == achievement_id:
                return achievement
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_draws": self.total_draws,
            "unique_items_count": self.unique_items_count,
            "unique_item_ids": list(self.unique_item_ids),
            "consecutive_days": self.consecutive_days,
            "last_visit_date": self.last_visit_date,
            "visit_dates": list(self.visit_dates),
            "category_stats": dict(self.category_stats),
            "emotion_feedback_count": self.emotion_feedback_count,
            "liked_count": self.liked_count,
            "disliked_count": self.disliked_count,
            "achievements": [a.to_dict() for a in self.achievements],
            "total_achievements_unlocked": self.total_achievements_unlocked,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserStats:
        return cls(
            total_draws=int(data.get("total_draws", 0)),
            unique_items_count=int(data.get("unique_items_count", 0)),
            unique_item_ids=list(data.get("unique_item_ids", [])),
            consecutive_days=int(data.get("consecutive_days", 0)),
            last_visit_date=data.get("last_visit_date", ""),
            visit_dates=list(data.get("visit_dates", [])),
            category_stats={k: int(v) for k, v in data.get("category_stats", {}).items()},
            emotion_feedback_count=int(data.get("emotion_feedback_count", 0)),
            liked_count=int(data.get("liked_count", 0)),
            disliked_count=int(data.get("disliked_count", 0)),
            achievements=[Achievement.from_dict(a) for a in data.get("achievements", [])],
            total_achievements_unlocked=int(data.get("total_achievements_unlocked", 0)),
        )


# ---------------------------------------------------------------------------
# Timestamp helpers
# ---------------------------------------------------------------------------


def _datetime_to_str(dt: datetime) -> str:
    """Serialise *dt* as ISO-8601; naive datetimes are assumed UTC."""
    return (dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)).isoformat()


def _str_to_datetime(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
