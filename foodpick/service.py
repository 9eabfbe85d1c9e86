"""gRPC servicer: the entry point for all inbound calls from the UI client.

Messages are ``google.protobuf.Struct`` documents, so the service needs no
generated stubs; clients send and receive plain JSON-shaped structures.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable
from typing import Any

import grpc
from google.protobuf import json_format
from google.protobuf.struct_pb2 import Struct

from foodpick.models import EmotionTag, UserStats
from foodpick.session import FoodieSession
from foodpick.stats import category_collection, favorite_category

logger = logging.getLogger(__name__)

SERVICE_NAME = "foodpick.FoodPick"

_SLOW_CALL_WARN_THRESHOLD_MS = 200


class FoodPickServicer:
    """Implements the ``foodpick.FoodPick`` service.

    Registered with a gRPC server through :func:`add_servicer_to_server`.
    Every handler takes and returns a :class:`Struct`.

    Args:
        session: The :class:`~foodpick.session.FoodieSession` to drive.
    """

    def __init__(self, session: FoodieSession) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Recommendation and feedback
    # ------------------------------------------------------------------

    def DrawRecommendation(self, request: Struct, context: Any) -> Struct:
        """Draw an item; the response carries the pending history ``entry_id``."""

        def handle(_: dict[str, Any]) -> dict[str, Any]:
            draw = self._session.draw()
            return {"item": draw.item.to_dict(), "entry_id": draw.entry_id}

        return self._dispatch("DrawRecommendation", request, context, handle)

    def SubmitFeedback(self, request: Struct, context: Any) -> Struct:
        """Settle a draw with ``liked`` and an optional ``emotion``."""

        def handle(body: dict[str, Any]) -> dict[str, Any]:
            unlocked = self._session.feedback(
                entry_id=_require_str(body, "entry_id"),
                item_id=_require_str(body, "item_id"),
                liked=_require_bool(body, "liked"),
                emotion=_optional_emotion(body, "emotion"),
            )
            return {"newly_unlocked": [a.to_dict() for a in unlocked]}

        return self._dispatch("SubmitFeedback", request, context, handle)

    def RecordInteraction(self, request: Struct, context: Any) -> Struct:
        def handle(body: dict[str, Any]) -> dict[str, Any]:
            self._session.engine.record_interaction(
                _require_str(body, "item_id"),
                _require_bool(body, "liked"),
                _optional_emotion(body, "emotion_feedback"),
            )
            return {}

        return self._dispatch("RecordInteraction", request, context, handle)

    def GetPreferenceStats(self, request: Struct, context: Any) -> Struct:
        def handle(_: dict[str, Any]) -> dict[str, Any]:
            stats = self._session.engine.get_preference_stats()
            return {
                "interaction_count": stats.interaction_count,
                "liked_count": stats.liked_count,
                "favorite_category": stats.favorite_category.value,
                "favorite_emotion": stats.favorite_emotion.value,
                "price_range": list(stats.price_range),
            }

        return self._dispatch("GetPreferenceStats", request, context, handle)

    def ResetPreferences(self, request: Struct, context: Any) -> Struct:
        def handle(_: dict[str, Any]) -> dict[str, Any]:
            self._session.engine.reset_preferences()
            return {}

        return self._dispatch("ResetPreferences", request, context, handle)

    # ------------------------------------------------------------------
    # Achievements
    # ------------------------------------------------------------------

    def RecordVisit(self, request: Struct, context: Any) -> Struct:
        def handle(_: dict[str, Any]) -> dict[str, Any]:
            unlocked = self._session.visit()
            return {"newly_unlocked": [a.to_dict() for a in unlocked]}

        return self._dispatch("RecordVisit", request, context, handle)

    def UpdateUserStats(self, request: Struct, context: Any) -> Struct:
        def handle(_: dict[str, Any]) -> dict[str, Any]:
            return self._session.achievements.update_user_stats().to_dict()

        return self._dispatch("UpdateUserStats", request, context, handle)

    def CheckNewAchievements(self, request: Struct, context: Any) -> Struct:
        """Diff a fresh evaluation against the client's ``old_stats`` snapshot.

        A missing ``old_stats`` diffs against the cached stats.
        """

        def handle(body: dict[str, Any]) -> dict[str, Any]:
            raw = body.get("old_stats")
            if raw is None:
                old_stats = self._session.achievements.load_user_stats()
            else:
                old_stats = UserStats.from_dict(raw)
            result = self._session.achievements.check_new_achievements(old_stats)
            return {
                "newly_unlocked": [a.to_dict() for a in result.newly_unlocked],
                "new_stats": result.new_stats.to_dict(),
            }

        return self._dispatch("CheckNewAchievements", request, context, handle)

    def GetCollectionProgress(self, request: Struct, context: Any) -> Struct:
        """Return per-category draws, distinct items collected and catalogue size.

        Also carries the category drawn most often, or ``null`` before the
        first draw.
        """

        def handle(_: dict[str, Any]) -> dict[str, Any]:
            stats = self._session.achievements.load_user_stats()
            catalogue = self._session.engine.catalogue
            seen = set(self._session.history.get_seen_item_ids())
            categories = {}
            for category, (draws, total) in category_collection(
                stats.category_stats, catalogue
            ).items():
                collected = sum(
                    1
                    for item in catalogue.get_items_by_category(category)
                    if item.item_id in seen
                )
                categories[category.value] = {
                    "draws": draws,
                    "collected": collected,
                    "total": total,
                }
            favorite = favorite_category(stats.category_stats)
            return {
                "categories": categories,
                "favorite_category": favorite.value if favorite else None,
            }

        return self._dispatch("GetCollectionProgress", request, context, handle)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def AddToHistory(self, request: Struct, context: Any) -> Struct:
        def handle(body: dict[str, Any]) -> dict[str, Any]:
            item_id = _require_str(body, "item_id")
            item = self._session.engine.catalogue.get_item(item_id)
            if item is None:
                raise KeyError(f"Unknown item_id {item_id!r}")
            emotions = body.get("emotions")
            entry = self._session.history.add_to_history(
                item,
                _require_bool(body, "liked"),
                [str(e) for e in emotions] if emotions is not None else None,
            )
            return entry.to_dict()

        return self._dispatch("AddToHistory", request, context, handle)

    def GetHistory(self, request: Struct, context: Any) -> Struct:
        def handle(_: dict[str, Any]) -> dict[str, Any]:
            return {"entries": [e.to_dict() for e in self._session.history.get_history()]}

        return self._dispatch("GetHistory", request, context, handle)

    def ClearHistory(self, request: Struct, context: Any) -> Struct:
        def handle(_: dict[str, Any]) -> dict[str, Any]:
            self._session.history.clear_history()
            return {}

        return self._dispatch("ClearHistory", request, context, handle)

    def GetHistoryStats(self, request: Struct, context: Any) -> Struct:
        def handle(_: dict[str, Any]) -> dict[str, Any]:
            stats = self._session.history.get_history_stats()
            today = self._session.history.get_today_stats()
            return {**dataclasses.asdict(stats), **dataclasses.asdict(today)}

        return self._dispatch("GetHistoryStats", request, context, handle)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _dispatch(
        self,
        method: str,
        request: Struct,
        context: Any,
        handler: Callable[[dict[str, Any]], dict[str, Any]],
    ) -> Struct:
        """Run *handler* under the session lock and map failures to status codes."""
        start_ms = time.monotonic() * 1000
        try:
            body = json_format.MessageToDict(request)
            with self._session.lock:
                return _to_struct(handler(body))
        except (KeyError, ValueError, TypeError) as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return Struct()
        except Exception:
            logger.exception("Unexpected error handling %s", method)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details(f"Internal error handling {method}.")
            return Struct()
        finally:
            elapsed_ms = time.monotonic() * 1000 - start_ms
            if elapsed_ms > _SLOW_CALL_WARN_THRESHOLD_MS:
                logger.warning("%s took %.1fms", method, elapsed_ms)
            else:
                logger.debug("%s took %.1fms", method, elapsed_ms)


_METHODS = (
    "DrawRecommendation",
    "SubmitFeedback",
    "RecordInteraction",
    "GetPreferenceStats",
    "ResetPreferences",
    "RecordVisit",
    "UpdateUserStats",
    "CheckNewAchievements",
    "GetCollectionProgress",
    "AddToHistory",
    "GetHistory",
    "ClearHistory",
    "GetHistoryStats",
)


def add_servicer_to_server(servicer: FoodPickServicer, server: grpc.Server) -> None:
    """Register every handler of *servicer* on *server* as unary RPCs."""
    handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(servicer, name),
            request_deserializer=Struct.FromString,
            response_serializer=Struct.SerializeToString,
        )
        for name in _METHODS
    }
    server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),)
    )


# ---------------------------------------------------------------------------
# Struct helpers
# ---------------------------------------------------------------------------


def _to_struct(payload: dict[str, Any]) -> Struct:
    return json_format.ParseDict(payload, Struct())


def _require_str(body: dict[str, Any], name: str) -> str:
    value = body.get(name)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")
    return value


def _require_bool(body: dict[str, Any], name: str) -> bool:
    value = body.get(name)
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be a boolean")
    return value


def _optional_emotion(body: dict[str, Any], name: str) -> EmotionTag | None:
    value = body.get(name)
    return EmotionTag(value) if value else None
