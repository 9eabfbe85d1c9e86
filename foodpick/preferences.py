"""Preference store: load, save and reset the user's preference model."""

from __future__ import annotations

import logging

from foodpick.models import Preference
from foodpick.storage import StateStorage

logger = logging.getLogger(__name__)

PREFERENCE_KEY = "preference"
MAX_INTERACTIONS = 100


class PreferenceStore:
    """Persists a single :class:`~foodpick.models.Preference` document.

    A missing or malformed document is treated as absent and replaced by
    defaults on load; no error reaches the caller.

    Args:
        storage: Backend holding the document.
        key: Storage key of the document.
    """

    def __init__(self, storage: StateStorage, key: str = PREFERENCE_KEY) -> None:
        self._storage = storage
        self._key = key

    def load(self) -> Preference:
        """Return the stored preference, or a fresh default one."""
        document = self._storage.read(self._key)
        if document is None:
            return Preference()
        try:
            return Preference.from_dict(document)
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Stored preference is malformed; reinitialising defaults.")
            return Preference()

    def save(self, preference: Preference) -> None:
        """Persist *preference*, keeping only the newest interactions."""
        if len(preference.interactions) > MAX_INTERACTIONS:
            preference.interactions = preference.interactions[-MAX_INTERACTIONS:]
        self._storage.write(self._key, preference.to_dict())

    def reset(self) -> Preference:
        """Replace the stored preference with defaults and return them."""
        preference = Preference()
        self.save(preference)
        logger.info("Preference reset to defaults.")
        return preference
