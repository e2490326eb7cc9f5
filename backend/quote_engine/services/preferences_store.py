"""Interface preferences session with pluggable load/save hooks.

Preferences are owned by an explicit session object that a host creates
and injects, rather than living in module-level state. Each change is
written through the store's ``save`` hook immediately.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from quote_engine import config
from quote_engine.models import InterfacePreferences

logger = logging.getLogger(__name__)


class BasePreferencesStore(ABC):
    """Load/save hooks for interface preferences."""

    @abstractmethod
    def load(self) -> InterfacePreferences:
        pass

    @abstractmethod
    def save(self, prefs: InterfacePreferences) -> None:
        pass


class InMemoryPreferencesStore(BasePreferencesStore):
    def __init__(self, initial: Optional[InterfacePreferences] = None):
        self._prefs = initial or InterfacePreferences()

    def load(self) -> InterfacePreferences:
        return self._prefs.model_copy()

    def save(self, prefs: InterfacePreferences) -> None:
        self._prefs = prefs.model_copy()


class JsonFilePreferencesStore(BasePreferencesStore):
    """Preferences kept in a small JSON file.

    A missing or unreadable file loads as defaults.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> InterfacePreferences:
        if not self.path.exists():
            return InterfacePreferences()
        try:
            return InterfacePreferences.model_validate(json.loads(self.path.read_text()))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return InterfacePreferences()

    def save(self, prefs: InterfacePreferences) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(prefs.model_dump(), indent=2))


def default_preferences_store() -> BasePreferencesStore:
    """File-backed store when QUOTE_PREFERENCES_PATH is set, else in-memory."""
    if config.PREFERENCES_PATH:
        return JsonFilePreferencesStore(config.PREFERENCES_PATH)
    return InMemoryPreferencesStore()


class PreferencesSession:
    """Current interface preferences plus the actions that change them."""

    def __init__(self, store: Optional[BasePreferencesStore] = None):
        self._store = store or default_preferences_store()
        self.prefs = self._store.load()

    def _update(self, **changes) -> None:
        self.prefs = self.prefs.model_copy(update=changes)
        self._store.save(self.prefs)

    @property
    def sidebar_collapsed(self) -> bool:
        return self.prefs.sidebar_collapsed

    @property
    def wide_mode(self) -> bool:
        return self.prefs.wide_mode

    def toggle_sidebar(self) -> None:
        self._update(sidebar_collapsed=not self.prefs.sidebar_collapsed)

    def set_sidebar_collapsed(self, collapsed: bool) -> None:
        self._update(sidebar_collapsed=collapsed)

    def set_wide_mode(self, wide: bool) -> None:
        self._update(wide_mode=wide)

    def reset_interface_prefs(self) -> None:
        self._update(sidebar_collapsed=False, wide_mode=False)
