"""Filter configuration persistence.

Two independent stores on top of a KeyValueStore:

- FilterConfigStore mirrors the active FilterCriteria under one key.
- PresetStore keeps an ordered list of named FilterPresets under another.

Storage failures and malformed data never propagate: they are logged and
replaced by the documented fallback (defaults, empty list).
"""

from datetime import datetime, timezone
from typing import Callable, Optional
import json
import logging

from src.screener.config import (
    CLASSIFICATION_VERSION,
    FILTER_CONFIG_KEY,
    FILTER_PRESETS_KEY,
)
from src.screener.exceptions import ScreenerError, StorageError, ValidationError
from src.screener.models import FilterCriteria, FilterPreset
from src.screener.storage import KeyValueStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FilterConfigStore:
    """Mirror of the active filter criteria."""

    def __init__(self, store: KeyValueStore, key: str = FILTER_CONFIG_KEY):
        self.store = store
        self.key = key

    def save(self, criteria: FilterCriteria) -> None:
        try:
            self.store.set(self.key, json.dumps(criteria.to_dict()))
        except StorageError as e:
            logger.error("Failed to save filter config: %s", e)

    def load(self) -> Optional[FilterCriteria]:
        """Stored criteria, or None when absent, unreadable or corrupt."""
        try:
            serialized = self.store.get(self.key)
        except StorageError as e:
            logger.error("Failed to load filter config: %s", e)
            return None
        if serialized is None:
            return None
        try:
            return FilterCriteria.from_dict(json.loads(serialized))
        except (ValueError, ScreenerError) as e:
            logger.error("Discarding corrupt filter config: %s", e)
            return None

    def load_or_default(self) -> FilterCriteria:
        return self.load() or FilterCriteria()

    def clear(self) -> None:
        try:
            self.store.remove(self.key)
        except StorageError as e:
            logger.error("Failed to clear filter config: %s", e)


class PresetStore:
    """Ordered list of named filter presets.

    New presets are appended at the end; list order is otherwise stable
    across saves, updates and deletes.

    Example:
        presets = PresetStore(JsonFileStore(".equilibrio"))
        preset = presets.save("Oversold tech", "", criteria)
        criteria = presets.load(preset.preset_id)
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = FILTER_PRESETS_KEY,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.store = store
        self.key = key
        self.clock = clock

    def _read(self) -> list[FilterPreset]:
        try:
            serialized = self.store.get(self.key)
        except StorageError as e:
            logger.error("Failed to load filter presets: %s", e)
            return []
        if serialized is None:
            return []
        try:
            raw = json.loads(serialized)
        except ValueError as e:
            logger.error("Discarding corrupt filter presets: %s", e)
            return []
        if not isinstance(raw, list):
            logger.error("Discarding filter presets: expected a list, got %s", type(raw).__name__)
            return []

        presets = []
        for entry in raw:
            try:
                preset = FilterPreset.from_dict(entry)
            except (ScreenerError, ValueError, TypeError, KeyError) as e:
                logger.warning("Skipping malformed filter preset: %s", e)
                continue
            if preset.classification_version != CLASSIFICATION_VERSION:
                logger.warning(
                    "Preset %s was saved under classification v%d (current v%d)",
                    preset.preset_id, preset.classification_version, CLASSIFICATION_VERSION,
                )
            presets.append(preset)
        return presets

    def _write(self, presets: list[FilterPreset]) -> None:
        try:
            self.store.set(self.key, json.dumps([p.to_dict() for p in presets]))
        except StorageError as e:
            logger.error("Failed to save filter presets: %s", e)

    def list_presets(self) -> list[FilterPreset]:
        return self._read()

    def get(self, preset_id: str) -> Optional[FilterPreset]:
        for preset in self._read():
            if preset.preset_id == preset_id:
                return preset
        return None

    def load(self, preset_id: str) -> Optional[FilterCriteria]:
        preset = self.get(preset_id)
        return preset.filters if preset else None

    def save(self, name: str, description: str, criteria: FilterCriteria) -> FilterPreset:
        """Append a new preset.

        Raises:
            ValidationError: empty name.
        """
        if not name or not name.strip():
            raise ValidationError("Preset name must not be empty", field="name")
        now = self.clock()
        preset = FilterPreset(
            name=name.strip(),
            description=description or "",
            filters=criteria,
            created_at=now,
            updated_at=now,
        )
        presets = self._read()
        presets.append(preset)
        self._write(presets)
        logger.info("Saved filter preset %s (%s)", preset.preset_id, preset.name)
        return preset

    def update(
        self,
        preset_id: str,
        name: str,
        description: str,
        criteria: FilterCriteria,
    ) -> Optional[FilterPreset]:
        """Replace a preset's contents in place and refresh updated_at.

        Returns:
            The updated preset, or None if the id is unknown.
        """
        if not name or not name.strip():
            raise ValidationError("Preset name must not be empty", field="name")
        presets = self._read()
        for preset in presets:
            if preset.preset_id == preset_id:
                preset.name = name.strip()
                preset.description = description or ""
                preset.filters = criteria
                preset.updated_at = self.clock()
                preset.classification_version = CLASSIFICATION_VERSION
                self._write(presets)
                return preset
        logger.warning("Cannot update unknown preset %s", preset_id)
        return None

    def delete(self, preset_id: str) -> bool:
        """Remove a preset. Returns False if the id is unknown."""
        presets = self._read()
        remaining = [p for p in presets if p.preset_id != preset_id]
        if len(remaining) == len(presets):
            return False
        self._write(remaining)
        return True
