"""Settings registry.

Holds setting definitions and categories, keeps the current value map as
an immutable snapshot inside a :class:`~cobalt_core.reactive.ValueCell`,
validates every write, and persists the whole map to a single blob after
each successful write.

Writes go through one asyncio lock (the writer lane): validate, swap the
snapshot, publish it to subscribers, then persist.  Readers never take the
lock; they always see the last fully published snapshot.  A failed
persist is raised to the awaiting caller but the published value stays,
since the in-memory map is the source of truth for the running session.
"""

from __future__ import annotations

import asyncio
import locale
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from cobalt_core.exceptions import SettingsError, StorageError, UnregisteredKeyError
from cobalt_core.platform import Clock, PlatformInfo, system_clock
from cobalt_core.reactive import DerivedView, ValueCell
from cobalt_core.registry.models import (
    EXPORT_VERSION,
    ExportMetadata,
    ImportResult,
    SearchResult,
    SettingCategory,
    SettingDefinition,
    SettingEntry,
    SettingsExport,
    SettingType,
    SettingValue,
    ValueSource,
)
from cobalt_core.registry.validation import validate_value
from cobalt_core.storage import JsonCodec, PersistentStore

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "cobalt-settings-v1"

ValueMap = Mapping[str, SettingValue]


def _label_sort_key(label: str) -> tuple[str, str]:
    return (locale.strxfrm(label.casefold()), label)


def _is_default(definition: SettingDefinition, value: Any) -> bool:
    return bool(value == definition.default_value)


class SettingsRegistry:
    """Schema-validated, reactive, persisted key/value configuration.

    Args:
        store: Backend holding the persisted value map.
        storage_key: Blob name for the value map.
        clock: Source of ``last_modified`` and export timestamps.
        platform: App/platform identification for exports.
    """

    def __init__(
        self,
        store: PersistentStore,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Clock = system_clock,
        platform: PlatformInfo | None = None,
    ) -> None:
        self._store = store
        self._storage_key = storage_key
        self._clock = clock
        self._platform = platform or PlatformInfo(app_version="0.0.0", platform="unknown")
        self._definitions: dict[str, SettingDefinition] = {}
        self._categories: dict[str, SettingCategory] = {}
        self._values: ValueCell[ValueMap] = ValueCell(MappingProxyType({}), name="settings")
        # Values read from storage for keys not registered yet
        self._pending: dict[str, SettingValue] = {}
        self._write_lock = asyncio.Lock()
        self._codec: JsonCodec[list[tuple[str, SettingValue]]] = JsonCodec(
            list[tuple[str, SettingValue]], name="settings"
        )

    # ─── Registration ────────────────────────────────────────────────────────

    def register_category(self, category: SettingCategory) -> None:
        """Insert or overwrite a category descriptor."""
        self._categories[category.id] = category

    def register_setting(self, definition: SettingDefinition) -> None:
        """Insert or overwrite a definition and seed its value.

        A key that already has a value keeps it.  A value restored from
        storage before the key was registered is applied if it still
        passes validation; otherwise the default is seeded.
        """
        key = definition.key
        self._definitions[key] = definition

        if key in self._values.value:
            return

        record = None
        pending = self._pending.pop(key, None)
        if pending is not None:
            record = self._adopt(definition, pending)
        if record is None:
            record = SettingValue(
                key=key,
                value=definition.default_value,
                is_default=True,
                last_modified=self._clock(),
                source=ValueSource.SYSTEM,
            )
        self._replace(record)

    # ─── Reads ───────────────────────────────────────────────────────────────

    def get(self, key: str) -> Any:
        """Current value for ``key``, or None for unknown keys."""
        record = self._values.value.get(key)
        return record.value if record is not None else None

    def get_value(self, key: str) -> SettingValue | None:
        """Full value record (value plus provenance) for ``key``."""
        return self._values.value.get(key)

    def get_definition(self, key: str) -> SettingDefinition | None:
        return self._definitions.get(key)

    @property
    def definitions(self) -> list[SettingDefinition]:
        return list(self._definitions.values())

    @property
    def values(self) -> ValueMap:
        """The current value map snapshot (read-only)."""
        return self._values.value

    def observe(self, key: str) -> DerivedView[Any]:
        """Stream of the value for ``key``.

        Emits the current value on subscribe, then every change.
        Writes to other keys, or writes of an equal value, don't emit.
        """

        def project(values: ValueMap) -> Any:
            record = values.get(key)
            return record.value if record is not None else None

        return self._values.map(project)

    def observe_all(self) -> ValueCell[ValueMap]:
        """Stream of whole value map snapshots."""
        return self._values

    def get_by_category(self, category_id: str) -> list[SettingEntry]:
        """Settings of one category sorted by label."""
        values = self._values.value
        entries = [
            SettingEntry(definition=definition, value=values[key])
            for key, definition in self._definitions.items()
            if definition.category == category_id and key in values
        ]
        return sorted(entries, key=lambda entry: _label_sort_key(entry.definition.label))

    def get_categories(self) -> list[SettingCategory]:
        """Categories sorted by their ``order``."""
        return sorted(self._categories.values(), key=lambda category: category.order)

    def search(self, query: str) -> list[SearchResult]:
        """Rank settings by how much of their text the query terms cover.

        Each term found in the haystack (label, description, key and
        category label) adds ``len(term) / len(haystack)``.
        """
        terms = query.lower().split()
        if not terms:
            return []

        values = self._values.value
        results: list[SearchResult] = []
        for key, definition in self._definitions.items():
            record = values.get(key)
            if record is None:
                continue

            category = self._categories.get(definition.category)
            haystack = " ".join(
                [
                    definition.label,
                    definition.description or "",
                    definition.key,
                    category.label if category else "",
                ]
            ).lower()

            relevance = sum(len(term) / len(haystack) for term in terms if term in haystack)
            if relevance > 0:
                results.append(SearchResult(definition=definition, value=record, relevance=relevance))

        results.sort(key=lambda result: result.relevance, reverse=True)
        return results

    def validate_dependencies(self, key: str) -> list[str]:
        """Report unmet dependencies of ``key`` without blocking writes."""
        definition = self._definitions.get(key)
        if definition is None or not definition.dependencies:
            return []

        errors: list[str] = []
        for dep_key in definition.dependencies:
            dep_definition = self._definitions.get(dep_key)
            if dep_definition is None:
                errors.append(f"Dependency {dep_key} is not registered")
                continue
            if dep_definition.type == SettingType.BOOLEAN and not self.get(dep_key):
                errors.append(f"{definition.label} requires {dep_definition.label} to be enabled")
        return errors

    def get_restart_required_settings(self) -> list[str]:
        """Keys that need a restart and currently hold a non-default value."""
        values = self._values.value
        return [
            key
            for key, definition in self._definitions.items()
            if definition.requires_restart and key in values and not values[key].is_default
        ]

    def validate(self, key: str, value: Any) -> str | None:
        """Check ``value`` against the pipeline ``set`` uses, without writing.

        Returns:
            The rejection message, or None if ``set(key, value)`` would pass
            validation.
        """
        try:
            validate_value(self._require(key), value)
        except SettingsError as e:
            return str(e)
        return None

    # ─── Writes ──────────────────────────────────────────────────────────────

    async def set(self, key: str, value: Any, source: ValueSource | str = ValueSource.USER) -> None:
        """Validate, publish and persist a new value for ``key``.

        Raises:
            UnregisteredKeyError: No definition exists for ``key``.
            SettingValidationError: A validation rule rejected the value.
            SettingTypeError: The value doesn't match the declared type.
            SettingRangeError: A numeric value is outside min/max.
            StorageError: The value was published but could not be persisted.
        """
        definition = self._require(key)
        validate_value(definition, value)

        async with self._write_lock:
            record = SettingValue(
                key=key,
                value=value,
                is_default=_is_default(definition, value),
                last_modified=self._clock(),
                source=ValueSource(source),
            )
            self._replace(record)
            logger.debug("Setting %s updated by %s", key, record.source)
            await self._persist()

    async def set_many(
        self,
        updates: Mapping[str, Any],
        source: ValueSource | str = ValueSource.USER,
    ) -> list[str]:
        """Apply several writes in order, one ``set`` per key.

        A rejected key doesn't stop the batch and earlier writes are kept.

        Returns:
            ``"<key>: <message>"`` for each key that failed.
        """
        errors: list[str] = []
        for key, value in updates.items():
            try:
                await self.set(key, value, source)
            except Exception as e:
                logger.warning("Failed to set %s: %s", key, e)
                errors.append(f"{key}: {e}")
        return errors

    async def reset(self, key: str) -> None:
        """Restore the default value of ``key``."""
        definition = self._require(key)
        await self.set(key, definition.default_value, ValueSource.SYSTEM)

    async def reset_all(self) -> list[str]:
        """Reset every registered key, one at a time.

        Failures don't stop the run and earlier resets are kept.

        Returns:
            ``"<key>: <message>"`` for each key that failed.
        """
        return await self._reset_keys(list(self._definitions))

    async def reset_category(self, category_id: str) -> list[str]:
        """Reset every key of one category, best-effort like reset_all."""
        keys = [key for key, definition in self._definitions.items() if definition.category == category_id]
        return await self._reset_keys(keys)

    async def _reset_keys(self, keys: list[str]) -> list[str]:
        errors: list[str] = []
        for key in keys:
            try:
                await self.reset(key)
            except Exception as e:
                logger.warning("Failed to reset %s: %s", key, e)
                errors.append(f"{key}: {e}")
        return errors

    # ─── Import / export ─────────────────────────────────────────────────────

    def export_settings(self) -> SettingsExport:
        """Snapshot of all non-default values."""
        settings = {key: record.value for key, record in self._values.value.items() if not record.is_default}
        return SettingsExport(
            version=EXPORT_VERSION,
            timestamp=self._clock(),
            settings=settings,
            metadata=ExportMetadata.from_platform(self._platform),
        )

    async def import_settings(self, data: SettingsExport | Mapping[str, Any]) -> ImportResult:
        """Apply an export through the normal validation pipeline.

        Keys without a definition are skipped.  Rejected values are
        reported in ``errors`` and the import carries on.  Exports with an
        unrecognised version are still imported key by key.

        Raises:
            ValueError: The payload has no ``settings`` mapping.
        """
        if isinstance(data, SettingsExport):
            version: Any = data.version
            settings: Any = data.settings
        else:
            version = data.get("version")
            settings = data.get("settings")
        if not isinstance(settings, Mapping):
            raise ValueError("Import payload has no settings mapping")

        if version != EXPORT_VERSION:
            logger.warning("Importing settings export with unrecognised version %r", version)

        imported = 0
        skipped = 0
        errors: list[str] = []
        for key, value in settings.items():
            if key not in self._definitions:
                skipped += 1
                continue
            try:
                await self.set(key, value, ValueSource.IMPORT)
            except Exception as e:
                logger.debug("Import of %s rejected", key, exc_info=True)
                errors.append(f"{key}: {e}")
            else:
                imported += 1

        result = ImportResult(imported=imported, skipped=skipped, errors=errors)
        logger.info(
            "Settings import finished: %d imported, %d skipped, %d errors",
            result.imported,
            result.skipped,
            len(result.errors),
        )
        return result

    # ─── Persistence ─────────────────────────────────────────────────────────

    async def load(self) -> int:
        """Restore persisted values.

        Unreadable storage is treated as no prior state.  Values for keys
        registered later are held until their definition arrives.

        Returns:
            Number of values applied to registered keys.
        """
        try:
            data = await self._store.get(self._storage_key)
        except Exception:
            logger.warning("Failed to read stored settings, using defaults", exc_info=True)
            return 0

        entries = self._codec.decode(data)
        if not entries:
            return 0

        applied = 0
        async with self._write_lock:
            values = dict(self._values.value)
            for key, stored in entries:
                definition = self._definitions.get(key)
                if definition is None:
                    self._pending[key] = stored
                    continue
                record = self._adopt(definition, stored)
                if record is not None:
                    values[key] = record
                    applied += 1
            self._values.publish(MappingProxyType(values))

        logger.info("Restored %d stored settings (%d pending registration)", applied, len(self._pending))
        return applied

    async def _persist(self) -> None:
        data = self._codec.encode(list(self._values.value.items()))
        try:
            await self._store.set(self._storage_key, data)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to persist settings: {e}", name=self._storage_key) from e

    # ─── Internals ───────────────────────────────────────────────────────────

    def _require(self, key: str) -> SettingDefinition:
        definition = self._definitions.get(key)
        if definition is None:
            raise UnregisteredKeyError(key)
        return definition

    def _replace(self, record: SettingValue) -> None:
        values = dict(self._values.value)
        values[record.key] = record
        self._values.publish(MappingProxyType(values))

    def _adopt(self, definition: SettingDefinition, stored: SettingValue) -> SettingValue | None:
        """Re-validate a stored value against the current definition."""
        try:
            validate_value(definition, stored.value)
        except SettingsError as e:
            logger.warning("Discarding stored value for %s: %s", definition.key, e)
            return None
        return stored.model_copy(update={"is_default": _is_default(definition, stored.value)})
