"""Persistence for generator drafts and preferences.

Drafts live in a key-value store: in memory (tests, embedding callers) or in the
Supabase ``user_preferences`` table for the API. Saving is explicit, either
through ``save_draft`` or the ``autosave`` loop.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from pydantic import ValidationError
from supabase import Client

from bioquest.config import get_settings
from bioquest.constants import (
    MAX_SETTINGS_HISTORY,
    PAPER_GENERATOR_DRAFT_KEY,
    SETTINGS_HISTORY_KEY,
    SYLLABUS_ONLY_KEY,
)
from bioquest.models.generation import GeneratorDraft, GeneratorSettings
from bioquest.services.settings_history import SettingsHistory

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Dictionary-backed store."""

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SupabaseKeyValueStore:
    """Per-user JSON values in the ``user_preferences`` table."""

    TABLE = "user_preferences"

    def __init__(self, client: Client, user_id: str):
        self.client = client
        self.user_id = user_id

    async def get(self, key: str) -> Optional[Any]:
        response = await asyncio.to_thread(
            lambda: self.client.table(self.TABLE)
            .select("value")
            .eq("user_id", self.user_id)
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if response.data and len(response.data) > 0:
            return response.data[0].get("value")
        return None

    async def set(self, key: str, value: Any) -> None:
        record = {"user_id": self.user_id, "key": key, "value": value}
        await asyncio.to_thread(
            lambda: self.client.table(self.TABLE)
            .upsert(record, on_conflict="user_id,key")
            .execute()
        )

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(
            lambda: self.client.table(self.TABLE)
            .delete()
            .eq("user_id", self.user_id)
            .eq("key", key)
            .execute()
        )


class DraftStore:
    """Load and save the paper generator draft."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def load_draft(self) -> Optional[GeneratorDraft]:
        raw = await self.store.get(PAPER_GENERATOR_DRAFT_KEY)
        if raw is None:
            return None
        try:
            return GeneratorDraft.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable generator draft: {e}")
            return None

    async def save_draft(self, draft: GeneratorDraft) -> None:
        await self.store.set(PAPER_GENERATOR_DRAFT_KEY, draft.model_dump(mode="json"))

    async def clear_draft(self) -> None:
        await self.store.delete(PAPER_GENERATOR_DRAFT_KEY)

    async def load_syllabus_only(self) -> bool:
        value = await self.store.get(SYLLABUS_ONLY_KEY)
        return True if value is None else bool(value)

    async def save_syllabus_only(self, value: bool) -> None:
        await self.store.set(SYLLABUS_ONLY_KEY, value)

    async def load_settings_history(self) -> SettingsHistory[GeneratorSettings]:
        """Load the undo/redo history, starting from the draft's settings when none is stored."""
        raw = await self.store.get(SETTINGS_HISTORY_KEY)
        if raw is not None:
            try:
                snapshots: List[GeneratorSettings] = [
                    GeneratorSettings.model_validate(s) for s in raw["snapshots"]
                ]
                return SettingsHistory.restore(
                    snapshots, int(raw["index"]), max_size=MAX_SETTINGS_HISTORY
                )
            except (ValidationError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Discarding unreadable settings history: {e}")

        draft = await self.load_draft()
        initial = draft.settings if draft else GeneratorSettings()
        return SettingsHistory(initial, max_size=MAX_SETTINGS_HISTORY)

    async def save_settings_history(self, history: SettingsHistory[GeneratorSettings]) -> None:
        await self.store.set(SETTINGS_HISTORY_KEY, {
            "snapshots": [s.model_dump(mode="json") for s in history.snapshots],
            "index": history.index,
        })

    async def clear_settings_history(self) -> None:
        await self.store.delete(SETTINGS_HISTORY_KEY)

    async def autosave(
        self,
        get_draft: Callable[[], Optional[GeneratorDraft]],
        interval: Optional[float],
        stop_event: asyncio.Event,
    ) -> int:
        """Save ``get_draft()`` every ``interval`` seconds until stopped.

        For callers that hold the form state in process, such as an embedding
        UI; the HTTP API saves on each PUT instead.

        ``interval=None`` uses DRAFT_AUTOSAVE_INTERVAL_SECONDS (30s by default).

        Returns:
            Number of saves performed
        """
        if interval is None:
            interval = get_settings().draft_autosave_interval_seconds

        saves = 0
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                draft = get_draft()
                if draft is not None:
                    await self.save_draft(draft)
                    saves += 1
        return saves
