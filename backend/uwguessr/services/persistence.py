"""Bridges match state to the tab-scoped and durable stores.

Layout of the tab-scoped store:
    uwGuessrGameState          in-progress GameSnapshot (one slot for all modes)
    uwGuessrResults_<mode>     RoundResult list of the last completed match
    uwGuessrFreshStart         present when the next load must not resume

Layout of the durable store (daily challenge only, keyed by reference date):
    uwGuessrDaily_<date>           RoundResult list once the day is finished
    uwGuessrDailyProgress_<date>   in-progress GameSnapshot
    uwGuessrDailySubmitted_<date>  present once a score was sent to the leaderboard

Unreadable or stale entries are deleted and treated as missing, as are store
failures: a broken cache never stops a match from starting.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from ..errors import StorageError
from ..models.game import GameMode, GameSnapshot, LoadAction, RoundResult
from .daily import parse_date_key, retention_cutoff
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

IN_PROGRESS_KEY = "uwGuessrGameState"
FRESH_START_KEY = "uwGuessrFreshStart"
RESULTS_KEY_PREFIX = "uwGuessrResults_"
DAILY_RESULTS_PREFIX = "uwGuessrDaily_"
DAILY_PROGRESS_PREFIX = "uwGuessrDailyProgress_"
DAILY_SUBMITTED_PREFIX = "uwGuessrDailySubmitted_"

DAILY_PREFIXES = (DAILY_RESULTS_PREFIX, DAILY_PROGRESS_PREFIX, DAILY_SUBMITTED_PREFIX)

_results_adapter = TypeAdapter(List[RoundResult])


def migrate_snapshot(data: dict) -> Optional[dict]:
    """Bring a decoded snapshot up to SNAPSHOT_VERSION, or None if it cannot be."""
    version = data.get("version", 0)
    if version == 0:
        # Unversioned blob: {gameState, images, mode}
        data = {**data, "version": 1}
        version = 1
    if version != SNAPSHOT_VERSION:
        return None
    return data


def parse_snapshot(raw: str) -> Optional[GameSnapshot]:
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    data = migrate_snapshot(data)
    if data is None:
        return None
    try:
        return GameSnapshot.model_validate(data)
    except ValidationError:
        return None


def parse_results(raw: str) -> Optional[List[RoundResult]]:
    try:
        return _results_adapter.validate_json(raw)
    except ValidationError:
        return None


def dump_results(results: List[RoundResult]) -> str:
    return _results_adapter.dump_json(results, by_alias=True).decode()


@dataclass
class LoadPlan:
    """What a match load should do, decided before any photo fetch is applied."""
    action: LoadAction
    snapshot: Optional[GameSnapshot] = None
    results: List[RoundResult] = field(default_factory=list)


class SessionPersistence:
    def __init__(
        self,
        session_store: KeyValueStore,
        durable_store: KeyValueStore,
        retention_days: int = 7,
    ):
        self.session_store = session_store
        self.durable_store = durable_store
        self.retention_days = retention_days

    # Store access; failures degrade to cache misses

    async def _read(self, store: KeyValueStore, key: str) -> Optional[str]:
        try:
            return await store.get(key)
        except StorageError as e:
            logger.warning("Storage read failed, treating as missing: %s", e)
            return None

    async def _write(self, store: KeyValueStore, key: str, value: str) -> bool:
        try:
            await store.set(key, value)
            return True
        except StorageError as e:
            logger.warning("Storage write failed: %s", e)
            return False

    async def _remove(self, store: KeyValueStore, key: str) -> None:
        try:
            await store.delete(key)
        except StorageError as e:
            logger.warning("Storage delete failed: %s", e)

    async def _read_snapshot(self, store: KeyValueStore, key: str) -> Optional[GameSnapshot]:
        raw = await self._read(store, key)
        if raw is None:
            return None
        snapshot = parse_snapshot(raw)
        if snapshot is None:
            logger.warning("Discarding unreadable snapshot under %s", key)
            await self._remove(store, key)
        return snapshot

    async def _read_results(self, store: KeyValueStore, key: str) -> Optional[List[RoundResult]]:
        raw = await self._read(store, key)
        if raw is None:
            return None
        results = parse_results(raw)
        if results is None:
            logger.warning("Discarding unreadable results under %s", key)
            await self._remove(store, key)
        return results

    # In-progress match

    async def save_progress(self, snapshot: GameSnapshot) -> None:
        snapshot = snapshot.model_copy(update={"version": SNAPSHOT_VERSION})
        payload = snapshot.model_dump_json(by_alias=True)
        await self._write(self.session_store, IN_PROGRESS_KEY, payload)
        if snapshot.mode == GameMode.DAILY and snapshot.date:
            await self._write(self.durable_store, DAILY_PROGRESS_PREFIX + snapshot.date, payload)

    async def load_current(self) -> Optional[GameSnapshot]:
        """The tab's in-progress snapshot, whatever its mode."""
        return await self._read_snapshot(self.session_store, IN_PROGRESS_KEY)

    async def load_progress(self, mode: GameMode, today: str) -> Optional[GameSnapshot]:
        """A resumable snapshot for ``mode``. Daily snapshots only count for ``today``."""
        snapshot = await self.load_current()
        if snapshot is not None and snapshot.mode == mode:
            if mode != GameMode.DAILY or snapshot.date == today:
                return snapshot
        if mode == GameMode.DAILY:
            return await self._read_snapshot(self.durable_store, DAILY_PROGRESS_PREFIX + today)
        return None

    async def clear_progress(self, mode: GameMode, date: Optional[str] = None) -> None:
        await self._remove(self.session_store, IN_PROGRESS_KEY)
        if mode == GameMode.DAILY and date:
            await self._remove(self.durable_store, DAILY_PROGRESS_PREFIX + date)

    # Completed matches

    async def complete_match(
        self,
        mode: GameMode,
        results: List[RoundResult],
        date: Optional[str] = None,
    ) -> None:
        payload = dump_results(results)
        await self._write(self.session_store, RESULTS_KEY_PREFIX + mode.value, payload)
        if mode == GameMode.DAILY and date:
            await self._write(self.durable_store, DAILY_RESULTS_PREFIX + date, payload)
        await self.clear_progress(mode, date)
        logger.info(
            "Completed %s match (%s) with %d points",
            mode.value, date or "-", sum(r.score for r in results)
        )

    async def load_completed(self, mode: GameMode) -> Optional[List[RoundResult]]:
        return await self._read_results(self.session_store, RESULTS_KEY_PREFIX + mode.value)

    async def load_daily_results(self, date: str) -> Optional[List[RoundResult]]:
        return await self._read_results(self.durable_store, DAILY_RESULTS_PREFIX + date)

    # Flags

    async def mark_fresh_start(self) -> None:
        await self._write(self.session_store, FRESH_START_KEY, "true")

    async def has_fresh_start(self) -> bool:
        return await self._read(self.session_store, FRESH_START_KEY) is not None

    async def clear_fresh_start(self) -> None:
        await self._remove(self.session_store, FRESH_START_KEY)

    async def mark_daily_submitted(self, date: str) -> None:
        await self._write(self.durable_store, DAILY_SUBMITTED_PREFIX + date, "true")

    async def has_submitted_daily(self, date: str) -> bool:
        return await self._read(self.durable_store, DAILY_SUBMITTED_PREFIX + date) is not None

    # Load decision and housekeeping

    async def resolve_load(self, mode: GameMode, today: str) -> LoadPlan:
        """Decide between showing results, resuming and starting fresh.

        A finished daily challenge always wins. The fresh-start flag then
        discards the tab's in-progress slot; today's durable daily progress
        survives it, since the daily challenge cannot be restarted.
        """
        if mode == GameMode.DAILY:
            completed = await self.load_daily_results(today)
            if completed:
                return LoadPlan(LoadAction.SHOW_RESULTS, results=completed)

        snapshot = None
        if await self.has_fresh_start():
            await self._remove(self.session_store, IN_PROGRESS_KEY)
            if mode == GameMode.DAILY:
                snapshot = await self._read_snapshot(
                    self.durable_store, DAILY_PROGRESS_PREFIX + today
                )
        else:
            snapshot = await self.load_progress(mode, today)

        if snapshot is not None:
            return LoadPlan(LoadAction.RESUME, snapshot=snapshot)

        if mode == GameMode.DAILY:
            await self.mark_fresh_start()
        return LoadPlan(LoadAction.FRESH)

    async def sweep_daily_history(self, today: str) -> int:
        """Delete durable daily entries older than the retention window."""
        cutoff = retention_cutoff(today, self.retention_days)
        removed = 0
        for prefix in DAILY_PREFIXES:
            try:
                keys = await self.durable_store.keys(prefix)
            except StorageError as e:
                logger.warning("Daily sweep skipped: %s", e)
                return removed
            for key in keys:
                day = parse_date_key(key[len(prefix):])
                if day is not None and day < cutoff:
                    await self._remove(self.durable_store, key)
                    removed += 1
        if removed:
            logger.debug("Swept %d daily entries older than %s", removed, cutoff)
        return removed
