"""Key-value stores behind the session persistence layer.

Two scopes exist: a tab-scoped MemoryStore per client session, and a durable
DatabaseStore namespaced per player. Both expose the same async interface and
raise StorageError on failure.
"""

import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..database.models import StorageEntry
from ..errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String-keyed store of string values. Writes are last-write-wins."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def keys(self, prefix: str = "") -> List[str]:
        ...


class MemoryStore(KeyValueStore):
    """In-process store for one client session."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> List[str]:
        return [k for k in self._data if k.startswith(prefix)]


class DatabaseStore(KeyValueStore):
    """Durable store backed by the storage_entries table."""

    def __init__(self, session_factory: async_sessionmaker, namespace: str):
        self.session_factory = session_factory
        self.namespace = namespace

    async def get(self, key: str) -> Optional[str]:
        try:
            async with self.session_factory() as session:
                entry = await session.get(StorageEntry, (self.namespace, key))
                return entry.value if entry else None
        except SQLAlchemyError as e:
            raise StorageError(f"Error reading {key!r}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            async with self.session_factory() as session:
                entry = await session.get(StorageEntry, (self.namespace, key))
                if entry is None:
                    session.add(StorageEntry(namespace=self.namespace, key=key, value=value))
                else:
                    entry.value = value
                    entry.updated_at = datetime.utcnow()
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Error writing {key!r}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            async with self.session_factory() as session:
                await session.execute(
                    delete(StorageEntry).where(
                        StorageEntry.namespace == self.namespace,
                        StorageEntry.key == key
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Error deleting {key!r}: {e}") from e

    async def keys(self, prefix: str = "") -> List[str]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(StorageEntry.key).where(StorageEntry.namespace == self.namespace)
                )
                return [k for k in result.scalars().all() if k.startswith(prefix)]
        except SQLAlchemyError as e:
            raise StorageError(f"Error listing keys: {e}") from e


class SessionStoreRegistry:
    """Tab-scoped stores by session id, least recently used evicted first."""

    def __init__(self, max_sessions: int = 10000):
        self.max_sessions = max_sessions
        self._stores: "OrderedDict[str, MemoryStore]" = OrderedDict()

    def get(self, session_id: str) -> MemoryStore:
        store = self._stores.get(session_id)
        if store is None:
            store = MemoryStore()
            self._stores[session_id] = store
            while len(self._stores) > self.max_sessions:
                evicted, _ = self._stores.popitem(last=False)
                logger.debug("Evicted session store %s", evicted)
        else:
            self._stores.move_to_end(session_id)
        return store

    def __len__(self) -> int:
        return len(self._stores)
