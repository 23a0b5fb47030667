import json
import logging
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database.models import DailyPhotoCache, Photo as PhotoRow
from ..errors import PhotoProviderError
from ..models.game import GameMode, Photo
from .daily import retention_cutoff

logger = logging.getLogger(__name__)

PHOTO_FIELDS = "id url lat lng building floor added_by created_at status"

GRAPHQL_QUERIES = {
    GameMode.RANDOM: (
        "randomPhotos",
        "query GetRandomPhotos($count: Int!) { randomPhotos(count: $count) { %s } }" % PHOTO_FIELDS,
    ),
    GameMode.DAILY: (
        "dailyPhotos",
        "query GetDailyPhotos($count: Int!) { dailyPhotos(count: $count) { %s } }" % PHOTO_FIELDS,
    ),
}


def require_playable(photos: List[Photo], count: int) -> List[Photo]:
    """Keep photos that can be scored; fail if fewer than ``count`` remain."""
    playable = [p for p in photos if p.has_location]
    if len(playable) < count:
        raise PhotoProviderError(
            f"Not enough photos with a location. Found {len(playable)}, need {count}."
        )
    return playable[:count]


class PhotoProvider(ABC):
    """Supplies the ordered photos for a match."""

    @abstractmethod
    async def get_photos(self, mode: GameMode, count: int, date: str) -> List[Photo]:
        """
        Photos for one match, in round order.

        Args:
            mode: random or daily
            count: Number of rounds
            date: Reference date of the daily challenge

        Returns:
            List of photos, each with a location

        Raises:
            PhotoProviderError: The photos could not be fetched
        """


class DatabasePhotoProvider(PhotoProvider):
    """Serves approved photos from the local photos table."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        retention_days: int = 7,
        rng: Optional[random.Random] = None,
    ):
        self.session_factory = session_factory
        self.retention_days = retention_days
        self.rng = rng or random.Random()

    @staticmethod
    def _to_photo(row: PhotoRow) -> Photo:
        return Photo(
            id=row.id,
            url=row.url,
            lat=row.lat,
            lng=row.lng,
            building=row.building,
            floor=row.floor,
            added_by=row.added_by,
            created_at=row.created_at.isoformat() if row.created_at else None,
            status=row.status,
        )

    async def _approved(self, session: AsyncSession) -> List[PhotoRow]:
        result = await session.execute(
            select(PhotoRow).where(
                PhotoRow.status == "approved",
                PhotoRow.lat.is_not(None),
                PhotoRow.lng.is_not(None)
            ).order_by(PhotoRow.id)
        )
        return list(result.scalars().all())

    async def get_photos(self, mode: GameMode, count: int, date: str) -> List[Photo]:
        try:
            if mode == GameMode.DAILY:
                photos = await self.daily_photos(date, count)
            else:
                async with self.session_factory() as session:
                    rows = await self._approved(session)
                self.rng.shuffle(rows)
                photos = [self._to_photo(r) for r in rows[:count]]
        except SQLAlchemyError as e:
            logger.error("Photo query failed: %s", e)
            raise PhotoProviderError(f"Error loading photos: {e}") from e
        return require_playable(photos, count)

    async def daily_photos(self, date: str, count: int) -> List[Photo]:
        """The photos of ``date``'s challenge, choosing them on first request."""
        photo_ids = await self.ensure_daily_selection(date, count)
        async with self.session_factory() as session:
            result = await session.execute(select(PhotoRow).where(PhotoRow.id.in_(photo_ids)))
            by_id = {row.id: row for row in result.scalars().all()}
        return [self._to_photo(by_id[pid]) for pid in photo_ids if pid in by_id]

    async def ensure_daily_selection(self, date: str, count: int) -> List[str]:
        """
        Return the photo ids stored for ``date``, picking and storing them if missing.

        Also prunes selections older than the retention window.

        Raises:
            PhotoProviderError: Too few approved photos, or the database failed
        """
        try:
            return await self._select_daily(date, count)
        except SQLAlchemyError as e:
            logger.error("Daily photo selection failed: %s", e)
            raise PhotoProviderError(f"Error selecting daily photos: {e}") from e

    async def _select_daily(self, date: str, count: int) -> List[str]:
        async with self.session_factory() as session:
            existing = await session.get(DailyPhotoCache, date)
            if existing:
                return json.loads(existing.photo_ids)

            rows = await self._approved(session)
            if len(rows) < count:
                raise PhotoProviderError(
                    f"Not enough approved photos available. Found {len(rows)}, need {count}."
                )
            photo_ids = [row.id for row in self.rng.sample(rows, count)]
            session.add(DailyPhotoCache(date=date, photo_ids=json.dumps(photo_ids)))
            try:
                await session.commit()
            except IntegrityError:
                # Another request stored the day's selection first
                await session.rollback()
                existing = await session.get(DailyPhotoCache, date)
                return json.loads(existing.photo_ids)

            cutoff = retention_cutoff(date, self.retention_days).isoformat()
            await session.execute(delete(DailyPhotoCache).where(DailyPhotoCache.date < cutoff))
            await session.commit()

        logger.info("Generated daily photo selection for %s", date)
        return photo_ids


class RemotePhotoProvider(PhotoProvider):
    """Client for a GraphQL photo service exposing randomPhotos and dailyPhotos."""

    def __init__(self, api_url: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.transport = transport
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json"
        }

    async def _query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(
                    self.api_url,
                    headers=self.headers,
                    json={"query": query, "variables": variables}
                )
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPStatusError as e:
                raise PhotoProviderError(f"Error fetching photos: {str(e)}") from e
            except httpx.RequestError as e:
                raise PhotoProviderError(f"Cannot reach photo provider: {str(e)}") from e
            except ValueError as e:
                raise PhotoProviderError(f"Malformed photo provider response: {str(e)}") from e

        if not isinstance(payload, dict):
            raise PhotoProviderError("Malformed photo provider response: expected a JSON object")
        errors = payload.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) else errors
            message = first.get("message", "unknown error") if isinstance(first, dict) else str(first)
            raise PhotoProviderError(f"Photo provider error: {message}")
        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise PhotoProviderError("Malformed photo provider response: data is not an object")
        return data

    async def get_photos(self, mode: GameMode, count: int, date: str) -> List[Photo]:
        field, query = GRAPHQL_QUERIES[mode]
        data = await self._query(query, {"count": count})
        items = data.get(field) or []
        if not isinstance(items, list):
            raise PhotoProviderError(f"Malformed photo provider response: {field} is not a list")
        try:
            photos = [Photo.model_validate(item) for item in items]
        except ValidationError as e:
            raise PhotoProviderError(f"Malformed photo record: {e}") from e
        return require_playable(photos, count)
