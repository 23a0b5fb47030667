from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from .services.game_service import GameService
from .services.persistence import SessionPersistence
from .services.storage import DatabaseStore
from .services.submission import DailyLeaderboard


async def get_session_id(x_session_id: Optional[str] = Header(None)) -> str:
    """Tab-scoped session identifier sent by the client."""
    if not x_session_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing X-Session-Id header."
        )
    return x_session_id


async def get_player_id(
    session_id: str = Depends(get_session_id),
    x_player_id: Optional[str] = Header(None)
) -> str:
    """Durable player identifier; falls back to the session id."""
    return x_player_id or session_id


def get_persistence(
    request: Request,
    session_id: str = Depends(get_session_id),
    player_id: str = Depends(get_player_id),
) -> SessionPersistence:
    state = request.app.state
    return SessionPersistence(
        session_store=state.session_stores.get(session_id),
        durable_store=DatabaseStore(state.session_factory, namespace=player_id),
        retention_days=state.settings.DAILY_RETENTION_DAYS,
    )


def get_game_service(
    request: Request,
    persistence: SessionPersistence = Depends(get_persistence),
) -> GameService:
    state = request.app.state
    return GameService(
        persistence,
        state.photo_provider,
        today=state.today,
        rounds_per_game=state.settings.ROUNDS_PER_GAME,
        clock=state.clock,
        max_name_length=state.settings.MAX_NAME_LENGTH,
    )


def get_leaderboard(request: Request) -> DailyLeaderboard:
    return request.app.state.leaderboard


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(request: Request) -> None:
    """Throttle score submissions per client address."""
    if not request.app.state.rate_limiter.hit(f"daily_{client_ip(request)}"):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many submissions. Try again in a minute."
        )
