from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..dependencies import enforce_rate_limit, get_leaderboard
from ..errors import PhotoProviderError
from ..models.daily import (
    DailySelectionResponse, LeaderboardResponse, ScoreSubmission, SubmissionOutcome
)
from ..services.photos import DatabasePhotoProvider
from ..services.submission import DailyLeaderboard
from .game import SUBMISSION_STATUS

router = APIRouter(prefix="/daily", tags=["Daily"])


@router.post(
    "/scores",
    response_model=SubmissionOutcome,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)]
)
async def submit_score(
    submission: ScoreSubmission,
    leaderboard: DailyLeaderboard = Depends(get_leaderboard)
):
    """Record a daily challenge score."""
    outcome = await leaderboard.submit(submission)
    if not outcome.ok:
        raise HTTPException(
            status_code=SUBMISSION_STATUS.get(outcome.reason, status.HTTP_400_BAD_REQUEST),
            detail=outcome.error
        )
    return outcome


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard_entries(
    request: Request,
    date: Optional[str] = None,
    limit: int = 50,
    leaderboard: DailyLeaderboard = Depends(get_leaderboard)
):
    """Get one day's leaderboard, today's by default."""
    date = date or request.app.state.today()
    entries = await leaderboard.entries(date, limit=limit)
    return LeaderboardResponse(date=date, entries=entries)


@router.post("/generate", response_model=DailySelectionResponse)
async def generate_daily(request: Request):
    """Make sure today's photo selection exists."""
    provider = request.app.state.photo_provider
    if not isinstance(provider, DatabasePhotoProvider):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Daily photos are selected by the remote photo provider."
        )
    today = request.app.state.today()
    try:
        photo_ids = await provider.ensure_daily_selection(today, request.app.state.settings.ROUNDS_PER_GAME)
    except PhotoProviderError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return DailySelectionResponse(date=today, photo_ids=photo_ids)
