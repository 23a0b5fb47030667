from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import enforce_rate_limit, get_game_service, get_leaderboard
from ..errors import NoActiveMatchError, PhotoProviderError
from ..models.daily import DailySubmitRequest, SubmissionOutcome
from ..models.game import GameMode, GuessRequest, LoadResponse, MatchView, ResultsResponse
from ..services.game_service import GameService
from ..services.submission import DailyLeaderboard

router = APIRouter(prefix="/game", tags=["Game"])

SUBMISSION_STATUS = {
    "duplicate": status.HTTP_409_CONFLICT,
    "stale_date": status.HTTP_400_BAD_REQUEST,
    "missing_results": status.HTTP_400_BAD_REQUEST,
    "invalid": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def no_active_game(e: NoActiveMatchError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{mode}/load", response_model=LoadResponse)
async def load_game(mode: GameMode, service: GameService = Depends(get_game_service)):
    """Resume the saved match for a mode, start a new one, or point to today's results."""
    try:
        return await service.load_match(mode)
    except PhotoProviderError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.post("/{mode}/new", response_model=LoadResponse)
async def new_game(mode: GameMode, service: GameService = Depends(get_game_service)):
    """Start a new match, discarding the saved one."""
    try:
        return await service.new_match(mode)
    except PhotoProviderError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.get("/state", response_model=MatchView)
async def get_state(service: GameService = Depends(get_game_service)):
    """Get the current match."""
    try:
        return await service.current()
    except NoActiveMatchError as e:
        raise no_active_game(e)


@router.post("/start-round", response_model=MatchView)
async def start_round(service: GameService = Depends(get_game_service)):
    """Start the round timer once the photo is on screen."""
    try:
        return await service.start_round()
    except NoActiveMatchError as e:
        raise no_active_game(e)


@router.post("/guess", response_model=MatchView)
async def place_guess(guess: GuessRequest, service: GameService = Depends(get_game_service)):
    """Place or move the pin for the current round."""
    try:
        return await service.place_guess(guess.lat, guess.lng)
    except NoActiveMatchError as e:
        raise no_active_game(e)


@router.post("/submit", response_model=MatchView)
async def submit_guess(service: GameService = Depends(get_game_service)):
    """Score the placed pin for the current round."""
    try:
        return await service.submit_guess()
    except NoActiveMatchError as e:
        raise no_active_game(e)


@router.post("/next", response_model=MatchView)
async def next_round(service: GameService = Depends(get_game_service)):
    """Move on to the next round, or finish the match after the last one."""
    try:
        return await service.next_round()
    except NoActiveMatchError as e:
        raise no_active_game(e)


@router.post("/toggle-map", response_model=MatchView)
async def toggle_map(service: GameService = Depends(get_game_service)):
    try:
        return await service.toggle_map()
    except NoActiveMatchError as e:
        raise no_active_game(e)


@router.get("/results/{mode}", response_model=ResultsResponse)
async def get_results(mode: GameMode, service: GameService = Depends(get_game_service)):
    """Get the rounds of the last completed match for a mode."""
    results = await service.completed_results(mode)
    if not results:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No completed game found."
        )
    return ResultsResponse(mode=mode, total_score=sum(r.score for r in results), results=results)


@router.post(
    "/daily/submit",
    response_model=SubmissionOutcome,
    dependencies=[Depends(enforce_rate_limit)]
)
async def submit_daily(
    request: DailySubmitRequest,
    service: GameService = Depends(get_game_service),
    leaderboard: DailyLeaderboard = Depends(get_leaderboard)
):
    """Put today's finished daily challenge on the leaderboard."""
    outcome = await service.submit_daily_score(request.name, request.auth_token, leaderboard)
    if not outcome.ok:
        raise HTTPException(
            status_code=SUBMISSION_STATUS.get(outcome.reason, status.HTTP_400_BAD_REQUEST),
            detail=outcome.error
        )
    return outcome
