"""Runs a player's match across requests.

Each call restores the state machine from the tab's in-progress snapshot,
applies one action and writes the snapshot back, so a reload resumes exactly
where the player left off.
"""

import logging
from typing import Callable, List, Optional

from ..errors import NoActiveMatchError, SubmissionError
from ..models.daily import SubmissionOutcome
from ..models.game import (
    GameMode, GamePhase, GameSnapshot, GameState, LoadAction, LoadResponse,
    MatchView, Photo, PhotoView, RoundResult
)
from .game_state import GameStateMachine, now_ms
from .persistence import SNAPSHOT_VERSION, SessionPersistence
from .photos import PhotoProvider
from .submission import DailyLeaderboard, build_score_submission

logger = logging.getLogger(__name__)


def photo_view(photo: Photo, reveal: bool) -> PhotoView:
    if reveal:
        return PhotoView(
            id=photo.id, url=photo.url, lat=photo.lat, lng=photo.lng,
            building=photo.building, floor=photo.floor
        )
    return PhotoView(id=photo.id, url=photo.url)


class GameService:
    def __init__(
        self,
        persistence: SessionPersistence,
        photo_provider: PhotoProvider,
        today: Callable[[], str],
        rounds_per_game: int = 5,
        clock: Callable[[], int] = now_ms,
        max_name_length: int = 20,
    ):
        self.persistence = persistence
        self.photo_provider = photo_provider
        self.today = today
        self.rounds_per_game = rounds_per_game
        self.clock = clock
        self.max_name_length = max_name_length

    def _machine(self, state: Optional[GameState] = None) -> GameStateMachine:
        return GameStateMachine(state, rounds_per_game=self.rounds_per_game, clock=self.clock)

    def _view(self, snapshot: GameSnapshot) -> MatchView:
        state = snapshot.game_state
        photo = None
        if state.game_phase != GamePhase.COMPLETE and state.current_round <= len(snapshot.images):
            reveal = state.game_phase == GamePhase.RESULTS
            photo = photo_view(snapshot.images[state.current_round - 1], reveal)
        return MatchView(
            mode=snapshot.mode,
            date=snapshot.date,
            rounds_per_game=self.rounds_per_game,
            state=state,
            photo=photo,
        )

    def _usable(self, snapshot: GameSnapshot) -> bool:
        if len(snapshot.images) < self.rounds_per_game:
            return False
        machine = self._machine()
        return machine.restore_game_state(snapshot.game_state)

    # Loading

    async def load_match(self, mode: GameMode) -> LoadResponse:
        """Resume, start fresh or redirect to results, in that order of checks.

        Raises:
            PhotoProviderError: A fresh match was needed and no photos could be fetched
        """
        today = self.today()
        await self.persistence.sweep_daily_history(today)
        plan = await self.persistence.resolve_load(mode, today)

        if plan.action == LoadAction.SHOW_RESULTS:
            return LoadResponse(action=plan.action, mode=mode, date=today, results=plan.results)

        if plan.action == LoadAction.RESUME and self._usable(plan.snapshot):
            await self.persistence.save_progress(plan.snapshot)
            await self.persistence.clear_fresh_start()
            return LoadResponse(
                action=LoadAction.RESUME, mode=mode, date=plan.snapshot.date,
                match=self._view(plan.snapshot)
            )
        if plan.action == LoadAction.RESUME:
            logger.warning("Saved %s match is not resumable, starting fresh", mode.value)

        snapshot = await self._start_fresh(mode, today)
        return LoadResponse(action=LoadAction.FRESH, mode=mode, date=snapshot.date, match=self._view(snapshot))

    async def new_match(self, mode: GameMode) -> LoadResponse:
        """Load ``mode`` ignoring any saved random match ("play again")."""
        await self.persistence.mark_fresh_start()
        return await self.load_match(mode)

    async def _start_fresh(self, mode: GameMode, today: str) -> GameSnapshot:
        images = await self.photo_provider.get_photos(mode, self.rounds_per_game, today)
        machine = self._machine()
        machine.start_round()
        snapshot = GameSnapshot(
            version=SNAPSHOT_VERSION,
            game_state=machine.state,
            images=images,
            mode=mode,
            date=today if mode == GameMode.DAILY else None,
        )
        await self.persistence.save_progress(snapshot)
        await self.persistence.clear_fresh_start()
        logger.info("Started %s match", mode.value)
        return snapshot

    # In-match actions

    async def _current(self) -> GameSnapshot:
        snapshot = await self.persistence.load_current()
        if snapshot is None or not self._usable(snapshot):
            raise NoActiveMatchError("No active game found. Start a new game.")
        return snapshot

    async def _apply(self, snapshot: GameSnapshot, machine: GameStateMachine) -> MatchView:
        snapshot = snapshot.model_copy(update={"game_state": machine.state})
        if machine.is_complete:
            await self.persistence.complete_match(
                snapshot.mode, snapshot.game_state.round_results, snapshot.date
            )
        else:
            await self.persistence.save_progress(snapshot)
        return self._view(snapshot)

    async def current(self) -> MatchView:
        return self._view(await self._current())

    async def start_round(self) -> MatchView:
        snapshot = await self._current()
        machine = self._machine(snapshot.game_state)
        if not machine.start_round():
            return self._view(snapshot)
        return await self._apply(snapshot, machine)

    async def place_guess(self, lat: float, lng: float) -> MatchView:
        snapshot = await self._current()
        machine = self._machine(snapshot.game_state)
        if not machine.place_guess(lat, lng):
            return self._view(snapshot)
        return await self._apply(snapshot, machine)

    async def submit_guess(self) -> MatchView:
        snapshot = await self._current()
        machine = self._machine(snapshot.game_state)
        photo = snapshot.images[snapshot.game_state.current_round - 1]
        if machine.submit_guess(photo) is None:
            return self._view(snapshot)
        return await self._apply(snapshot, machine)

    async def next_round(self) -> MatchView:
        snapshot = await self._current()
        machine = self._machine(snapshot.game_state)
        if not machine.next_round():
            return self._view(snapshot)
        return await self._apply(snapshot, machine)

    async def toggle_map(self) -> MatchView:
        snapshot = await self._current()
        machine = self._machine(snapshot.game_state)
        machine.toggle_map_expanded()
        return await self._apply(snapshot, machine)

    # Results

    async def completed_results(self, mode: GameMode) -> List[RoundResult]:
        results = await self.persistence.load_completed(mode)
        if not results and mode == GameMode.DAILY:
            results = await self.persistence.load_daily_results(self.today())
        return results or []

    async def submit_daily_score(
        self,
        name: str,
        auth_token: str,
        leaderboard: DailyLeaderboard,
    ) -> SubmissionOutcome:
        """Send today's finished daily challenge to the leaderboard."""
        today = self.today()
        if await self.persistence.has_submitted_daily(today):
            return SubmissionOutcome(
                ok=False,
                error="You already submitted a score today",
                reason="duplicate",
            )
        results = await self.persistence.load_daily_results(today)
        if not results:
            return SubmissionOutcome(
                ok=False,
                error="Your results are from a previous day or missing. "
                      "Please play today's daily challenge before submitting.",
                reason="missing_results",
            )
        try:
            submission = build_score_submission(
                results, name, today, auth_token, self.max_name_length
            )
        except SubmissionError as e:
            return SubmissionOutcome(ok=False, error=str(e), reason=e.reason)

        outcome = await leaderboard.submit(submission)
        if outcome.ok:
            await self.persistence.mark_daily_submitted(today)
        return outcome
