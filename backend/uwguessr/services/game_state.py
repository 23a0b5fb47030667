"""Round sequencing and phase transitions for a single match.

GameStateMachine is the only code that mutates a GameState. Every operation
is total: an action that does not make sense in the current phase (submitting
without a guess, moving on before the round is scored, anything after the
match is complete) leaves the state untouched and reports it through the
return value instead of raising.
"""

import logging
import math
import time
from typing import Callable, Optional

from pydantic import ValidationError

from ..models.game import Coordinate, GamePhase, GameState, Photo, RoundResult
from .scoring import build_round_result

logger = logging.getLogger(__name__)

ROUNDS_PER_GAME = 5


def now_ms() -> int:
    return int(time.time() * 1000)


class GameStateMachine:
    """Owns one GameState and applies player actions to it."""

    def __init__(
        self,
        state: Optional[GameState] = None,
        rounds_per_game: int = ROUNDS_PER_GAME,
        clock: Callable[[], int] = now_ms,
    ):
        self.rounds_per_game = rounds_per_game
        self._clock = clock
        self._state = GameState()
        if state is not None:
            self.restore_game_state(state)

    @property
    def state(self) -> GameState:
        """A copy of the current state; edits to it do not reach the machine."""
        return self._state.model_copy(deep=True)

    @property
    def is_complete(self) -> bool:
        return self._state.game_phase == GamePhase.COMPLETE

    def place_guess(self, lat: float, lng: float) -> bool:
        """Drop or move the pin. Refused once the round has been scored."""
        state = self._state
        if state.game_phase not in (GamePhase.PLAYING, GamePhase.GUESSING):
            return False
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return False
        try:
            guess = Coordinate(lat=lat, lng=lng)
        except ValidationError:
            return False

        state.user_guess = guess
        state.game_phase = GamePhase.GUESSING
        return True

    def submit_guess(self, photo: Photo) -> Optional[RoundResult]:
        """Score the placed guess against ``photo``.

        Returns the new RoundResult, or None when there is nothing to submit.
        """
        state = self._state
        if state.game_phase != GamePhase.GUESSING or state.user_guess is None:
            return None
        if not photo.has_location:
            logger.debug("Ignoring submit for photo %s without a location", photo.id)
            return None

        time_spent = self._clock() - state.start_time if state.start_time is not None else 0
        try:
            result = build_round_result(state.current_round, photo, state.user_guess, time_spent)
        except ValidationError:
            logger.warning("Photo %s has an invalid location, submit ignored", photo.id)
            return None

        state.round_results = [*state.round_results, result]
        state.total_score += result.score
        state.round_score = result.score
        state.show_results = True
        state.game_phase = GamePhase.RESULTS
        return result

    def next_round(self) -> bool:
        """Leave the results screen for the next round, or finish the match."""
        state = self._state
        if state.game_phase != GamePhase.RESULTS:
            return False

        previous_round = state.current_round
        state.current_round = previous_round + 1
        state.user_guess = None
        state.show_results = False
        state.game_phase = (
            GamePhase.COMPLETE if previous_round >= self.rounds_per_game else GamePhase.PLAYING
        )
        state.start_time = self._clock()
        state.round_score = 0
        return True

    def start_round(self) -> bool:
        """Start the round timer once the round's photo is available."""
        state = self._state
        if state.game_phase != GamePhase.PLAYING:
            return False
        state.start_time = self._clock()
        return True

    def toggle_map_expanded(self) -> None:
        self._state.is_map_expanded = not self._state.is_map_expanded

    def reset_game(self) -> None:
        self._state = GameState()

    def restore_game_state(self, snapshot: GameState) -> bool:
        """Replace the whole state with a saved one, if it is self-consistent."""
        if not self._is_consistent(snapshot):
            logger.warning("Refusing to restore an inconsistent game state")
            return False
        self._state = snapshot.model_copy(deep=True)
        return True

    def _is_consistent(self, state: GameState) -> bool:
        results = state.round_results
        if state.total_score != sum(r.score for r in results):
            return False
        if [r.round for r in results] != list(range(1, len(results) + 1)):
            return False

        phase = state.game_phase
        if phase == GamePhase.COMPLETE:
            return len(results) == self.rounds_per_game
        if not 1 <= state.current_round <= self.rounds_per_game:
            return False

        scored = phase == GamePhase.RESULTS
        if len(results) != state.current_round - (0 if scored else 1):
            return False
        if phase == GamePhase.PLAYING and state.user_guess is not None:
            return False
        if phase == GamePhase.GUESSING and state.user_guess is None:
            return False
        return True
