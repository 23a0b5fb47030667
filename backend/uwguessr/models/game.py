from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class GameMode(str, Enum):
    RANDOM = "random"
    DAILY = "daily"


class GamePhase(str, Enum):
    PLAYING = "playing"
    GUESSING = "guessing"
    RESULTS = "results"
    COMPLETE = "complete"


class Photo(BaseModel):
    """A campus photo as served by the photo provider."""
    id: str
    url: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    building: Optional[str] = None
    floor: Optional[int] = None
    added_by: Optional[str] = None
    created_at: Optional[str] = None
    status: Optional[str] = None

    class Config:
        from_attributes = True

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None


class Coordinate(BaseModel):
    """A point on the map, in degrees."""
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

    class Config:
        frozen = True


class RoundResult(BaseModel):
    """Outcome of one round. Never modified once built."""
    round: int = Field(ge=1)
    photo: Photo
    user_guess: Coordinate
    actual_location: Coordinate
    distance: float = Field(ge=0)
    score: int = Field(ge=0, le=5000)
    time_spent: int = Field(ge=0)

    class Config:
        frozen = True
        alias_generator = to_camel
        populate_by_name = True


class GameState(BaseModel):
    """The mutable match aggregate owned by GameStateMachine."""
    current_round: int = 1
    total_score: int = 0
    round_score: int = 0
    user_guess: Optional[Coordinate] = None
    is_map_expanded: bool = False
    show_results: bool = False
    game_phase: GamePhase = GamePhase.PLAYING
    round_results: List[RoundResult] = []
    start_time: Optional[int] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class GameSnapshot(BaseModel):
    """Serialized in-progress match, as written to the session stores."""
    version: int
    game_state: GameState
    images: List[Photo]
    mode: GameMode
    date: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class PhotoView(BaseModel):
    """Photo sent to the player. Coordinates stay hidden until the round is scored."""
    id: str
    url: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    building: Optional[str] = None
    floor: Optional[int] = None


class MatchView(BaseModel):
    """Response with the current match state."""
    mode: GameMode
    date: Optional[str] = None
    rounds_per_game: int
    state: GameState
    photo: Optional[PhotoView] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class LoadAction(str, Enum):
    RESUME = "resume"
    FRESH = "fresh"
    SHOW_RESULTS = "show_results"


class LoadResponse(BaseModel):
    """Response after loading a match for a game mode."""
    action: LoadAction
    mode: GameMode
    date: Optional[str] = None
    match: Optional[MatchView] = None
    results: List[RoundResult] = []

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class GuessRequest(BaseModel):
    """Request for placing a guess on the map."""
    lat: float
    lng: float


class ResultsResponse(BaseModel):
    """Response with the results of the last completed match for a mode."""
    mode: GameMode
    total_score: int
    results: List[RoundResult]

    class Config:
        alias_generator = to_camel
        populate_by_name = True
