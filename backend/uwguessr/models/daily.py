from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional
from pydantic.alias_generators import to_camel

MAX_DAILY_SCORE = 25000
MAX_TIME_TAKEN_S = 24 * 60 * 60


class ScoreSubmission(BaseModel):
    """Daily leaderboard submission, as accepted by the score endpoint."""
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    name: str = Field(min_length=1, max_length=30)
    score: int = Field(ge=0, le=MAX_DAILY_SCORE)
    time_taken: int = Field(ge=0, le=MAX_TIME_TAKEN_S)
    auth_token: str = Field(min_length=1)

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class DailySubmitRequest(BaseModel):
    """Request to put the finished daily challenge on the leaderboard."""
    name: str
    auth_token: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class LeaderboardEntry(BaseModel):
    """Leaderboard entry."""
    name: str
    score: int
    time_taken: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class SubmissionOutcome(BaseModel):
    """Result of a score submission. ``error`` is set when it was refused."""
    ok: bool
    entry: Optional[LeaderboardEntry] = None
    error: Optional[str] = None
    reason: Optional[str] = None


class LeaderboardResponse(BaseModel):
    """Response with one day's leaderboard."""
    date: str
    entries: List[LeaderboardEntry]


class DailySelectionResponse(BaseModel):
    """Response with the photo selection of a day."""
    date: str
    photo_ids: List[str]

    class Config:
        alias_generator = to_camel
        populate_by_name = True
