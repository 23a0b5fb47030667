"""Daily leaderboard submissions.

``build_score_submission`` turns a finished daily challenge into a clean,
range-clamped payload; ``DailyLeaderboard`` is the receiving end and enforces
today's date, one entry per identity per day and the value ranges. Refusals
come back as a SubmissionOutcome, so a failed submission never touches the
player's stored results.
"""

import hashlib
import logging
from typing import Callable, List

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..database.models import DailyScore
from ..errors import SubmissionError
from ..models.daily import (
    MAX_DAILY_SCORE, MAX_TIME_TAKEN_S, LeaderboardEntry, ScoreSubmission, SubmissionOutcome
)
from ..models.game import RoundResult
from .sanitizer import sanitize_name

logger = logging.getLogger(__name__)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def identity_for(auth_token: str) -> str:
    """Stable leaderboard identity derived from the player's token."""
    return hashlib.sha256(auth_token.encode("utf-8")).hexdigest()


def build_score_submission(
    results: List[RoundResult],
    name: str,
    date: str,
    auth_token: str,
    max_name_length: int = 20,
) -> ScoreSubmission:
    clean_name = sanitize_name(name, max_name_length)
    if not clean_name:
        raise SubmissionError("Enter a name to join the leaderboard", "invalid")
    if not auth_token:
        raise SubmissionError("Authentication token not ready", "invalid")

    total_score = sum(r.score for r in results)
    time_taken_s = sum(r.time_spent for r in results) // 1000
    try:
        return ScoreSubmission(
            date=date,
            name=clean_name,
            score=clamp(total_score, 0, MAX_DAILY_SCORE),
            time_taken=clamp(time_taken_s, 0, MAX_TIME_TAKEN_S),
            auth_token=auth_token,
        )
    except ValidationError as e:
        raise SubmissionError(f"Invalid score submission: {e}", "invalid") from e


class DailyLeaderboard:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        today: Callable[[], str],
        max_name_length: int = 20,
    ):
        self.session_factory = session_factory
        self.today = today
        self.max_name_length = max_name_length

    async def submit(self, submission: ScoreSubmission) -> SubmissionOutcome:
        try:
            entry = await self._record(submission)
        except SubmissionError as e:
            logger.info("Score submission for %s refused (%s): %s", submission.date, e.reason, e)
            return SubmissionOutcome(ok=False, error=str(e), reason=e.reason)
        return SubmissionOutcome(ok=True, entry=entry)

    async def _record(self, submission: ScoreSubmission) -> LeaderboardEntry:
        if submission.date != self.today():
            raise SubmissionError(
                "Your results are from a previous day. Play today's daily challenge first.",
                "stale_date"
            )
        name = sanitize_name(submission.name, self.max_name_length)
        if not name:
            raise SubmissionError("Enter a name to join the leaderboard", "invalid")
        user_id = identity_for(submission.auth_token)

        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(DailyScore.id).where(
                        DailyScore.date == submission.date,
                        DailyScore.user_id == user_id
                    )
                )
                if result.scalar_one_or_none() is not None:
                    raise SubmissionError("You already submitted a score today", "duplicate")

                row = DailyScore(
                    date=submission.date,
                    name=name,
                    score=clamp(submission.score, 0, MAX_DAILY_SCORE),
                    time_taken=clamp(submission.time_taken, 0, MAX_TIME_TAKEN_S),
                    user_id=user_id
                )
                session.add(row)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    raise SubmissionError("You already submitted a score today", "duplicate")
                return LeaderboardEntry.model_validate(row)
        except SQLAlchemyError as e:
            logger.error("Could not record daily score: %s", e)
            raise SubmissionError("Could not record your score, try again later", "unavailable") from e

    async def entries(self, date: str, limit: int = 50) -> List[LeaderboardEntry]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DailyScore).where(
                    DailyScore.date == date
                ).order_by(
                    DailyScore.score.desc(), DailyScore.time_taken, DailyScore.created_at
                ).limit(limit)
            )
            return [LeaderboardEntry.model_validate(row) for row in result.scalars().all()]
