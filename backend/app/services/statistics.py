from __future__ import annotations

import logging
import math
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from app.models.submission import QuizSubmission
from app.services.grading import COARSE_GRADES, PASS_THRESHOLD, coarse_grade
from app.services.quiz_repository import QuizRepository

log = logging.getLogger(__name__)


def round2(value: float) -> float:
    # Half-up, matching the rounding used for stored snapshots.
    return math.floor(float(value) * 100 + 0.5) / 100


def _empty_distribution() -> dict[str, int]:
    return {g: 0 for g in COARSE_GRADES}


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


@dataclass(frozen=True)
class QuizStatistics:
    total_submissions: int = 0
    average_score: float = 0.0
    highest_score: float = 0.0
    lowest_score: float = 0.0
    pass_rate: float = 0.0
    grade_distribution: dict[str, int] = field(default_factory=_empty_distribution)
    last_submission_at: str | None = None

    def as_dict(self) -> dict:
        return asdict(self)


def compute_statistics(submissions: Iterable[QuizSubmission]) -> QuizStatistics:
    rows = list(submissions)
    if not rows:
        return QuizStatistics()

    scores = [float(s.percentage or 0.0) for s in rows]
    count = len(scores)
    distribution = _empty_distribution()
    for s in rows:
        distribution[coarse_grade(s.letter_grade)] += 1
    passed = sum(1 for p in scores if p >= PASS_THRESHOLD)
    last = max((s.submitted_at for s in rows if s.submitted_at is not None), default=None)

    return QuizStatistics(
        total_submissions=count,
        average_score=round2(sum(scores) / count),
        highest_score=round2(max(scores)),
        lowest_score=round2(min(scores)),
        pass_rate=round2(passed / count * 100),
        grade_distribution=distribution,
        last_submission_at=_iso(last),
    )


class StatisticsAggregator:
    """Rebuilds a quiz's statistics snapshot from its full submission set."""

    def __init__(self, repo: QuizRepository) -> None:
        self.repo = repo

    def recompute(self, quiz_id: uuid.UUID) -> QuizStatistics:
        submissions = self.repo.list_submissions(quiz_id, newest_first=False)
        snapshot = compute_statistics(submissions)
        last = max((s.submitted_at for s in submissions if s.submitted_at is not None), default=None)
        self.repo.write_stats(quiz_id, stats=snapshot.as_dict(), last_submission_at=last)
        self.repo.commit()
        log.info(
            "quiz stats recomputed quiz_id=%s submissions=%s average=%s",
            quiz_id,
            snapshot.total_submissions,
            snapshot.average_score,
        )
        return snapshot
