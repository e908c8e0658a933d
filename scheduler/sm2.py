"""SM-2 Spaced Repetition Algorithm Implementation.

This module provides the retention scheduler used by the learning history.
It decides when an attempt log is due for review and computes the interval
and easiness factor stored on every new attempt.
"""
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Protocol, Sequence

from core import AttemptRecord, LearnedStatus


DEFAULT_BASE_INTERVALS = (1, 3, 7, 14, 30, 60, 90, 180, 270, 365, 540, 730, 1095)
DEFAULT_LAPSE_MULTIPLIERS = ((10, 0.7), (6, 0.6), (3, 0.5))


class Scheduler(Protocol):
    """Protocol for review schedulers."""

    def schedule(self, previous: Optional[AttemptRecord], quality: int,
                 log: Sequence[AttemptRecord] = (),
                 easiness_factor: float = 0.0) -> "ScheduleResult":
        """Calculate the interval and easiness factor for a new attempt."""
        ...

    def is_due(self, log: Sequence[AttemptRecord], today: Optional[date] = None) -> bool:
        """Whether the newest attempt in the log is due for review."""
        ...


@dataclass
class ScheduleResult:
    """Result of a review scheduling calculation."""
    interval_days: int
    easiness_factor: float


def validate_quality(quality: int) -> int:
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise ValueError(f"quality must be an integer, got {quality!r}")
    if not 1 <= quality <= 5:
        raise ValueError(f"quality must be between 1 and 5, got {quality}")
    return quality


def correct_streak(log: Sequence[AttemptRecord]) -> int:
    """Count consecutive correct attempts from the newest one backward.

    Records without a status are placeholders and are skipped; the first
    misunderstood record ends the streak.
    """
    count = 0
    for record in log:
        if record.status is LearnedStatus.MISUNDERSTOOD:
            break
        if record.status is LearnedStatus.UNSET:
            continue
        count += 1
    return count


class SM2Scheduler:
    """SM-2 (SuperMemo 2) spaced repetition algorithm.

    Recall quality is graded 1-5:
        1 - Wrong answer
        3 - Correct response with serious difficulty
        4 - Correct answer
        5 - Correct and fast answer

    Legacy attempts written before intervals were stored carry
    interval_days == 0; their interval is bootstrapped from the correct
    streak through the base interval table.
    """

    def __init__(self,
                 default_easiness_factor: float = 2.5,
                 min_easiness_factor: float = 1.3,
                 base_intervals: Sequence[int] = DEFAULT_BASE_INTERVALS,
                 lapse_multipliers: Sequence[Sequence[float]] = DEFAULT_LAPSE_MULTIPLIERS):
        if not base_intervals:
            raise ValueError("base_intervals must not be empty")
        if any(b < a for a, b in zip(base_intervals, base_intervals[1:])):
            raise ValueError("base_intervals must be non-decreasing")
        self.default_easiness_factor = default_easiness_factor
        self.min_easiness_factor = min_easiness_factor
        self.base_intervals = tuple(int(days) for days in base_intervals)
        self.lapse_multipliers = tuple(
            sorted(((int(streak), float(m)) for streak, m in lapse_multipliers), reverse=True)
        )

    @classmethod
    def from_settings(cls, settings: dict) -> "SM2Scheduler":
        cfg = settings.get("scheduler", {})
        return cls(
            default_easiness_factor=cfg.get("default_easiness_factor", 2.5),
            min_easiness_factor=cfg.get("min_easiness_factor", 1.3),
            base_intervals=cfg.get("base_intervals", DEFAULT_BASE_INTERVALS),
            lapse_multipliers=cfg.get("lapse_multipliers", DEFAULT_LAPSE_MULTIPLIERS),
        )

    def base_interval(self, streak: int) -> int:
        """Days to wait after a streak of correct answers, capped at the table end."""
        if streak <= 0:
            return self.base_intervals[0]
        return self.base_intervals[min(streak, len(self.base_intervals) - 1)]

    def update_easiness_factor(self, efactor: float, quality: int) -> float:
        if not efactor:
            efactor = self.default_easiness_factor
        new_efactor = efactor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
        return max(self.min_easiness_factor, new_efactor)

    def lapse_interval(self, last_interval: int, streak: int) -> int:
        """Interval after a failed recall, shrunk in proportion to prior progress."""
        if streak <= 2:
            return 1
        multiplier = 0.5
        for min_streak, value in self.lapse_multipliers:
            if streak >= min_streak:
                multiplier = value
                break
        return max(1, math.ceil(last_interval * multiplier))

    def schedule(self, previous: Optional[AttemptRecord], quality: int,
                 log: Sequence[AttemptRecord] = (),
                 easiness_factor: float = 0.0) -> ScheduleResult:
        """Calculate the schedule of a new attempt.

        Args:
            previous: Newest existing attempt, or None on the first attempt
            quality: Quality of recall (1-5)
            log: Existing attempts, newest first; used to bootstrap legacy
                intervals. Defaults to just ``previous``.
            easiness_factor: Concept-level factor, used when ``previous``
                carries none of its own

        Returns:
            ScheduleResult with the interval and easiness factor to store
        """
        validate_quality(quality)
        if previous is None:
            return ScheduleResult(
                interval_days=self.base_interval(0),
                easiness_factor=self.default_easiness_factor,
            )

        history = list(log) if log else [previous]
        streak = correct_streak(history)
        new_efactor = self.update_easiness_factor(previous.easiness_factor or easiness_factor, quality)

        if quality < 3:
            last_interval = previous.interval_days or self.base_interval(streak)
            new_interval_days = self.lapse_interval(last_interval, streak)
        elif previous.interval_days > 0:
            new_interval_days = max(1, round(previous.interval_days * new_efactor))
        else:
            new_interval_days = self.base_interval(streak)

        return ScheduleResult(interval_days=new_interval_days, easiness_factor=new_efactor)

    def interval_of(self, log: Sequence[AttemptRecord]) -> int:
        """Stored interval of the newest attempt, bootstrapped for legacy records."""
        if not log:
            return 0
        newest = log[0]
        if newest.interval_days > 0:
            return newest.interval_days
        return self.base_interval(correct_streak(log))

    def due_date(self, log: Sequence[AttemptRecord]) -> Optional[date]:
        if not log or log[0].graded_at is None:
            return None
        return log[0].graded_at + timedelta(days=self.interval_of(log))

    def is_due(self, log: Sequence[AttemptRecord], today: Optional[date] = None) -> bool:
        """Whether the log needs review now.

        An empty log, or one whose newest attempt is not a correct one, is
        always due. Otherwise the log is due once the interval has fully
        elapsed: graded 7 days ago with a 7 day interval is due.
        """
        if not log:
            return True
        if not log[0].status.is_correct:
            return True
        due = self.due_date(log)
        if due is None:
            return True
        return (today or date.today()) >= due


# Default scheduler instance
default_scheduler = SM2Scheduler()
