# Learning Statistics Service
"""
Monthly counts of new words and relearns, computed from learning histories.

The oldest successful attempt of a concept is its "new word" event; every
later successful attempt is a relearn. Misunderstood attempts and
attempts without a date are not counted.
"""
from dataclasses import dataclass, field
from typing import Iterator, Optional

from core import AttemptRecord, ConceptHistory, LearnedStatus, StoryHistory


@dataclass
class PeriodStatistics:
    period: str  # "YYYY-MM"
    new_words_count: int = 0
    new_words_unique: int = 0
    relearns_count: int = 0
    relearns_unique: int = 0


@dataclass
class AggregateStatistics:
    new_words_count: int = 0
    new_words_unique: int = 0
    relearns_count: int = 0
    relearns_unique: int = 0


@dataclass
class StatisticsResult:
    periods: list[PeriodStatistics] = field(default_factory=list)
    aggregate: AggregateStatistics = field(default_factory=AggregateStatistics)


def _concepts(histories: dict[str, list[StoryHistory]]) -> Iterator[tuple[tuple, ConceptHistory]]:
    for notebook_id, stories in histories.items():
        for story in stories:
            for concept in story.expressions:
                yield (notebook_id, story.title, "", concept.expression), concept
            for scene in story.scenes:
                for concept in scene.expressions:
                    yield (notebook_id, story.title, scene.title, concept.expression), concept


def _matches_filter(record: AttemptRecord, year: Optional[int], month: Optional[int]) -> bool:
    if not year:
        return True
    if record.graded_at.year != year:
        return False
    return not month or record.graded_at.month == month


def calculate_statistics(histories: dict[str, list[StoryHistory]],
                         year: Optional[int] = None,
                         month: Optional[int] = None) -> StatisticsResult:
    """Calculate learning statistics, optionally limited to a year or a month.

    Args:
        histories: Notebook id -> stories
        year: Only count attempts of this year
        month: Only count attempts of this month (needs ``year``)

    Returns:
        StatisticsResult with periods sorted newest first
    """
    new_words: dict[str, list] = {}
    relearns: dict[str, list] = {}

    for key, concept in _concepts(histories):
        seen_first = False
        # Logs are newest first; walk oldest first to find the first success.
        for record in reversed(concept.forward_logs):
            if record.status in (LearnedStatus.MISUNDERSTOOD, LearnedStatus.UNSET):
                continue
            if record.graded_at is None:
                continue
            is_new = not seen_first
            seen_first = True
            if not _matches_filter(record, year, month):
                continue
            period = record.graded_at.strftime("%Y-%m")
            target = new_words if is_new else relearns
            target.setdefault(period, []).append(key)
            (relearns if is_new else new_words).setdefault(period, [])

    periods = [
        PeriodStatistics(
            period=period,
            new_words_count=len(new_words[period]),
            new_words_unique=len(set(new_words[period])),
            relearns_count=len(relearns[period]),
            relearns_unique=len(set(relearns[period])),
        )
        for period in sorted(new_words, reverse=True)
    ]
    all_new = [key for keys in new_words.values() for key in keys]
    all_relearns = [key for keys in relearns.values() for key in keys]
    return StatisticsResult(
        periods=periods,
        aggregate=AggregateStatistics(
            new_words_count=len(all_new),
            new_words_unique=len(set(all_new)),
            relearns_count=len(all_relearns),
            relearns_unique=len(set(all_relearns)),
        ),
    )
