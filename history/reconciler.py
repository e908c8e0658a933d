"""Reconciling attempts across duplicate occurrences.

The same expression can appear in many scenes and notebooks. Each
appearance is tracked on its own: a correct answer marks exactly one
occurrence, and the others come back in a later session so they get
tested in their own context.
"""
import logging
from datetime import date
from typing import Optional, Sequence

from core import (
    ContextVerdict,
    Direction,
    GradedAnswer,
    JudgeContext,
    LearnedStatus,
    Occurrence,
    QuizKind,
)
from scheduler import Scheduler, default_scheduler

from .identity import matches
from .session import LearningSession
from .updater import LearningHistoryUpdater, find_concepts

logger = logging.getLogger(__name__)

STATUS_MASTERED = "mastered"
STATUS_MISUNDERSTOOD = "misunderstood"
STATUS_NO_CORRECT_ANSWER = "no correct answer yet"


def is_correct_answer(result: GradedAnswer) -> bool:
    return result.correct or any(verdict.correct for verdict in result.context_verdicts)


class OccurrenceReconciler:
    """Decides which occurrences still need learning and records answers on them."""

    def __init__(self, session: LearningSession, scheduler: Scheduler = default_scheduler):
        self.session = session
        self.scheduler = scheduler

    def concepts_for(self, occurrence: Occurrence):
        return find_concepts(
            self.session.notebook(occurrence.notebook_id),
            occurrence.story_title,
            occurrence.scene_title,
            occurrence.forms,
        )

    def is_mastered(self, occurrence: Occurrence, direction: Direction = Direction.FORWARD,
                    today: Optional[date] = None) -> bool:
        """True when any stored record of the occurrence is correct and not yet due.

        Records with an empty log never count, so a placeholder stored under
        the canonical form cannot hide a mastered sibling.
        """
        return any(
            not self.scheduler.is_due(concept.logs_for(direction), today)
            for concept in self.concepts_for(occurrence)
        )

    def needs_learning(self, occurrences: Sequence[Occurrence], typed_word: str,
                       direction: Direction = Direction.FORWARD,
                       today: Optional[date] = None) -> list[Occurrence]:
        if not typed_word or not typed_word.strip():
            raise ValueError("typed word must not be empty")
        return [
            occurrence
            for occurrence in occurrences
            if matches(occurrence.forms, typed_word)
            and not self.is_mastered(occurrence, direction, today)
        ]

    def mastery(self, occurrences: Sequence[Occurrence], today: Optional[date] = None) -> list[bool]:
        """Mastery flag per occurrence, for display."""
        return [self.is_mastered(occurrence, today=today) for occurrence in occurrences]

    def learning_status(self, occurrence: Occurrence, today: Optional[date] = None) -> str:
        if self.is_mastered(occurrence, today=today):
            return STATUS_MASTERED
        for concept in self.concepts_for(occurrence):
            if concept.latest_status() is LearnedStatus.MISUNDERSTOOD:
                return STATUS_MISUNDERSTOOD
        return STATUS_NO_CORRECT_ANSWER

    def reverse_candidates(self, occurrences: Sequence[Occurrence],
                           today: Optional[date] = None) -> list[Occurrence]:
        """Occurrences learned in the forward direction and not mastered in reverse.

        As in the forward direction, any record of the occurrence with a
        reverse log that is not due counts as reverse mastery.
        """
        return [
            occurrence
            for occurrence in occurrences
            if any(c.has_any_correct_answer() for c in self.concepts_for(occurrence))
            and not self.is_mastered(occurrence, Direction.REVERSE, today)
        ]

    @staticmethod
    def union_contexts(candidates: Sequence[Occurrence]) -> list[JudgeContext]:
        """Contexts of every candidate, markers stripped, in candidate order."""
        contexts = []
        for occurrence in candidates:
            for context in occurrence.contexts:
                contexts.append(JudgeContext(
                    context=context.clean_text(),
                    reference_meaning=occurrence.meaning,
                    usage=context.usage,
                ))
        return contexts

    @staticmethod
    def choose(candidates: Sequence[Occurrence],
               result: GradedAnswer) -> tuple[int, Optional[ContextVerdict]]:
        """Pick the occurrence an answer is recorded on.

        A correct verdict on a context selects the occurrence that context
        came from. Otherwise, correct or not, the first candidate is used.
        """
        if not candidates:
            raise ValueError("no candidate occurrences to choose from")

        owner: dict[str, int] = {}
        for index, occurrence in enumerate(candidates):
            for text in occurrence.clean_contexts():
                owner.setdefault(text, index)

        if is_correct_answer(result):
            for verdict in result.context_verdicts:
                if not verdict.correct:
                    continue
                if verdict.context in owner:
                    return owner[verdict.context], verdict
                logger.warning("Correct verdict for unknown context %r", verdict.context)
        return 0, None

    def commit(self, occurrences: Sequence[Occurrence], chosen_index: int, result: GradedAnswer,
               quiz_kind: QuizKind = QuizKind.FREEFORM,
               is_known_word: bool = False,
               always_record: bool = False,
               direction: Direction = Direction.FORWARD,
               verdict: Optional[ContextVerdict] = None,
               response_time_ms: int = 0,
               today: Optional[date] = None) -> bool:
        """Record ``result`` on one occurrence and mark its notebook dirty.

        Returns False when the attempt repeated the newest status and was
        not recorded; the notebook is then left clean.
        """
        if not 0 <= chosen_index < len(occurrences):
            raise IndexError(f"occurrence index {chosen_index} out of range for {len(occurrences)} occurrences")
        occurrence = occurrences[chosen_index]
        correct = is_correct_answer(result)
        quality = verdict.quality if verdict is not None and verdict.quality else result.quality
        if not quality:
            quality = 4 if correct else 1

        with self.session.lock:
            updater = LearningHistoryUpdater(self.session.notebook(occurrence.notebook_id), self.scheduler)
            changed = updater.record(
                notebook_id=occurrence.notebook_id,
                story_title=occurrence.story_title,
                scene_title=occurrence.scene_title,
                forms=occurrence.forms,
                correct=correct,
                quality=quality,
                is_known_word=is_known_word,
                always_record=always_record,
                quiz_kind=quiz_kind,
                direction=direction,
                response_time_ms=response_time_ms,
                today=today,
            )
            if changed:
                self.session.replace_notebook(occurrence.notebook_id, updater.history)
        if changed:
            logger.debug("Recorded %r on %s / %s / %s", occurrence.expression,
                         occurrence.notebook_id, occurrence.story_title, occurrence.scene_title)
        return changed

    def reconcile(self, candidates: Sequence[Occurrence], result: GradedAnswer, **kwargs) -> int:
        """Choose the occurrence for ``result``, commit it, and return its index."""
        index, verdict = self.choose(candidates, result)
        self.commit(candidates, index, result, verdict=verdict, **kwargs)
        return index
