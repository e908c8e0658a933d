# Quiz Service
"""
Grading flows that tie the judge to the learning history.

The judge is always called without holding the session lock; only the
history update that follows takes it.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional, Sequence

from ai import Judge
from core import Direction, GradedAnswer, Occurrence, QuizKind, StoryHistory
from history import LearningSession, OccurrenceReconciler, matches
from scheduler import Scheduler, default_scheduler

logger = logging.getLogger(__name__)


@dataclass
class QuizResult:
    """Outcome of one submitted answer."""
    answer: Optional[GradedAnswer] = None
    candidates: list[Occurrence] = field(default_factory=list)
    chosen: Optional[Occurrence] = None

    @property
    def recorded(self) -> bool:
        return self.chosen is not None

    @property
    def correct(self) -> bool:
        return self.answer is not None and self.answer.correct


class FreeformQuizService:
    """The learner types an expression and its meaning."""

    def __init__(self, session: LearningSession, judge: Judge, occurrences: Sequence[Occurrence],
                 scheduler: Scheduler = default_scheduler):
        self.session = session
        self.judge = judge
        self.occurrences = list(occurrences)
        self.reconciler = OccurrenceReconciler(session, scheduler)

    def find_occurrences(self, word: str) -> list[Occurrence]:
        return [occurrence for occurrence in self.occurrences if matches(occurrence.forms, word)]

    def submit(self, word: str, meaning: str, response_time_ms: int = 0,
               today: Optional[date] = None) -> QuizResult:
        """Grade ``meaning`` for ``word`` and record it on one occurrence.

        Nothing is graded when no occurrence of the word still needs
        learning.

        Raises:
            ValueError: if the word or the meaning is empty
            JudgeError: if grading fails; the history is left untouched
        """
        if not word or not word.strip():
            raise ValueError("word must not be empty")
        if not meaning or not meaning.strip():
            raise ValueError("meaning must not be empty")

        with self.session.lock:
            candidates = self.reconciler.needs_learning(self.occurrences, word, today=today)
        if not candidates:
            logger.info("No occurrence of %r needs learning", word)
            return QuizResult()

        answer = self.judge.grade(word, meaning, self.reconciler.union_contexts(candidates))
        index = self.reconciler.reconcile(
            candidates, answer,
            quiz_kind=QuizKind.FREEFORM,
            response_time_ms=response_time_ms,
            today=today,
        )
        return QuizResult(answer=answer, candidates=candidates, chosen=candidates[index])


class NotebookQuizService:
    """The learner is shown one occurrence and answers with its meaning.

    In the reverse direction the learner is shown the meaning and answers
    with the expression.
    """

    def __init__(self, session: LearningSession, judge: Judge,
                 scheduler: Scheduler = default_scheduler):
        self.session = session
        self.judge = judge
        self.reconciler = OccurrenceReconciler(session, scheduler)

    def questions(self, occurrences: Sequence[Occurrence], direction: Direction = Direction.FORWARD,
                  today: Optional[date] = None) -> list[Occurrence]:
        """Occurrences to ask about, in the given direction."""
        with self.session.lock:
            if direction is Direction.REVERSE:
                return self.reconciler.reverse_candidates(occurrences, today)
            return [
                occurrence for occurrence in occurrences
                if not self.reconciler.is_mastered(occurrence, direction, today)
            ]

    def submit(self, occurrence: Occurrence, answer: str, direction: Direction = Direction.FORWARD,
               response_time_ms: int = 0, today: Optional[date] = None) -> QuizResult:
        if not answer or not answer.strip():
            raise ValueError("answer must not be empty")
        direction = Direction(direction)

        contexts = self.reconciler.union_contexts([occurrence])
        if direction is Direction.REVERSE:
            result = self.judge.grade(answer, occurrence.meaning, contexts, is_expression_input=True)
            if not matches(occurrence.forms, answer):
                result = GradedAnswer(
                    correct=False, quality=1, reason=result.reason or "expression does not match",
                    expression=result.expression, meaning=result.meaning,
                )
        else:
            result = self.judge.grade(occurrence.expression, answer, contexts, is_expression_input=False)

        self.reconciler.commit(
            [occurrence], 0, result,
            quiz_kind=QuizKind.FLASHCARD if occurrence.is_flashcard else QuizKind.NOTEBOOK,
            is_known_word=True,
            always_record=occurrence.is_flashcard,
            direction=direction,
            response_time_ms=response_time_ms,
            today=today,
        )
        return QuizResult(answer=result, candidates=[occurrence], chosen=occurrence)


def _flush(session: LearningSession, persist) -> None:
    with session.lock:
        dirty = session.take_dirty()
    if dirty:
        persist(dirty)


def run_loop(next_question: Callable[[], Optional[object]],
             handle: Callable[[object], None],
             stop_event: threading.Event,
             persist: Callable[[dict[str, list[StoryHistory]]], None],
             session: LearningSession) -> int:
    """Ask questions until told to stop. Returns the number handled.

    ``next_question`` returning None ends the loop. Ctrl-C stops the loop
    the same way ``stop_event`` does; notebooks changed by each handled
    question are passed to ``persist``.
    """
    handled = 0
    logger.info("Quiz loop started")
    try:
        while not stop_event.is_set():
            question = next_question()
            if question is None:
                break
            handle(question)
            handled += 1
            _flush(session, persist)
    except KeyboardInterrupt:
        logger.info("Quiz loop interrupted")
        stop_event.set()
    finally:
        _flush(session, persist)
    logger.info("Quiz loop stopped after %d questions", handled)
    return handled
