"""Applying graded attempts to learning histories.

apply_attempt works on a single ConceptHistory. LearningHistoryUpdater
works on one notebook's tree of stories, finding or creating the story,
scene and concept an attempt belongs to.
"""
import copy
import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from core import (
    AttemptRecord,
    ConceptHistory,
    Direction,
    FLASHCARD_STORY_TITLE,
    LearnedStatus,
    QuizKind,
    SceneHistory,
    StoryHistory,
    SurfaceForms,
)
from scheduler import Scheduler, default_scheduler
from scheduler.sm2 import validate_quality

from .identity import normalize_title, stored_key_matches

logger = logging.getLogger(__name__)


def derive_status(correct: bool, is_known_word: bool) -> LearnedStatus:
    if not correct:
        return LearnedStatus.MISUNDERSTOOD
    if is_known_word:
        return LearnedStatus.UNDERSTOOD
    return LearnedStatus.USABLE


def _check_enums(direction, quiz_kind) -> tuple[Direction, QuizKind]:
    try:
        return Direction(direction), QuizKind(quiz_kind)
    except ValueError as exc:
        raise ValueError(f"invalid attempt arguments: {exc}") from None


def apply_attempt(
    concept: ConceptHistory,
    direction: Direction,
    correct: bool,
    quality: int,
    is_known_word: bool,
    always_record: bool,
    quiz_kind: QuizKind,
    response_time_ms: int = 0,
    today: Optional[date] = None,
    scheduler: Scheduler = default_scheduler,
) -> ConceptHistory:
    """Return ``concept`` with one more attempt in the given direction.

    Unless ``always_record`` is set, an attempt whose status equals the
    newest existing status is not recorded and the concept is returned as
    is. An empty log always takes the attempt.
    """
    direction, quiz_kind = _check_enums(direction, quiz_kind)
    validate_quality(quality)
    status = derive_status(correct, is_known_word)

    logs = concept.logs_for(direction)
    previous = logs[0] if logs else None
    if previous is not None and not always_record and previous.status is status:
        logger.debug("Skipping repeated %s attempt for %r", status.value, concept.expression)
        return concept

    result = scheduler.schedule(previous, quality, logs, concept.easiness_for(direction))
    record = AttemptRecord(
        status=status,
        graded_at=today or date.today(),
        quality=quality,
        response_time_ms=response_time_ms,
        quiz_kind=quiz_kind,
        interval_days=result.interval_days,
        easiness_factor=result.easiness_factor,
    )
    if direction is Direction.REVERSE:
        return replace(
            concept,
            reverse_logs=[record, *concept.reverse_logs],
            reverse_easiness_factor=result.easiness_factor,
        )
    return replace(
        concept,
        forward_logs=[record, *concept.forward_logs],
        easiness_factor=result.easiness_factor,
    )


def find_concepts(
    history: list[StoryHistory], story_title: str, scene_title: str, forms: SurfaceForms,
) -> list[ConceptHistory]:
    """Every stored concept at a location whose key names ``forms``."""
    found = []
    for story in history:
        if story.title != story_title:
            continue
        if story.is_flashcard:
            candidates = story.expressions
        else:
            wanted = normalize_title(scene_title)
            candidates = [
                concept
                for scene in story.scenes
                if normalize_title(scene.title) == wanted
                for concept in scene.expressions
            ]
        found.extend(concept for concept in candidates if stored_key_matches(concept.expression, forms))
    return found


class LearningHistoryUpdater:
    """Updates one notebook's learning history.

    The updater works on its own copy of the tree; read the result from
    ``history`` and persist it as a whole.
    """

    def __init__(self, history: list[StoryHistory], scheduler: Scheduler = default_scheduler):
        self._history = copy.deepcopy(list(history))
        self.scheduler = scheduler

    @property
    def history(self) -> list[StoryHistory]:
        return self._history

    def find_story(self, story_title: str) -> Optional[StoryHistory]:
        for story in self._history:
            if story.title == story_title:
                return story
        return None

    def _find_or_create_story(self, notebook_id: str, story_title: str, is_flashcard: bool) -> StoryHistory:
        story = self.find_story(story_title)
        if story is not None:
            return story
        story = StoryHistory(
            notebook_id=notebook_id,
            title=story_title,
            kind="flashcard" if is_flashcard else "story",
        )
        self._history.append(story)
        return story

    @staticmethod
    def _find_or_create_scene(story: StoryHistory, scene_title: str) -> SceneHistory:
        wanted = normalize_title(scene_title)
        for scene in story.scenes:
            if normalize_title(scene.title) == wanted:
                return scene
        scene = SceneHistory(title=scene_title)
        story.scenes.append(scene)
        return scene

    def concepts_at(self, story_title: str, scene_title: str, forms: SurfaceForms) -> list[ConceptHistory]:
        return find_concepts(self._history, story_title, scene_title, forms)

    def record(
        self,
        notebook_id: str,
        story_title: str,
        scene_title: str,
        forms: SurfaceForms,
        correct: bool,
        quality: int,
        is_known_word: bool,
        always_record: bool,
        quiz_kind: QuizKind,
        direction: Direction = Direction.FORWARD,
        response_time_ms: int = 0,
        today: Optional[date] = None,
    ) -> bool:
        """Record one attempt. Returns False when it was skipped as a repeat.

        An existing record stored under the canonical key wins over one
        stored under the occurrence form. Reverse attempts go to a record
        that already has a correct forward answer, since only such records
        are eligible for reverse review. A new concept is always stored
        under ``forms.key``.
        """
        direction, quiz_kind = _check_enums(direction, quiz_kind)
        is_flashcard = not scene_title and story_title == FLASHCARD_STORY_TITLE
        existing = self.concepts_at(story_title, scene_title, forms)
        if direction is Direction.REVERSE:
            existing.sort(key=lambda concept: (
                not concept.has_any_correct_answer(),
                concept.expression.casefold() != forms.key.casefold(),
            ))
        else:
            existing.sort(key=lambda concept: concept.expression.casefold() != forms.key.casefold())

        if existing:
            target = existing[0]
            updated = apply_attempt(
                target, direction, correct, quality, is_known_word, always_record,
                quiz_kind, response_time_ms, today, self.scheduler,
            )
            if updated is target:
                return False
            self._replace(story_title, target, updated)
            return True

        created = apply_attempt(
            ConceptHistory(expression=forms.key), direction, correct, quality,
            is_known_word, always_record, quiz_kind, response_time_ms, today, self.scheduler,
        )
        story = self._find_or_create_story(notebook_id, story_title, is_flashcard)
        if story.is_flashcard:
            story.expressions.append(created)
        else:
            self._find_or_create_scene(story, scene_title).expressions.append(created)
        return True

    def _replace(self, story_title: str, old: ConceptHistory, new: ConceptHistory) -> None:
        for story in self._history:
            if story.title != story_title:
                continue
            for expressions in [story.expressions] + [scene.expressions for scene in story.scenes]:
                for i, concept in enumerate(expressions):
                    if concept is old:
                        expressions[i] = new
                        return
