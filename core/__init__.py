# Domain models
import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


DEFAULT_EASINESS_FACTOR = 2.5
FLASHCARD_STORY_TITLE = "flashcards"

_MARKER_RE = re.compile(r"\{\{\s*(.*?)\s*\}\}")


class UnknownStatusError(ValueError):
    """A persisted record carries a status outside LearnedStatus."""


class InvalidRecordError(ValueError):
    """A persisted record is malformed (bad date, bad quality...)."""


class LearnedStatus(str, Enum):
    UNSET = ""
    MISUNDERSTOOD = "misunderstood"
    UNDERSTOOD = "understood"
    USABLE = "usable"
    INTUITIVE = "intuitive"

    @classmethod
    def parse(cls, value) -> "LearnedStatus":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.UNSET
        try:
            return cls(str(value).strip())
        except ValueError:
            raise UnknownStatusError(f"unknown learned status: {value!r}") from None

    @property
    def is_correct(self) -> bool:
        return self in CORRECT_STATUSES


CORRECT_STATUSES = frozenset({
    LearnedStatus.UNDERSTOOD,
    LearnedStatus.USABLE,
    LearnedStatus.INTUITIVE,
})


class QuizKind(str, Enum):
    NOTEBOOK = "notebook"
    FREEFORM = "freeform"
    FLASHCARD = "flashcard"


class Direction(str, Enum):
    FORWARD = "forward"
    REVERSE = "reverse"


@dataclass(frozen=True)
class SurfaceForms:
    """The textual forms one trackable concept can appear under.

    occurrence_form is the text as written at a source location,
    canonical_form the optional dictionary form shared by all occurrences,
    usage_form the inflected form found in one example context.
    """
    occurrence_form: str
    canonical_form: str = ""
    usage_form: str = ""

    @property
    def key(self) -> str:
        """Key the concept is persisted under."""
        if self.canonical_form.strip():
            return self.canonical_form
        return self.occurrence_form


@dataclass(frozen=True)
class AttemptRecord:
    """One graded attempt. Logs hold these newest first and never mutate them.

    Records loaded from older files carry no easiness factor of their own;
    the concept-level factor applies to them.
    """
    status: LearnedStatus = LearnedStatus.UNSET
    graded_at: Optional[date] = None
    quality: int = 0
    response_time_ms: int = 0
    quiz_kind: Optional[QuizKind] = None
    interval_days: int = 0
    easiness_factor: float = 0.0


@dataclass
class ConceptHistory:
    """Forward and reverse attempt logs of one concept."""
    expression: str
    forward_logs: list[AttemptRecord] = field(default_factory=list)
    easiness_factor: float = DEFAULT_EASINESS_FACTOR
    reverse_logs: list[AttemptRecord] = field(default_factory=list)
    reverse_easiness_factor: float = DEFAULT_EASINESS_FACTOR

    def logs_for(self, direction: Direction) -> list[AttemptRecord]:
        if direction is Direction.REVERSE:
            return self.reverse_logs
        return self.forward_logs

    def easiness_for(self, direction: Direction) -> float:
        value = self.reverse_easiness_factor if direction is Direction.REVERSE else self.easiness_factor
        return value or DEFAULT_EASINESS_FACTOR

    def latest_status(self, direction: Direction = Direction.FORWARD) -> LearnedStatus:
        logs = self.logs_for(direction)
        if not logs:
            return LearnedStatus.UNSET
        return logs[0].status

    def has_any_correct_answer(self) -> bool:
        """True once any forward attempt was correct; gates reverse review."""
        return any(record.status.is_correct for record in self.forward_logs)


@dataclass
class SceneHistory:
    title: str
    expressions: list[ConceptHistory] = field(default_factory=list)


@dataclass
class StoryHistory:
    """History of one story (nested by scene) or one flashcard set (flat)."""
    notebook_id: str
    title: str
    kind: str = "story"
    scenes: list[SceneHistory] = field(default_factory=list)
    expressions: list[ConceptHistory] = field(default_factory=list)

    @property
    def is_flashcard(self) -> bool:
        return self.kind == "flashcard"


@dataclass(frozen=True)
class ExampleContext:
    text: str
    usage: str = ""

    def clean_text(self) -> str:
        """Context with {{ }} markers removed, keeping the marked words."""
        return _MARKER_RE.sub(r"\1", self.text)


@dataclass
class Occurrence:
    """A concept at one physical location, built fresh each session."""
    notebook_id: str
    story_title: str
    scene_title: str
    forms: SurfaceForms
    meaning: str = ""
    contexts: list[ExampleContext] = field(default_factory=list)

    @property
    def is_flashcard(self) -> bool:
        return self.story_title == FLASHCARD_STORY_TITLE and not self.scene_title

    @property
    def expression(self) -> str:
        return self.forms.key

    def clean_contexts(self) -> list[str]:
        return [context.clean_text() for context in self.contexts]


@dataclass(frozen=True)
class ContextVerdict:
    context: str
    correct: bool
    reason: str = ""
    quality: int = 0


@dataclass(frozen=True)
class GradedAnswer:
    """Verdict of the judge for one submitted expression."""
    correct: bool
    quality: int
    reason: str = ""
    expression: str = ""
    meaning: str = ""
    context_verdicts: tuple[ContextVerdict, ...] = ()


@dataclass(frozen=True)
class JudgeContext:
    """One example context sent to the judge alongside the learner's answer."""
    context: str
    reference_meaning: str = ""
    usage: str = ""
