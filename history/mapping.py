"""Conversion between learning histories and plain dicts.

The dict shape is what the storage layer reads and writes (one list of
stories per notebook). Unknown statuses are rejected here so the rest of
the code only ever sees LearnedStatus members.
"""
from datetime import date, datetime
from typing import Any, Optional

from core import (
    DEFAULT_EASINESS_FACTOR,
    AttemptRecord,
    ConceptHistory,
    InvalidRecordError,
    LearnedStatus,
    QuizKind,
    SceneHistory,
    StoryHistory,
)


def _parse_date(value: Any, location: str) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise InvalidRecordError(f"{location}: invalid date {value!r}") from None


def _parse_int(value: Any, location: str, name: str) -> int:
    if value in (None, ""):
        return 0
    if isinstance(value, bool):
        raise InvalidRecordError(f"{location}: {name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRecordError(f"{location}: {name} must be an integer, got {value!r}") from None


def _parse_float(value: Any, location: str, name: str, default: float) -> float:
    if value in (None, ""):
        return default
    if isinstance(value, bool):
        raise InvalidRecordError(f"{location}: {name} must be a number, got {value!r}")
    try:
        return float(value) or default
    except (TypeError, ValueError):
        raise InvalidRecordError(f"{location}: {name} must be a number, got {value!r}") from None


def _check_mapping(data: Any, location: str) -> dict:
    if not isinstance(data, dict):
        raise InvalidRecordError(f"{location}: expected a mapping, got {data!r}")
    return data


def record_from_dict(data: dict, location: str = "record") -> AttemptRecord:
    """Build one attempt. A missing easiness_factor stays 0 so the concept's applies."""
    _check_mapping(data, location)
    quiz_kind = data.get("quiz_type") or None
    if quiz_kind is not None:
        try:
            quiz_kind = QuizKind(quiz_kind)
        except ValueError:
            raise InvalidRecordError(f"{location}: unknown quiz type {quiz_kind!r}") from None
    return AttemptRecord(
        status=LearnedStatus.parse(data.get("status")),
        graded_at=_parse_date(data.get("learned_at"), location),
        quality=_parse_int(data.get("quality"), location, "quality"),
        response_time_ms=_parse_int(data.get("response_time_ms"), location, "response_time_ms"),
        quiz_kind=quiz_kind,
        interval_days=_parse_int(data.get("interval_days"), location, "interval_days"),
        easiness_factor=_parse_float(data.get("easiness_factor"), location, "easiness_factor", 0.0),
    )


def record_to_dict(record: AttemptRecord) -> dict:
    data: dict = {"status": record.status.value}
    if record.graded_at is not None:
        data["learned_at"] = record.graded_at.isoformat()
    if record.quality:
        data["quality"] = record.quality
    if record.response_time_ms:
        data["response_time_ms"] = record.response_time_ms
    if record.quiz_kind is not None:
        data["quiz_type"] = record.quiz_kind.value
    if record.interval_days:
        data["interval_days"] = record.interval_days
    if record.easiness_factor:
        data["easiness_factor"] = round(record.easiness_factor, 4)
    return data


def concept_from_dict(data: dict, location: str = "expression") -> ConceptHistory:
    _check_mapping(data, location)
    expression = str(data.get("expression") or "")
    location = f"{location}: {expression}"
    return ConceptHistory(
        expression=expression,
        forward_logs=[
            record_from_dict(item, f"{location} -> learned_logs[{i}]")
            for i, item in enumerate(data.get("learned_logs") or [])
        ],
        easiness_factor=_parse_float(
            data.get("easiness_factor"), location, "easiness_factor", DEFAULT_EASINESS_FACTOR,
        ),
        reverse_logs=[
            record_from_dict(item, f"{location} -> reverse_logs[{i}]")
            for i, item in enumerate(data.get("reverse_logs") or [])
        ],
        reverse_easiness_factor=_parse_float(
            data.get("reverse_easiness_factor"), location, "reverse_easiness_factor", DEFAULT_EASINESS_FACTOR,
        ),
    )


def concept_to_dict(concept: ConceptHistory) -> dict:
    data: dict = {
        "expression": concept.expression,
        "learned_logs": [record_to_dict(record) for record in concept.forward_logs],
        "easiness_factor": round(concept.easiness_factor, 4),
    }
    if concept.reverse_logs:
        data["reverse_logs"] = [record_to_dict(record) for record in concept.reverse_logs]
        data["reverse_easiness_factor"] = round(concept.reverse_easiness_factor, 4)
    return data


def story_from_dict(data: dict) -> StoryHistory:
    _check_mapping(data, "story")
    metadata = data.get("metadata") or {}
    title = str(metadata.get("title") or "")
    story = StoryHistory(
        notebook_id=str(metadata.get("id") or ""),
        title=title,
        kind=str(metadata.get("type") or "story"),
    )
    if story.is_flashcard:
        story.expressions = [
            concept_from_dict(item, f"{title} -> expression[{i}]")
            for i, item in enumerate(data.get("expressions") or [])
        ]
        return story
    for scene_index, scene_data in enumerate(data.get("scenes") or []):
        _check_mapping(scene_data, f"{title} -> scene[{scene_index}]")
        scene_title = str((scene_data.get("metadata") or {}).get("title") or "")
        story.scenes.append(SceneHistory(
            title=scene_title,
            expressions=[
                concept_from_dict(item, f"{title} -> {scene_title} -> expression[{i}]")
                for i, item in enumerate(scene_data.get("expressions") or [])
            ],
        ))
    return story


def story_to_dict(story: StoryHistory) -> dict:
    metadata = {"id": story.notebook_id, "title": story.title}
    if story.is_flashcard:
        metadata["type"] = "flashcard"
        return {
            "metadata": metadata,
            "expressions": [concept_to_dict(concept) for concept in story.expressions],
        }
    return {
        "metadata": metadata,
        "scenes": [
            {
                "metadata": {"title": scene.title},
                "expressions": [concept_to_dict(concept) for concept in scene.expressions],
            }
            for scene in story.scenes
        ],
    }


def histories_from_dict(data: dict[str, list]) -> dict[str, list[StoryHistory]]:
    """Notebook id -> story dicts, as loaded by the storage layer."""
    return {
        notebook_id: [story_from_dict(item) for item in stories or []]
        for notebook_id, stories in data.items()
    }


def histories_to_dict(histories: dict[str, list[StoryHistory]]) -> dict[str, list[dict]]:
    return {
        notebook_id: [story_to_dict(story) for story in stories]
        for notebook_id, stories in histories.items()
    }
