"""Consistency checks for learning history trees."""
from dataclasses import dataclass, field

from core import ConceptHistory, StoryHistory


@dataclass
class ValidationIssue:
    location: str
    message: str
    suggestions: list[str] = field(default_factory=list)


def validate_concept(concept: ConceptHistory, location: str) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not concept.expression.strip():
        issues.append(ValidationIssue(location, "expression field is empty"))
        return issues

    for name, logs in (("learned_logs", concept.forward_logs), ("reverse_logs", concept.reverse_logs)):
        previous = None
        for i, record in enumerate(logs):
            record_location = f"{location} -> {name}[{i}]"
            if record.graded_at is None:
                issues.append(ValidationIssue(
                    record_location,
                    "learned_at is required but missing or invalid",
                    ["use format YYYY-MM-DD"],
                ))
                continue
            if previous is not None and record.graded_at > previous:
                issues.append(ValidationIssue(
                    record_location,
                    f"{name} not in chronological order (newest first): "
                    f"{record.graded_at.isoformat()} comes after {previous.isoformat()}",
                    [f"sort {name} by date in descending order (newest first)"],
                ))
            previous = record.graded_at
    return issues


def validate_story(story: StoryHistory, location: str = "") -> list[ValidationIssue]:
    """Validate one story or flashcard set.

    Besides per-record checks, reports expressions that are stored twice in
    a flashcard set, and expressions a story keeps in more than one scene.
    """
    location = location or story.title
    issues: list[ValidationIssue] = []

    if story.is_flashcard:
        seen: set[str] = set()
        for i, concept in enumerate(story.expressions):
            issues.extend(validate_concept(concept, f"{location} -> expression[{i}]: {concept.expression}"))
            expression = concept.expression.strip()
            if not expression:
                continue
            if expression in seen:
                issues.append(ValidationIssue(
                    location, f"duplicate expression {expression!r} in flashcard format",
                ))
            seen.add(expression)
        return issues

    scenes_by_expression: dict[str, list[str]] = {}
    for scene_index, scene in enumerate(story.scenes):
        scene_location = f"{location} -> scene[{scene_index}]: {scene.title}"
        for i, concept in enumerate(scene.expressions):
            issues.extend(validate_concept(concept, f"{scene_location} -> expression[{i}]: {concept.expression}"))
            expression = concept.expression.strip()
            if expression:
                scenes_by_expression.setdefault(expression, []).append(scene.title.strip())

    for expression, scene_titles in scenes_by_expression.items():
        if len(scene_titles) > 1:
            issues.append(ValidationIssue(
                location,
                f"expression {expression!r} appears in multiple scenes: {scene_titles}",
                ["merge the duplicate expressions into one scene"],
            ))
    return issues


def validate_histories(histories: dict[str, list[StoryHistory]]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for notebook_id in sorted(histories):
        for story in histories[notebook_id]:
            issues.extend(validate_story(story, f"{notebook_id} -> {story.title}"))
    return issues
