"""Backfilling legacy learning records.

Old records were written before quality scores and intervals were stored.
Migration fills them in so the scheduler no longer has to bootstrap them.
"""
from dataclasses import replace

from core import DEFAULT_EASINESS_FACTOR, AttemptRecord, ConceptHistory, LearnedStatus, StoryHistory
from scheduler import Scheduler, default_scheduler


def _legacy_interval(index: int, logs: list[AttemptRecord], scheduler: Scheduler) -> int:
    count = sum(
        1 for record in logs[index:]
        if record.status not in (LearnedStatus.UNSET, LearnedStatus.MISUNDERSTOOD)
    )
    return scheduler.base_interval(count)


def _migrate_logs(logs: list[AttemptRecord], scheduler: Scheduler) -> tuple[list[AttemptRecord], bool]:
    modified = False
    migrated = []
    for i, record in enumerate(logs):
        changes = {}
        if not record.quality:
            changes["quality"] = 1 if record.status is LearnedStatus.MISUNDERSTOOD else 4
        if not record.interval_days:
            changes["interval_days"] = _legacy_interval(i, logs, scheduler)
        if changes:
            modified = True
            record = replace(record, **changes)
        migrated.append(record)
    return migrated, modified


def migrate_concept(concept: ConceptHistory,
                    scheduler: Scheduler = default_scheduler) -> tuple[ConceptHistory, bool]:
    forward, forward_changed = _migrate_logs(concept.forward_logs, scheduler)
    reverse, reverse_changed = _migrate_logs(concept.reverse_logs, scheduler)
    modified = forward_changed or reverse_changed
    changes: dict = {"forward_logs": forward, "reverse_logs": reverse}
    if concept.easiness_factor <= 0:
        changes["easiness_factor"] = DEFAULT_EASINESS_FACTOR
        modified = True
    if concept.reverse_easiness_factor <= 0:
        changes["reverse_easiness_factor"] = DEFAULT_EASINESS_FACTOR
        modified = True
    return replace(concept, **changes), modified


def migrate_histories(stories: list[StoryHistory],
                      scheduler: Scheduler = default_scheduler) -> tuple[list[StoryHistory], bool]:
    """Migrate every concept of one notebook. Returns new stories and whether anything changed."""
    modified = False
    migrated_stories = []
    for story in stories:
        expressions = []
        for concept in story.expressions:
            concept, changed = migrate_concept(concept, scheduler)
            modified = modified or changed
            expressions.append(concept)
        scenes = []
        for scene in story.scenes:
            scene_expressions = []
            for concept in scene.expressions:
                concept, changed = migrate_concept(concept, scheduler)
                modified = modified or changed
                scene_expressions.append(concept)
            scenes.append(replace(scene, expressions=scene_expressions))
        migrated_stories.append(replace(story, scenes=scenes, expressions=expressions))
    return migrated_stories, modified
