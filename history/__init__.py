# Learning history layer
from .identity import matches, normalize_title, same_concept, stored_key_matches
from .reconciler import OccurrenceReconciler, is_correct_answer
from .session import LearningSession
from .updater import LearningHistoryUpdater, apply_attempt, derive_status, find_concepts

__all__ = [
    "matches",
    "normalize_title",
    "same_concept",
    "stored_key_matches",
    "OccurrenceReconciler",
    "is_correct_answer",
    "LearningSession",
    "LearningHistoryUpdater",
    "apply_attempt",
    "derive_status",
    "find_concepts",
]
