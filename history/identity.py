"""Identity of trackable concepts.

Every place that asks "is this the same expression?" goes through here.
Matching is exact and case-insensitive; substring search is a different
job and does not belong in this module.
"""
from core import SurfaceForms


def _fold(text: str) -> str:
    return (text or "").strip().casefold()


def matches(forms: SurfaceForms, typed_word: str) -> bool:
    """Whether a typed word names the concept described by ``forms``."""
    word = _fold(typed_word)
    if not word:
        return False
    if word == _fold(forms.occurrence_form):
        return True
    return bool(_fold(forms.canonical_form)) and word == _fold(forms.canonical_form)


def stored_key_matches(stored_key: str, forms: SurfaceForms) -> bool:
    """Whether a persisted record key belongs to an occurrence.

    The key may be either the occurrence form or the canonical form
    depending on how the record was first written.
    """
    return matches(forms, stored_key)


def same_concept(a: SurfaceForms, b: SurfaceForms) -> bool:
    if matches(a, b.occurrence_form) or matches(b, a.occurrence_form):
        return True
    return bool(_fold(a.canonical_form)) and _fold(a.canonical_form) == _fold(b.canonical_form)


def normalize_title(title: str) -> str:
    """Collapse whitespace so reflowed scene titles still compare equal."""
    return " ".join((title or "").split())
