"""Session-scoped learning history state."""
import threading
from dataclasses import dataclass, field

from core import StoryHistory


@dataclass
class LearningSession:
    """Learning histories loaded for one quiz session.

    ``histories`` maps a notebook id to its story histories. ``dirty``
    collects the notebook ids changed since the caller last persisted.
    ``lock`` guards both; hold it only while mutating, never across a
    judge call.
    """
    histories: dict[str, list[StoryHistory]] = field(default_factory=dict)
    dirty: set[str] = field(default_factory=set)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def notebook(self, notebook_id: str) -> list[StoryHistory]:
        return self.histories.get(notebook_id, [])

    def replace_notebook(self, notebook_id: str, history: list[StoryHistory]) -> None:
        self.histories[notebook_id] = history
        self.dirty.add(notebook_id)

    def take_dirty(self) -> dict[str, list[StoryHistory]]:
        """Return the changed notebooks and forget that they changed."""
        changed = {notebook_id: self.histories[notebook_id] for notebook_id in sorted(self.dirty)}
        self.dirty.clear()
        return changed
