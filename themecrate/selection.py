"""
Selection model: the ordered component checklist the interactive loop mutates.
"""
from typing import Iterable, Iterator, List, Tuple

from .detect import detect
from .host import HostEnv
from .models import ComponentSpec, DetectedStyle, ResumeState, SelectionEntry


class SelectionState:
    """Entries in registry order plus a cursor bounded to [0, len)."""
    def __init__(self, entries: Iterable[SelectionEntry]):
        self.entries: List[SelectionEntry] = list(entries)
        self.cursor = 0

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[SelectionEntry]:
        return iter(self.entries)

    def toggle(self, index: int | None = None) -> bool:
        """Flip one entry (the cursor row by default) and return its new state."""
        if index is None:
            index = self.cursor
        if not 0 <= index < len(self.entries):
            raise IndexError(f"No component at position {index + 1}")
        entry = self.entries[index]
        entry.selected = not entry.selected
        return entry.selected

    def move_cursor(self, delta: int, wrap: bool = True) -> int:
        if not self.entries:
            self.cursor = 0
            return self.cursor
        target = self.cursor + delta
        if wrap:
            self.cursor = target % len(self.entries)
        else:
            self.cursor = max(0, min(target, len(self.entries) - 1))
        return self.cursor

    def selected_entries(self) -> Iterator[SelectionEntry]:
        return (e for e in self.entries if e.selected)

    def selected_ids(self) -> List[str]:
        return [e.spec.id for e in self.selected_entries()]

    def set_all(self, selected: bool) -> None:
        for entry in self.entries:
            entry.selected = selected

    def select_only(self, ids: Iterable[str]) -> List[str]:
        """Select exactly the given ids. Returns the ids that matched nothing."""
        wanted = list(ids)
        known = {e.spec.id for e in self.entries}
        for entry in self.entries:
            entry.selected = entry.spec.id in wanted
        return [i for i in wanted if i not in known]

def build_selection(components: List[ComponentSpec], host: HostEnv) -> SelectionState:
    """Run detection once per component; a later re-detect is a new SelectionState."""
    return SelectionState(
        SelectionEntry(spec=spec, detected=detect(spec, host)) for spec in components
    )

def restore_selection(components: List[ComponentSpec], host: HostEnv, resume: ResumeState) -> Tuple[SelectionState, List[str]]:
    """
    Rebuild a selection from a resume snapshot without detecting again.
    Only the source paths are resolved anew. Returns the state and the ids
    that matched no component.
    """
    entries = []
    for spec in components:
        value = resume.values.get(spec.id)
        detected = DetectedStyle(
            component_id=spec.id,
            summary=resume.summaries.get(spec.id),
            value=value,
            paths=spec.source_paths(host, value),
        )
        entries.append(SelectionEntry(spec=spec, detected=detected, selected=spec.id in resume.selected))
    known = {spec.id for spec in components}
    return SelectionState(entries), [i for i in resume.selected if i not in known]
