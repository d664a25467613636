from __future__ import annotations

from dataclasses import replace
from typing import Callable, Iterable, List, Optional

from mapboard.client.debounce import Debouncer
from mapboard.domain.models import ALL_CATEGORIES, CATEGORIES, Feature, FilterState


def matches(feature: Feature, state: FilterState) -> bool:
    if state.selected_category != ALL_CATEGORIES and feature.category != state.selected_category:
        return False
    if feature.category not in state.visible_categories:
        return False
    query = state.search_query.casefold()
    if query and query not in feature.title.casefold() and query not in feature.description.casefold():
        return False
    return True


def compute_visible(features: Iterable[Feature], state: FilterState) -> List[Feature]:
    """Features passing every filter predicate, in input order."""
    return [feature for feature in features if matches(feature, state)]


class FilterController:
    """Owns the filter state and tells the board when to recompute.

    Category changes recompute immediately; search changes go through the
    debouncer, and the recomputation reads whatever state is current when it
    finally runs.
    """

    def __init__(
        self,
        on_change: Callable[[FilterState], None],
        *,
        debouncer: Optional[Debouncer] = None,
        state: Optional[FilterState] = None,
    ):
        self._on_change = on_change
        self._debouncer = debouncer or Debouncer()
        self.state = state or FilterState()

    def set_category(self, category: str) -> None:
        if category != ALL_CATEGORIES and category not in CATEGORIES:
            raise ValueError(f"Unknown category: {category}")
        self.state = replace(self.state, selected_category=category)
        self._notify()

    def toggle_category(self, category: str) -> bool:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown category: {category}")
        visible = set(self.state.visible_categories)
        enabled = category not in visible
        if enabled:
            visible.add(category)
        else:
            visible.discard(category)
        self.state = replace(self.state, visible_categories=frozenset(visible))
        self._notify()
        return enabled

    def set_search(self, text: str) -> None:
        self.state = replace(self.state, search_query=text.lower())
        self._debouncer.schedule(self._notify)

    def flush(self) -> None:
        """Run a pending search recomputation now."""
        if self._debouncer.pending:
            self._debouncer.cancel()
            self._notify()

    def _notify(self) -> None:
        self._on_change(self.state)
