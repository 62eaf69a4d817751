"""
Priority merge: the one primitive behind settings and sandbox policies.

Every value that reaches a merged document is an ``Assignment``: the value
plus a priority and an ordering hint.  ``merge_values`` reduces all the
assignments made to one key:

    1. Only assignments at the highest priority survive.
    2. Lists at that priority are concatenated, sorted by ``order`` and
       then by arrival (``before()`` < plain < ``after()``).
    3. Scalars at that priority: the last assignment wins.
    4. A list and a scalar at the same key is a conflict, never a silent
       overwrite.

Call sites never write "if not set then ..." logic; they tag values with
``default()``, ``force()``, ``before()`` or ``after()`` and let the merge
decide.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from seedhost.core.errors import SeedhostError

# ── Priorities (higher wins) ────────────────────────────────────

DEFAULT_PRIORITY = 100
NORMAL_PRIORITY = 200
OPERATOR_PRIORITY = NORMAL_PRIORITY
FORCE_PRIORITY = 300

# ── List ordering hints ─────────────────────────────────────────

ORDER_BEFORE = 500
ORDER_DEFAULT = 1000
ORDER_AFTER = 1500


class MergeConflictError(SeedhostError):
    """Two assignments to the same key disagree on the kind of value."""

    def __init__(self, key: str, sources: Sequence[str] = ()):
        self.key = key
        self.sources = list(sources)
        detail = f" (from {', '.join(self.sources)})" if self.sources else ""
        super().__init__(
            f"Conflicting definitions for '{key}': "
            f"a list and a single value cannot be merged{detail}"
        )


@dataclass(frozen=True)
class Assignment:
    """A value tagged with its merge priority and list ordering."""

    value: Any
    priority: int = NORMAL_PRIORITY
    order: int = ORDER_DEFAULT
    source: str = ""

    def with_source(self, source: str) -> Assignment:
        if self.source:
            return self
        return Assignment(self.value, self.priority, self.order, source)


def default(value: Any, source: str = "") -> Assignment:
    """A value that yields to anything set at normal priority."""
    return Assignment(value, DEFAULT_PRIORITY, ORDER_DEFAULT, source)


def force(value: Any, source: str = "") -> Assignment:
    """A value that overrides normal and default assignments."""
    return Assignment(value, FORCE_PRIORITY, ORDER_DEFAULT, source)


def before(values: Iterable[Any], source: str = "") -> Assignment:
    """List entries placed ahead of every plain entry for the same key."""
    return Assignment(list(values), NORMAL_PRIORITY, ORDER_BEFORE, source)


def after(values: Iterable[Any], source: str = "") -> Assignment:
    """List entries placed behind every plain entry for the same key."""
    return Assignment(list(values), NORMAL_PRIORITY, ORDER_AFTER, source)


def as_assignment(value: Any, priority: int = NORMAL_PRIORITY, source: str = "") -> Assignment:
    """Wrap a bare value, or keep an explicit Assignment (filling its source)."""
    if isinstance(value, Assignment):
        return value.with_source(source)
    return Assignment(value, priority, ORDER_DEFAULT, source)


def winning(assignments: Sequence[Assignment]) -> list[Assignment]:
    """Assignments at the highest priority, in arrival order."""
    if not assignments:
        return []
    top = max(a.priority for a in assignments)
    return [a for a in assignments if a.priority == top]


def combine(key: str, winners: Sequence[Assignment]) -> Any:
    """Reduce same-priority assignments: concatenate lists, last scalar wins."""
    if not winners:
        raise ValueError(f"No assignments to combine for '{key}'")

    kinds = {isinstance(a.value, list) for a in winners}
    if len(kinds) > 1:
        raise MergeConflictError(key, [a.source for a in winners if a.source])

    if kinds == {True}:
        ordered = sorted(enumerate(winners), key=lambda pair: (pair[1].order, pair[0]))
        merged: list[Any] = []
        for _, assignment in ordered:
            merged.extend(assignment.value)
        return merged

    return winners[-1].value


def merge_values(key: str, assignments: Sequence[Assignment]) -> Any:
    """Merge every assignment made to *key*.

    Unlike ``combine`` this checks the value kind across all assignments,
    not only the winners: a later fragment may not turn a list directive
    into a scalar by outranking it.
    """
    kinds = {isinstance(a.value, list) for a in assignments}
    if len(kinds) > 1:
        raise MergeConflictError(key, [a.source for a in assignments if a.source])
    return combine(key, winning(assignments))
