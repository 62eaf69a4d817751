"""
Settings model: resolve the free-form node settings into config.json.

Operator settings and built-in defaults are flattened into dotted key
paths, each carrying a list of priority-tagged assignments (see
``merge``).  Resolution runs in two phases:

    Phase 1  every key whose winning assignments are plain values is
             merged immediately.
    Phase 2  keys whose winner is a ``Deferred`` default are evaluated
             on demand.  A deferred default receives a read-only
             ``SettingsView`` and may read any other key; keys it reads
             are resolved first.

An operator value always outranks a deferred default, so a deferred
closure that loses is never called.  Reading a key that is already being
resolved raises ``CircularDefaultError`` with the full key chain.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterator, Mapping, Sequence

from seedhost.core.config.merge import (
    DEFAULT_PRIORITY,
    OPERATOR_PRIORITY,
    Assignment,
    MergeConflictError,
    as_assignment,
    combine,
    winning,
)
from seedhost.core.errors import SeedhostError

logger = logging.getLogger(__name__)

KeyPath = tuple[str, ...]

_JSON_SCALARS = (str, int, float, bool, type(None))


class SettingsError(SeedhostError):
    """Settings could not be resolved."""

    def __init__(self, message: str, key_path: str = ""):
        self.key_path = key_path
        super().__init__(message)


class CircularDefaultError(SettingsError):
    """Deferred defaults that (transitively) read each other."""

    def __init__(self, chain: Sequence[str]):
        self.chain = list(chain)
        super().__init__(
            "Circular deferred default: " + " -> ".join(self.chain),
            key_path=self.chain[-1],
        )


class UnresolvedDefaultError(SettingsError):
    """A deferred default read a key that has no value."""

    def __init__(self, key_path: str, requested_by: str | None = None):
        self.requested_by = requested_by
        suffix = f" (read by the default of '{requested_by}')" if requested_by else ""
        super().__init__(f"Setting '{key_path}' has no value{suffix}", key_path=key_path)


@dataclass(frozen=True)
class Deferred:
    """A default computed from other settings once they are known."""

    compute: Callable[[SettingsView], Any]
    description: str = ""


def split_path(path: str | KeyPath) -> KeyPath:
    if isinstance(path, tuple):
        return path
    parts = tuple(p for p in path.split("."))
    if not path or any(not p for p in parts):
        raise SettingsError(f"Invalid settings key path: '{path}'", key_path=path)
    return parts


def dotted(path: KeyPath) -> str:
    return ".".join(path)


class Settings:
    """Resolved, immutable settings document."""

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(dict(data or {}))

    def get(self, path: str, default: Any = None) -> Any:
        node: Any = self._data
        for part in split_path(path):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return copy.deepcopy(node)

    def __contains__(self, path: object) -> bool:
        sentinel = object()
        return isinstance(path, str) and self.get(path, sentinel) is not sentinel

    def as_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def to_json(self) -> str:
        """Canonical serialization: sorted keys, 2-space indent, final newline."""
        return json.dumps(self._data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"

    def fingerprint(self) -> str:
        return hashlib.sha256(self.to_json().encode("utf-8")).hexdigest()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Settings):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash(self.fingerprint())

    def __repr__(self) -> str:
        return f"Settings({self._data!r})"


class SettingsView:
    """Read-only access to the settings being resolved, for deferred defaults."""

    def __init__(self, resolver: _Resolver, requested_by: KeyPath):
        self._resolver = resolver
        self._requested_by = requested_by

    def __getitem__(self, path: str) -> Any:
        return copy.deepcopy(self._resolver.value(split_path(path), self._requested_by))

    def get(self, path: str, default: Any = None) -> Any:
        try:
            return self[path]
        except UnresolvedDefaultError:
            return default


class _Resolver:
    """Holds the assignment table and the in-progress resolution stack."""

    def __init__(self, table: dict[KeyPath, list[Assignment]]):
        self._table = table
        self._values: dict[KeyPath, Any] = {}
        self._stack: list[KeyPath] = []

    def resolve_plain(self) -> None:
        for path, assignments in self._table.items():
            winners = winning(assignments)
            if not any(isinstance(a.value, Deferred) for a in winners):
                self._values[path] = _checked(path, combine(dotted(path), winners))

    def resolve_all(self) -> dict[KeyPath, Any]:
        for path in self._table:
            self.value(path)
        return self._values

    def value(self, path: KeyPath, requested_by: KeyPath | None = None) -> Any:
        if path in self._values:
            return self._values[path]

        if path not in self._table:
            subtree = [p for p in self._table if p[: len(path)] == path]
            if subtree:
                tree: dict[str, Any] = {}
                for child in subtree:
                    _insert(tree, child[len(path):], self.value(child, requested_by), child)
                return tree
            raise UnresolvedDefaultError(
                dotted(path), dotted(requested_by) if requested_by else None
            )

        if path in self._stack:
            chain = self._stack[self._stack.index(path):] + [path]
            raise CircularDefaultError([dotted(p) for p in chain])

        self._stack.append(path)
        try:
            concrete = []
            for assignment in winning(self._table[path]):
                if isinstance(assignment.value, Deferred):
                    logger.debug("Evaluating deferred default for %s", dotted(path))
                    computed = assignment.value.compute(SettingsView(self, path))
                    assignment = replace(assignment, value=computed)
                concrete.append(assignment)
            result = _checked(path, combine(dotted(path), concrete))
        finally:
            self._stack.pop()

        self._values[path] = result
        return result


def _checked(path: KeyPath, value: Any) -> Any:
    """Reject values that cannot be written to config.json."""
    if isinstance(value, _JSON_SCALARS):
        return value
    if isinstance(value, list):
        for item in value:
            _checked(path, item)
        return value
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise SettingsError(
                    f"Setting '{dotted(path)}' has a non-string key: {key!r}",
                    key_path=dotted(path),
                )
            _checked(path, item)
        return value
    raise SettingsError(
        f"Setting '{dotted(path)}' is not JSON-compatible: {type(value).__name__}",
        key_path=dotted(path),
    )


def _flatten(
    tree: Mapping[str, Any],
    priority: int,
    source: str,
    prefix: KeyPath = (),
) -> Iterator[tuple[KeyPath, Assignment]]:
    for key, raw in tree.items():
        if not isinstance(key, str):
            raise SettingsError(f"Settings keys must be strings, got {key!r}")
        path = prefix + split_path(key)

        if isinstance(raw, Assignment) and isinstance(raw.value, dict) and raw.value:
            # A tagged mapping tags each of its leaves.
            for leaf_path, leaf in _flatten(raw.value, raw.priority, raw.source or source, path):
                yield leaf_path, leaf
            continue

        if isinstance(raw, Mapping) and raw:
            yield from _flatten(raw, priority, source, path)
            continue

        value = dict(raw) if isinstance(raw, Mapping) else raw
        yield path, as_assignment(value, priority, source)


def _insert(tree: dict[str, Any], path: KeyPath, value: Any, full_path: KeyPath) -> None:
    node = tree
    for part in path[:-1]:
        child = node.setdefault(part, {})
        if not isinstance(child, dict):
            raise MergeConflictError(dotted(full_path))
        node = child

    last = path[-1]
    existing = node.get(last)
    if isinstance(existing, dict) and value == {}:
        return
    if isinstance(existing, dict) and existing and not isinstance(value, dict):
        raise MergeConflictError(dotted(full_path))
    if isinstance(existing, dict) and isinstance(value, dict):
        existing.update(copy.deepcopy(value))
        return
    node[last] = copy.deepcopy(value)


def resolve(
    user_settings: Mapping[str, Any] | None,
    defaults: Mapping[str, Any] | Sequence[Mapping[str, Any]] = (),
) -> Settings:
    """Merge operator settings over defaults and return the final Settings.

    Args:
        user_settings: Operator-supplied settings.  Plain values are
            assigned at operator priority.
        defaults: One mapping or an ordered list of mappings.  Plain
            values are assigned at default priority; values may be
            ``Deferred`` or explicit ``Assignment``s.

    Raises:
        CircularDefaultError, UnresolvedDefaultError: on broken deferred
            defaults.
        MergeConflictError: when a key is both a list and a scalar, or
            both a leaf and a mapping.
    """
    layers: list[tuple[Mapping[str, Any], int, str]] = []
    if isinstance(defaults, Mapping):
        defaults = [defaults]
    for index, layer in enumerate(defaults):
        layers.append((layer, DEFAULT_PRIORITY, f"defaults[{index}]"))
    layers.append((user_settings or {}, OPERATOR_PRIORITY, "settings"))

    table: dict[KeyPath, list[Assignment]] = {}
    for layer, priority, source in layers:
        for path, assignment in _flatten(layer, priority, source):
            table.setdefault(path, []).append(assignment)

    resolver = _Resolver(table)
    resolver.resolve_plain()
    values = resolver.resolve_all()

    tree: dict[str, Any] = {}
    for path in sorted(values):
        _insert(tree, path, values[path], path)

    logger.debug("Resolved %d settings keys", len(values))
    return Settings(tree)
