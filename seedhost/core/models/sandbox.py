"""
Sandbox models: policy fragments and the merged policy.

Directive names are systemd ``[Service]`` keys, plus two confinement
keys (``ConfinementMode``, ``ConfinementPackages``) that the unit
renderer expands.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SandboxFragment(BaseModel):
    """A named, ordered contribution to a sandbox policy.

    Values are plain lists (accumulate), plain scalars (last fragment
    wins) or ``merge.Assignment`` wrappers such as ``after([...])``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    directives: dict[str, Any] = Field(default_factory=dict)


class SandboxPolicy(BaseModel):
    """The merged result the supervisor applies at launch."""

    directives: dict[str, Any] = Field(default_factory=dict)
    provenance: dict[str, list[str]] = Field(default_factory=dict)
    fragments: list[str] = Field(default_factory=list)

    def get(self, key: str, default: Any = None) -> Any:
        return self.directives.get(key, default)

    def list_directive(self, key: str) -> list[Any]:
        value = self.directives.get(key, [])
        return list(value) if isinstance(value, list) else [value]
