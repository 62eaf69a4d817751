"""
BuildState: what the last successful build wrote, and from which inputs.

Stored as JSON in <out>/.seedhost/state.json.  The fingerprint lets a
repeated build with identical inputs be skipped.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class BuildState(BaseModel):
    fingerprint: str = ""
    built_at: str = Field(default_factory=_now_iso)
    files: list[str] = Field(default_factory=list)

    def touch(self) -> None:
        self.built_at = _now_iso()
