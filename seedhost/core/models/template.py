"""
Generated file model: used by every renderer.
"""

from __future__ import annotations

from pydantic import BaseModel


class GeneratedFile(BaseModel):
    """A file produced by a build.

    Attributes:
        path:    Path relative to the build output directory.
        content: Full file content.
        mode:    Permission bits applied on write.
        reason:  Why this file was generated.
    """

    path: str
    content: str
    mode: int = 0o644
    reason: str = ""
