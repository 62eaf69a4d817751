"""
Adapter base: the protocol between the build and external tools.

The build never calls an external binary directly; it sends an Action
through the AdapterRegistry and reads the Receipt.  Tests swap the real
adapter for a MockAdapter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from seedhost.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """The adapter's view of one action: what to do and where."""

    action: Action
    work_dir: str = "."
    params: dict[str, Any] = Field(default_factory=dict)


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions; failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'rad-config')."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check the action can run.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Run the action and return a receipt.  MUST never raise."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
