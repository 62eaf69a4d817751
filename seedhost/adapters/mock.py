"""
Mock adapter: stands in for ``rad config`` (or any adapter) in tests.

Every action succeeds unless a receipt was registered for its id.  The
``inspect`` hook runs inside ``execute``, while the scratch RAD_HOME the
compiler prepared still exists, so tests can look at what the checker
would have seen.
"""

from __future__ import annotations

from typing import Callable

from seedhost.adapters.base import Adapter, ExecutionContext
from seedhost.core.models.action import Receipt

Inspector = Callable[[ExecutionContext], None]


class MockAdapter(Adapter):
    def __init__(
        self,
        adapter_name: str = "mock",
        default_output: str = "[mock] executed",
        inspect: Inspector | None = None,
    ):
        self._name = adapter_name
        self._default_output = default_output
        self._inspect = inspect
        self._canned: dict[str, Receipt] = {}
        self._calls: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        return self._calls

    @property
    def call_count(self) -> int:
        return len(self._calls)

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        self._canned[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        """Make *action_id* fail the way a rejecting checker would."""
        self.set_response(
            action_id, Receipt.failure(adapter=self._name, action_id=action_id, error=error)
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._calls.append(context)
        if self._inspect is not None:
            self._inspect(context)

        canned = self._canned.get(context.action.id)
        if canned is not None:
            return canned
        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        self._calls.clear()
        self._canned.clear()
