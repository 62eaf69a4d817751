"""
Adapter registry: dispatches build actions to external tools.

Today the only action is the config check (``rad config``), but the
build reaches every tool through ``execute_action`` so tests can swap in
a ``MockAdapter`` and so a failing tool always comes back as a Receipt.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from seedhost.adapters.base import Adapter, ExecutionContext
from seedhost.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


def _failed(action: Action, error: str, **kwargs: Any) -> Receipt:
    return Receipt.failure(adapter=action.adapter, action_id=action.id, error=error, **kwargs)


class AdapterRegistry:
    """Adapters by name."""

    def __init__(self):
        self._adapters: dict[str, Adapter] = {}

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter %s", adapter.name)
        self._adapters[adapter.name] = adapter
        logger.debug("Registered %r", adapter)

    def execute_action(self, action: Action, work_dir: str = ".") -> Receipt:
        """Validate and run *action* on its adapter.  Never raises.

        Args:
            action: What to run; ``action.adapter`` picks the adapter.
            work_dir: Directory the tool runs in.
        """
        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return _failed(action, f"No adapter registered for '{action.adapter}'")

        context = ExecutionContext(action=action, work_dir=work_dir, params=action.params)

        try:
            valid, reason = adapter.validate(context)
        except Exception as e:
            return _failed(action, f"Validation error: {e}")
        if not valid:
            return _failed(action, f"Validation failed: {reason}")

        started = time.monotonic()
        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised during %s: %s", action.adapter, action.id, e)
            receipt = _failed(action, f"Unexpected error: {e}")

        if not receipt.duration_ms:
            receipt.duration_ms = int((time.monotonic() - started) * 1000)

        logger.debug(
            "%s:%s -> %s in %dms",
            action.adapter, action.id, receipt.status, receipt.duration_ms,
        )
        return receipt
