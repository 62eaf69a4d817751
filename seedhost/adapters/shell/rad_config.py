"""
rad config adapter: ask the radicle CLI whether a config.json is valid.

``rad config`` parses $RAD_HOME/config.json and exits non-zero on a bad
document.  It also stats $RAD_HOME/keys/radicle.pub, which the caller
provides as a throwaway key.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from seedhost.adapters.base import Adapter, ExecutionContext
from seedhost.core.models.action import Receipt

logger = logging.getLogger(__name__)

ADAPTER_NAME = "rad-config"


class RadConfigAdapter(Adapter):
    """Run ``rad config`` against a prepared RAD_HOME.

    Action params:
        rad_home (str): Directory holding config.json and keys/radicle.pub.
        binary (str): rad executable (default: ``rad`` on PATH).
        timeout (int): Timeout in seconds (default: 60).
    """

    def __init__(self, binary: str = "rad"):
        self._binary = binary

    @property
    def name(self) -> str:
        return ADAPTER_NAME

    def _resolve_binary(self, context: ExecutionContext) -> str | None:
        binary = context.params.get("binary") or self._binary
        if os.sep in binary:
            return binary if os.access(binary, os.X_OK) else None
        return shutil.which(binary)

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        rad_home = context.params.get("rad_home", "")
        if not rad_home:
            return False, "Missing required param: 'rad_home'"
        if not (Path(rad_home) / "config.json").is_file():
            return False, f"No config.json in {rad_home}"
        if self._resolve_binary(context) is None:
            binary = context.params.get("binary") or self._binary
            return False, f"Config checker not found: {binary}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        rad_home = context.params["rad_home"]
        timeout = context.params.get("timeout", 60)
        binary = self._resolve_binary(context) or self._binary
        command = [binary, "config"]
        env = {**os.environ, "RAD_HOME": rad_home}

        logger.debug("Executing: %s (RAD_HOME=%s)", " ".join(command), rad_home)
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                cwd=context.work_dir,
                env=env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"rad config timed out after {timeout}s",
                metadata={"command": command, "timeout": timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Cannot run {binary}: {e}",
                metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stderr = result.stderr.strip()

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                duration_ms=elapsed_ms,
                metadata={"command": command, "return_code": 0},
            )
        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or f"rad config exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={
                "command": command,
                "return_code": result.returncode,
                "stdout": result.stdout.strip(),
            },
        )
