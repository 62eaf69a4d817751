"""
Config compiler: serialize settings to config.json and have rad check it.

The node refuses to start on a bad config.json, and by then the deploy
has already happened.  So the document is checked at build time with the
node's own parser (``rad config``) against a scratch RAD_HOME, and only
installed if the check passes.  A failing check raises
``ConfigValidationError`` carrying the numbered document and rad's
output; the artifact path is left untouched.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path

from seedhost.adapters.registry import AdapterRegistry
from seedhost.adapters.shell.rad_config import ADAPTER_NAME as CHECKER_ADAPTER
from seedhost.core.config.settings import Settings
from seedhost.core.errors import SeedhostError
from seedhost.core.models.action import Action, Receipt
from seedhost.core.models.credential import RAD_HOME
from seedhost.core.persistence.files import atomic_write

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"
CONFIG_MOUNT_PATH = f"{RAD_HOME}/{CONFIG_FILE_NAME}"
CHECK_ACTION_ID = "check-config"

# rad config stats keys/radicle.pub; any well-formed key will do.
SNAKEOIL_PUBLIC_KEY = (
    "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIBgFMhajUng+Rjj/sCFXI9PzG8BQjru2n7JgUVF1Kbv5 snakeoil"
)


class ConfigValidationError(SeedhostError):
    """rad rejected the generated config.json."""

    def __init__(self, listing: str, checker_output: str):
        self.listing = listing
        self.checker_output = checker_output
        super().__init__(
            f"{listing}"
            f"Invalid {CONFIG_FILE_NAME} according to rad.\n"
            "Please double-check your settings (producing the config.json above),\n"
            "some settings may be missing or have the wrong type.\n"
            f"rad: {checker_output}"
        )


@dataclass
class CompileResult:
    """An installed config.json and how it was checked."""

    artifact_path: Path
    content: str
    validation: Receipt | None = None

    @property
    def validated(self) -> bool:
        return self.validation is not None and self.validation.ok


def numbered(content: str) -> str:
    """Line-numbered listing in ``cat -n`` format."""
    return "".join(
        f"{number:6d}\t{line}\n" for number, line in enumerate(content.splitlines(), start=1)
    )


class ConfigCompiler:
    """Compile Settings into the installed config.json.

    Args:
        output_dir: Build output directory; the artifact is
            ``<output_dir>/config.json``.
        registry: Dispatches the check to the ``rad-config`` adapter.
        check: Run the checker before installing.
        checker_binary: rad executable handed to the adapter.
    """

    def __init__(
        self,
        output_dir: Path,
        registry: AdapterRegistry,
        check: bool = True,
        checker_binary: str = "rad",
    ):
        self._output_dir = output_dir
        self._registry = registry
        self._check = check
        self._checker_binary = checker_binary

    @property
    def artifact_path(self) -> Path:
        return self._output_dir / CONFIG_FILE_NAME

    def render(self, settings: Settings) -> str:
        return settings.to_json()

    def compile(self, settings: Settings) -> CompileResult:
        """Render, check (if enabled), then install.

        Raises:
            ConfigValidationError: the checker rejected the document.
                Nothing is written to ``artifact_path``.
        """
        content = self.render(settings)
        receipt: Receipt | None = None

        if self._check:
            receipt = self.validate(content)
            if receipt.failed:
                logger.error("rad rejected the generated %s", CONFIG_FILE_NAME)
                raise ConfigValidationError(numbered(content), receipt.error or "")
            logger.info("%s accepted by rad", CONFIG_FILE_NAME)
        else:
            logger.warning("Config check disabled, installing unchecked %s", CONFIG_FILE_NAME)

        atomic_write(self.artifact_path, content)
        logger.info("Installed %s", self.artifact_path)
        return CompileResult(artifact_path=self.artifact_path, content=content, validation=receipt)

    def validate(self, content: str) -> Receipt:
        """Run the checker on a scratch RAD_HOME holding *content*."""
        with tempfile.TemporaryDirectory(prefix="seedhost-check-") as scratch:
            rad_home = Path(scratch)
            (rad_home / CONFIG_FILE_NAME).write_text(content, encoding="utf-8")
            keys = rad_home / "keys"
            keys.mkdir(mode=0o755)
            (keys / "radicle.pub").write_text(SNAKEOIL_PUBLIC_KEY + "\n", encoding="utf-8")

            action = Action(
                id=CHECK_ACTION_ID,
                adapter=CHECKER_ADAPTER,
                params={"rad_home": str(rad_home), "binary": self._checker_binary},
            )
            return self._registry.execute_action(action, work_dir=str(rad_home))
