"""
Build state persistence: read/write <out>/.seedhost/state.json.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from seedhost.core.models.state import BuildState
from seedhost.core.persistence.files import atomic_write

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = ".seedhost"
DEFAULT_STATE_FILE = "state.json"


def default_state_path(output_dir: Path) -> Path:
    return output_dir / DEFAULT_STATE_DIR / DEFAULT_STATE_FILE


def load_state(path: Path) -> BuildState:
    """Load build state; a missing or corrupt file yields a fresh state."""
    if not path.is_file():
        logger.info("No build state at %s, starting fresh", path)
        return BuildState()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return BuildState.model_validate(data)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt build state %s: %s, starting fresh", path, e)
        return BuildState()
    except Exception as e:
        logger.warning("Cannot load build state from %s: %s, starting fresh", path, e)
        return BuildState()


def save_state(state: BuildState, path: Path) -> None:
    """Save build state (atomic write)."""
    state.touch()
    content = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"
    atomic_write(path, content)
    logger.debug("Build state saved to %s", path)
