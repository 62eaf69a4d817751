"""
Tests for adapter protocol, registry, mock, and the rad config adapter.
"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from seedhost.adapters.base import ExecutionContext
from seedhost.adapters.mock import MockAdapter
from seedhost.adapters.registry import AdapterRegistry
from seedhost.adapters.shell.rad_config import RadConfigAdapter
from seedhost.core.models.action import Action, Receipt

# ── Mock Adapter Tests ───────────────────────────────────────────────


class TestMockAdapter:
    def test_default_success(self):
        mock = MockAdapter(adapter_name="test-mock")
        ctx = ExecutionContext(action=Action(id="op-1", adapter="test-mock"))
        receipt = mock.execute(ctx)
        assert receipt.ok
        assert mock.call_count == 1

    def test_custom_response(self):
        mock = MockAdapter()
        mock.set_response(
            "op-1",
            Receipt.success(adapter="mock", action_id="op-1", output="custom"),
        )
        ctx = ExecutionContext(action=Action(id="op-1", adapter="mock"))
        assert mock.execute(ctx).output == "custom"

    def test_set_failure(self):
        mock = MockAdapter()
        mock.set_failure("op-fail", error="Intentional failure")
        ctx = ExecutionContext(action=Action(id="op-fail", adapter="mock"))
        receipt = mock.execute(ctx)
        assert receipt.failed
        assert receipt.error == "Intentional failure"

    def test_inspect_sees_context(self):
        seen = []
        mock = MockAdapter(inspect=lambda ctx: seen.append(ctx.params["x"]))
        mock.execute(ExecutionContext(action=Action(id="a", adapter="mock"), params={"x": 1}))
        assert seen == [1]

    def test_reset(self):
        mock = MockAdapter()
        mock.set_failure("a")
        mock.execute(ExecutionContext(action=Action(id="a", adapter="mock")))
        mock.reset()
        assert mock.call_count == 0
        assert mock.execute(ExecutionContext(action=Action(id="a", adapter="mock"))).ok


# ── Registry Tests ───────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_execute_routes_to_adapter(self):
        registry = AdapterRegistry()
        mock = MockAdapter(adapter_name="a")
        registry.register(mock)
        receipt = registry.execute_action(Action(id="x", adapter="a", params={"k": "v"}), work_dir="/tmp")
        assert receipt.ok
        assert mock.call_log[0].params == {"k": "v"}
        assert mock.call_log[0].work_dir == "/tmp"

    def test_register_replaces_same_name(self):
        registry = AdapterRegistry()
        first, second = MockAdapter(adapter_name="a"), MockAdapter(adapter_name="a")
        registry.register(first)
        registry.register(second)
        registry.execute_action(Action(id="x", adapter="a"))
        assert first.call_count == 0
        assert second.call_count == 1

    def test_missing_adapter(self):
        receipt = AdapterRegistry().execute_action(Action(id="x", adapter="nope"))
        assert receipt.failed
        assert "No adapter registered for 'nope'" in receipt.error

    def test_validation_failure_reported(self, tmp_path: Path):
        registry = AdapterRegistry()
        registry.register(RadConfigAdapter())
        action = Action(id="check-config", adapter="rad-config", params={"rad_home": str(tmp_path)})
        receipt = registry.execute_action(action)
        assert receipt.failed
        assert receipt.error.startswith("Validation failed: No config.json")

    def test_adapter_exception_becomes_failure(self):
        registry = AdapterRegistry()
        registry.register(MockAdapter(adapter_name="a", inspect=MagicMock(side_effect=RuntimeError("boom"))))
        receipt = registry.execute_action(Action(id="x", adapter="a"))
        assert receipt.failed
        assert receipt.error == "Unexpected error: boom"


# ── rad config Adapter Tests ─────────────────────────────────────────


def _rad_home(tmp_path: Path) -> Path:
    (tmp_path / "config.json").write_text("{}\n")
    return tmp_path


def _context(rad_home: Path, **params) -> ExecutionContext:
    params = {"rad_home": str(rad_home), **params}
    return ExecutionContext(
        action=Action(id="check-config", adapter="rad-config", params=params),
        work_dir=str(rad_home),
        params=params,
    )


class TestRadConfigAdapter:
    def test_name(self):
        assert RadConfigAdapter().name == "rad-config"

    def test_validate_requires_rad_home(self, tmp_path: Path):
        ctx = ExecutionContext(action=Action(id="c", adapter="rad-config"))
        ok, msg = RadConfigAdapter().validate(ctx)
        assert not ok
        assert "rad_home" in msg

    def test_validate_requires_config(self, tmp_path: Path):
        ok, msg = RadConfigAdapter().validate(_context(tmp_path))
        assert not ok
        assert "No config.json" in msg

    @patch("seedhost.adapters.shell.rad_config.shutil.which", return_value=None)
    def test_validate_requires_binary(self, _which, tmp_path: Path):
        ok, msg = RadConfigAdapter().validate(_context(_rad_home(tmp_path)))
        assert not ok
        assert "Config checker not found: rad" in msg

    def test_validate_binary_path_must_be_executable(self, tmp_path: Path):
        ctx = _context(_rad_home(tmp_path), binary=str(tmp_path / "missing" / "rad"))
        ok, msg = RadConfigAdapter().validate(ctx)
        assert not ok
        assert "Config checker not found" in msg

    @patch("seedhost.adapters.shell.rad_config.shutil.which", return_value="/usr/bin/rad")
    @patch("seedhost.adapters.shell.rad_config.subprocess.run")
    def test_execute_success(self, mock_run, _which, tmp_path: Path):
        mock_run.return_value = MagicMock(returncode=0, stdout="{}", stderr="")
        rad_home = _rad_home(tmp_path)
        receipt = RadConfigAdapter().execute(_context(rad_home))

        assert receipt.ok
        args, kwargs = mock_run.call_args
        assert args[0] == ["/usr/bin/rad", "config"]
        assert kwargs["env"]["RAD_HOME"] == str(rad_home)
        assert kwargs["capture_output"] is True

    @patch("seedhost.adapters.shell.rad_config.shutil.which", return_value="/usr/bin/rad")
    @patch("seedhost.adapters.shell.rad_config.subprocess.run")
    def test_execute_rejection(self, mock_run, _which, tmp_path: Path):
        mock_run.return_value = MagicMock(
            returncode=1, stdout="", stderr="Error: configuration: missing field `node`\n"
        )
        receipt = RadConfigAdapter().execute(_context(_rad_home(tmp_path)))
        assert receipt.failed
        assert receipt.error == "Error: configuration: missing field `node`"
        assert receipt.metadata["return_code"] == 1

    @patch("seedhost.adapters.shell.rad_config.shutil.which", return_value="/usr/bin/rad")
    @patch("seedhost.adapters.shell.rad_config.subprocess.run")
    def test_execute_silent_failure(self, mock_run, _which, tmp_path: Path):
        mock_run.return_value = MagicMock(returncode=2, stdout="", stderr="")
        receipt = RadConfigAdapter().execute(_context(_rad_home(tmp_path)))
        assert receipt.error == "rad config exited with code 2"

    @patch("seedhost.adapters.shell.rad_config.shutil.which", return_value="/usr/bin/rad")
    @patch("seedhost.adapters.shell.rad_config.subprocess.run")
    def test_execute_timeout(self, mock_run, _which, tmp_path: Path):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="rad", timeout=5)
        receipt = RadConfigAdapter().execute(_context(_rad_home(tmp_path), timeout=5))
        assert receipt.failed
        assert "timed out after 5s" in receipt.error

    @patch("seedhost.adapters.shell.rad_config.shutil.which", return_value="/usr/bin/rad")
    @patch("seedhost.adapters.shell.rad_config.subprocess.run")
    def test_through_registry(self, mock_run, _which, tmp_path: Path):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        registry = AdapterRegistry()
        registry.register(RadConfigAdapter())
        rad_home = _rad_home(tmp_path)
        action = Action(id="check-config", adapter="rad-config", params={"rad_home": str(rad_home)})
        assert registry.execute_action(action, work_dir=str(rad_home)).ok
