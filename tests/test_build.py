"""
Tests for deployment evaluation and the build use case.
"""

import json
from pathlib import Path

import pytest

from seedhost.core.config.loader import load_options
from seedhost.core.services.compiler import ConfigValidationError
from seedhost.core.services.credentials import CredentialError
from seedhost.core.use_cases.build import evaluate, run_build, run_plan, write_deployment


# ═══════════════════════════════════════════════════════════════════
#  evaluate()
# ═══════════════════════════════════════════════════════════════════


class TestEvaluate:
    def test_defaults_only(self, options_factory, registry, tmp_path: Path):
        out = tmp_path / "out"
        dep = evaluate(options_factory(httpd={"enable": True}), out, registry=registry)

        config = json.loads((out / "config.json").read_text())
        assert config == {"node": {"listen": ["[::]:8776"]}}
        assert dep.artifact.validated

        node, httpd = dep.service("node"), dep.service("httpd")
        assert node.restart.delay_sec == 30
        assert httpd.restart.delay_sec == 10
        assert "127.0.0.1:8080" in httpd.argv
        assert "[::]:8776" in node.argv

    def test_vhost_scenario(self, options_factory, registry, tmp_path: Path):
        opts = options_factory(
            node={"listen_port": 8776},
            httpd={"enable": True, "nginx": {"server_name": "seed.example.org"}},
        )
        dep = evaluate(opts, tmp_path, registry=registry)

        assert dep.settings.get("node.alias") == "seed.example.org"
        assert dep.settings.get("node.externalAddresses") == ["seed.example.org:8776"]
        assert dep.exposure.virtual_host.server_name == "seed.example.org"

    def test_operator_listen_wins(self, options_factory, registry, tmp_path: Path):
        opts = options_factory(settings={"node": {"listen": ["0.0.0.0:9999"]}})
        dep = evaluate(opts, tmp_path, registry=registry)
        assert dep.settings.get("node.listen") == ["0.0.0.0:9999"]

    def test_repeatable(self, options_factory, registry, tmp_path: Path):
        opts = options_factory(httpd={"enable": True, "nginx": {}})
        first = evaluate(opts, tmp_path, registry=registry, dry_run=True)
        second = evaluate(opts, tmp_path, registry=registry, dry_run=True)
        assert first.to_dict() == second.to_dict()

    def test_only_node_gets_the_key(self, options_factory, registry, tmp_path: Path):
        dep = evaluate(options_factory(httpd={"enable": True}), tmp_path, registry=registry)
        node, httpd = dep.service("node"), dep.service("httpd")
        assert node.sandbox.get("LoadCredential") == ["radicle:/etc/radicle/key"]
        assert httpd.sandbox.get("LoadCredential") is None
        assert httpd.credentials == []

    def test_config_bound_read_only(self, options, registry, tmp_path: Path):
        dep = evaluate(options, tmp_path, registry=registry)
        binds = dep.service("node").sandbox.get("BindReadOnlyPaths")
        assert f"{dep.config_path}:/var/lib/radicle/config.json" in binds

    def test_dry_run_writes_nothing(self, options, checker, registry, tmp_path: Path):
        out = tmp_path / "out"
        dep = evaluate(options, out, registry=registry, dry_run=True)
        assert dep.artifact is None
        assert not out.exists()
        assert checker.call_count == 0

    def test_rejected_config_aborts(self, options, rejecting_registry, tmp_path: Path):
        with pytest.raises(ConfigValidationError):
            evaluate(options, tmp_path / "out", registry=rejecting_registry)
        assert not (tmp_path / "out").exists()

    def test_malformed_locator_aborts_before_anything(self, options_factory, checker, registry, tmp_path: Path):
        with pytest.raises(CredentialError):
            evaluate(options_factory(private_key_file=":/x"), tmp_path, registry=registry)
        assert checker.call_count == 0

    def test_disabled(self, options_factory, checker, registry, tmp_path: Path):
        dep = evaluate(options_factory(enable=False), tmp_path / "out", registry=registry)
        assert dep.services == []
        assert dep.files == []
        assert dep.artifact is None
        assert checker.call_count == 0

    def test_firewall_and_vhost_files(self, options_factory, registry, tmp_path: Path):
        opts = options_factory(
            node={"open_firewall": True},
            httpd={"enable": True, "nginx": {"server_name": "seed.example.org"}},
        )
        paths = [f.path for f in evaluate(opts, tmp_path, registry=registry).files]
        assert paths == [
            "systemd/radicle-node.service",
            "systemd/radicle-httpd.service",
            "nginx/seed.example.org.conf",
            "nftables/radicle-node.nft",
            "radicle.pub",
            "sysusers.d/radicle.conf",
            "bin/rad-system",
        ]


class TestWriteDeployment:
    def test_files_and_plan(self, options, registry, tmp_path: Path):
        dep = evaluate(options, tmp_path, registry=registry)
        written = write_deployment(dep)

        assert tmp_path / "plan.json" in written
        plan = json.loads((tmp_path / "plan.json").read_text())
        assert plan["config"]["validated"] is True
        assert plan["services"][0]["unit"] == "radicle-node"
        assert (tmp_path / "bin" / "rad-system").stat().st_mode & 0o111

    def test_plan_records_both_ports(self, options_factory, registry, tmp_path: Path):
        dep = evaluate(options_factory(httpd={"enable": True}), tmp_path, registry=registry)
        write_deployment(dep)

        plan = json.loads((tmp_path / "plan.json").read_text())
        bindings = {svc["kind"]: svc["binding"] for svc in plan["services"]}
        assert bindings["node"] == {"address": "[::]", "port": 8776}
        assert bindings["httpd"] == {"address": "127.0.0.1", "port": 8080}
        assert plan["config"]["settings"]["node"]["listen"] == ["[::]:8776"]

        unit = (tmp_path / "systemd" / "radicle-httpd.service").read_text()
        assert "ExecStart=/usr/bin/radicle-httpd --listen 127.0.0.1:8080" in unit


# ═══════════════════════════════════════════════════════════════════
#  run_build() / run_plan()
# ═══════════════════════════════════════════════════════════════════


class TestRunBuild:
    def test_build(self, seed_yml: Path, registry, tmp_path: Path):
        out = tmp_path / "result"
        result = run_build(seed_yml, out, registry=registry)

        assert result.ok, result.error
        assert not result.skipped
        assert result.written[0] == out / "config.json"
        assert (out / "systemd" / "radicle-node.service").is_file()
        assert (out / "systemd" / "radicle-httpd.service").is_file()
        assert (out / "nginx" / "seed.example.org.conf").is_file()
        assert (out / ".seedhost" / "state.json").is_file()

        config = json.loads((out / "config.json").read_text())
        assert config["node"]["alias"] == "seed.example.org"
        assert config["web"]["pinned"]["repositories"] == ["rad:z3gqcJUoA1n9HaHKufZs5FCSGazv5"]

    def test_unchanged_inputs_skipped(self, seed_yml: Path, checker, registry, tmp_path: Path):
        out = tmp_path / "result"
        run_build(seed_yml, out, registry=registry)
        again = run_build(seed_yml, out, registry=registry)

        assert again.ok
        assert again.skipped
        assert checker.call_count == 1

    def test_force_rebuilds(self, seed_yml: Path, checker, registry, tmp_path: Path):
        out = tmp_path / "result"
        run_build(seed_yml, out, registry=registry)
        again = run_build(seed_yml, out, force=True, registry=registry)

        assert again.ok
        assert not again.skipped
        assert checker.call_count == 2

    def test_changed_inputs_rebuild(self, seed_yml: Path, checker, registry, tmp_path: Path):
        out = tmp_path / "result"
        run_build(seed_yml, out, registry=registry)
        seed_yml.write_text(seed_yml.read_text().replace("open_firewall: true", "open_firewall: false"))
        again = run_build(seed_yml, out, registry=registry)

        assert not again.skipped
        assert checker.call_count == 2

    def test_deleted_output_rebuilds(self, seed_yml: Path, registry, tmp_path: Path):
        out = tmp_path / "result"
        run_build(seed_yml, out, registry=registry)
        (out / "config.json").unlink()

        again = run_build(seed_yml, out, registry=registry)
        assert not again.skipped
        assert (out / "config.json").is_file()

    def test_no_check_skips_checker(self, seed_yml: Path, checker, registry, tmp_path: Path):
        result = run_build(seed_yml, tmp_path / "result", check=False, registry=registry)
        assert result.ok
        assert checker.call_count == 0
        plan = json.loads((tmp_path / "result" / "plan.json").read_text())
        assert plan["config"]["validated"] is False

    def test_enabling_check_rebuilds(self, seed_yml: Path, checker, registry, tmp_path: Path):
        out = tmp_path / "result"
        run_build(seed_yml, out, check=False, registry=registry)
        again = run_build(seed_yml, out, check=True, registry=registry)

        assert not again.skipped
        assert checker.call_count == 1

    def test_rejected_reports_and_writes_nothing(self, seed_yml: Path, rejecting_registry, tmp_path: Path):
        out = tmp_path / "result"
        result = run_build(seed_yml, out, registry=rejecting_registry)

        assert not result.ok
        assert "Invalid config.json according to rad." in result.error
        assert not out.exists()

    def test_missing_config(self, tmp_path: Path):
        result = run_build(tmp_path / "nope.yml", tmp_path / "out")
        assert not result.ok
        assert "not found" in result.error


class TestRunPlan:
    def test_plan_writes_nothing(self, seed_yml: Path, tmp_path: Path):
        out = tmp_path / "result"
        result = run_plan(seed_yml, out)

        assert result.ok
        assert not out.exists()
        assert [s.unit for s in result.deployment.services] == ["radicle-node", "radicle-httpd"]

    def test_plan_to_dict(self, seed_yml: Path, tmp_path: Path):
        data = run_plan(seed_yml, tmp_path).to_dict()
        assert data["ok"] is True
        assert data["deployment"]["config"]["validated"] is False
        assert data["deployment"]["exposure"]["firewall"]["port"] == 8776

    def test_plan_error(self, tmp_path: Path):
        bad = tmp_path / "seed.yml"
        bad.write_text("public_key: x\n")
        result = run_plan(bad, tmp_path)
        assert not result.ok
        assert "private_key_file" in result.error


def test_loaded_seed_yml(seed_yml: Path):
    opts = load_options(seed_yml)
    assert opts.httpd.enable
    assert opts.node.open_firewall
