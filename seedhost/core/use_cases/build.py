"""
Build use case: evaluate seed.yml into a deployment and write it out.

Evaluation order:

    credentials → exposure → settings (user + built-in + exposure defaults)
    → sandbox policies → service descriptors → config.json (check + install)

Everything before the last step is pure, so any failure there leaves the
output directory untouched.  config.json is installed only after rad
accepts it, and unit files are written only after config.json is in
place: a failed build never produces a partial deployment.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from seedhost.adapters.registry import AdapterRegistry
from seedhost.adapters.shell.rad_config import RadConfigAdapter
from seedhost.core.config.loader import load_options
from seedhost.core.config.merge import default
from seedhost.core.config.settings import Deferred, Settings, SettingsView, resolve
from seedhost.core.errors import SeedhostError
from seedhost.core.models.exposure import NetworkExposure
from seedhost.core.models.options import SeedOptions
from seedhost.core.models.sandbox import SandboxFragment, SandboxPolicy
from seedhost.core.models.service import ServiceDescriptor, ServiceKind, host_port
from seedhost.core.models.state import BuildState
from seedhost.core.models.template import GeneratedFile
from seedhost.core.persistence.files import atomic_write
from seedhost.core.persistence.state_file import default_state_path, load_state, save_state
from seedhost.core.services.compiler import CompileResult, ConfigCompiler
from seedhost.core.services.credentials import credential_fragment, resolve_credential
from seedhost.core.services.descriptors import (
    assemble,
    httpd_binding,
    node_binding,
    render_unit,
    unit_name,
)
from seedhost.core.services.exposure import (
    plan_exposure,
    render_firewall,
    render_vhost,
    settings_defaults,
)
from seedhost.core.services.host_files import (
    public_key_source,
    render_rad_system,
    render_sysusers,
)
from seedhost.core.services.sandbox import (
    bindings_fragment,
    build_policy,
    common_fragment,
    relaxation_fragment,
    service_fragment,
)

logger = logging.getLogger(__name__)

PLAN_FILE = "plan.json"


@dataclass
class Deployment:
    """The result of evaluating one SeedOptions."""

    options: SeedOptions
    output_dir: Path
    fingerprint: str
    settings: Settings | None = None
    config_path: Path | None = None
    artifact: CompileResult | None = None
    exposure: NetworkExposure | None = None
    services: list[ServiceDescriptor] = field(default_factory=list)
    files: list[GeneratedFile] = field(default_factory=list)

    def service(self, kind: ServiceKind) -> ServiceDescriptor | None:
        for svc in self.services:
            if svc.kind == kind:
                return svc
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "enabled": self.options.enable,
            "config": {
                "path": str(self.config_path) if self.config_path else None,
                "validated": self.artifact.validated if self.artifact else False,
                "settings": self.settings.as_dict() if self.settings else None,
            },
            "services": [
                {**svc.model_dump(mode="json"), "exec_start": svc.exec_start}
                for svc in self.services
            ],
            "exposure": self.exposure.model_dump(mode="json") if self.exposure else None,
            "files": [f.path for f in self.files],
        }


def fingerprint(options: SeedOptions, check: bool) -> str:
    """Content hash of everything that determines the build output."""
    payload = json.dumps(
        {"options": options.model_dump(mode="json"), "check": check},
        sort_keys=True,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def default_registry() -> AdapterRegistry:
    registry = AdapterRegistry()
    registry.register(RadConfigAdapter())
    return registry


def builtin_settings_defaults(options: SeedOptions) -> dict[str, Any]:
    """Defaults seedhost contributes to config.json before operator settings."""
    listen = host_port(options.node.listen_address, options.node.listen_port)

    def node_listen(_: SettingsView) -> list[str]:
        return [listen]

    return {"node.listen": default(Deferred(node_listen, "node listen address"), source="node")}


def _service_policy(
    kind: ServiceKind,
    options: SeedOptions,
    config_path: str,
    public_key_path: str,
    credential_fragments: list[SandboxFragment],
) -> SandboxPolicy:
    unit = unit_name(kind)
    if kind == "node":
        package, port = options.package, options.node.listen_port
    else:
        package, port = options.httpd.package, options.httpd.listen_port

    return build_policy(
        common_fragment(),
        [
            bindings_fragment(config_path, public_key_path),
            service_fragment(unit, [package, options.git_package]),
            *credential_fragments,
            relaxation_fragment(unit, port),
        ],
    )


def evaluate(
    options: SeedOptions,
    output_dir: Path,
    registry: AdapterRegistry | None = None,
    check: bool | None = None,
    dry_run: bool = False,
) -> Deployment:
    """Evaluate *options* into a Deployment.

    Args:
        options: Validated operator options.
        output_dir: Where config.json and generated files belong.
        registry: Adapter registry for the config check (default: real rad).
        check: Override ``options.check_config``.
        dry_run: Resolve everything but neither check nor install config.json.

    Raises:
        SeedhostError: any build-time failure; nothing has been written.
    """
    check = options.check_config if check is None else check
    deployment = Deployment(
        options=options,
        output_dir=output_dir,
        fingerprint=fingerprint(options, check),
    )

    if not options.enable:
        logger.info("Deployment disabled (enable: false); nothing to build")
        return deployment

    credential = resolve_credential(options.private_key_file)

    exposure = plan_exposure(options)
    deployment.exposure = exposure

    settings = resolve(
        options.settings,
        [builtin_settings_defaults(options), settings_defaults(exposure)],
    )
    deployment.settings = settings

    compiler = ConfigCompiler(
        output_dir,
        registry or default_registry(),
        check=check,
        checker_binary=f"{options.package}/bin/rad",
    )
    config_path = compiler.artifact_path.resolve()
    deployment.config_path = config_path
    public_key_path, public_key_file = public_key_source(options, output_dir)

    node_unit = unit_name("node")
    node_policy = _service_policy(
        "node", options, str(config_path), public_key_path,
        [credential_fragment(credential, node_unit)],
    )
    deployment.services.append(
        assemble("node", options, node_policy, [credential], node_binding(options))
    )

    if options.httpd.enable:
        httpd_policy = _service_policy("httpd", options, str(config_path), public_key_path, [])
        deployment.services.append(
            assemble("httpd", options, httpd_policy, [], httpd_binding(options))
        )

    files = [render_unit(svc) for svc in deployment.services]
    if exposure.virtual_host is not None:
        files.append(render_vhost(exposure.virtual_host))
    if exposure.firewall is not None:
        files.append(render_firewall(exposure.firewall))
    if public_key_file is not None:
        files.append(public_key_file)
    files.append(render_sysusers())
    files.append(render_rad_system(options))
    deployment.files = files

    if not dry_run:
        deployment.artifact = compiler.compile(settings)

    return deployment


def write_deployment(deployment: Deployment) -> list[Path]:
    """Write every generated file plus plan.json.  Returns the paths written."""
    out = deployment.output_dir
    written: list[Path] = []
    for generated in deployment.files:
        written.append(atomic_write(out / generated.path, generated.content, generated.mode))

    plan = json.dumps(deployment.to_dict(), indent=2, ensure_ascii=False) + "\n"
    written.append(atomic_write(out / PLAN_FILE, plan))
    logger.info("Wrote %d files to %s", len(written), out)
    return written


# ── Use case entry points ───────────────────────────────────────


@dataclass
class BuildResult:
    """Outcome of ``run_build`` / ``run_plan``."""

    ok: bool = False
    skipped: bool = False
    error: str | None = None
    deployment: Deployment | None = None
    written: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "skipped": self.skipped,
            "error": self.error,
            "written": [str(p) for p in self.written],
            "deployment": self.deployment.to_dict() if self.deployment else None,
        }


def run_plan(config_path: Path | None, output_dir: Path) -> BuildResult:
    """Evaluate without checking or writing anything."""
    result = BuildResult()
    try:
        options = load_options(config_path)
        result.deployment = evaluate(options, output_dir, dry_run=True)
    except SeedhostError as e:
        result.error = str(e)
        return result
    result.ok = True
    return result


def run_build(
    config_path: Path | None,
    output_dir: Path,
    check: bool | None = None,
    force: bool = False,
    registry: AdapterRegistry | None = None,
) -> BuildResult:
    """Evaluate seed.yml, check and install config.json, write the deployment.

    A build whose input fingerprint matches the last successful build in
    *output_dir* is skipped unless *force* is set.
    """
    result = BuildResult()
    try:
        options = load_options(config_path)
    except SeedhostError as e:
        result.error = str(e)
        return result

    effective_check = options.check_config if check is None else check
    state_path = default_state_path(output_dir)
    state = load_state(state_path)
    current = fingerprint(options, effective_check)

    if (
        not force
        and state.fingerprint == current
        and state.files
        and all(Path(p).exists() for p in state.files)
    ):
        logger.info("Inputs unchanged since %s; skipping build", state.built_at)
        result.ok = True
        result.skipped = True
        result.written = [Path(p) for p in state.files]
        return result

    try:
        deployment = evaluate(options, output_dir, registry=registry, check=effective_check)
        result.deployment = deployment
        written = write_deployment(deployment)
    except (SeedhostError, OSError) as e:
        result.error = str(e)
        return result

    if deployment.artifact is not None:
        written.insert(0, deployment.artifact.artifact_path)
    result.written = written
    save_state(
        BuildState(fingerprint=current, files=[str(p) for p in written]),
        state_path,
    )
    result.ok = True
    return result
