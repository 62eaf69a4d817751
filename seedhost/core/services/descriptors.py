"""
Service descriptor assembler: one systemd unit per managed process.

    node   radicle-node   on-failure, 30s backoff
    httpd  radicle-httpd  on-failure, 10s backoff

Both start after the network is online, run as ``radicle`` with
HOME=RAD_HOME=/var/lib/radicle, and restart independently of each other.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from seedhost.core.config.merge import (
    OPERATOR_PRIORITY,
    Assignment,
    as_assignment,
    default,
    force,
    merge_values,
)
from seedhost.core.models.credential import RAD_HOME, CredentialDescriptor
from seedhost.core.models.options import SeedOptions
from seedhost.core.models.sandbox import SandboxPolicy
from seedhost.core.models.service import (
    NetworkBinding,
    RestartPolicy,
    ServiceDescriptor,
    ServiceKind,
    host_port,
    systemd_environment,
)
from seedhost.core.models.template import GeneratedFile

logger = logging.getLogger(__name__)

UNITS: dict[str, str] = {"node": "radicle-node", "httpd": "radicle-httpd"}
RESTART_DELAYS: dict[str, int] = {"node": 30, "httpd": 10}

_DESCRIPTIONS = {
    "node": "Radicle Node",
    "httpd": "Radicle HTTP gateway to radicle-node",
}
_DOCUMENTATION = {
    "node": ["https://docs.radicle.xyz/guides/seeder", "man:radicle-node(1)"],
    "httpd": ["https://docs.radicle.xyz/guides/seeder", "man:radicle-httpd(1)"],
}
_WILDCARD_ADDRESSES = {"[::]", "::", "0.0.0.0", ""}

NETWORK_AFTER = ["network.target", "network-online.target"]
NETWORK_REQUIRES = ["network-online.target"]
WANTED_BY = ["multi-user.target"]


def unit_name(kind: ServiceKind) -> str:
    return UNITS[kind]


def node_binding(options: SeedOptions) -> NetworkBinding:
    return NetworkBinding(address=options.node.listen_address, port=options.node.listen_port)


def httpd_binding(options: SeedOptions) -> NetworkBinding:
    return NetworkBinding(address=options.httpd.listen_address, port=options.httpd.listen_port)


def httpd_upstream(options: SeedOptions) -> str:
    """Node address the gateway fronts: explicit override, else the node's port on loopback."""
    if options.httpd.node_address:
        return options.httpd.node_address
    address = options.node.listen_address
    if address in _WILDCARD_ADDRESSES:
        address = "127.0.0.1"
    return host_port(address, options.node.listen_port)


def service_environment(operator_env: dict[str, str], git_package: str) -> dict[str, str]:
    """Pinned home directories, defaulted log level, operator overrides on top."""
    layers: list[tuple[dict[str, Any], str]] = [
        (
            {
                # rad fails if it cannot stat $HOME/.gitconfig
                "HOME": force(RAD_HOME),
                "RAD_HOME": force(RAD_HOME),
                "RUST_LOG": default("info"),
                "PATH": default(f"{git_package}/bin"),
            },
            "builtin",
        ),
        (operator_env, "operator"),
    ]
    collected: dict[str, list[Assignment]] = {}
    for layer, source in layers:
        for key, value in layer.items():
            collected.setdefault(key, []).append(
                as_assignment(value, OPERATOR_PRIORITY, source=source)
            )
    return {key: str(merge_values(key, items)) for key, items in collected.items()}


def assemble(
    kind: ServiceKind,
    options: SeedOptions,
    sandbox: SandboxPolicy,
    credentials: Sequence[CredentialDescriptor],
    binding: NetworkBinding,
) -> ServiceDescriptor:
    """Build the descriptor for *kind* from its resolved parts."""
    if kind == "node":
        argv = [
            f"{options.package}/bin/radicle-node",
            "--force",
            "--listen",
            binding.listen,
            *options.node.extra_args,
        ]
        operator_env = options.node.environment
        upstream = None
    elif kind == "httpd":
        argv = [
            f"{options.httpd.package}/bin/radicle-httpd",
            "--listen",
            binding.listen,
            *options.httpd.extra_args,
        ]
        operator_env = options.httpd.environment
        upstream = httpd_upstream(options)
    else:
        raise ValueError(f"Unknown service kind: {kind}")

    descriptor = ServiceDescriptor(
        kind=kind,
        unit=UNITS[kind],
        description=_DESCRIPTIONS[kind],
        documentation=list(_DOCUMENTATION[kind]),
        argv=argv,
        environment=service_environment(operator_env, options.git_package),
        working_directory=RAD_HOME,
        binding=binding,
        restart=RestartPolicy(kind="on-failure", delay_sec=RESTART_DELAYS[kind]),
        sandbox=sandbox,
        credentials=list(credentials),
        after=list(NETWORK_AFTER),
        requires=list(NETWORK_REQUIRES),
        wanted_by=list(WANTED_BY),
        upstream=upstream,
    )
    logger.debug("Assembled %s: %s", descriptor.unit, descriptor.exec_start)
    return descriptor


# ── Unit rendering ──────────────────────────────────────────────

_CONFINEMENT_KEYS = {"ConfinementMode", "ConfinementPackages"}
# The root starts empty; these host paths are bound in next to the packages
# so the dynamic loader and its libraries resolve.  "-" skips missing ones.
_CONFINEMENT_HOST_PATHS = ["-/lib", "-/lib64"]


def _systemd_value(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def _service_lines(policy: SandboxPolicy) -> list[str]:
    lines: list[str] = []
    for key, value in policy.directives.items():
        if key in _CONFINEMENT_KEYS:
            continue
        if isinstance(value, list):
            lines.extend(f"{key}={_systemd_value(item)}" for item in value)
        else:
            lines.append(f"{key}={_systemd_value(value)}")

    mode = policy.get("ConfinementMode")
    if mode:
        lines.append("RootDirectory=/var/empty")
        lines.append("RootDirectoryStartOnly=no")
        lines.append("TemporaryFileSystem=/")
        lines.append("PrivateMounts=yes")
        if mode == "full-apivfs":
            lines.append("MountAPIVFS=yes")
            lines.append("PrivateDevices=yes")
        for path in [*policy.list_directive("ConfinementPackages"), *_CONFINEMENT_HOST_PATHS]:
            lines.append(f"BindReadOnlyPaths={path}")
    return lines


def render_unit(descriptor: ServiceDescriptor) -> GeneratedFile:
    """systemd unit file for *descriptor*."""
    unit = [
        "[Unit]",
        f"Description={descriptor.description}",
        f"Documentation={' '.join(descriptor.documentation)}",
        f"After={' '.join(descriptor.after)}",
        f"Requires={' '.join(descriptor.requires)}",
    ]
    if descriptor.upstream:
        unit.append(f"X-RadicleNode={descriptor.upstream}")

    service = [
        "",
        "[Service]",
        f"ExecStart={descriptor.exec_start}",
        *(
            f"Environment={systemd_environment(key, value)}"
            for key, value in sorted(descriptor.environment.items())
        ),
        f"WorkingDirectory={descriptor.working_directory}",
        f"Restart={descriptor.restart.kind}",
        f"RestartSec={descriptor.restart.delay_sec}",
        *_service_lines(descriptor.sandbox),
    ]

    install = ["", "[Install]", f"WantedBy={' '.join(descriptor.wanted_by)}"]

    return GeneratedFile(
        path=f"systemd/{descriptor.unit}.service",
        content="\n".join(unit + service + install) + "\n",
        reason=f"{descriptor.description} ({descriptor.kind})",
    )
