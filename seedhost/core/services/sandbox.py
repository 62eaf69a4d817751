"""
Sandbox policy builder: layer hardening fragments into one policy.

Fragments are applied in order:

    common baseline  →  deployment binds  →  service hardening
                     →  credential access →  service relaxations

List directives accumulate across fragments (``after([...])`` entries
go last); scalar directives take the value of the last fragment that
sets them.  Turning a list directive into a scalar, or the reverse, is a
``MergeConflictError``.  The merge itself is ``merge.merge_values``, the
same primitive the settings resolver uses.

The builder enforces nothing.  systemd applies the policy at launch.
"""

from __future__ import annotations

import logging
from typing import Sequence

from seedhost.core.config.merge import Assignment, after, as_assignment, merge_values
from seedhost.core.models.credential import RAD_HOME
from seedhost.core.models.sandbox import SandboxFragment, SandboxPolicy

logger = logging.getLogger(__name__)

SERVICE_USER = "radicle"
SERVICE_GROUP = "radicle"


def build_policy(
    common: SandboxFragment,
    service_fragments: Sequence[SandboxFragment] = (),
) -> SandboxPolicy:
    """Merge *common* and then each of *service_fragments*, in order."""
    fragments = [common, *service_fragments]
    collected: dict[str, list[Assignment]] = {}

    for fragment in fragments:
        for key, raw in fragment.directives.items():
            collected.setdefault(key, []).append(as_assignment(raw, source=fragment.name))

    directives = {key: merge_values(key, items) for key, items in collected.items()}
    provenance = {
        key: list(dict.fromkeys(a.source for a in items)) for key, items in collected.items()
    }

    logger.debug(
        "Built sandbox policy from %s (%d directives)",
        [f.name for f in fragments], len(directives),
    )
    return SandboxPolicy(
        directives=directives,
        provenance=provenance,
        fragments=[f.name for f in fragments],
    )


def common_fragment() -> SandboxFragment:
    """Baseline shared by radicle-node and radicle-httpd.

    Scores well under ``systemd-analyze security``.  Each service adds back
    only what it needs.
    """
    return SandboxFragment(
        name="common",
        directives={
            "BindReadOnlyPaths": [
                "-/etc/resolv.conf",
                "/etc/ssl/certs/ca-certificates.crt",
                "/run/systemd",
            ],
            "KillMode": "control-group",
            "StateDirectory": ["radicle"],
            "User": SERVICE_USER,
            "Group": SERVICE_GROUP,
            "AmbientCapabilities": "",
            "CapabilityBoundingSet": "",
            # ProtectClock= adds DeviceAllow=char-rtc r
            "DeviceAllow": "",
            "LockPersonality": True,
            "MemoryDenyWriteExecute": True,
            "NoNewPrivileges": True,
            "PrivateTmp": True,
            "ProcSubset": "pid",
            "ProtectClock": True,
            "ProtectHome": True,
            "ProtectHostname": True,
            "ProtectKernelLogs": True,
            "ProtectProc": "invisible",
            "ProtectSystem": "strict",
            "RemoveIPC": True,
            "RestrictAddressFamilies": ["AF_UNIX", "AF_INET", "AF_INET6"],
            "RestrictNamespaces": True,
            "RestrictRealtime": True,
            "RestrictSUIDSGID": True,
            "RuntimeDirectoryMode": "700",
            "SocketBindDeny": ["any"],
            "StateDirectoryMode": "0750",
            "SystemCallFilter": [
                "@system-service",
                "~@aio",
                "~@chown",
                "~@keyring",
                "~@memlock",
                "~@privileged",
                "~@resources",
                "~@setuid",
                "~@timer",
            ],
            "SystemCallArchitectures": "native",
            # Lets BindPaths= and BindReadOnlyPaths= traverse the
            # directories they create inside RootDirectory=.
            "UMask": "0066",
            "ConfinementMode": "full-apivfs",
            "ConfinementPackages": [],
        },
    )


def bindings_fragment(config_path: str, public_key_path: str) -> SandboxFragment:
    """Read-only binds of the compiled config and the node's public key."""
    return SandboxFragment(
        name="bindings",
        directives={
            "BindReadOnlyPaths": [
                f"{config_path}:{RAD_HOME}/config.json",
                f"{public_key_path}:{RAD_HOME}/keys/radicle.pub",
            ],
        },
    )


def service_fragment(unit: str, packages: Sequence[str]) -> SandboxFragment:
    """Per-service hardening: the confinement sees only these packages."""
    return SandboxFragment(
        name=unit,
        directives={"ConfinementPackages": list(dict.fromkeys(packages))},
    )


def relaxation_fragment(unit: str, port: int) -> SandboxFragment:
    """What a service legitimately needs back from the baseline.

    git upload-pack calls alarm() and setitimer() when serving a clone,
    so @timer is re-allowed after the baseline's ``~@timer``.
    """
    return SandboxFragment(
        name=f"{unit}-relax",
        directives={
            "SocketBindAllow": [f"tcp:{port}"],
            "SystemCallFilter": after(["@timer"], source=f"{unit}-relax"),
        },
    )
