"""
Host support files: public key, system user, and the rad-system helper.
"""

from __future__ import annotations

import shlex
from pathlib import Path

from seedhost.core.models.credential import RAD_HOME
from seedhost.core.models.options import SeedOptions
from seedhost.core.models.template import GeneratedFile
from seedhost.core.services.sandbox import SERVICE_GROUP, SERVICE_USER

PUBLIC_KEY_FILE = "radicle.pub"


def public_key_source(options: SeedOptions, output_dir: Path) -> tuple[str, GeneratedFile | None]:
    """Host path of the node's public key, plus the file to write if it was given inline."""
    if options.public_key_is_path:
        return options.public_key, None
    generated = GeneratedFile(
        path=PUBLIC_KEY_FILE,
        content=options.public_key.strip() + "\n",
        reason="public key given inline in seed.yml",
    )
    return str(output_dir.resolve() / PUBLIC_KEY_FILE), generated


def render_sysusers() -> GeneratedFile:
    """systemd-sysusers entry for the service account."""
    return GeneratedFile(
        path="sysusers.d/radicle.conf",
        content=(
            f"g {SERVICE_GROUP} -\n"
            f'u {SERVICE_USER} -:{SERVICE_GROUP} "Radicle" {RAD_HOME}\n'
        ),
        reason="system user and group for radicle services",
    )


def render_rad_system(options: SeedOptions) -> GeneratedFile:
    """``rad-system``: run ``rad`` inside radicle-node's namespaces.

    --env is not passed to nsenter so the caller's TERM and friends are
    kept; only HOME/RAD_HOME are exported.
    """
    rad = shlex.quote(f"{options.package}/bin/rad")
    home = shlex.quote(RAD_HOME)
    content = "\n".join([
        "#!/bin/sh",
        "set -o allexport",
        f"HOME={home}",
        f"RAD_HOME={home}",
        "set +o allexport",
        'pid="$(systemctl show -P MainPID radicle-node.service)"',
        'uid="$(systemctl show -P UID radicle-node.service)"',
        'gid="$(systemctl show -P GID radicle-node.service)"',
        f'exec nsenter -a -t "$pid" -S "$uid" -G "$gid" {rad} "$@"',
        "",
    ])
    return GeneratedFile(
        path="bin/rad-system",
        content=content,
        mode=0o755,
        reason="run rad in the namespaces of radicle-node.service",
    )
