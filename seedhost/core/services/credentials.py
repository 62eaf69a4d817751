"""
Credential resolver: turn the private key locator into systemd wiring.

A locator is either ``/path/to/key`` (plain) or ``name:/path/to/key.cred``
(encrypted with systemd-creds, ``name`` is the credential name).  The
first ``:`` decides; the rest is never re-split.

The key is never bound from its host path.  systemd loads it into
``/run/credentials/<unit>.service/<name>`` and that file is bound
read-only at ``/var/lib/radicle/keys/radicle``.
"""

from __future__ import annotations

import logging

from seedhost.core.errors import SeedhostError
from seedhost.core.models.credential import (
    CredentialDescriptor,
    EncryptedCredential,
    PlainCredential,
)
from seedhost.core.models.sandbox import SandboxFragment

logger = logging.getLogger(__name__)

CREDENTIAL_SEPARATOR = ":"
CREDENTIALS_ROOT = "/run/credentials"


class CredentialError(SeedhostError):
    """The private key locator cannot produce a usable credential."""


def resolve_credential(locator: str) -> CredentialDescriptor:
    """Classify a locator as plain or encrypted.

    Raises:
        CredentialError: empty locator, or a separator with an empty
            name or path on either side.
    """
    if not locator:
        raise CredentialError("private_key_file is empty")

    name, sep, path = locator.partition(CREDENTIAL_SEPARATOR)
    if not sep:
        return PlainCredential(source_path=locator)

    if not name:
        raise CredentialError(
            f"Malformed credential locator '{locator}': empty credential name before ':'"
        )
    if not path:
        raise CredentialError(
            f"Malformed credential locator '{locator}': empty path after ':'"
        )
    return EncryptedCredential(name=name, source_path=path)


def load_directive(credential: CredentialDescriptor) -> tuple[str, str]:
    """The systemd directive (key, value) that loads *credential*."""
    if isinstance(credential, EncryptedCredential):
        return (
            "LoadCredentialEncrypted",
            f"{credential.name}{CREDENTIAL_SEPARATOR}{credential.source_path}",
        )
    if isinstance(credential, PlainCredential):
        return (
            "LoadCredential",
            f"{credential.name}{CREDENTIAL_SEPARATOR}{credential.source_path}",
        )
    raise TypeError(f"Unknown credential descriptor: {credential!r}")


def runtime_path(credential: CredentialDescriptor, unit: str) -> str:
    """Where systemd places the loaded credential for *unit*."""
    return f"{CREDENTIALS_ROOT}/{unit}.service/{credential.name}"


def credential_fragment(credential: CredentialDescriptor, unit: str) -> SandboxFragment:
    """Sandbox directives giving *unit* (and only it) access to the key.

    ``%d`` and ``$CREDENTIALS_DIRECTORY`` are not expanded in
    BindReadOnlyPaths=, hence the literal runtime path.
    """
    key, value = load_directive(credential)
    logger.debug("Credential for %s: %s=%s", unit, key, value)
    return SandboxFragment(
        name=f"{unit}-credential",
        directives={
            key: [value],
            "BindReadOnlyPaths": [f"{runtime_path(credential, unit)}:{credential.mount_path}"],
        },
    )
