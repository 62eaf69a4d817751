"""
Credential descriptors: where the node's private key comes from.

A tagged variant: either a plain file loaded by systemd with
``LoadCredential=`` or an encrypted blob loaded with
``LoadCredentialEncrypted=``.  Both end up bound read-only at the same
path inside the service.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

RAD_HOME = "/var/lib/radicle"
KEY_MOUNT_PATH = f"{RAD_HOME}/keys/radicle"
PLAIN_CREDENTIAL_NAME = "radicle"


class PlainCredential(BaseModel):
    """Unencrypted key file on the host."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["plain"] = "plain"
    source_path: str
    mount_path: str = KEY_MOUNT_PATH

    @property
    def name(self) -> str:
        return PLAIN_CREDENTIAL_NAME


class EncryptedCredential(BaseModel):
    """systemd-creds encrypted key, addressed by credential name."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["encrypted"] = "encrypted"
    name: str
    source_path: str
    mount_path: str = KEY_MOUNT_PATH


CredentialDescriptor = Annotated[
    Union[PlainCredential, EncryptedCredential],
    Field(discriminator="kind"),
]
