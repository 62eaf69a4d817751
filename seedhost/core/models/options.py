"""
Operator options: the typed schema of seed.yml.

Everything the operator can say about a deployment lives here.  The
only untyped part is ``settings``, which is passed through to the
node's config.json.
"""

from __future__ import annotations

import socket
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

Port = Annotated[int, Field(ge=1, le=65535)]

DEFAULT_NODE_PORT = 8776
DEFAULT_HTTPD_PORT = 8080


class HostOptions(BaseModel):
    """Identity of the machine being deployed to."""

    model_config = ConfigDict(extra="forbid")

    hostname: str = Field(default_factory=socket.gethostname)
    domain: str = ""


class VirtualHostOptions(BaseModel):
    """Customization of the nginx virtual host in front of radicle-httpd.

    ``server_name`` defaults to ``radicle-<hostname>.<domain>``; TLS and
    ACME are on unless explicitly disabled.
    """

    model_config = ConfigDict(extra="forbid")

    server_name: str | None = None
    server_aliases: list[str] = Field(default_factory=list)
    force_ssl: bool = True
    enable_acme: bool = True
    use_acme_host: str | None = None

    def resolved_server_name(self, host: HostOptions) -> str:
        if self.server_name:
            return self.server_name
        if host.domain:
            return f"radicle-{host.hostname}.{host.domain}"
        return f"radicle-{host.hostname}"


class NodeOptions(BaseModel):
    """radicle-node: the peer-to-peer seed service."""

    model_config = ConfigDict(extra="forbid")

    listen_address: str = "[::]"
    listen_port: Port = DEFAULT_NODE_PORT
    open_firewall: bool = False
    extra_args: list[str] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)


class HttpdOptions(BaseModel):
    """radicle-httpd: the optional HTTP gateway to the node."""

    model_config = ConfigDict(extra="forbid")

    enable: bool = False
    package: str = "/usr"
    listen_address: str = "127.0.0.1"
    listen_port: Port = DEFAULT_HTTPD_PORT
    node_address: str | None = None       # explicit upstream, else derived from node
    extra_args: list[str] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)
    nginx: VirtualHostOptions | None = None


class SeedOptions(BaseModel):
    """Root of seed.yml."""

    model_config = ConfigDict(extra="forbid")

    enable: bool = True
    package: str = "/usr"                 # prefix holding bin/radicle-node and bin/rad
    git_package: str = "/usr"             # prefix holding bin/git
    private_key_file: str
    public_key: str
    check_config: bool = True
    settings: dict[str, Any] = Field(default_factory=dict)

    node: NodeOptions = Field(default_factory=NodeOptions)
    httpd: HttpdOptions = Field(default_factory=HttpdOptions)
    host: HostOptions = Field(default_factory=HostOptions)

    @property
    def public_key_is_path(self) -> bool:
        """An absolute path is bound as-is; anything else is literal key text."""
        return self.public_key.startswith("/")
