"""
Network exposure: firewall rule and reverse-proxy virtual host.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class FirewallRule(BaseModel):
    port: int
    protocol: Literal["tcp"] = "tcp"


class VirtualHost(BaseModel):
    """nginx front end binding a public hostname to radicle-httpd."""

    server_name: str
    server_aliases: list[str] = Field(default_factory=list)
    force_ssl: bool = True
    enable_acme: bool = True
    use_acme_host: str | None = None
    upstream: str
    recommended_proxy_settings: bool = True

    @property
    def certificate_name(self) -> str:
        return self.use_acme_host or self.server_name


class NetworkExposure(BaseModel):
    """What the host exposes beyond the two services' own sockets."""

    node_port: int
    firewall: FirewallRule | None = None
    virtual_host: VirtualHost | None = None
