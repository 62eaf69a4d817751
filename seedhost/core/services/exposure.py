"""
Network exposure: firewall rule, nginx virtual host, and the settings
defaults the virtual host implies.

When radicle-httpd sits behind nginx, the node's public identity
(``node.alias`` and ``node.externalAddresses``) should default to the
virtual host's name.  Those defaults are handed to the settings resolver
as ``Deferred`` values at default priority: an operator who sets either
key keeps their value, and the closures are only evaluated if they win.
"""

from __future__ import annotations

import logging
from typing import Any

from seedhost.core.config.merge import default
from seedhost.core.config.settings import Deferred, SettingsView
from seedhost.core.models.exposure import FirewallRule, NetworkExposure, VirtualHost
from seedhost.core.models.options import SeedOptions
from seedhost.core.models.service import host_port
from seedhost.core.models.template import GeneratedFile

logger = logging.getLogger(__name__)

ACME_WEBROOT = "/var/lib/acme/acme-challenge"
ACME_CERT_ROOT = "/var/lib/acme"


def plan_exposure(options: SeedOptions) -> NetworkExposure:
    """Work out what the host exposes for *options*."""
    firewall = None
    if options.node.open_firewall:
        firewall = FirewallRule(port=options.node.listen_port)
        logger.info("Opening tcp/%d for radicle-node", firewall.port)

    virtual_host = None
    nginx = options.httpd.nginx
    if options.httpd.enable and nginx is not None:
        virtual_host = VirtualHost(
            server_name=nginx.resolved_server_name(options.host),
            server_aliases=list(nginx.server_aliases),
            force_ssl=nginx.force_ssl,
            enable_acme=nginx.enable_acme,
            use_acme_host=nginx.use_acme_host,
            upstream=f"http://{host_port(options.httpd.listen_address, options.httpd.listen_port)}",
        )
        logger.info("nginx virtual host %s → %s", virtual_host.server_name, virtual_host.upstream)
    elif nginx is not None:
        logger.warning("httpd.nginx is set but httpd is disabled; no virtual host")

    return NetworkExposure(
        node_port=options.node.listen_port,
        firewall=firewall,
        virtual_host=virtual_host,
    )


def settings_defaults(exposure: NetworkExposure) -> dict[str, Any]:
    """Deferred settings defaults derived from the virtual host, if any."""
    vhost = exposure.virtual_host
    if vhost is None:
        return {}

    server_name = vhost.server_name
    node_port = exposure.node_port

    def alias(_: SettingsView) -> str:
        return server_name

    def external_addresses(_: SettingsView) -> list[str]:
        return [f"{server_name}:{node_port}"]

    return {
        "node.alias": default(Deferred(alias, "virtual host name"), source="nginx"),
        "node.externalAddresses": default(
            Deferred(external_addresses, "virtual host name and node port"), source="nginx"
        ),
    }


# ── Rendering ───────────────────────────────────────────────────


def render_vhost(vhost: VirtualHost) -> GeneratedFile:
    """nginx server block(s) for *vhost*."""
    names = " ".join([vhost.server_name, *vhost.server_aliases])
    proxy = [
        "    location / {",
        f"        proxy_pass {vhost.upstream};",
    ]
    if vhost.recommended_proxy_settings:
        proxy += [
            "        proxy_set_header Host $host;",
            "        proxy_set_header X-Real-IP $remote_addr;",
            "        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;",
            "        proxy_set_header X-Forwarded-Proto $scheme;",
            "        proxy_set_header X-Forwarded-Host $host;",
            "        proxy_set_header X-Forwarded-Server $host;",
        ]
    proxy.append("    }")

    acme = []
    if vhost.enable_acme:
        acme = [
            "    location /.well-known/acme-challenge/ {",
            f"        root {ACME_WEBROOT};",
            "    }",
        ]

    lines = ["server {", "    listen 80;", "    listen [::]:80;", f"    server_name {names};"]
    lines += acme
    if vhost.force_ssl:
        lines += ["    location / {", "        return 301 https://$host$request_uri;", "    }", "}", ""]
        cert_dir = f"{ACME_CERT_ROOT}/{vhost.certificate_name}"
        lines += [
            "server {",
            "    listen 443 ssl;",
            "    listen [::]:443 ssl;",
            "    http2 on;",
            f"    server_name {names};",
            f"    ssl_certificate {cert_dir}/fullchain.pem;",
            f"    ssl_certificate_key {cert_dir}/key.pem;",
            *proxy,
            "}",
        ]
    else:
        lines += [*proxy, "}"]

    return GeneratedFile(
        path=f"nginx/{vhost.server_name}.conf",
        content="\n".join(lines) + "\n",
        reason=f"reverse proxy {vhost.server_name} → {vhost.upstream}",
    )


def render_firewall(rule: FirewallRule) -> GeneratedFile:
    """nftables snippet opening the node port."""
    return GeneratedFile(
        path="nftables/radicle-node.nft",
        content=f"add rule inet filter input {rule.protocol} dport {rule.port} accept\n",
        reason=f"open {rule.protocol}/{rule.port} for radicle-node",
    )
