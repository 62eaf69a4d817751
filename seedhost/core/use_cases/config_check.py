"""
Config check use case: validate seed.yml and report issues.

Schema errors come from the loader; the semantic checks below catch
configurations that load fine but cannot work as intended.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from seedhost.core.config.loader import ConfigError, find_config_file, load_options
from seedhost.core.config.merge import MergeConflictError
from seedhost.core.config.settings import SettingsError, resolve
from seedhost.core.models.options import SeedOptions
from seedhost.core.services.credentials import CredentialError, resolve_credential

_LOOPBACK = {"127.0.0.1", "::1", "[::1]", "localhost"}


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    options: SeedOptions | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "httpd": bool(self.options and self.options.httpd.enable),
            "nginx": bool(self.options and self.options.httpd.nginx is not None),
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate seed.yml without building anything."""
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        result.errors.append("No seed.yml found.")
        return result
    result.config_path = config_path

    try:
        options = load_options(config_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.options = options

    try:
        resolve_credential(options.private_key_file)
    except CredentialError as e:
        result.errors.append(str(e))

    try:
        resolve(options.settings)
    except (SettingsError, MergeConflictError) as e:
        result.errors.append(f"settings: {e}")

    node, httpd = options.node, options.httpd

    if httpd.enable and node.listen_port == httpd.listen_port and (
        node.listen_address == httpd.listen_address or node.listen_address in ("[::]", "0.0.0.0")
    ):
        result.errors.append(
            f"radicle-node and radicle-httpd both listen on port {node.listen_port}"
        )

    if node.open_firewall and node.listen_address in _LOOPBACK:
        result.warnings.append(
            f"node.open_firewall is set but radicle-node only listens on {node.listen_address}"
        )

    if httpd.nginx is not None and not httpd.enable:
        result.warnings.append("httpd.nginx is set but httpd is disabled; it will be ignored")

    if not options.check_config:
        result.warnings.append("check_config is off; config.json will not be validated by rad")

    if not options.enable:
        result.warnings.append("enable is false; builds will produce nothing")

    result.valid = len(result.errors) == 0
    return result
