"""
Service descriptors: one per managed process.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field

from seedhost.core.models.credential import CredentialDescriptor
from seedhost.core.models.sandbox import SandboxPolicy

ServiceKind = Literal["node", "httpd"]

# Words systemd takes literally outside quotes, once % and $ are doubled.
_UNQUOTED = re.compile(r"[\w@%$+=:,./\[\]-]+")
_C_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t", "\r": "\\r"}


def _c_escape(text: str) -> str:
    out = []
    for ch in text:
        if ch in _C_ESCAPES:
            out.append(_C_ESCAPES[ch])
        elif ord(ch) < 0x20 or ch == "\x7f":
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
    return "".join(out)


def systemd_quote(arg: str) -> str:
    """One ExecStart= argument, reaching the process exactly as given.

    systemd expands $VAR and % specifiers even inside quotes, so both are
    doubled.  Anything else unusual is double-quoted with C escapes, so a
    newline cannot end the directive.
    """
    arg = arg.replace("%", "%%").replace("$", "$$")
    if _UNQUOTED.fullmatch(arg):
        return arg
    return f'"{_c_escape(arg)}"'


def systemd_environment(key: str, value: str) -> str:
    """Quoted KEY=VALUE for Environment=, where $ is already literal."""
    return f'"{_c_escape(f"{key}={value}".replace("%", "%%"))}"'


def host_port(address: str, port: int) -> str:
    """address:port, bracketing a bare IPv6 literal."""
    if ":" in address and not address.startswith("["):
        address = f"[{address}]"
    return f"{address}:{port}"


class RestartPolicy(BaseModel):
    """How the supervisor restarts a crashed process."""

    kind: str = "on-failure"
    delay_sec: int


class NetworkBinding(BaseModel):
    address: str
    port: int

    @property
    def listen(self) -> str:
        return host_port(self.address, self.port)


class ServiceDescriptor(BaseModel):
    """Everything the supervisor needs to run one process."""

    kind: ServiceKind
    unit: str
    description: str
    documentation: list[str] = Field(default_factory=list)

    argv: list[str]
    environment: dict[str, str] = Field(default_factory=dict)
    working_directory: str
    binding: NetworkBinding
    restart: RestartPolicy
    sandbox: SandboxPolicy
    credentials: list[CredentialDescriptor] = Field(default_factory=list)

    after: list[str] = Field(default_factory=list)
    requires: list[str] = Field(default_factory=list)
    wanted_by: list[str] = Field(default_factory=list)

    upstream: str | None = None           # httpd only: node address it fronts

    @property
    def exec_start(self) -> str:
        """argv as an ExecStart= command line."""
        return " ".join(systemd_quote(arg) for arg in self.argv)
