"""
Domain models: Pydantic types for seedhost.

    from seedhost.core.models import SeedOptions, ServiceDescriptor, SandboxPolicy
"""

from seedhost.core.models.action import Action, Receipt
from seedhost.core.models.credential import (
    CredentialDescriptor,
    EncryptedCredential,
    PlainCredential,
)
from seedhost.core.models.exposure import FirewallRule, NetworkExposure, VirtualHost
from seedhost.core.models.options import (
    HostOptions,
    HttpdOptions,
    NodeOptions,
    SeedOptions,
    VirtualHostOptions,
)
from seedhost.core.models.sandbox import SandboxFragment, SandboxPolicy
from seedhost.core.models.service import NetworkBinding, RestartPolicy, ServiceDescriptor
from seedhost.core.models.state import BuildState
from seedhost.core.models.template import GeneratedFile

__all__ = [
    "Action",
    "BuildState",
    "CredentialDescriptor",
    "EncryptedCredential",
    "FirewallRule",
    "GeneratedFile",
    "HostOptions",
    "HttpdOptions",
    "NetworkBinding",
    "NetworkExposure",
    "NodeOptions",
    "PlainCredential",
    "Receipt",
    "RestartPolicy",
    "SandboxFragment",
    "SandboxPolicy",
    "SeedOptions",
    "ServiceDescriptor",
    "VirtualHost",
    "VirtualHostOptions",
]
