"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from seedhost.adapters.mock import MockAdapter
from seedhost.adapters.registry import AdapterRegistry
from seedhost.adapters.shell.rad_config import ADAPTER_NAME
from seedhost.core.models.options import SeedOptions
from seedhost.core.services.compiler import CHECK_ACTION_ID


def make_options(**overrides) -> SeedOptions:
    """SeedOptions with the two required fields filled in."""
    data = {
        "private_key_file": "/etc/radicle/key",
        "public_key": "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIGk4 seed@example",
        "host": {"hostname": "box", "domain": "example.org"},
    }
    data.update(overrides)
    return SeedOptions.model_validate(data)


@pytest.fixture
def options_factory():
    return make_options


@pytest.fixture
def options() -> SeedOptions:
    return make_options()


@pytest.fixture
def checker() -> MockAdapter:
    """Stands in for `rad config`; accepts everything."""
    return MockAdapter(adapter_name=ADAPTER_NAME)


@pytest.fixture
def registry(checker: MockAdapter) -> AdapterRegistry:
    reg = AdapterRegistry()
    reg.register(checker)
    return reg


@pytest.fixture
def rejecting_registry() -> AdapterRegistry:
    """A checker that rejects every config.json."""
    adapter = MockAdapter(adapter_name=ADAPTER_NAME)
    adapter.set_failure(CHECK_ACTION_ID, "Error: configuration: invalid type: string, expected u16")
    reg = AdapterRegistry()
    reg.register(adapter)
    return reg


@pytest.fixture
def seed_yml(tmp_path: Path) -> Path:
    """A seed.yml with the gateway and nginx enabled."""
    content = textwrap.dedent("""\
        private_key_file: /etc/radicle/key
        public_key: "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIGk4 seed@example"
        host:
          hostname: box
          domain: example.org
        node:
          open_firewall: true
        httpd:
          enable: true
          nginx:
            server_name: seed.example.org
        settings:
          web:
            pinned:
              repositories:
                - rad:z3gqcJUoA1n9HaHKufZs5FCSGazv5
    """)
    path = tmp_path / "seed.yml"
    path.write_text(content)
    return path
