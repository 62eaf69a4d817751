"""
Tests for the private key credential resolver.
"""

import pytest
from pydantic import TypeAdapter

from seedhost.core.models.credential import (
    KEY_MOUNT_PATH,
    CredentialDescriptor,
    EncryptedCredential,
    PlainCredential,
)
from seedhost.core.services.credentials import (
    CredentialError,
    credential_fragment,
    load_directive,
    resolve_credential,
    runtime_path,
)


class TestResolveCredential:
    def test_plain_path(self):
        cred = resolve_credential("/etc/radicle/key")
        assert isinstance(cred, PlainCredential)
        assert cred.source_path == "/etc/radicle/key"
        assert cred.name == "radicle"
        assert cred.mount_path == KEY_MOUNT_PATH

    def test_encrypted(self):
        cred = resolve_credential("radicle-key:/etc/credstore.encrypted/radicle.cred")
        assert isinstance(cred, EncryptedCredential)
        assert cred.name == "radicle-key"
        assert cred.source_path == "/etc/credstore.encrypted/radicle.cred"

    def test_only_first_separator_splits(self):
        cred = resolve_credential("key:/weird:path")
        assert cred.name == "key"
        assert cred.source_path == "/weird:path"

    def test_empty_locator(self):
        with pytest.raises(CredentialError, match="empty"):
            resolve_credential("")

    def test_empty_name(self):
        with pytest.raises(CredentialError, match="credential name"):
            resolve_credential(":/etc/radicle/key.cred")

    def test_empty_path(self):
        with pytest.raises(CredentialError, match="empty path"):
            resolve_credential("radicle:")

    def test_discriminated_union_roundtrip(self):
        adapter = TypeAdapter(CredentialDescriptor)
        cred = adapter.validate_python({"kind": "encrypted", "name": "k", "source_path": "/x"})
        assert isinstance(cred, EncryptedCredential)


class TestDirectives:
    def test_plain_uses_load_credential(self):
        key, value = load_directive(resolve_credential("/etc/radicle/key"))
        assert key == "LoadCredential"
        assert value == "radicle:/etc/radicle/key"

    def test_encrypted_uses_load_credential_encrypted(self):
        key, value = load_directive(resolve_credential("k:/etc/k.cred"))
        assert key == "LoadCredentialEncrypted"
        assert value == "k:/etc/k.cred"

    def test_runtime_path(self):
        cred = resolve_credential("k:/etc/k.cred")
        assert runtime_path(cred, "radicle-node") == "/run/credentials/radicle-node.service/k"

    def test_fragment_binds_runtime_path_not_host_path(self):
        frag = credential_fragment(resolve_credential("/etc/radicle/key"), "radicle-node")
        assert frag.name == "radicle-node-credential"
        assert frag.directives["LoadCredential"] == ["radicle:/etc/radicle/key"]
        binds = frag.directives["BindReadOnlyPaths"]
        assert binds == [
            "/run/credentials/radicle-node.service/radicle:/var/lib/radicle/keys/radicle"
        ]
        assert not any(b.startswith("/etc/radicle/key") for b in binds)

    def test_fragment_is_unit_scoped(self):
        cred = resolve_credential("k:/etc/k.cred")
        node = credential_fragment(cred, "radicle-node")
        httpd = credential_fragment(cred, "radicle-httpd")
        assert node.directives["BindReadOnlyPaths"] != httpd.directives["BindReadOnlyPaths"]
