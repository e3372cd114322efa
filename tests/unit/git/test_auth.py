"""Tests for credential negotiation."""

import logging

import pygit2
import pytest
from pygit2.enums import CredentialType

from branchkit.git.auth import (
    DEFAULT_SSH_USERNAME,
    MAX_AUTH_ATTEMPTS,
    CredentialNegotiator,
    NegotiatingCallbacks,
    NegotiationState,
)
from branchkit.git.errors import AuthenticationError
from branchkit.git.models import GitCredentials

URL = "git@example.com:acme/api.git"
SSH_AND_PASSWORD = CredentialType.SSH_KEY | CredentialType.USERPASS_PLAINTEXT


@pytest.fixture
def inline_credentials():
    return GitCredentials(username="alice", password="s3cret")


@pytest.fixture
def key_pair(ssh_dir):
    """A readable ed25519 key pair in the test ssh directory."""
    private = ssh_dir / "id_ed25519"
    private.write_text("private key material")
    (ssh_dir / "id_ed25519.pub").write_text("ssh-ed25519 AAAA test")
    return private


class TestCredentialNegotiator:
    """Test the negotiation state machine."""

    def test_agent_offered_first(self, ssh_dir):
        """Test agent offered first."""
        negotiator = CredentialNegotiator(ssh_dir=ssh_dir)
        state = NegotiationState()

        credential = negotiator.next_credential(state, URL, None, CredentialType.SSH_KEY)

        assert type(credential) is pygit2.KeypairFromAgent
        assert credential.credential_tuple[0] == DEFAULT_SSH_USERNAME
        assert state.attempts == 1

    def test_username_from_url_is_used(self, ssh_dir):
        """Test username from url is used."""
        negotiator = CredentialNegotiator(ssh_dir=ssh_dir)

        credential = negotiator.next_credential(
            NegotiationState(), URL, "deploy", CredentialType.SSH_KEY
        )

        assert credential.credential_tuple[0] == "deploy"

    def test_full_sequence_is_bounded(self, ssh_dir, key_pair, inline_credentials):
        """Test full sequence is bounded."""
        negotiator = CredentialNegotiator(credentials=inline_credentials, ssh_dir=ssh_dir)
        state = NegotiationState()

        offered = [
            negotiator.next_credential(state, URL, None, SSH_AND_PASSWORD)
            for _ in range(MAX_AUTH_ATTEMPTS)
        ]

        assert [type(c) for c in offered] == [
            pygit2.KeypairFromAgent,
            pygit2.Keypair,
            pygit2.UserPass,
        ]
        assert offered[1].credential_tuple[2] == str(key_pair)
        assert offered[2].credential_tuple == ("alice", "s3cret")

        with pytest.raises(AuthenticationError, match="after multiple attempts"):
            negotiator.next_credential(state, URL, None, SSH_AND_PASSWORD)
        assert state.attempts == MAX_AUTH_ATTEMPTS + 1

    def test_explicit_key_tried_before_defaults(self, tmp_path, ssh_dir, key_pair):
        """Test explicit key tried before defaults."""
        explicit = tmp_path / "deploy_key"
        explicit.write_text("deploy key")
        credentials = GitCredentials(username="bob", password="", ssh_key_path=str(explicit))
        negotiator = CredentialNegotiator(credentials=credentials, ssh_dir=ssh_dir)
        state = NegotiationState()

        negotiator.next_credential(state, URL, None, CredentialType.SSH_KEY)
        keypair = negotiator.next_credential(state, URL, None, CredentialType.SSH_KEY)

        assert type(keypair) is pygit2.Keypair
        assert keypair.credential_tuple[2] == str(explicit)
        # No .pub next to the explicit key
        assert keypair.credential_tuple[1] is None

    def test_missing_keys_fall_through_to_password(self, ssh_dir, inline_credentials):
        """Test missing keys fall through to password."""
        negotiator = CredentialNegotiator(credentials=inline_credentials, ssh_dir=ssh_dir)
        state = NegotiationState()

        negotiator.next_credential(state, URL, None, SSH_AND_PASSWORD)
        credential = negotiator.next_credential(state, URL, None, SSH_AND_PASSWORD)

        assert type(credential) is pygit2.UserPass

    def test_password_only_remote(self, ssh_dir, inline_credentials):
        """Test password only remote."""
        negotiator = CredentialNegotiator(credentials=inline_credentials, ssh_dir=ssh_dir)
        state = NegotiationState()

        credential = negotiator.next_credential(
            state, "https://example.com/acme/api.git", None, CredentialType.USERPASS_PLAINTEXT
        )

        assert type(credential) is pygit2.UserPass
        with pytest.raises(AuthenticationError, match="No authentication method available"):
            negotiator.next_credential(
                state, "https://example.com/acme/api.git", None, CredentialType.USERPASS_PLAINTEXT
            )

    def test_no_inline_credentials_for_https(self, ssh_dir):
        """Test no inline credentials for https."""
        negotiator = CredentialNegotiator(ssh_dir=ssh_dir)

        with pytest.raises(AuthenticationError, match="No authentication method available"):
            negotiator.next_credential(
                NegotiationState(), "https://example.com/x.git", None, CredentialType.USERPASS_PLAINTEXT
            )

    def test_default_ssh_dir(self):
        """Test default ssh dir."""
        negotiator = CredentialNegotiator()
        assert negotiator.ssh_dir.name == ".ssh"

    def test_key_candidates_order(self, ssh_dir):
        """Test key candidates order."""
        names = [private.name for private, _ in CredentialNegotiator(ssh_dir=ssh_dir).key_candidates()]
        assert names == ["id_ed25519", "id_rsa", "id_ecdsa"]


class TestNegotiatingCallbacks:
    """Test the pygit2 callback adapter."""

    def test_credentials_delegate_to_negotiator(self, ssh_dir):
        """Test credentials delegate to negotiator."""
        callbacks = NegotiatingCallbacks(CredentialNegotiator(ssh_dir=ssh_dir))

        credential = callbacks.credentials(URL, None, CredentialType.SSH_KEY)

        assert type(credential) is pygit2.KeypairFromAgent
        assert callbacks.state.attempts == 1

    def test_certificate_check_accepts_and_warns_once(self, ssh_dir, caplog):
        """Test certificate check accepts and warns once."""
        callbacks = NegotiatingCallbacks(CredentialNegotiator(ssh_dir=ssh_dir))

        with caplog.at_level(logging.WARNING, logger="branchkit.git.auth"):
            assert callbacks.certificate_check(None, False, b"example.com")
            assert callbacks.certificate_check(None, False, b"example.com")

        warnings = [r for r in caplog.records if "without verification" in r.getMessage()]
        assert len(warnings) == 1
        assert "example.com" in warnings[0].getMessage()


class TestCloneNegotiationBound:
    """A remote rejecting every credential ends the clone after three offers."""

    def test_clone_fails_after_three_credentials(
        self, tmp_path, monkeypatch, driver, ssh_dir, key_pair
    ):
        """Test clone fails after three credentials."""
        offered = []

        def rejecting_clone(url, path, callbacks=None, **kwargs):
            # Keep asking like libgit2 does until the callback raises
            while True:
                offered.append(callbacks.credentials(url, None, SSH_AND_PASSWORD))

        monkeypatch.setattr(pygit2, "clone_repository", rejecting_clone)

        result = driver.clone(
            URL, tmp_path / "clone", GitCredentials(username="alice", password="s3cret")
        )

        assert not result.success
        assert "Authentication failed after multiple attempts" in result.message
        assert len(offered) == MAX_AUTH_ATTEMPTS
