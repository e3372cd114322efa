"""Credential negotiation for remote transfers.

libgit2 asks for credentials again every time the remote rejects the last
offer. Each invocation advances an explicit :class:`NegotiationState`: every
strategy is offered at most once and the whole negotiation fails on the
invocation after ``MAX_AUTH_ATTEMPTS``.

Strategy order, gated by the credential types the remote allows:

1. ssh-agent identity (first invocation only)
2. the first readable SSH key pair on disk
3. inline username/password
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import pygit2
from pygit2.enums import CredentialType

from branchkit.git.errors import AuthenticationError
from branchkit.git.models import GitCredentials

logger = logging.getLogger(__name__)

MAX_AUTH_ATTEMPTS = 3
DEFAULT_SSH_USERNAME = "git"
SSH_KEY_NAMES = ("id_ed25519", "id_rsa", "id_ecdsa")

STRATEGY_SSH_AGENT = "ssh_agent"
STRATEGY_SSH_KEYS = "ssh_keys"
STRATEGY_USERPASS = "userpass"


@dataclass
class NegotiationState:
    """Progress of one negotiation: invocation count and strategies used."""

    attempts: int = 0
    tried: set[str] = field(default_factory=set)


class CredentialNegotiator:
    """Chooses the next credential to offer a remote."""

    def __init__(
        self,
        credentials: GitCredentials | None = None,
        ssh_dir: Path | None = None,
        max_attempts: int = MAX_AUTH_ATTEMPTS,
    ):
        """Initialize negotiator.

        Args:
            credentials: Inline credentials, offered for plaintext auth and,
                when they carry a key path, tried before the default keys.
            ssh_dir: Directory holding the user's key pairs. Defaults to ~/.ssh
            max_attempts: Number of callback invocations allowed.
        """
        self.credentials = credentials
        self.ssh_dir = Path(ssh_dir) if ssh_dir else Path.home() / ".ssh"
        self.max_attempts = max_attempts

    def key_candidates(self) -> list[tuple[Path, Path]]:
        """Return (private, public) key paths in the order they are tried."""
        candidates = []
        if self.credentials and self.credentials.ssh_key_path:
            private = Path(self.credentials.ssh_key_path).expanduser()
            candidates.append((private, private.with_name(private.name + ".pub")))
        for name in SSH_KEY_NAMES:
            candidates.append((self.ssh_dir / name, self.ssh_dir / f"{name}.pub"))
        return candidates

    def _keypair_from_disk(self, username: str) -> pygit2.Keypair | None:
        for private_key, public_key in self.key_candidates():
            if not os.access(private_key, os.R_OK):
                logger.debug(f"SSH key not usable: {private_key}")
                continue
            pubkey = str(public_key) if public_key.exists() else None
            logger.debug(f"Offering SSH key {private_key}")
            return pygit2.Keypair(username, pubkey, str(private_key), "")
        return None

    def next_credential(
        self,
        state: NegotiationState,
        url: str,
        username_from_url: str | None,
        allowed_types: CredentialType,
    ) -> pygit2.Keypair | pygit2.UserPass:
        """Advance the negotiation by one callback invocation.

        Raises:
            AuthenticationError: If the attempt cap is exceeded or no
                untried strategy fits the allowed credential types.
        """
        state.attempts += 1
        if state.attempts > self.max_attempts:
            logger.warning(f"Too many authentication attempts ({state.attempts}) for {url}")
            raise AuthenticationError("Authentication failed after multiple attempts")

        logger.debug(
            f"Authentication attempt #{state.attempts} for {url} "
            f"(user from url: {username_from_url}, allowed: {allowed_types!r})"
        )

        if allowed_types & CredentialType.SSH_KEY:
            username = username_from_url or DEFAULT_SSH_USERNAME

            if state.attempts == 1 and STRATEGY_SSH_AGENT not in state.tried:
                state.tried.add(STRATEGY_SSH_AGENT)
                logger.debug("Offering ssh-agent identity")
                return pygit2.KeypairFromAgent(username)

            if STRATEGY_SSH_KEYS not in state.tried:
                state.tried.add(STRATEGY_SSH_KEYS)
                keypair = self._keypair_from_disk(username)
                if keypair is not None:
                    return keypair

        if allowed_types & CredentialType.USERPASS_PLAINTEXT and STRATEGY_USERPASS not in state.tried:
            state.tried.add(STRATEGY_USERPASS)
            if self.credentials is not None:
                logger.debug("Offering inline username/password")
                return pygit2.UserPass(self.credentials.username, self.credentials.password)

        logger.debug(f"No authentication method left (tried: {sorted(state.tried)})")
        raise AuthenticationError("No authentication method available")


class NegotiatingCallbacks(pygit2.RemoteCallbacks):
    """Transfer callbacks that negotiate credentials and accept any host.

    Certificates and SSH host keys are accepted without verification, the
    equivalent of ``StrictHostKeyChecking=no``.
    """

    def __init__(self, negotiator: CredentialNegotiator, state: NegotiationState | None = None):
        super().__init__()
        self.negotiator = negotiator
        self.state = state or NegotiationState()
        self._certificate_warned = False

    def credentials(self, url, username_from_url, allowed_types):
        return self.negotiator.next_credential(self.state, url, username_from_url, allowed_types)

    def certificate_check(self, certificate, valid, host):
        if not self._certificate_warned:
            if isinstance(host, bytes):
                host = host.decode("utf-8", "replace")
            logger.warning(f"Accepting certificate for {host} without verification (valid={valid})")
            self._certificate_warned = True
        return True
