"""Credential storage."""

from branchkit.credentials.vault import (
    CredentialError,
    CredentialNotFoundError,
    CredentialVault,
    credential_key_for_url,
)

__all__ = [
    "CredentialVault",
    "CredentialError",
    "CredentialNotFoundError",
    "credential_key_for_url",
]
