"""Shared pytest fixtures."""

import json

import keyring
import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from branchkit.branches.history import BranchHistoryStore
from branchkit.branches.service import BranchAutomationService
from branchkit.credentials.vault import CredentialVault
from branchkit.git.repository import RepositoryDriver
from branchkit.utils.system_info import SystemInfo


class MemoryKeyring(KeyringBackend):
    """Keyring backend that keeps passwords in a dict."""

    priority = 1

    def __init__(self):
        super().__init__()
        self.passwords: dict[tuple[str, str], str] = {}

    def get_password(self, service, username):
        return self.passwords.get((service, username))

    def set_password(self, service, username, password):
        self.passwords[(service, username)] = password

    def delete_password(self, service, username):
        try:
            del self.passwords[(service, username)]
        except KeyError:
            raise PasswordDeleteError("Password not found") from None


@pytest.fixture
def memory_keyring():
    """Install an in-memory keyring for the duration of a test."""
    previous = keyring.get_keyring()
    backend = MemoryKeyring()
    keyring.set_keyring(backend)
    yield backend
    keyring.set_keyring(previous)


@pytest.fixture
def vault(memory_keyring):
    return CredentialVault(service_name="branchkit-test")


@pytest.fixture
def ssh_dir(tmp_path):
    """An empty ssh directory so tests never pick up real keys."""
    path = tmp_path / "ssh"
    path.mkdir()
    return path


@pytest.fixture
def driver(ssh_dir):
    return RepositoryDriver(
        ssh_dir=ssh_dir, fallback_name="Test User", fallback_email="test@example.com"
    )


@pytest.fixture
def empty_repo(tmp_path, driver):
    """A freshly initialized repository without commits."""
    repo_path = tmp_path / "empty"
    result = driver.initialize(repo_path)
    assert result.success, result.message
    return repo_path


@pytest.fixture
def temp_repo(tmp_path, driver):
    """A repository on ``main`` with one commit containing README.md."""
    repo_path = tmp_path / "repo"
    driver.initialize(repo_path)
    (repo_path / "README.md").write_text("# Test Repository\n")
    driver.add_all(repo_path)
    result = driver.commit(repo_path, "Initial commit")
    assert result.success, result.message
    return repo_path


@pytest.fixture
def history_store():
    """History store backed by an in-memory database."""
    store = BranchHistoryStore.open(":memory:")
    yield store
    store.close()


@pytest.fixture
def system_info():
    return SystemInfo(username="john.doe", machine_name="MacBook-Pro", os_type="macOS")


@pytest.fixture
def branch_service(driver, history_store, system_info):
    return BranchAutomationService(driver, history_store, system_info=system_info)


@pytest.fixture
def config_file(tmp_path, ssh_dir):
    """A branchkit config file pointing storage and keys into tmp_path."""
    path = tmp_path / "branchkit" / "config.json"
    path.parent.mkdir()
    path.write_text(
        json.dumps(
            {
                "storage": {"database_path": str(tmp_path / "branchkit" / "history.db")},
                "credentials": {"service_name": "branchkit-test"},
                "auth": {"ssh_dir": str(ssh_dir)},
            }
        )
    )
    return path
