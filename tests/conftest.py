"""Pytest fixtures and utilities for pwdeck tests."""

import os
import tempfile
from pathlib import Path

import pytest
import nacl.pwhash

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pwdeck import kdf
from pwdeck.kdf import KdfParams
from pwdeck.session import Entry
from pwdeck.storage import create_vault

TEST_PASSWORD = "correct-horse"

TEN_WORDS = [
    "apple", "banana", "cherry", "delta", "echo",
    "falcon", "grape", "harbor", "igloo", "jungle",
]


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    """Use libsodium's minimum Argon2id cost so tests stay fast."""
    params = KdfParams(
        opslimit=nacl.pwhash.argon2id.OPSLIMIT_MIN,
        memlimit=nacl.pwhash.argon2id.MEMLIMIT_MIN,
    )
    monkeypatch.setitem(kdf.KDF_PARAMS, 1, params)
    yield params


@pytest.fixture
def temp_vault_dir():
    """Create a temporary directory for vault files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def vault_path(temp_vault_dir):
    """Path for a vault that does not exist yet."""
    return temp_vault_dir / "test.pwd"


@pytest.fixture
def test_vault(vault_path):
    """Create a committed vault with test data and return its details."""
    entries = [
        Entry("github", "alice", "gh_secret_123"),
        Entry("github", "bob", "gh_secret_456"),
        Entry("email", "alice@example.com", "mail_pass_789"),
    ]

    with create_vault(vault_path, TEST_PASSWORD) as session:
        for entry in entries:
            session.add(entry)
        session.commit()

    return {
        "path": vault_path,
        "password": TEST_PASSWORD,
        "entries": entries,
    }


@pytest.fixture
def wordlist_file(temp_vault_dir):
    """A plain ten-word wordlist on disk."""
    path = temp_vault_dir / "words.txt"
    path.write_text("\n".join(TEN_WORDS) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def env_cleanup():
    """Clean up environment variables after test."""
    original_env = dict(os.environ)
    yield
    # Restore original environment
    for key in list(os.environ.keys()):
        if key not in original_env:
            del os.environ[key]
    os.environ.update(original_env)


class FixedReader:
    """Deterministic byte reader for EntropySource tests."""

    def __init__(self, data: bytes):
        self.data = bytearray(data)
        self.calls = []

    def __call__(self, n: int) -> bytes:
        self.calls.append(n)
        chunk = bytes(self.data[:n])
        del self.data[:n]
        return chunk
