"""Vault Storage - encrypted vault file format, atomic writes and locking.

File layout (big-endian):

    MAGIC(4) | VERSION(1) | SALT(16) | NONCE(12) | CIPHERTEXT | TAG(16)

The ciphertext is ChaCha20-Poly1305 (IETF) over a JSON entry list, keyed by
Argon2id(passphrase, SALT). The 33-byte header is authenticated as
associated data, so any change to it fails verification.
"""

import fcntl
import json
import logging
import os
import struct
import tempfile
from pathlib import Path
from typing import List, Tuple

import nacl.bindings
import nacl.exceptions

from .entropy import random_bytes
from .errors import (
    CorruptVault,
    InvalidEntry,
    VaultExists,
    VaultLocked,
    VaultNotFound,
    WrongPassphrase,
)
from .kdf import KDF_PARAMS, SALT_SIZE, Passphrase, derive_key, wipe
from .session import Entry, VaultSession

logger = logging.getLogger(__name__)

# Constants
MAGIC = b"PWDK"
FORMAT_VERSION = 1
NONCE_SIZE = nacl.bindings.crypto_aead_chacha20poly1305_ietf_NPUBBYTES  # 12
TAG_SIZE = nacl.bindings.crypto_aead_chacha20poly1305_ietf_ABYTES  # 16
HEADER_FORMAT = f">4sB{SALT_SIZE}s{NONCE_SIZE}s"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
MIN_FILE_SIZE = HEADER_SIZE + TAG_SIZE
LOCK_SUFFIX = ".lock"


def set_permissions(path, mode=0o600):
    """Set file permissions."""
    os.chmod(path, mode)


# ============================================================================
# Header and payload
# ============================================================================

def pack_header(version: int, salt: bytes, nonce: bytes) -> bytes:
    return struct.pack(HEADER_FORMAT, MAGIC, version, salt, nonce)


def unpack_header(data: bytes) -> Tuple[int, bytes, bytes, bytes]:
    """Split a vault file into (version, salt, nonce, ciphertext_with_tag).

    Raises:
        CorruptVault: If the file is too short, has the wrong magic or an
            unsupported version

    """
    if len(data) < MIN_FILE_SIZE:
        raise CorruptVault(f"Vault file too short ({len(data)} bytes)")

    magic, version, salt, nonce = struct.unpack(HEADER_FORMAT, data[:HEADER_SIZE])
    if magic != MAGIC:
        raise CorruptVault("Not a pwdeck vault (bad magic)")
    if version not in KDF_PARAMS:
        raise CorruptVault(f"Unsupported vault version: {version}")

    return version, salt, nonce, data[HEADER_SIZE:]


def encode_entries(entries: List[Entry]) -> bytes:
    schema = {
        "entries": [
            {
                "service": e.service,
                "username": e.username,
                "secret": e.secret,
                "created": e.created,
            }
            for e in entries
        ]
    }
    return json.dumps(schema, separators=(",", ":")).encode('utf-8')


def decode_entries(plaintext: bytes) -> List[Entry]:
    """Parse the decrypted payload.

    Raises:
        CorruptVault: If the payload is not a valid entry list

    """
    try:
        schema = json.loads(plaintext.decode('utf-8'))
        entries = []
        for item in schema["entries"]:
            kwargs = {
                "service": item["service"],
                "username": item["username"],
                "secret": item["secret"],
            }
            if "created" in item:
                kwargs["created"] = item["created"]
            entries.append(Entry(**kwargs))
    except (UnicodeDecodeError, ValueError, KeyError, TypeError, InvalidEntry) as exc:
        raise CorruptVault(f"Invalid vault payload: {exc}") from exc

    keys = [e.key for e in entries]
    if len(set(keys)) != len(keys):
        raise CorruptVault("Invalid vault payload: duplicate entries")
    return entries


def encrypt_payload(key: bytearray, header: bytes, plaintext: bytes) -> bytes:
    """Encrypt plaintext; returns ciphertext with the 16-byte tag appended."""
    nonce = header[-NONCE_SIZE:]
    return nacl.bindings.crypto_aead_chacha20poly1305_ietf_encrypt(
        plaintext, header, nonce, bytes(key)
    )


def decrypt_payload(key: bytearray, header: bytes, ciphertext: bytes) -> bytes:
    """Verify and decrypt.

    Raises:
        WrongPassphrase: If the tag does not verify

    """
    nonce = header[-NONCE_SIZE:]
    try:
        return nacl.bindings.crypto_aead_chacha20poly1305_ietf_decrypt(
            ciphertext, header, nonce, bytes(key)
        )
    except nacl.exceptions.CryptoError as exc:
        raise WrongPassphrase() from exc


# ============================================================================
# File handling
# ============================================================================

class VaultLock:
    """Advisory exclusive lock on a vault.

    The lock lives on a sidecar "<vault>.lock" file: the vault itself is
    replaced on every save, which would orphan a lock held on its inode.
    """

    def __init__(self, vault_path: Path):
        self.path = vault_path.with_name(vault_path.name + LOCK_SUFFIX)
        self.fd = None

    def acquire(self) -> "VaultLock":
        fd = os.open(str(self.path), os.O_CREAT | os.O_RDWR, 0o600)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as exc:
            os.close(fd)
            raise VaultLocked(f"Vault is in use by another process: {self.path}") from exc
        except OSError:
            os.close(fd)
            raise
        self.fd = fd
        logger.debug("Acquired lock %s", self.path)
        return self

    def release(self) -> None:
        if self.fd is None:
            return
        try:
            fcntl.flock(self.fd, fcntl.LOCK_UN)
        finally:
            os.close(self.fd)
            self.fd = None
        logger.debug("Released lock %s", self.path)


def atomic_write(path: Path, data: bytes) -> None:
    """Replace path with data; readers see either the old or the new file."""
    dirpath = path.parent
    dirpath.mkdir(parents=True, exist_ok=True, mode=0o700)

    fd, tmp_path = tempfile.mkstemp(dir=dirpath, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        set_permissions(tmp_path)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def _write(session: VaultSession) -> None:
    nonce = random_bytes(NONCE_SIZE)
    while nonce == session.nonce:
        nonce = random_bytes(NONCE_SIZE)

    header = pack_header(session.format_version, session.salt, nonce)
    ciphertext = encrypt_payload(session.key, header, encode_entries(session.entries))
    atomic_write(session.path, header + ciphertext)
    session.nonce = nonce


# ============================================================================
# Vault operations
# ============================================================================

def create_vault(path, passphrase: Passphrase) -> VaultSession:
    """Create a new, empty vault file and return it open.

    Raises:
        VaultExists: If path already exists
        VaultLocked: If another process holds the vault lock
        EmptyPassphrase: If passphrase is empty

    """
    path = Path(path)
    if path.exists():
        raise VaultExists(f"Vault already exists: {path}")

    path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    lock = VaultLock(path).acquire()
    key = None
    try:
        # Another creator may have finished while we waited for the lock
        if path.exists():
            raise VaultExists(f"Vault already exists: {path}")
        params = KDF_PARAMS[FORMAT_VERSION]
        salt = random_bytes(SALT_SIZE)
        key = derive_key(passphrase, salt, params)
        session = VaultSession(
            path=path,
            format_version=FORMAT_VERSION,
            salt=salt,
            kdf_params=params,
            key=key,
            lock=lock,
        )
        _write(session)
    except BaseException:
        if key is not None:
            wipe(key)
        # No vault was written, so drop the sidecar while still holding it
        if not path.exists():
            lock.path.unlink(missing_ok=True)
        lock.release()
        raise

    logger.info("Created vault %s", path)
    return session


def open_vault(path, passphrase: Passphrase) -> VaultSession:
    """Open and decrypt an existing vault.

    Raises:
        VaultNotFound: If path does not exist
        VaultLocked: If another process holds the vault lock
        CorruptVault: If the header or payload is malformed
        WrongPassphrase: If authentication fails
        EmptyPassphrase: If passphrase is empty

    """
    path = Path(path)
    if not path.exists():
        raise VaultNotFound(f"Vault not found: {path}")

    lock = VaultLock(path).acquire()
    key = None
    try:
        data = path.read_bytes()
        version, salt, nonce, ciphertext = unpack_header(data)
        params = KDF_PARAMS[version]
        key = derive_key(passphrase, salt, params)
        plaintext = decrypt_payload(key, data[:HEADER_SIZE], ciphertext)
        entries = decode_entries(plaintext)
    except BaseException:
        if key is not None:
            wipe(key)
        lock.release()
        raise

    logger.info("Opened vault %s (%d entries)", path, len(entries))
    return VaultSession(
        path=path,
        format_version=version,
        salt=salt,
        kdf_params=params,
        key=key,
        entries=entries,
        nonce=nonce,
        lock=lock,
    )


def save_vault(session: VaultSession) -> None:
    """Re-encrypt every entry under a fresh nonce and replace the file."""
    _write(session)
    logger.info("Saved vault %s (%d entries)", session.path, len(session.entries))
