"""Key Derivation - Argon2id master key from passphrase and salt."""

from dataclasses import dataclass
from typing import Union

import nacl.pwhash

from .errors import EmptyPassphrase

KEY_SIZE = 32
SALT_SIZE = nacl.pwhash.argon2id.SALTBYTES  # 16


@dataclass(frozen=True)
class KdfParams:
    """Argon2id cost parameters.

    libsodium's argon2id always runs a single lane, so parallelism is fixed.
    """

    opslimit: int
    memlimit: int
    parallelism: int = 1


# Cost parameters per vault format version. Not user tunable.
KDF_PARAMS = {
    1: KdfParams(
        opslimit=nacl.pwhash.argon2id.OPSLIMIT_INTERACTIVE,
        memlimit=nacl.pwhash.argon2id.MEMLIMIT_INTERACTIVE,
    ),
}

Passphrase = Union[str, bytes, bytearray]


def derive_key(passphrase: Passphrase, salt: bytes, params: KdfParams) -> bytearray:
    """Derive the vault key.

    Same passphrase, salt and params always give the same key. The key is
    returned as a bytearray so it can be wiped once the session closes.

    Raises:
        EmptyPassphrase: If passphrase is zero-length
        ValueError: If salt is not SALT_SIZE bytes

    """
    if len(passphrase) == 0:
        raise EmptyPassphrase()
    if len(salt) != SALT_SIZE:
        raise ValueError(f"Salt must be {SALT_SIZE} bytes, got {len(salt)}")

    if isinstance(passphrase, str):
        secret = passphrase.encode('utf-8')
    else:
        secret = bytes(passphrase)

    key = nacl.pwhash.argon2id.kdf(
        KEY_SIZE,
        secret,
        salt,
        opslimit=params.opslimit,
        memlimit=params.memlimit
    )
    return bytearray(key)


def wipe(buffer: bytearray) -> None:
    """Overwrite a mutable secret buffer with zeros."""
    for i in range(len(buffer)):
        buffer[i] = 0
