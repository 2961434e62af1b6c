"""Entropy Source - unbiased random bytes and indices from libsodium."""

from typing import Callable, Optional

import nacl.utils

from .errors import EntropyUnavailable, InvalidBound


class EntropySource:
    """Cryptographically secure random source.

    Wraps libsodium's randombytes (through pynacl). The reader can be
    swapped out in tests; there is never a non-secure fallback.
    """

    def __init__(self, reader: Optional[Callable[[int], bytes]] = None):
        self._read = reader or nacl.utils.random

    def random_bytes(self, n: int) -> bytes:
        """Return n random bytes.

        Raises:
            InvalidBound: If n is negative
            EntropyUnavailable: If the OS source cannot be read

        """
        if n < 0:
            raise InvalidBound(f"Cannot read a negative number of bytes: {n}")
        if n == 0:
            return b""

        try:
            data = self._read(n)
        except (OSError, RuntimeError) as exc:
            raise EntropyUnavailable(f"Secure random source unavailable: {exc}") from exc

        if len(data) != n:
            raise EntropyUnavailable(f"Short read from random source ({len(data)} of {n} bytes)")
        return data

    def random_index(self, bound: int) -> int:
        """Return a uniform integer in [0, bound) using rejection sampling.

        Draws just enough bytes to cover bound - 1 and throws away values in
        the incomplete last bucket, so there is no modulo bias.
        """
        if bound < 1:
            raise InvalidBound(f"Random bound must be at least 1, got {bound}")
        if bound == 1:
            return 0

        nbytes = ((bound - 1).bit_length() + 7) // 8
        space = 256 ** nbytes
        limit = space - (space % bound)

        while True:
            value = int.from_bytes(self.random_bytes(nbytes), "big")
            if value < limit:
                return value % bound


_default = EntropySource()


def random_bytes(n: int) -> bytes:
    return _default.random_bytes(n)


def random_index(bound: int) -> int:
    return _default.random_index(bound)


def default_source() -> EntropySource:
    return _default
