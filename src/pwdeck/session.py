"""Vault Session - in-memory record management for an open vault.

A VaultSession is what create_vault()/open_vault() hand back. It owns the
decrypted entries, the derived key and the file lock until close().
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import DuplicateEntry, InvalidEntry, NotFound, SessionClosed
from .kdf import KdfParams, wipe

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Entry:
    """A stored credential, keyed by (service, username)."""

    service: str
    username: str
    secret: str = field(repr=False)
    created: str = field(default_factory=_now, compare=False)

    def __post_init__(self):
        fields = (self.service, self.username, self.secret, self.created)
        if not all(isinstance(value, str) for value in fields):
            raise InvalidEntry("Entry fields must be strings")
        if not self.service or not self.username or not self.secret:
            raise InvalidEntry()

    @property
    def key(self) -> Tuple[str, str]:
        return (self.service, self.username)


@dataclass
class VaultSession:
    """An open vault bound to one file."""

    path: Path
    format_version: int
    salt: bytes
    kdf_params: KdfParams
    key: bytearray = field(repr=False)
    entries: List[Entry] = field(default_factory=list)
    nonce: Optional[bytes] = None    # Nonce of the last write
    dirty: bool = False
    lock: Optional[object] = field(default=None, repr=False)
    closed: bool = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def add(self, entry: Entry) -> None:
        """Append an entry.

        Raises:
            DuplicateEntry: If (service, username) is already stored

        """
        self._check_open()
        if self._index(entry.service, entry.username) is not None:
            raise DuplicateEntry(f"Entry already exists: {entry.service}/{entry.username}")
        self.entries.append(entry)
        self.dirty = True

    def find(self, service: str, username: Optional[str] = None) -> List[Entry]:
        """Entries for service, optionally narrowed to one username."""
        self._check_open()
        return [
            e for e in self.entries
            if e.service == service and (username is None or e.username == username)
        ]

    def remove(self, service: str, username: str) -> Entry:
        """Remove and return an entry.

        Raises:
            NotFound: If no entry matches

        """
        self._check_open()
        index = self._index(service, username)
        if index is None:
            raise NotFound(f"Entry not found: {service}/{username}")
        self.dirty = True
        return self.entries.pop(index)

    def list(self) -> Tuple[Entry, ...]:
        self._check_open()
        return tuple(self.entries)

    def commit(self) -> None:
        """Write the vault to disk if anything changed.

        A failed write leaves the session untouched, so commit can simply be
        called again.
        """
        self._check_open()
        if not self.dirty:
            logger.debug("Nothing to commit for %s", self.path)
            return

        # Import here to avoid circular imports
        from .storage import save_vault

        save_vault(self)
        self.dirty = False

    def close(self) -> None:
        """Forget secrets and release the vault file."""
        if self.closed:
            return

        if self.dirty:
            logger.warning("Discarding uncommitted changes to %s", self.path)

        wipe(self.key)
        self.entries.clear()
        self.closed = True

        if self.lock is not None:
            self.lock.release()
            self.lock = None

    def _index(self, service: str, username: str) -> Optional[int]:
        for i, entry in enumerate(self.entries):
            if entry.service == service and entry.username == username:
                return i
        return None

    def _check_open(self) -> None:
        if self.closed:
            raise SessionClosed()
