"""Error taxonomy for pwdeck.

Every failure raised by the core derives from PwdeckError and carries a
stable code. The CLI maps any of them to a message on stderr and exit 1.
"""

from typing import Optional

# Error codes
ERROR_CODES = {
    "ERROR": "Unexpected error",
    "ENTROPY_UNAVAILABLE": "Secure random source unavailable",
    "INVALID_BOUND": "Random bound must be at least 1",
    "INVALID_SIZE": "Size must be at least 1",
    "EMPTY_WORDLIST": "Wordlist is empty",
    "INVALID_WORDLIST": "Wordlist contains duplicate words",
    "EMPTY_PASSPHRASE": "Passphrase must not be empty",
    "WRONG_PASSPHRASE": "Invalid master password",
    "CORRUPT_VAULT": "Vault file is corrupt",
    "VAULT_LOCKED": "Vault is in use by another process",
    "VAULT_NOT_FOUND": "Vault not found",
    "VAULT_EXISTS": "Vault already exists",
    "SESSION_CLOSED": "Vault session is closed",
    "DUPLICATE_ENTRY": "Entry already exists",
    "NOT_FOUND": "Entry not found",
    "INVALID_ENTRY": "Entry fields must not be empty",
}


class PwdeckError(Exception):
    """Base class for all pwdeck failures."""

    code = "ERROR"

    def __init__(self, message: Optional[str] = None):
        self.message = message or ERROR_CODES[self.code]
        super().__init__(self.message)


class EntropyUnavailable(PwdeckError):
    code = "ENTROPY_UNAVAILABLE"


class GeneratorError(PwdeckError):
    """Caller supplied bad generation parameters."""


class InvalidBound(GeneratorError):
    code = "INVALID_BOUND"


class InvalidSize(GeneratorError):
    code = "INVALID_SIZE"


class EmptyWordlist(GeneratorError):
    code = "EMPTY_WORDLIST"


class InvalidWordlist(GeneratorError):
    code = "INVALID_WORDLIST"


class EmptyPassphrase(PwdeckError):
    code = "EMPTY_PASSPHRASE"


class VaultError(PwdeckError):
    """Failure opening, creating or writing a vault file."""


class WrongPassphrase(VaultError):
    code = "WRONG_PASSPHRASE"


class CorruptVault(VaultError):
    code = "CORRUPT_VAULT"


class VaultLocked(VaultError):
    code = "VAULT_LOCKED"


class VaultNotFound(VaultError):
    code = "VAULT_NOT_FOUND"


class VaultExists(VaultError):
    code = "VAULT_EXISTS"


class SessionClosed(VaultError):
    code = "SESSION_CLOSED"


class EntryError(PwdeckError):
    """Entry-level failure; the open vault is left unchanged."""


class DuplicateEntry(EntryError):
    code = "DUPLICATE_ENTRY"


class NotFound(EntryError):
    code = "NOT_FOUND"


class InvalidEntry(EntryError):
    code = "INVALID_ENTRY"
