"""pwdeck - A simple password manager.
Generates random and diceware passwords and keeps credentials in an
Argon2id / ChaCha20-Poly1305 encrypted vault via pynacl.
"""

__version__ = "0.2.0"
