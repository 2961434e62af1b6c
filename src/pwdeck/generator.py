"""Password Generator - random-character and diceware passwords.

Both modes are described by one GenerationSpec and handled by generate().
Nothing generated here is ever stored; the caller decides what to do with it.
"""

import math
import string
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .entropy import EntropySource, default_source
from .errors import EmptyWordlist, InvalidSize, InvalidWordlist

SPECIAL_CHARS = "!#$%&*+-_./:=?~`"
ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits + SPECIAL_CHARS
WORD_SEPARATOR = " "


class Mode(Enum):
    RANDOM = "random"
    DICEWARE = "diceware"


DEFAULT_SIZES = {
    Mode.RANDOM: 25,   # characters
    Mode.DICEWARE: 5,  # words
}


@dataclass(frozen=True)
class GenerationSpec:
    """What to generate.

    size defaults per mode when left as None; wordlist is only read in
    diceware mode.
    """

    mode: Mode
    size: Optional[int] = None
    wordlist: Sequence[str] = ()

    @property
    def effective_size(self) -> int:
        return DEFAULT_SIZES[self.mode] if self.size is None else self.size


def generate(spec: GenerationSpec, entropy: Optional[EntropySource] = None) -> str:
    """Generate a password according to spec.

    Raises:
        InvalidSize: If size < 1
        EmptyWordlist: Diceware mode with no words
        InvalidWordlist: Diceware mode with repeated words

    """
    entropy = entropy or default_source()
    size = spec.effective_size
    if size < 1:
        raise InvalidSize(f"Size must be at least 1, got {size}")

    if spec.mode is Mode.RANDOM:
        return "".join(ALPHABET[entropy.random_index(len(ALPHABET))] for _ in range(size))
    elif spec.mode is Mode.DICEWARE:
        words = _check_wordlist(spec.wordlist)
        return WORD_SEPARATOR.join(words[entropy.random_index(len(words))] for _ in range(size))
    else:
        raise ValueError(f"Unknown generation mode: {spec.mode!r}")


def entropy_bits(spec: GenerationSpec) -> float:
    """Estimated strength of a password produced from spec, in bits."""
    if spec.mode is Mode.RANDOM:
        pool = len(ALPHABET)
    elif spec.mode is Mode.DICEWARE:
        pool = len(_check_wordlist(spec.wordlist))
    else:
        raise ValueError(f"Unknown generation mode: {spec.mode!r}")
    return spec.effective_size * math.log2(pool)


def _check_wordlist(wordlist: Sequence[str]) -> Sequence[str]:
    if len(wordlist) == 0:
        raise EmptyWordlist()
    if len(set(wordlist)) != len(wordlist):
        raise InvalidWordlist()
    return wordlist
