"""Wordlist loading for diceware generation."""

import re
from pathlib import Path
from typing import List

from .errors import InvalidWordlist

# "11111<tab>abacus" style lines from diceware/EFF lists
DICE_LINE = re.compile(r'^[1-6]{4,6}\s+(\S+)$')


def load_wordlist(path) -> List[str]:
    """Read one word per line.

    Blank lines and '#' comments are skipped, a leading dice-roll column is
    dropped and repeated words are kept only once, in first-seen order.

    Raises:
        InvalidWordlist: If the file is not UTF-8 text

    """
    words = []
    seen = set()

    try:
        with open(Path(path), encoding='utf-8') as f:
            lines = f.readlines()
    except UnicodeDecodeError as exc:
        raise InvalidWordlist(f"Wordlist is not valid UTF-8: {path}") from exc

    for line in lines:
        line = line.strip()
        if not line or line.startswith('#'):
            continue

        match = DICE_LINE.match(line)
        word = match.group(1) if match else line

        if word not in seen:
            seen.add(word)
            words.append(word)

    return words
