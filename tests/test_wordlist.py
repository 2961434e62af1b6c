"""Tests for wordlist loading."""

import pytest

from conftest import TEN_WORDS
from pwdeck.errors import InvalidWordlist
from pwdeck.wordlist import load_wordlist


class TestLoadWordlist:
    """Tests for load_wordlist."""

    def test_plain_list(self, wordlist_file):
        """Test one word per line, order preserved."""
        assert load_wordlist(wordlist_file) == TEN_WORDS

    def test_accepts_str_path(self, wordlist_file):
        """Test that a string path works too."""
        assert load_wordlist(str(wordlist_file)) == TEN_WORDS

    def test_dice_column_stripped(self, temp_vault_dir):
        """Test diceware/EFF style "11111<tab>word" lines."""
        path = temp_vault_dir / "eff.txt"
        path.write_text("11111\tabacus\n11112 abdomen\n11113\tabdominal\n")
        assert load_wordlist(path) == ["abacus", "abdomen", "abdominal"]

    def test_blank_and_comment_lines(self, temp_vault_dir):
        """Test that blank lines, comments and surrounding space are ignored."""
        path = temp_vault_dir / "words.txt"
        path.write_text("# header\n\n  alpha  \n\nbeta\n# trailer\n")
        assert load_wordlist(path) == ["alpha", "beta"]

    def test_duplicates_dropped(self, temp_vault_dir):
        """Test that repeated words are kept once, first occurrence wins."""
        path = temp_vault_dir / "words.txt"
        path.write_text("beta\nalpha\nbeta\ngamma\nalpha\n")
        assert load_wordlist(path) == ["beta", "alpha", "gamma"]

    def test_empty_file(self, temp_vault_dir):
        """Test that an empty file gives an empty list."""
        path = temp_vault_dir / "empty.txt"
        path.write_text("")
        assert load_wordlist(path) == []

    def test_missing_file(self, temp_vault_dir):
        """Test that a missing file raises an OS error."""
        with pytest.raises(FileNotFoundError):
            load_wordlist(temp_vault_dir / "nope.txt")

    def test_not_utf8(self, temp_vault_dir):
        """Test that undecodable bytes raise InvalidWordlist."""
        path = temp_vault_dir / "binary.txt"
        path.write_bytes(b"apple\n\xff\xfe\n")
        with pytest.raises(InvalidWordlist, match="UTF-8"):
            load_wordlist(path)
