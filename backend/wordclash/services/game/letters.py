import random
import string

ALPHABET = string.ascii_uppercase


def generate_letters(rng: random.Random | None = None) -> str:
    """Return two distinct uppercase letters, e.g. ``'QR'``."""
    rng = rng or random
    first, second = rng.sample(ALPHABET, 2)
    return first + second


def contains_letters(word: str, letters: str) -> bool:
    """True if ``word`` contains every one of ``letters``, in any order and case."""
    upper = word.upper()
    return bool(letters) and all(letter in upper for letter in letters.upper())
