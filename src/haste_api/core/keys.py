from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Protocol

# Characters that are easy to confuse at a glance (Il, O0, ij, 1l) are left out.
UPPERCASE = "ABCDEFGHJKMNPRSTWXYZ"
LOWERCASE = "abcdefhkmnprstwxyz"

CONSONANTS = "bcdfghjklmnpqrstvwxyz"
VOWELS = "aeiou"


class KeyGenerator(Protocol):
    def create_key(self, length: int) -> str:
        ...


def _check_alphabet(alphabet: str) -> None:
    if not alphabet:
        raise ValueError("Key alphabet must not be empty")
    if "." in alphabet:
        raise ValueError("Key alphabet must not contain '.'")


@dataclass(frozen=True)
class RandomKeyGenerator:
    """Draws each character from ``sequence[i % len(sequence)]``.

    With the default sequence keys look like ``AkwMrtCpe``: one uppercase
    character followed by two lowercase ones, repeated until the length is hit.
    """

    sequence: tuple[str, ...] = (UPPERCASE, LOWERCASE, LOWERCASE)

    def __post_init__(self) -> None:
        if not self.sequence:
            raise ValueError("Key alphabet sequence must not be empty")
        for alphabet in self.sequence:
            _check_alphabet(alphabet)

    def create_key(self, length: int) -> str:
        return "".join(secrets.choice(self.sequence[i % len(self.sequence)]) for i in range(length))


@dataclass(frozen=True)
class PhoneticKeyGenerator:
    consonants: str = CONSONANTS
    vowels: str = VOWELS

    def __post_init__(self) -> None:
        _check_alphabet(self.consonants)
        _check_alphabet(self.vowels)

    def create_key(self, length: int) -> str:
        start = secrets.randbelow(2)
        return "".join(
            secrets.choice(self.consonants if i % 2 == start else self.vowels) for i in range(length)
        )


def get_key_generator(name: str, alphabet: str | None = None) -> KeyGenerator:
    name = name.lower()
    if name == "phonetic":
        return PhoneticKeyGenerator()
    if name == "random":
        if alphabet:
            return RandomKeyGenerator(sequence=(alphabet,))
        return RandomKeyGenerator()
    raise ValueError(f"Unknown key generator: {name}")
