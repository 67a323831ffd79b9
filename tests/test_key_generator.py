from __future__ import annotations

import pytest

from haste_api.core.keys import (
    CONSONANTS,
    LOWERCASE,
    UPPERCASE,
    VOWELS,
    PhoneticKeyGenerator,
    RandomKeyGenerator,
    get_key_generator,
)


@pytest.mark.parametrize("length", [1, 2, 10, 32])
def test_random_key_has_requested_length(length: int) -> None:
    assert len(RandomKeyGenerator().create_key(length)) == length


def test_random_key_follows_alphabet_sequence() -> None:
    key = RandomKeyGenerator().create_key(9)
    for index, char in enumerate(key):
        expected = (UPPERCASE, LOWERCASE, LOWERCASE)[index % 3]
        assert char in expected


def test_random_keys_are_not_repeated() -> None:
    generator = RandomKeyGenerator()
    keys = {generator.create_key(10) for _ in range(200)}
    assert len(keys) == 200


def test_phonetic_key_alternates_consonants_and_vowels() -> None:
    key = PhoneticKeyGenerator().create_key(12)
    assert len(key) == 12
    pools = [CONSONANTS if char in CONSONANTS else VOWELS for char in key]
    assert all(char in CONSONANTS + VOWELS for char in key)
    assert all(a != b for a, b in zip(pools, pools[1:]))


def test_alphabet_with_dot_is_rejected() -> None:
    with pytest.raises(ValueError):
        RandomKeyGenerator(sequence=("abc.",))
    with pytest.raises(ValueError):
        PhoneticKeyGenerator(vowels="a.e")


def test_get_key_generator() -> None:
    assert isinstance(get_key_generator("phonetic"), PhoneticKeyGenerator)
    custom = get_key_generator("RANDOM", alphabet="xy")
    assert isinstance(custom, RandomKeyGenerator)
    assert set(custom.create_key(20)) <= {"x", "y"}
    with pytest.raises(ValueError):
        get_key_generator("sequential")
