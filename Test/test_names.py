import hashlib

import pytest

from SRACGT import names
from SRACGT.random_generator import RandomGenerator


def test_fixed_width_hex():
    assert names.to_hex(1, 32) == '0' * 63 + '1'
    assert len(names.to_hex(2 ** 600, 80)) == 160
    assert names.from_hex(names.to_hex(0xABC, 32), 32) == 0xABC


def test_hex_width_enforced():
    with pytest.raises(ValueError):
        names.to_hex(2 ** 256, 32)
    with pytest.raises(ValueError):
        names.from_hex('abc', 32)
    with pytest.raises(ValueError):
        names.from_hex('zz' * 32, 32)


def test_is_name():
    assert names.is_name('a' * 64)
    assert not names.is_name('A' * 64)
    assert not names.is_name('a' * 63)
    assert not names.is_name(None)


def test_hash_name_is_sha256_of_fixed_width_fields():
    prev = names.hash_value(7)
    expected = hashlib.sha256((5).to_bytes(32, 'big')
                              + bytes.fromhex(prev)).hexdigest()
    assert names.hash_name(5, prev) == expected


def test_fold_names_newest_first():
    name0 = names.hash_value(names.card_value(3, 99))
    name1 = names.hash_name(11, name0)
    name2 = names.hash_name(22, name1)
    name3 = names.hash_name(33, name2)

    assert names.fold_names(name0, [33, 22, 11]) == name3
    assert names.fold_names(name1, [33, 22]) == name3
    assert names.fold_names(name0, [11, 22, 33]) != name3
    assert names.fold_names(name3, []) == name3


def test_card_value_packs_index_and_nonce():
    value = names.card_value(51, 2 ** 255 + 17)
    assert names.card_index(value) == 51
    assert value >> names.INDEX_BITS == 2 ** 255 + 17
    assert value < 2 ** (8 * names.CIPHER_BYTES)


def test_new_deck_validates():
    values = names.new_deck(16, RandomGenerator())
    deck = [{'name': names.hash_value(v), 'encrypted': v} for v in values]
    assert names.validate_deck(deck, 16)
    assert not names.validate_deck(deck, 17)


def test_validate_deck_rejects_duplicate_index():
    values = [names.card_value(0, 5), names.card_value(0, 6)]
    deck = [{'name': names.hash_value(v), 'encrypted': v} for v in values]
    assert not names.validate_deck(deck, 2)


def test_validate_deck_rejects_bad_commitment():
    values = [names.card_value(0, 5), names.card_value(1, 6)]
    deck = [{'name': names.hash_value(values[1]), 'encrypted': values[0]},
            {'name': names.hash_value(values[1]), 'encrypted': values[1]}]
    assert not names.validate_deck(deck, 2)


def test_validate_deck_rejects_missing_nonce():
    deck = [{'name': names.hash_value(i), 'encrypted': i} for i in range(2)]
    assert not names.validate_deck(deck, 2)


def test_permutation_keeps_elements():
    rand_gen = RandomGenerator()
    perm = rand_gen.get_random_permutation(20)
    assert sorted(perm) == list(range(20))
    cards = ['a', 'b', 'c']
    assert sorted(rand_gen.get_random_permutation(3, cards)) == ['a', 'b', 'c']
