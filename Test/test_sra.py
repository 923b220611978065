from math import gcd

import pytest

from SRACGT.sra import SRA_PRIME, SraGroup, SraKey


@pytest.fixture(scope='module')
def group():
    return SraGroup()


def test_round_trip(group):
    key = group.key_generate()
    for m in (2, 3, 12345, SRA_PRIME - 2, group.rand_gen.get_random_bits(600)):
        assert group.decrypt(group.encrypt(m, key), key) == m


def test_commutative(group):
    k1 = group.key_generate()
    k2 = group.key_generate()
    m = group.rand_gen.get_random_bits(512)

    c = group.encrypt(group.encrypt(m, k1), k2)
    assert group.decrypt(group.decrypt(c, k1), k2) == m
    assert group.decrypt(group.decrypt(c, k2), k1) == m


def test_many_layers_any_order(group):
    keys = [group.key_generate() for _ in range(4)]
    m = 0xC0FFEE
    c = m
    for key in keys:
        c = group.encrypt(c, key)
    for key in (keys[2], keys[0], keys[3], keys[1]):
        c = group.decrypt(c, key)
    assert c == m


def test_key_validity(group):
    for _ in range(5):
        key = group.key_generate()
        assert gcd(key.e, group.order) == 1
        assert key.e * key.d % group.order == 1
        assert 0 < key.d < group.order
        assert key.e.bit_length() <= group.key_bits


def test_egcd():
    g, x, y = SraGroup.egcd(240, 46)
    assert g == 2
    assert 240 * x + 46 * y == 2


def test_key_generate_retries_non_coprime(monkeypatch):
    group = SraGroup()
    # even exponents share the factor 2 with p-1, tiny ones are refused
    draws = iter([6, 1, 10])
    real = group.rand_gen.get_random_bits

    def fake(bits):
        try:
            return next(draws)
        except StopIteration:
            return real(bits)

    monkeypatch.setattr(group.rand_gen, 'get_random_bits', fake)
    key = group.key_generate()
    assert key.e not in (6, 1, 10)
    assert gcd(key.e, group.order) == 1


def test_composite_modulus_rejected():
    with pytest.raises(ValueError):
        SraGroup(2 ** 607 + 1)


def test_key_bits_must_fit_modulus():
    with pytest.raises(ValueError):
        SraGroup(2 ** 127 - 1, key_bits=127)


def test_small_group():
    group = SraGroup(2 ** 127 - 1, key_bits=100)
    key = group.key_generate()
    assert group.decrypt(group.encrypt(99, key), key) == 99


def test_is_element(group):
    assert group.is_element(2)
    assert not group.is_element(1)
    assert not group.is_element(SRA_PRIME)


def test_key_equality_and_repr():
    assert SraKey(3, 5) == SraKey(3, 5)
    assert SraKey(3, 5) != SraKey(3, 7)
    assert '5' not in repr(SraKey(3, 5))
