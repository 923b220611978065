# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# sra.py
#
# 17.10.2026
#
# @desc: SRA commutative encryption. Like RSA, but over a public prime
#        modulus, so that several parties can encrypt a message in any
#        order and decrypt it again in any order.
# ===================================================================
import logging

from SRACGT import config
from SRACGT import random_generator

logger = logging.getLogger(__name__)

# The Mersenne prime 2**607 - 1 serves as nothing-up-my-sleeve modulus
SRA_PRIME = 2 ** 607 - 1

# Miller-Rabin bases checked before a modulus is accepted
PRIMALITY_ROUNDS = 32


class SraKey:
    """SRA key pair with e*d = 1 mod (p-1)

    Attributes:
        e (int): encryption exponent
        d (int): decryption exponent
    """
    e: int = None
    d: int = None

    def __init__(self, e, d):
        self.e = e
        self.d = d

    def __eq__(self, other):
        if not isinstance(other, SraKey):
            return NotImplemented

        return self.e == other.e and self.d == other.d

    def __repr__(self):
        # never leak exponents into logs
        return 'SraKey(e=%x...)' % (self.e >> max(self.e.bit_length() - 32, 0))


class SraGroup:
    """Multiplicative group modulo a public prime, with key generation and
    commutative encryption.

    Attributes:
        modulus (int): the prime p
        order (int): p - 1, the modulus exponents compose under
        key_bits (int): random bits drawn per encryption exponent
        rand_gen: random generator object for random numbers
    """
    def __init__(self, modulus=SRA_PRIME, key_bits=None):
        """
        Args:
            modulus (int): public prime
            key_bits (int): bits per exponent, defaults to config.KEY_BITS

        Raises:
            ValueError: if modulus is not prime or too small for key_bits
        """
        if key_bits is None:
            key_bits = config.KEY_BITS
        if not self.is_probable_prime(modulus):
            raise ValueError('SRA modulus must be prime')
        if key_bits >= modulus.bit_length():
            raise ValueError('key_bits must be smaller than the modulus')

        self.modulus = modulus
        self.order = modulus - 1
        self.key_bits = key_bits
        self.rand_gen = random_generator.RandomGenerator()

    # keygen ------------------------------------------------------------------
    @staticmethod
    def egcd(a, b):
        """Extended Euclid

        Args:
            a (int): first value
            b (int): second value

        Returns:
            (g, x, y) with a*x + b*y = g = gcd(a, b)
        """
        x, y, u, v = 0, 1, 1, 0
        while a != 0:
            q, r = divmod(b, a)
            m, n = x - u * q, y - v * q
            b, a, x, y, u, v = a, r, u, v, m, n

        return b, x, y

    def key_generate(self):
        """Draw random encryption exponents until one is coprime to p-1 and
        derive its inverse.

        Returns:
            SraKey: fresh key pair
        """
        tries = 0
        while True:
            tries += 1
            k = self.rand_gen.get_random_bits(self.key_bits)
            if k < 3:
                continue

            g, x, _ = self.egcd(k, self.order)
            if g != 1:
                continue

            # ensure modular inverse is also positive
            d = x % self.order
            logger.debug(f"SRA key accepted after {tries} tries")
            return SraKey(k, d)

    # enc ---------------------------------------------------------------------
    def mod_exp(self, m, exponent):
        """m^exponent mod p

        Args:
            m (int): group element
            exponent (int): exponent

        Returns:
            int: group element
        """
        return pow(m, exponent, self.modulus)

    def encrypt(self, m, key):
        """Encrypt m with the encryption exponent of key

        Args:
            m (int): plaintext, 0 < m < p
            key (SraKey): key pair

        Returns:
            int: ciphertext
        """
        return self.mod_exp(m, key.e)

    def decrypt(self, c, key):
        """Remove the layer key put on c

        Args:
            c (int): ciphertext
            key (SraKey): key pair

        Returns:
            int: c with one layer removed
        """
        return self.mod_exp(c, key.d)

    def is_element(self, m):
        """Check that m can carry a card, 1 < m < p

        Args:
            m (int): candidate

        Returns:
            bool: True if m is usable as message or ciphertext
        """
        return isinstance(m, int) and 1 < m < self.modulus

    # -------------------------------------------------------------------------
    @staticmethod
    def is_probable_prime(n, rounds=PRIMALITY_ROUNDS):
        """Miller-Rabin with the first primes as fixed bases

        Args:
            n (int): candidate
            rounds (int): number of bases to test

        Returns:
            bool: False if n is composite, True if n is very likely prime
        """
        if n < 2:
            return False

        bases = []
        candidate = 2
        while len(bases) < rounds:
            if all(candidate % b for b in bases):
                bases.append(candidate)
            candidate += 1

        for b in bases:
            if n == b:
                return True
            if n % b == 0:
                return False

        s, r = 0, n - 1
        while r % 2 == 0:
            s += 1
            r //= 2

        for a in bases:
            x = pow(a, r, n)
            if x == 1 or x == n - 1:
                continue
            for _ in range(s - 1):
                x = pow(x, 2, n)
                if x == n - 1:
                    break
            else:
                return False

        return True
