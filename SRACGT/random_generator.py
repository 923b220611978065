# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# random_generator.py
#
# 17.10.2026
#
# @desc: Random numbers and permutations used for SRA key generation,
#        card nonces and shuffling.
# ===================================================================
import secrets


class RandomGenerator:
    """Class for different random values and permutations, all drawn from
    the operating system CSPRNG

    Attributes:
        nonce_bits (int): size of card nonces in bits
    """

    def __init__(self, nonce_bits=256):
        """
        Args:
            nonce_bits (int): size of card nonces in bits
        """
        self.nonce_bits = nonce_bits

    @staticmethod
    def get_random_bits(bits):
        """Get one random value with up to bits bits

        Args:
            bits (int): number of random bits

        Returns:
            int: value from [0, 2**bits)
        """
        return secrets.randbits(bits)

    @staticmethod
    def get_random_value_range(x, y):
        """Get one random value in range x to y-1

        Args:
            x (int): lower bound
            y (int): upper bound

        Returns:
            int: value from [x,y)
        """
        return x + secrets.randbelow(y-x)

    def get_nonce(self):
        """Get a fresh nonzero card nonce

        Returns:
            int: value from [1, 2**nonce_bits)
        """
        return 1 + secrets.randbelow((1 << self.nonce_bits) - 1)

    def get_random_permutation(self, size, array=None):
        """Permute an array randomly with fisher-yates algorithm,
        if no array is given as argument, array = [0,1,...,size-1]

        Args:
            size (int): number of elements
            array (List): array to be permuted in place

        Returns:
            List: permuted array
        """
        if array is None:
            array = list(range(0, size))

        for i in range(size-1):
            j = self.get_random_value_range(i, size)
            array[i], array[j] = array[j], array[i]

        return array

    def get_random_choice(self, array):
        """Pick one element of a non empty sequence

        Args:
            array (Sequence): candidates

        Returns:
            one element of array
        """
        return array[self.get_random_value_range(0, len(array))]
