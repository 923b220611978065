# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# eccwrapper.py
#
# 17.10.2026
#
# @desc: Wrapper class for fastecdsa. ECDSA key pairs, signatures and
#        public key transport for the peer channel.
# ===================================================================
from hashlib import sha256

import fastecdsa.curve as curvelib
from fastecdsa import ecdsa, keys
from fastecdsa.ecdsa import EcdsaError
from fastecdsa.point import Point as FastecdsaPoint


class ShortPoint:
    """Elliptic Curve Point representation, used for public keys.

    Attributes:
        x (int): the x coordinate of the point
        y (int): the y coordinate of the point
    """
    x: int = None
    y: int = None

    def __init__(self, x=None, y=None):
        self.x = x
        self.y = y

    def __eq__(self, other):
        """Compare two elliptic curve points for equality.

        Args:
            other (ShortPoint): second elliptic curve point

        Returns:
            bool: True if points are the same, False else
        """
        if not isinstance(other, ShortPoint):
            # don't attempt to compare against unrelated types
            return NotImplemented

        return self.x == other.x and self.y == other.y

    def __hash__(self):
        return hash((self.x, self.y))

    def to_dict(self):
        return {'x': format(self.x, 'x'), 'y': format(self.y, 'x')}

    @classmethod
    def from_dict(cls, data):
        """
        Args:
            data (Dict[str, str]): hex coordinates

        Returns:
            ShortPoint

        Raises:
            ValueError: if a coordinate is missing or not hex
        """
        try:
            return cls(int(data['x'], 16), int(data['y'], 16))
        except (KeyError, TypeError) as e:
            raise ValueError('malformed public key') from e


class Fastecdsa:
    """Wrapper class for fastecdsa library.

    Attributes:
        _curve: curve object from fastecdsa
        order: the order of the base point of the curve
        coordinate_bytes: bytes per signature component
    """
    def __init__(self, curve=curvelib.P384):
        """
        Args:
            curve: curve object from fastecdsa
        """
        self._curve = curve
        self.order = curve.q
        self.coordinate_bytes = (curve.q.bit_length() + 7) // 8

    def key_generate(self):
        """Generate an ECDSA key pair

        Returns:
            (int, ShortPoint): secret key, public key
        """
        secret_key, public_key = keys.gen_keypair(self._curve)
        return secret_key, ShortPoint(public_key.x, public_key.y)

    def sign(self, message, secret_key):
        """Sign a message with SHA-256

        Args:
            message (str): message to sign
            secret_key (int): signing key

        Returns:
            str: hex encoding of r | s
        """
        r, s = ecdsa.sign(message.encode(), secret_key, curve=self._curve,
                          hashfunc=sha256)
        width = 2 * self.coordinate_bytes
        return format(r, '0%dx' % width) + format(s, '0%dx' % width)

    def verify(self, signature, message, public_key):
        """Check a signature made by sign()

        Args:
            signature (str): hex encoding of r | s
            message (str): signed message
            public_key (ShortPoint): key of the claimed signer

        Returns:
            bool: True if the signature is valid, False else
        """
        width = 2 * self.coordinate_bytes
        if not isinstance(signature, str) or len(signature) != 2 * width:
            return False

        try:
            r = int(signature[:width], 16)
            s = int(signature[width:], 16)
            return ecdsa.verify((r, s), message.encode(),
                                self.shortpoint_to_point(public_key),
                                curve=self._curve, hashfunc=sha256)
        except (ValueError, EcdsaError):
            return False

    def isoncurve(self, P):
        """Check if point P is on curve _curve

        Args:
            P (ShortPoint): elliptic curve point

        Returns:
            True if point is on curve, False else
        """
        return self._curve.is_point_on_curve((P.x, P.y))

    def shortpoint_to_point(self, P):
        """Transform ShortPoint to fastecdsa point

        Args:
            P (ShortPoint): elliptic curve point

        Returns:
            fastecdsa point

        Raises:
            ValueError: if P is not on the curve
        """
        if not self.isoncurve(P):
            raise ValueError('point is not on the curve')
        return FastecdsaPoint(P.x, P.y, self._curve)
