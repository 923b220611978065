# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# names.py
#
# 17.10.2026
#
# @desc: Card identities. Raw cards are an index and a nonce packed into
#        one integer and committed to by their hash. Every shuffle pass
#        renames a card to hash(nonce | previous name), so names chain
#        back to the commitment once the nonces are disclosed.
# ===================================================================
import hashlib
import logging

logger = logging.getLogger(__name__)

# wire widths in bytes
NAME_BYTES = 32
NONCE_BYTES = 32
CIPHER_BYTES = 80

# a raw card is nonce << INDEX_BITS | index
INDEX_BITS = 256
INDEX_MASK = (1 << INDEX_BITS) - 1


# codec -----------------------------------------------------------------------
def to_hex(x, width):
    """Encode a non negative integer as fixed-width lower case hex

    Args:
        x (int): value
        width (int): width in bytes

    Returns:
        str: 2*width hex digits

    Raises:
        ValueError: if x does not fit into width bytes
    """
    if x < 0 or x >> (8 * width):
        raise ValueError(f"value does not fit into {width} bytes")
    return format(x, '0%dx' % (2 * width))


def from_hex(s, width):
    """Decode fixed-width hex

    Args:
        s (str): 2*width hex digits
        width (int): width in bytes

    Returns:
        int: decoded value

    Raises:
        ValueError: if s is not a hex string of exactly that width
    """
    if not isinstance(s, str) or len(s) != 2 * width:
        raise ValueError(f"expected {2 * width} hex digits")
    return int(s, 16)


def is_name(s):
    """Check that s is a well formed name (64 lower case hex digits)

    Args:
        s: candidate

    Returns:
        bool: True if s can be a card name
    """
    if not isinstance(s, str) or len(s) != 2 * NAME_BYTES:
        return False
    return all(c in '0123456789abcdef' for c in s)


# hashing ---------------------------------------------------------------------
def _digest(*parts):
    var0 = hashlib.sha256()
    for value, width in parts:
        var0.update(value.to_bytes(width, 'big'))
    return var0.hexdigest()


def hash_value(value):
    """Commitment to a raw card, hash(value)

    Args:
        value (int): raw card

    Returns:
        str: initial name of the card
    """
    return _digest((value, CIPHER_BYTES))


def hash_name(nonce, prev_name):
    """Next name in the chain, hash(nonce | prev_name)

    Args:
        nonce (int): nonce of the renaming pass
        prev_name (str): name before the pass

    Returns:
        str: name after the pass
    """
    return _digest((nonce, NONCE_BYTES),
                   (int(prev_name, 16), NAME_BYTES))


def hash_key(d):
    """Commitment to a secret SRA exponent, hash(d)

    Args:
        d (int): decryption exponent

    Returns:
        str: commitment
    """
    return _digest((d, CIPHER_BYTES))


def fold_names(name, nonces):
    """Walk a name up the chain. nonces are ordered newest first, so the
    last nonce is applied first.

    Args:
        name (str): oldest known name
        nonces (List[int]): disclosed nonces, newest first

    Returns:
        str: the name after applying every nonce
    """
    for nonce in reversed(nonces):
        name = hash_name(nonce, name)
    return name


# raw cards -------------------------------------------------------------------
def card_value(index, nonce):
    """Pack index and nonce into one raw card

    Args:
        index (int): card index
        nonce (int): random nonce

    Returns:
        int: raw card
    """
    return nonce << INDEX_BITS | index


def card_index(value):
    """Unpack the index of a raw card

    Args:
        value (int): raw card

    Returns:
        int: card index
    """
    return value & INDEX_MASK


def new_deck(size, rand_gen):
    """Generate a clean deck, in order, with new nonces

    Args:
        size (int): number of cards
        rand_gen (RandomGenerator): nonce source

    Returns:
        List[int]: raw cards
    """
    return [card_value(i, rand_gen.get_nonce()) for i in range(size)]


def validate_deck(deck, deck_size):
    """Validate an initial deck of {name, encrypted} entries: the size is
    right, every name commits to its value and the indices are exactly
    0..deck_size-1.

    Args:
        deck (List[Dict]): initial deck, encrypted holds the raw card
        deck_size (int): expected number of cards

    Returns:
        bool: True if the deck is proper, False else
    """
    if len(deck) != deck_size:
        logger.warning(f"Incorrect deck size {len(deck)}, expected {deck_size}")
        return False

    seen = set()
    for card in deck:
        value = card['encrypted']
        if card['name'] != hash_value(value):
            logger.warning(f"Card {card['name']} does not commit to its value")
            return False
        if value >> INDEX_BITS == 0:
            logger.warning(f"Card {card['name']} carries no nonce")
            return False
        seen.add(card_index(value))

    if seen != set(range(deck_size)):
        logger.warning("Initial deck indices are not 0..deck_size-1")
        return False

    logger.debug("Initial deck validated")
    return True
