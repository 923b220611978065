# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# messages.py
#
# 17.10.2026
#
# @desc: Payloads of the card protocol topics. Each topic has its own
#        pydantic model; payloads are checked for required fields and
#        fixed hex widths once, when they come off the channel.
# ===================================================================
from typing import Annotated, ClassVar, List, Optional

from pydantic import (BaseModel, ConfigDict, Field, StrictBool, StrictInt,
                      StringConstraints, ValidationError, field_serializer,
                      field_validator, model_validator)

from SRACGT.errors import MessageError
from SRACGT.names import (CIPHER_BYTES, NONCE_BYTES, from_hex, is_name,
                          to_hex)

PeerId = Annotated[str, StringConstraints(strict=True, min_length=1)]


def fixed_hex(value, width):
    """Integer field that travels as fixed-width hex

    Args:
        value: hex string off the wire, or int when built locally
        width (int): width in bytes

    Returns:
        int: the value

    Raises:
        ValueError: if value is neither, or does not fit width
    """
    if isinstance(value, str):
        return from_hex(value, width)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("expected a hex string")
    if not 0 <= value < 1 << (8 * width):
        raise ValueError(f"value does not fit {width} bytes")
    return value


def card_name(value):
    if not is_name(value):
        raise ValueError("not a card name")
    return value


class CardMessage(BaseModel):
    """Base of the messages about one card of the final deck"""
    model_config = ConfigDict(populate_by_name=True)

    final_name: str

    topic: ClassVar[str] = None

    @field_validator('final_name')
    @classmethod
    def validate_final_name(cls, v):
        return card_name(v)

    def to_payload(self):
        return self.model_dump(by_alias=True)


class DeckCard(BaseModel):
    """One card of a deck in a shuffle pass"""
    name: str
    encrypted: int

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return card_name(v)

    @field_validator('encrypted', mode='plain')
    @classmethod
    def validate_encrypted(cls, v):
        return fixed_hex(v, CIPHER_BYTES)

    @field_serializer('encrypted')
    def serialize_encrypted(self, v):
        return to_hex(v, CIPHER_BYTES)


class ShuffleMessage(BaseModel):
    """One pass of the shuffle, forward or reverse

    Attributes:
        pass_no (int): forward: number of completed shuffles,
            reverse: index of the peer that swapped in per-card keys
        order (List[str]): agreed peer order
        deck (List[DeckCard]): name and ciphertext per card
        reverse (bool): True during the unsealing phase
        keys (List[str]): hash commitments to per-card keys, reverse only
    """
    model_config = ConfigDict(populate_by_name=True)

    pass_no: StrictInt = Field(alias='pass', ge=0)
    order: List[PeerId] = Field(min_length=1)
    deck: List[DeckCard]
    reverse: StrictBool = False
    keys: List[str] = Field(default_factory=list)

    topic: ClassVar[str] = 'shuffle'

    @field_validator('order')
    @classmethod
    def validate_order(cls, v):
        if len(set(v)) != len(v):
            raise ValueError("order repeats a peer")
        return v

    @field_validator('keys')
    @classmethod
    def validate_keys(cls, v):
        return [card_name(key) for key in v]

    def to_payload(self):
        return self.model_dump(by_alias=True)


class DrawMessage(CardMessage):
    """Draw request, claim or chain hop. Without a nonce the message is a
    request (or the claim of the final player drawing for itself), with a
    nonce it discloses one link of the name chain and the sender's per-card
    key.
    """
    dest: PeerId
    next: Optional[PeerId] = None
    name: Optional[str] = None
    nonce: Optional[int] = None
    key: Optional[int] = None

    topic: ClassVar[str] = 'draw'

    @property
    def is_hop(self):
        return self.nonce is not None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return v if v is None else card_name(v)

    @field_validator('nonce', mode='plain')
    @classmethod
    def validate_nonce(cls, v):
        return v if v is None else fixed_hex(v, NONCE_BYTES)

    @field_validator('key', mode='plain')
    @classmethod
    def validate_key(cls, v):
        return v if v is None else fixed_hex(v, CIPHER_BYTES)

    @model_validator(mode='after')
    def validate_hop(self):
        disclosed = (self.name is not None, self.nonce is not None,
                     self.key is not None)
        if any(disclosed) and not all(disclosed):
            raise ValueError("draw hop needs name, nonce and key together")
        return self

    @field_serializer('nonce')
    def serialize_nonce(self, v):
        return v if v is None else to_hex(v, NONCE_BYTES)

    @field_serializer('key')
    def serialize_key(self, v):
        return v if v is None else to_hex(v, CIPHER_BYTES)

    def to_payload(self):
        if self.is_hop:
            return self.model_dump()
        return self.model_dump(exclude={'name', 'nonce', 'key'})


class WrapMessage(CardMessage):
    """Ciphertext wrapped by the sender with a temp key, handed to next"""
    dest: PeerId
    next: PeerId
    encrypted: int

    topic: ClassVar[str] = 'wrap'

    @field_validator('encrypted', mode='plain')
    @classmethod
    def validate_encrypted(cls, v):
        return fixed_hex(v, CIPHER_BYTES)

    @field_serializer('encrypted')
    def serialize_encrypted(self, v):
        return to_hex(v, CIPHER_BYTES)


class UnwrapMessage(WrapMessage):
    """Ciphertext with the sender's per-card layer removed"""
    topic: ClassVar[str] = 'unwrap'


class UnsealMessage(CardMessage):
    """Temp decryption exponent of the sender, next is None for the last"""
    dest: PeerId
    next: Optional[PeerId] = None
    key: int

    topic: ClassVar[str] = 'unseal'

    @field_validator('key', mode='plain')
    @classmethod
    def validate_key(cls, v):
        return fixed_hex(v, CIPHER_BYTES)

    @field_serializer('key')
    def serialize_key(self, v):
        return to_hex(v, CIPHER_BYTES)


class RevealMessage(CardMessage):
    """Reveal chain of a held card, nonces newest first

    Attributes:
        dest (str): peer the card was dealt to
        next (str): predecessor asked to extend the chain, None at the end
        final_name (str): card
        name (str): input name of the sender's shuffle pass
        nonces (List[int]): nonces from the holder down to the sender
    """
    dest: PeerId
    next: Optional[PeerId] = None
    name: str
    nonces: List[int]

    topic: ClassVar[str] = 'reveal'

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return card_name(v)

    @field_validator('nonces', mode='plain')
    @classmethod
    def validate_nonces(cls, v):
        if not isinstance(v, list) or not v:
            raise ValueError("nonces is not a list of nonces")
        return [fixed_hex(n, NONCE_BYTES) for n in v]

    @field_serializer('nonces')
    def serialize_nonces(self, v):
        return [to_hex(n, NONCE_BYTES) for n in v]


class MoveMessage(CardMessage):
    """The holder passes a card to another player or onto a pile

    Attributes:
        final_name (str): card
        dest (str): peer id, or a pile label such as 'discard'
    """
    dest: PeerId

    topic: ClassVar[str] = 'move'


MESSAGE_TYPES = {cls.topic: cls for cls in (
    ShuffleMessage, DrawMessage, WrapMessage, UnwrapMessage, UnsealMessage,
    RevealMessage, MoveMessage)}


def parse_message(topic, payload):
    """Turn a raw payload into the message model of its topic

    Args:
        topic (str): channel topic
        payload (Dict): decoded payload

    Returns:
        message model of the topic

    Raises:
        MessageError: if the topic is unknown or the payload malformed
    """
    if topic not in MESSAGE_TYPES:
        raise MessageError(f"unknown topic {topic!r}")
    try:
        return MESSAGE_TYPES[topic].model_validate(payload)
    except ValidationError as e:
        raise MessageError(f"malformed {topic} payload: "
                           f"{e.error_count()} errors") from e
