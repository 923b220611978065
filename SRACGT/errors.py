# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# errors.py
#
# 17.10.2026
#
# @desc: Exceptions raised by the card protocol. Desyncs and cheats are
#        caught by the toolbox and the offending message is dropped,
#        integrity failures reach the application.
# ===================================================================


class ProtocolError(Exception):
    """Base class for all protocol failures"""


class DesyncError(ProtocolError):
    """Message out of turn, for an unknown card or for a phase that has not
    been reached. Nothing is mutated, the sender may retry.
    """


class MessageError(DesyncError):
    """Payload missing a field or carrying a field of the wrong shape"""


class CheatError(ProtocolError):
    """Message that proves a peer misbehaved

    Attributes:
        peer (str): id of the peer that sent the message
    """
    def __init__(self, message, peer=None):
        super().__init__(message)
        self.peer = peer


class CardIntegrityError(ProtocolError):
    """A drawn card decrypted to a value that was never in the initial deck

    Attributes:
        final_name (str): final name of the card
    """
    def __init__(self, message, final_name=None):
        super().__init__(message)
        self.final_name = final_name
