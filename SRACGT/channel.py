# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# channel.py
#
# 17.10.2026
#
# @desc: Authenticated broadcast between the peers. Every message is
#        signed with the peer's ECDSA key and carries a sequence number;
#        the relay in between only rebroadcasts and is not trusted.
# ===================================================================
import hashlib
import json
import logging
from collections import deque

from SRACGT.eccwrapper import Fastecdsa, ShortPoint

logger = logging.getLogger(__name__)


def peer_id(public_key):
    """Peer id derived from the public key, never taken from the relay

    Args:
        public_key (ShortPoint): ECDSA public key

    Returns:
        str: hex sha256 of the key coordinates
    """
    data = '%x|%x' % (public_key.x, public_key.y)
    return hashlib.sha256(data.encode()).hexdigest()


def canonical(signed_msg):
    return json.dumps(signed_msg, sort_keys=True, separators=(',', ':'))


class Peer:
    """Known peer

    Attributes:
        id (str): hash of the public key
        key (ShortPoint): public key
        seq (int): last sequence number accepted, -1 before the first
        cheats (int): number of invalid messages claiming to be from it
    """
    def __init__(self, key):
        self.key = key
        self.id = peer_id(key)
        self.seq = -1
        self.cheats = 0

    @property
    def name(self):
        return self.id[:8]


class PeerStatus:
    """Result of validating one incoming message

    Attributes:
        valid (bool): sequence number and signature both good
        peer (Peer): claimed sender, None if unknown
        seq (bool): sequence number was the expected one
        sig (bool): signature verified
    """
    def __init__(self, peer=None):
        self.valid = False
        self.peer = peer
        self.seq = False
        self.sig = False

    def __repr__(self):
        return 'PeerStatus(valid=%s, peer=%s, seq=%s, sig=%s)' % (
            self.valid, self.peer.name if self.peer else None, self.seq,
            self.sig)


class Relay:
    """In-memory stand-in for the relay server. It rebroadcasts every
    message to every connected peer, the sender included, and sends the
    roster of public keys whenever a peer joins or leaves. Messages are
    delivered one at a time, in the order they were sent.
    """
    def __init__(self):
        self.channels = []
        self.queue = deque()

    def register(self, channel):
        if channel not in self.channels:
            self.channels.append(channel)
        self._send_peers()

    def disconnect(self, channel):
        if channel in self.channels:
            self.channels.remove(channel)
        self._send_peers()

    def _send_peers(self):
        roster = [ch.public_key.to_dict() for ch in self.channels]
        for ch in list(self.channels):
            ch.update_peers(roster)

    def broadcast(self, topic, envelope):
        self.queue.append((topic, json.dumps(envelope)))

    def run(self, limit=100000):
        """Deliver queued messages until the queue is empty. A message
        reaches every channel even if a handler raises; the first error is
        raised after the fan-out, the rest of the queue stays queued.

        Args:
            limit (int): maximum number of messages to deliver

        Returns:
            int: number of messages delivered
        """
        delivered = 0
        while self.queue and delivered < limit:
            topic, raw = self.queue.popleft()
            error = None
            for ch in list(self.channels):
                try:
                    ch.deliver(topic, raw)
                except Exception as e:
                    logger.error(f"Handler of {ch.public_name[:8]} failed "
                                 f"on {topic}: {e}")
                    error = error or e
            delivered += 1
            if error is not None:
                raise error
        return delivered


class SecureChannel:
    """Signed, sequenced broadcast to all peers of a relay

    Attributes:
        relay (Relay): untrusted relay
        ecc (Fastecdsa): signature scheme
        public_key (ShortPoint): own public key
        public_name (str): own peer id
        public_seq (int): next own sequence number
        peers (Dict[str, Peer]): known peers by id, self included
    """
    def __init__(self, relay, ecc=None):
        """
        Args:
            relay (Relay): relay to connect through
            ecc (Fastecdsa): signature scheme, ECDSA P-384 if None
        """
        self.relay = relay
        self.ecc = ecc or Fastecdsa()
        self._private_key, self.public_key = self.ecc.key_generate()
        self.public_name = peer_id(self.public_key)
        self.public_seq = 0
        self.peers = {}

        self._handlers = {}
        self._roster_callbacks = []

    def connect(self):
        """Register our public key with the relay"""
        self.relay.register(self)

    def disconnect(self):
        self.relay.disconnect(self)

    # generate a signature on the msg, including the sequence number and
    # the public key used to sign it
    def emit(self, topic, msg):
        """Sign and broadcast a message

        Args:
            topic (str): topic
            msg: json serializable payload
        """
        signed_msg = {
            'msg': msg,
            'seq': self.public_seq,
            'key': self.public_name,
        }
        self.public_seq += 1
        signed_msg['sig'] = self.ecc.sign(canonical(signed_msg),
                                          self._private_key)
        self.relay.broadcast(topic, signed_msg)

    def on(self, topic, callback):
        """Register callback(status, msg) for valid messages of a topic"""
        self._handlers.setdefault(topic, []).append(callback)

    def on_roster(self, callback):
        """Register callback(joined, left) for roster changes"""
        self._roster_callbacks.append(callback)

    def deliver(self, topic, raw):
        """Validate one relayed message and hand it to the topic handlers

        Args:
            topic (str): topic
            raw (str): json envelope as sent by the relay
        """
        try:
            envelope = json.loads(raw)
        except ValueError:
            logger.warning(f"Unparsable {topic} message from relay")
            return
        if not isinstance(envelope, dict):
            logger.warning(f"Malformed {topic} envelope from relay")
            return

        status = self.validate_message(envelope)
        if not status.valid:
            logger.error(f"Rejected {topic} message: {status}")
            return

        logger.debug(f"{status.peer.name}.{envelope['seq']}: {topic}")
        for callback in self._handlers.get(topic, []):
            callback(status, envelope['msg'])

    def validate_message(self, envelope):
        """Check sequence number and signature of an incoming message to
        verify that it came from the peer that claims to have sent it.

        Args:
            envelope (Dict): msg, seq, key and sig

        Returns:
            PeerStatus: validation result
        """
        peer = self.peers.get(envelope.get('key'))
        if peer is None:
            logger.warning(f"Message from unknown peer {envelope.get('key')}")
            return PeerStatus()

        status = PeerStatus(peer)
        seq = envelope.get('seq')

        # trust on first use for the sequence number, otherwise require
        # exactly the next value
        if isinstance(seq, int) and (peer.seq < 0 or seq == peer.seq + 1):
            status.seq = True
        else:
            logger.warning(f"Sequence mismatch from {peer.name}, "
                           f"expected={peer.seq + 1} seq={seq}")

        signed_msg = canonical({
            'msg': envelope.get('msg'),
            'seq': seq,
            'key': envelope.get('key'),
        })
        status.sig = self.ecc.verify(envelope.get('sig'), signed_msg,
                                     peer.key)

        if status.seq and status.sig:
            status.valid = True
            # only a verified message may advance the sequence
            peer.seq = seq
        else:
            peer.cheats += 1

        return status

    def update_peers(self, roster):
        """Replace the peer list with the roster sent by the relay

        Args:
            roster (List[Dict[str, str]]): public keys of connected peers
        """
        new_peers = {}
        for data in roster:
            try:
                key = ShortPoint.from_dict(data)
            except ValueError:
                logger.warning("Skipping malformed key in roster")
                continue
            if not self.ecc.isoncurve(key):
                logger.warning("Skipping roster key not on the curve")
                continue
            # don't trust the relay's hash; do it ourselves
            peer = Peer(key)
            new_peers[peer.id] = peer

        left = [pid for pid in self.peers if pid not in new_peers]
        joined = [pid for pid in new_peers if pid not in self.peers]
        for pid in left:
            logger.info(f"Peer {self.peers[pid].name} disconnected")
            del self.peers[pid]
        for pid in joined:
            logger.info(f"Peer {new_peers[pid].name} registered")
            self.peers[pid] = new_peers[pid]

        if joined or left:
            for callback in self._roster_callbacks:
                callback(joined, left)
