from types import SimpleNamespace

import pytest

from SRACGT.channel import Relay, SecureChannel
from SRACGT.toolbox import Toolbox


class Table:
    """Peers sitting at one relay, index i plays order[i] after shuffle()"""

    def __init__(self, players, deck_size):
        self.relay = Relay()
        self.channels = [SecureChannel(self.relay) for _ in range(players)]
        self.peers = [Toolbox(ch, deck_size=deck_size) for ch in self.channels]
        for ch in self.channels:
            ch.connect()
        self.order = [p.player for p in self.peers]
        self.deck_size = deck_size

    def shuffle(self, proposer=0):
        self.peers[proposer].propose_shuffle(self.order, self.deck_size)
        self.relay.run()
        return self.peers[0].game.final_names

    def entries(self, final_name):
        return [p.game.deck[final_name] for p in self.peers]

    def count(self, topic):
        seen = []
        self.channels[0].on(topic, lambda status, msg: seen.append(msg))
        return seen


@pytest.fixture
def table():
    def build(players=3, deck_size=8, shuffled=True):
        t = Table(players, deck_size)
        if shuffled:
            t.shuffle()
        return t
    return build


@pytest.fixture
def status_of():
    def build(peer, valid=True):
        return SimpleNamespace(valid=valid, peer=SimpleNamespace(id=peer))
    return build
