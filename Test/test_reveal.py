import pytest

from SRACGT.errors import DesyncError
from SRACGT.messages import RevealMessage
from SRACGT.names import fold_names


def deal(t, dealer, dest, final_name=None):
    x = t.peers[dealer].draw_card(t.order[dest], final_name)
    t.relay.run()
    return x


def test_reveal_middle_player_card(table):
    t = table(players=3, deck_size=8)
    a, b, c = t.peers
    x = deal(t, 2, 1)
    index = b.game.deck[x].index

    b.reveal_card(x)
    t.relay.run()

    for peer in t.peers:
        entry = peer.game.deck[x]
        assert entry.revealed
        assert entry.index == index
        # holder's and first player's nonces, newest first
        assert len(entry.reveal_nonces) == 2
        assert not peer.cheaters


def test_reveal_chain_reaches_commitment(table):
    t = table(players=4, deck_size=4)
    a = t.peers[0]
    x = deal(t, 1, 2)
    t.peers[2].reveal_card(x)
    t.relay.run()

    entry = a.game.deck[x]
    assert entry.revealed
    commitment = [name for name, value in a.game.cards_raw.items()
                  if value == entry.value][0]
    # draw chain links are newer than the reveal links
    assert fold_names(commitment,
                      entry.nonces + entry.reveal_nonces) == x
    assert len(entry.nonces) == 1
    assert len(entry.reveal_nonces) == 3


def test_reveal_first_player_card(table):
    t = table(players=2, deck_size=4)
    a, b = t.peers
    x = deal(t, 0, 0)
    reveals = t.count('reveal')

    a.reveal_card(x)
    t.relay.run()

    assert len(reveals) == 1
    assert reveals[0]['next'] is None
    assert b.game.deck[x].revealed
    assert b.game.deck[x].index == a.game.deck[x].index


def test_reveal_someone_elses_card_refused(table):
    t = table(players=2, deck_size=4)
    x = deal(t, 0, 1)
    with pytest.raises(DesyncError):
        t.peers[0].reveal_card(x)


def test_reveal_undrawn_card_refused(table):
    t = table(players=2, deck_size=4)
    with pytest.raises(DesyncError):
        t.peers[0].reveal_card(t.peers[0].game.final_names[0])


def test_forged_reveal_nonce_rejected(table):
    t = table(players=3, deck_size=4)
    a, b, c = t.peers
    x = deal(t, 2, 2)
    holder_record = c.game.records[x]
    a_name = b.game.records[holder_record.prev_name].prev_name
    a.game.records[a_name].nonce ^= 1

    c.reveal_card(x)
    t.relay.run()

    for peer in t.peers:
        entry = peer.game.deck[x]
        assert not entry.revealed
        assert len(entry.reveal_nonces) == 2
        assert peer.cheaters == {a.player: 1}


def test_rewritten_reveal_chain_rejected(table, status_of):
    t = table(players=3, deck_size=4)
    a, b, c = t.peers
    x = deal(t, 2, 2)
    c.reveal_card(x)
    t.relay.run(limit=1)

    entry = a.game.deck[x]
    assert len(entry.reveal_nonces) == 1
    record = b.game.records[c.game.records[x].prev_name]
    forged = RevealMessage(dest=c.player, next=a.player, final_name=x,
                           name=record.prev_name,
                           nonces=[entry.reveal_nonces[0] ^ 1, record.nonce])
    a.handle_message('reveal', status_of(b.player), forged.to_payload())

    assert len(entry.reveal_nonces) == 1
    assert a.cheaters == {b.player: 1}


def test_reveal_out_of_turn_dropped(table, status_of):
    t = table(players=3, deck_size=4)
    a, b, c = t.peers
    x = deal(t, 2, 1)
    record = b.game.records[b.game.deck[x].known_name]
    msg = RevealMessage(dest=b.player, next=a.player, final_name=x,
                        name=record.prev_name, nonces=[record.nonce])
    # only the holder may start the reveal
    a.handle_message('reveal', status_of(c.player), msg.to_payload())
    assert a.game.deck[x].reveal_nonces == []


def test_hands_by_owner(table):
    t = table(players=3, deck_size=6)
    mine = [deal(t, 0, 0), deal(t, 1, 0)]
    theirs = deal(t, 2, 1)

    hands = t.peers[2].hands_by_owner()
    assert sorted(e.final_name for e in hands[t.order[0]]) == sorted(mine)
    assert [e.final_name for e in hands[t.order[1]]] == [theirs]
    assert t.order[2] not in hands
    assert all(e.index is None for e in hands[t.order[0]])
    assert all(e.index is not None
               for e in t.peers[0].hands_by_owner()[t.order[0]])
