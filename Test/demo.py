import logging

from SRACGT.channel import Relay, SecureChannel
from SRACGT.toolbox import Toolbox

logging.basicConfig(level=logging.INFO)

suits = ["Clubs", "Spades", "Hearts", "Diamonds"]
ranks = ["7", "8", "9", "10", "Jack", "Queen", "King", "Ace"]
player_names = ["A", "B", "C"]
N = 32
M = 3
H = 10


def card_name(index):
    return ranks[index % 8] + " of " + suits[index // 8]


# Connect Players -------------------------------------------------------------
relay = Relay()
P_Channel = [SecureChannel(relay) for i in range(M)]
P_Toolbox = [Toolbox(P_Channel[i], deck_size=N) for i in range(M)]
for i in range(M):
    P_Channel[i].connect()

ids = {P_Toolbox[i].player: player_names[i] for i in range(M)}
order = [P_Toolbox[i].player for i in range(M)]

# Shuffle ---------------------------------------------------------------------
P_Toolbox[0].propose_shuffle(order, N)
relay.run()

for i in range(M):
    assert P_Toolbox[i].ready
    assert P_Toolbox[i].game.final_names == P_Toolbox[0].game.final_names

# Draw 10 Cards per Player ----------------------------------------------------
final_names = P_Toolbox[0].game.final_names
for i in range(M):
    for k in range(H):
        P_Toolbox[(i + 1) % M].draw_card(order[i], final_names[k + i*H])
        relay.run()

# Skat ------------------------------------------------------------------------
for k in range(M*H, N):
    P_Toolbox[0].draw_card(order[0], final_names[k])
    relay.run()

# Check Hands -----------------------------------------------------------------
for i in range(M):
    hand = P_Toolbox[i].hands_by_owner()[order[i]]
    print(player_names[i] + ": " + ", ".join(
        card_name(entry.index) for entry in hand))
    assert not P_Toolbox[i].cheaters

# Reveal First Card per Player ------------------------------------------------
for i in range(M):
    P_Toolbox[i].reveal_card(final_names[i*H])
    relay.run()

for i in range(M):
    for j in range(M):
        entry = P_Toolbox[j].game.deck[final_names[i*H]]
        assert entry.revealed
        print(player_names[j] + " sees " + ids[entry.player] + " play "
              + card_name(entry.index))
