# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# gameset.py
#
# 17.10.2026
#
# @desc: Game information and card representation for one shuffled
#        deck, owned by a single toolbox instance.
# ===================================================================


class CardRecord:
    """One card as renamed and encrypted by this peer during its shuffle
    pass

    Attributes:
        prev_name (str): name the card had before the pass
        encrypted (int): value after applying the per-deck key
        nonce (int): nonce of the renaming
        name (str): hash(nonce | prev_name)
    """
    def __init__(self, prev_name, encrypted, nonce, name):
        self.prev_name = prev_name
        self.encrypted = encrypted
        self.nonce = nonce
        self.name = name


class FinalDeckEntry:
    """Public state of one card of the final deck

    Attributes:
        final_name (str): name after the last shuffle pass
        nonces (List[int]): nonces disclosed by the draw chain, newest first
        player (str): peer the card was dealt to, set once
        holder (str): peer or pile the card is at, set when the draw
            chain completes and changed by moves
        wrapped (Dict[str, int]): ciphertext each peer produced while
            wrapping
        encrypted (int): public ciphertext, layers disclosed by the draw
            chain removed
        temp_key (SraKey): own temp key while a draw is in flight
        commitments (Dict[str, str]): hash of each peer's per-card d
        known_name (str): lowest name the draw chain has reached
        position (int): index in order of the peer that created known_name
        unwrapped (Dict[str, int]): ciphertext each peer produced while
            unwrapping
        temp_keys (Dict[str, int]): temp decryption exponents revealed
        sealed (int): value only the recipient holds, temp layers on top
        value (int): raw card, once known
        index (int): card index, once known
        reveal_nonces (List[int]): nonces of the reveal chain so far
        revealed (bool): True once the reveal chain reached the commitment
        failed (bool): True if the card did not decrypt to a real card
    """
    def __init__(self, final_name, encrypted, position, commitments=None):
        self.final_name = final_name
        self.nonces = []
        self.player = None
        self.holder = None
        self.wrapped = {}
        self.encrypted = encrypted
        self.temp_key = None

        self.commitments = dict(commitments or {})
        self.known_name = final_name
        self.position = position
        self.unwrapped = {}
        self.temp_keys = {}
        self.sealed = None

        self.value = None
        self.index = None
        self.reveal_nonces = []
        self.revealed = False
        self.failed = False

    def __repr__(self):
        return 'FinalDeckEntry(%s..., player=%s, index=%s)' % (
            self.final_name[:8], self.player, self.index)


class GameSet:
    """Game information and cards of the current deck

    Attributes:
        cards_no (int): number of cards in the deck
        order (List[str]): peer order of the shuffle
        cards_raw (Dict[str, int]): initial commitment -> raw card
        pass_names (List[Set[str]]): names published after each forward
            pass, pass_names[0] are the initial commitments
        final_names (List[str]): final deck order
        unseal_pass (int): reverse pass expected next
        records (Dict[str, CardRecord]): own shuffle output by name
        deck_key (SraKey): own per-deck key while the shuffle runs
        card_keys (Dict[str, SraKey]): own per-card key by final name
        commitments (Dict[str, Dict[str, str]]): per-card key commitments
            by final name, then peer
        deck (Dict[str, FinalDeckEntry]): final deck by final name
        claims (Set[str]): cards this peer started a draw chain for
        used_temp_keys (Set[int]): temp exponents revealed by anyone
    """

    def __init__(self, order, cards_no):
        """
        Args:
            order (List[str]): peer order of the shuffle
            cards_no (int): number of cards in the deck
        """
        self.cards_no = cards_no
        self.order = order

        self.cards_raw = {}
        self.pass_names = []
        self.final_names = None

        self.records = {}
        self.deck_key = None
        self.card_keys = {}
        self.commitments = {}

        self.unseal_pass = None
        self.deck = {}
        self.claims = set()
        self.used_temp_keys = set()

    @property
    def final_player(self):
        return self.order[-1]

    def position(self, peer):
        """Get order index by id

        Args:
            peer (str): peer id

        Returns:
            int: index in order, None if peer does not play
        """
        try:
            return self.order.index(peer)
        except ValueError:
            return None

    def prev_player(self, peer):
        i = self.position(peer)
        return self.order[i - 1] if i else None

    def next_player(self, peer):
        i = self.position(peer)
        if i is None or i + 1 >= len(self.order):
            return None
        return self.order[i + 1]

    def hands_by_owner(self):
        """Group dealt cards by owner. Cards still being drawn count for
        their recipient, moved cards for the peer or pile they were moved to.

        Returns:
            Dict[str, List[FinalDeckEntry]]: cards per peer id or pile label
        """
        hands = {}
        for name in self.final_names or []:
            entry = self.deck.get(name)
            if entry is None or entry.player is None:
                continue
            owner = entry.holder or entry.player
            hands.setdefault(owner, []).append(entry)
        return hands

    def undrawn(self):
        return [name for name in self.final_names or []
                if name in self.deck and self.deck[name].player is None]
