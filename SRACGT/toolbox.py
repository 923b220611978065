# ! /usr/bin/env python
# -*- coding: utf-8 -*-
# ===================================================================
# toolbox.py
#
# 17.10.2026
#
# @desc: Toolbox for mental card games using the SRA commutative
#        encryption scheme. Implements the shuffle, the draw chain with
#        wrapping, unwrapping and unsealing of a single card, and the
#        reveal of a held card against the initial commitments. Held
#        cards can be moved to other players or onto piles.
# ===================================================================
import logging

from SRACGT import config
from SRACGT.errors import (CardIntegrityError, CheatError, DesyncError,
                           MessageError)
from SRACGT.gameset import CardRecord, FinalDeckEntry, GameSet
from SRACGT.messages import (DeckCard, DrawMessage, MoveMessage,
                             RevealMessage, ShuffleMessage,
                             UnsealMessage, UnwrapMessage, WrapMessage,
                             MESSAGE_TYPES, parse_message)
from SRACGT.names import (card_index, fold_names, hash_key, hash_name,
                          hash_value, is_name, new_deck, validate_deck)
from SRACGT.sra import SraGroup

logger = logging.getLogger(__name__)


def _short(peer):
    return peer[:8] if peer else peer


class Toolbox:
    """Toolbox for Mental Card Games

    One instance per peer and game session. Every message of the card
    topics is delivered to every peer, the sender included; each peer
    updates its copy of the public state and acts when the message names it
    as next.

    Attributes:
        channel: authenticated channel with emit(), on(), peers and
            public_name
        deck_size (int): size of decks proposed by this peer
        group (SraGroup): SRA group used for every key
        game (GameSet): state of the current deck, None before a shuffle
        ready (bool): True while the final deck can be drawn from
        cheaters (Dict[str, int]): cheat messages seen per peer
    """
    def __init__(self, channel, deck_size=None, group=None):
        """
        Args:
            channel: authenticated channel
            deck_size (int): cards per proposed deck, defaults to
                config.DECK_SIZE
            group (SraGroup): SRA group, defaults to the 2**607-1 group
        """
        self.channel = channel
        self.deck_size = deck_size or config.DECK_SIZE
        self.group = group or SraGroup()
        self.rand_gen = self.group.rand_gen

        self.game = None
        self.ready = False
        self.cheaters = {}

        for topic in MESSAGE_TYPES:
            self.channel.on(topic, self._handler(topic))
        self.channel.on_roster(self.roster_update)

    @property
    def player(self):
        """own peer id"""
        return self.channel.public_name

    def _handler(self, topic):
        return lambda status, payload: self.handle_message(
            topic, status, payload)

    def _emit(self, msg):
        self.channel.emit(msg.topic, msg.to_payload())

    # callbacks for the application -------------------------------------------
    def card_update(self, entry):
        """Called when a card changes owner or its value becomes known"""

    # dispatch ----------------------------------------------------------------
    def handle_message(self, topic, status, payload):
        """Process one message of a card topic. Desyncs and cheats drop the
        message, integrity failures are raised.

        Args:
            topic (str): channel topic
            status: channel status with valid flag and peer.id
            payload (Dict): raw payload

        Raises:
            CardIntegrityError: if a drawn card is not a card of the deck
        """
        if not status.valid:
            logger.warning(f"Ignoring invalid {topic} message")
            return

        sender = status.peer.id
        try:
            msg = parse_message(topic, payload)
            logger.debug(f"{_short(sender)}: {topic}")
            getattr(self, topic + '_msg')(sender, msg)
        except CheatError as e:
            peer = e.peer or sender
            self.cheaters[peer] = self.cheaters.get(peer, 0) + 1
            logger.error(f"Cheat by {_short(peer)} in {topic}: {e}")
        except DesyncError as e:
            logger.warning(f"Dropped {topic} from {_short(sender)}: {e}")

    def roster_update(self, joined, left):
        """A peer of the running game went away, the game is over

        Args:
            joined (List[str]): ids of new peers
            left (List[str]): ids of peers that disconnected
        """
        if self.game is None or not self.ready:
            return
        gone = [peer for peer in left if peer in self.game.order]
        if gone:
            logger.warning(f"Game over, player {_short(gone[0])} left")
            self.ready = False

    # shuffle -----------------------------------------------------------------
    def propose_shuffle(self, order=None, size=None):
        """Publish a fresh clear deck and an order of the peers to shuffle it

        Args:
            order (List[str]): peer order, a random order of all known
                peers if None
            size (int): number of cards, defaults to deck_size

        Returns:
            List[str]: the proposed order
        """
        size = size or self.deck_size
        if order is None:
            order = self.rand_gen.get_random_permutation(
                len(self.channel.peers), list(self.channel.peers))

        deck = [DeckCard(name=hash_value(value), encrypted=value)
                for value in new_deck(size, self.rand_gen)]

        logger.info(f"Starting shuffle of {size} cards over "
                    f"{len(order)} players")
        self._emit(ShuffleMessage(pass_no=0, order=list(order), deck=deck))
        return list(order)

    def shuffle_msg(self, sender, msg):
        if msg.reverse:
            return self._unseal_deck_msg(sender, msg)

        if msg.pass_no == 0:
            game = self._new_game(msg)
        else:
            game = self._game_for(msg)
            if msg.pass_no != len(game.pass_names):
                raise DesyncError(f"unexpected pass {msg.pass_no}")
            if sender != game.order[msg.pass_no - 1]:
                raise DesyncError("shuffle out of turn")
            self._check_deck(game, msg)
            game.pass_names.append({card.name for card in msg.deck})

        if msg.pass_no == len(game.order):
            # everyone shuffled, swap the per-deck keys for per-card keys
            # starting at the last player
            game.final_names = [card.name for card in msg.deck]
            game.unseal_pass = len(game.order) - 1
            logger.info("Deck shuffled, unsealing")
            if game.final_player == self.player:
                self._swap_keys(game, msg.deck, game.unseal_pass)
            return

        if game.order[msg.pass_no] == self.player:
            self._shuffle_pass(game, msg)

    def _new_game(self, msg):
        deck = [{'name': card.name, 'encrypted': card.encrypted}
                for card in msg.deck]
        if not deck or not validate_deck(deck, len(deck)):
            raise DesyncError("bad initial deck")
        unknown = [peer for peer in msg.order if peer not in self.channel.peers]
        if unknown:
            raise DesyncError(f"unknown player {_short(unknown[0])} in order")

        if self.ready:
            logger.info("New shuffle cancels the running game")

        game = GameSet(msg.order, len(deck))
        game.cards_raw = {card.name: card.encrypted for card in msg.deck}
        game.pass_names = [set(game.cards_raw)]
        self.game = game
        self.ready = False
        return game

    def _game_for(self, msg):
        if self.game is None or msg.order != self.game.order:
            raise DesyncError("message for another deck")
        if msg.pass_no > len(self.game.order):
            raise DesyncError(f"pass {msg.pass_no} out of range")
        return self.game

    def _check_deck(self, game, msg):
        if len(msg.deck) != game.cards_no:
            raise DesyncError(f"bad deck size {len(msg.deck)}")

        names = [card.name for card in msg.deck]
        if len(set(names)) != len(names):
            raise CheatError("duplicate card name in deck")
        if any(name in used for used in game.pass_names for name in names):
            raise CheatError("card name reused from an earlier pass")
        if not all(self.group.is_element(card.encrypted)
                   for card in msg.deck):
            raise CheatError("card outside the SRA group")

    def _shuffle_pass(self, game, msg):
        """Rename and encrypt every card with a fresh per-deck key, then
        permute the deck
        """
        game.deck_key = self.group.key_generate()

        cards = []
        for card in msg.deck:
            nonce = self.rand_gen.get_nonce()
            new_name = hash_name(nonce, card.name)
            encrypted = self.group.encrypt(card.encrypted, game.deck_key)
            game.records[new_name] = CardRecord(card.name, encrypted, nonce,
                                                new_name)
            cards.append(DeckCard(name=new_name, encrypted=encrypted))

        self.rand_gen.get_random_permutation(len(cards), cards)
        self._emit(ShuffleMessage(pass_no=msg.pass_no + 1, order=game.order,
                                  deck=cards))

    def _swap_keys(self, game, deck, pass_no):
        """Replace the per-deck layer by a per-card key on every card and
        commit to the per-card keys
        """
        cards = []
        keys = []
        for card in deck:
            key = self.group.key_generate()
            game.card_keys[card.name] = key
            encrypted = self.group.encrypt(
                self.group.decrypt(card.encrypted, game.deck_key), key)
            cards.append(DeckCard(name=card.name, encrypted=encrypted))
            keys.append(hash_key(key.d))

        game.deck_key = None
        self._emit(ShuffleMessage(pass_no=pass_no, order=game.order,
                                  deck=cards, reverse=True, keys=keys))

    def _unseal_deck_msg(self, sender, msg):
        game = self._game_for(msg)
        if game.unseal_pass is None or game.unseal_pass < 0:
            raise DesyncError("deck is not being unsealed")
        if msg.pass_no != game.unseal_pass:
            raise DesyncError(f"unexpected unseal pass {msg.pass_no}")
        if sender != game.order[msg.pass_no]:
            raise DesyncError("unseal out of turn")
        if [card.name for card in msg.deck] != game.final_names:
            raise CheatError("unseal changed the final deck")
        if len(msg.keys) != len(msg.deck):
            raise DesyncError("missing key commitments")
        if not all(self.group.is_element(card.encrypted)
                   for card in msg.deck):
            raise CheatError("card outside the SRA group")

        for card, key in zip(msg.deck, msg.keys):
            game.commitments.setdefault(card.name, {})[sender] = key
        game.unseal_pass = msg.pass_no - 1

        if msg.pass_no == 0:
            self._finalize(game, msg.deck)
        elif game.order[msg.pass_no - 1] == self.player:
            self._swap_keys(game, msg.deck, msg.pass_no - 1)

    def _finalize(self, game, deck):
        position = len(game.order) - 1
        for card in deck:
            game.deck[card.name] = FinalDeckEntry(
                card.name, card.encrypted, position,
                game.commitments[card.name])
        self.ready = True
        logger.info(f"Shuffle complete, {len(deck)} cards ready")

    # draw --------------------------------------------------------------------
    def _require_ready(self):
        if self.game is None or not self.ready:
            raise DesyncError("deck is not ready")
        return self.game

    def _entry(self, game, final_name):
        entry = game.deck.get(final_name)
        if entry is None:
            raise DesyncError(f"unknown card {final_name[:8]}")
        return entry

    def draw_card(self, dest=None, final_name=None):
        """Deal a card of the final deck to dest

        Args:
            dest (str): receiving peer, defaults to this peer
            final_name (str): card to deal, a random undrawn card if None

        Returns:
            str: final name of the card

        Raises:
            DesyncError: if the deck is not ready, the card is taken or
                dest does not play
        """
        game = self._require_ready()
        dest = dest or self.player
        if game.position(dest) is None:
            raise DesyncError(f"{_short(dest)} does not play")

        if final_name is None:
            undrawn = [name for name in game.undrawn()
                       if name not in game.claims]
            if not undrawn:
                raise DesyncError("no more cards")
            final_name = self.rand_gen.get_random_choice(undrawn)

        entry = self._entry(game, final_name)
        if entry.player is not None or final_name in game.claims:
            raise DesyncError(f"card {final_name[:8]} already drawn")

        if self.player == game.final_player:
            self._draw_hop(game, entry, dest)
        else:
            self._emit(DrawMessage(dest=dest, next=game.final_player,
                                   final_name=final_name))
        return final_name

    def _draw_hop(self, game, entry, dest):
        """Disclose the own link of the name chain together with the own
        per-card key of the card
        """
        if entry.player is None:
            game.claims.add(entry.final_name)
            if dest == self.player:
                self._emit(DrawMessage(dest=dest, next=dest,
                                       final_name=entry.final_name))
                return

        record = game.records[entry.known_name]
        key = game.card_keys[entry.final_name]
        self._emit(DrawMessage(dest=dest,
                               next=game.order[entry.position - 1],
                               final_name=entry.final_name,
                               name=record.prev_name, nonce=record.nonce,
                               key=key.d))

    def draw_msg(self, sender, msg):
        game = self._require_ready()
        entry = self._entry(game, msg.final_name)
        if game.position(msg.dest) is None:
            raise DesyncError(f"{_short(msg.dest)} does not play")

        if sender != game.final_player and not msg.is_hop:
            # request, only the final player can start the chain
            if msg.next != game.final_player:
                raise DesyncError("draw request not sent to the final player")
            if entry.player is not None:
                raise DesyncError(f"card {msg.final_name[:8]} already drawn")
            if self.player != game.final_player:
                return
            if msg.final_name in game.claims:
                raise DesyncError(f"card {msg.final_name[:8]} already claimed")
            self._draw_hop(game, entry, msg.dest)
            return

        if sender == game.final_player:
            if entry.player is not None:
                raise CheatError(f"card {msg.final_name[:8]} drawn twice")
            if not msg.is_hop:
                if msg.dest != sender:
                    raise DesyncError("claim for another player")
                entry.player = msg.dest
                self._chain_progress(game, entry)
                return
        else:
            if entry.player is None:
                raise DesyncError("draw chain not started")
            if not msg.is_hop:
                raise DesyncError("draw request for a dealt card")
            if msg.dest != entry.player:
                raise CheatError("draw chain for another player")

        self._check_hop(game, entry, sender, msg)

        entry.player = msg.dest
        entry.encrypted = self.group.mod_exp(entry.encrypted, msg.key)
        entry.nonces.append(msg.nonce)
        entry.known_name = msg.name
        entry.position -= 1
        self._chain_progress(game, entry)

    def _check_hop(self, game, entry, sender, msg):
        if game.order[entry.position] == msg.dest:
            raise DesyncError("draw chain already complete")
        if sender != game.order[entry.position]:
            raise DesyncError("draw hop out of turn")
        if msg.next != game.order[entry.position - 1]:
            raise DesyncError("draw hop sent to the wrong player")
        if hash_name(msg.nonce, msg.name) != entry.known_name:
            raise CheatError("forged nonce in draw chain")
        if msg.name not in game.pass_names[entry.position]:
            raise CheatError("draw chain leaves the published names")
        if hash_key(msg.key) != entry.commitments.get(sender):
            raise CheatError("per-card key does not match its commitment")

    def _chain_progress(self, game, entry):
        holder = game.order[entry.position]
        if holder != entry.player:
            if holder == self.player:
                self._draw_hop(game, entry, entry.player)
            return

        entry.holder = entry.player
        logger.info(f"Card {entry.final_name[:8]} dealt to "
                    f"{_short(entry.player)}")
        self.card_update(entry)
        if entry.player != self.player:
            return

        if entry.position == 0:
            self._take_card(game, entry)
        else:
            entry.temp_key = self.group.key_generate()
            self._emit(WrapMessage(
                dest=entry.player, next=game.prev_player(self.player),
                final_name=entry.final_name,
                encrypted=self.group.encrypt(entry.encrypted,
                                             entry.temp_key)))

    def _take_card(self, game, entry):
        """The first player knows the commitment under its own record and
        only has its own layer left on the card
        """
        record = game.records[entry.known_name]
        value = game.cards_raw.get(record.prev_name)
        plain = self.group.decrypt(entry.encrypted,
                                   game.card_keys[entry.final_name])
        if value is None or plain != value:
            self._integrity_failure(entry)
        self._card_known(entry, value)

    def _card_known(self, entry, value):
        entry.value = value
        entry.index = card_index(value)
        logger.info(f"Card {entry.final_name[:8]} is {entry.index}")
        self.card_update(entry)

    def _integrity_failure(self, entry):
        entry.failed = True
        logger.critical(f"Card {entry.final_name[:8]} is not in the initial "
                        f"deck, the shuffle was forged")
        raise CardIntegrityError("drawn card not in the initial deck",
                                 entry.final_name)

    # wrap --------------------------------------------------------------------
    def _dealt_entry(self, game, msg):
        """Entry of a card whose draw chain reached its recipient"""
        entry = self._entry(game, msg.final_name)
        if entry.player is None or entry.player != msg.dest:
            raise DesyncError("card not dealt to this player")
        if game.order[entry.position] != entry.player:
            raise DesyncError("draw chain not complete")
        if entry.position == 0:
            raise DesyncError("first player needs no wrapping")
        return entry

    def wrap_msg(self, sender, msg):
        game = self._require_ready()
        entry = self._dealt_entry(game, msg)

        done = len(entry.wrapped)
        if done >= entry.position:
            raise DesyncError("wrap already complete")
        if sender != game.order[entry.position - done]:
            raise DesyncError("wrap out of turn")
        if msg.next != game.prev_player(sender):
            raise DesyncError("wrap sent to the wrong player")
        if not self.group.is_element(msg.encrypted):
            raise CheatError("wrapped card outside the SRA group")

        entry.wrapped[sender] = msg.encrypted
        if msg.next != self.player:
            return

        entry.temp_key = self.group.key_generate()
        wrapped = self.group.encrypt(msg.encrypted, entry.temp_key)
        if game.position(self.player) == 0:
            self._emit(UnwrapMessage(
                dest=entry.player, next=game.order[1],
                final_name=entry.final_name,
                encrypted=self.group.decrypt(
                    wrapped, game.card_keys[entry.final_name])))
        else:
            self._emit(WrapMessage(dest=entry.player,
                                   next=game.prev_player(self.player),
                                   final_name=entry.final_name,
                                   encrypted=wrapped))

    # unwrap ------------------------------------------------------------------
    def unwrap_msg(self, sender, msg):
        game = self._require_ready()
        entry = self._dealt_entry(game, msg)
        if len(entry.wrapped) != entry.position:
            raise DesyncError("unwrap before wrap completed")

        done = len(entry.unwrapped)
        if done >= entry.position:
            raise DesyncError("unwrap already complete")
        if sender != game.order[done]:
            raise DesyncError("unwrap out of turn")
        if msg.next != game.next_player(sender):
            raise DesyncError("unwrap sent to the wrong player")
        if not self.group.is_element(msg.encrypted):
            raise CheatError("unwrapped card outside the SRA group")

        entry.unwrapped[sender] = msg.encrypted
        if msg.next != self.player:
            return

        unwrapped = self.group.decrypt(msg.encrypted,
                                       game.card_keys[entry.final_name])
        if self.player == entry.player:
            # only the temp keys are left on top of the card
            entry.sealed = unwrapped
            self._reveal_temp_key(game, entry)
        else:
            self._emit(UnwrapMessage(dest=entry.player,
                                     next=game.next_player(self.player),
                                     final_name=entry.final_name,
                                     encrypted=unwrapped))

    # unseal ------------------------------------------------------------------
    def _reveal_temp_key(self, game, entry):
        key = entry.temp_key
        entry.temp_key = None
        self._emit(UnsealMessage(dest=entry.player,
                                 next=game.prev_player(self.player),
                                 final_name=entry.final_name, key=key.d))

    def unseal_msg(self, sender, msg):
        game = self._require_ready()
        entry = self._dealt_entry(game, msg)
        if len(entry.unwrapped) != entry.position:
            raise DesyncError("unseal before unwrap completed")

        position = entry.position - len(entry.temp_keys)
        if position < 0:
            raise DesyncError("unseal already complete")
        if sender != game.order[position]:
            raise DesyncError("unseal out of turn")
        if msg.next != game.prev_player(sender):
            raise DesyncError("unseal sent to the wrong player")
        if msg.key in game.used_temp_keys:
            raise CheatError("temp key reused")

        if position > 0:
            # the key has to open what the sender wrapped, otherwise the
            # wrapper fed a foreign ciphertext into the unwrap
            if sender == entry.player:
                wrapped_in = entry.encrypted
            else:
                wrapped_in = entry.wrapped[game.order[position + 1]]
            opened = self.group.mod_exp(entry.wrapped[sender], msg.key)
            if opened != wrapped_in:
                raise CheatError("temp key does not open the wrapped card")

        entry.temp_keys[sender] = msg.key
        game.used_temp_keys.add(msg.key)

        if position == 0:
            if self.player == entry.player:
                self._open_sealed(game, entry)
            return

        if msg.next == self.player:
            self._reveal_temp_key(game, entry)

    def _open_sealed(self, game, entry):
        value = entry.sealed
        for key in entry.temp_keys.values():
            value = self.group.mod_exp(value, key)

        if game.cards_raw.get(hash_value(value)) != value:
            self._integrity_failure(entry)
        self._card_known(entry, value)

    # reveal ------------------------------------------------------------------
    def reveal_card(self, final_name):
        """Prove the face value of a held card to every peer

        Args:
            final_name (str): card to reveal

        Raises:
            DesyncError: if the card is not ours or not known to us
        """
        game = self._require_ready()
        entry = self._entry(game, final_name)
        if entry.player != self.player:
            raise DesyncError(f"card {final_name[:8]} is not ours")
        if entry.value is None:
            raise DesyncError(f"card {final_name[:8]} is not known to us")
        if entry.holder in game.order and entry.holder != self.player:
            raise DesyncError(f"card {final_name[:8]} was passed on")

        record = game.records[entry.known_name]
        self._emit(RevealMessage(dest=self.player,
                                 next=game.prev_player(self.player),
                                 final_name=final_name,
                                 name=record.prev_name,
                                 nonces=[record.nonce]))

    def reveal_msg(self, sender, msg):
        game = self._require_ready()
        entry = self._entry(game, msg.final_name)
        if entry.player is None or msg.dest != entry.player:
            raise DesyncError("reveal for a card not held by dest")
        if game.order[entry.position] != entry.player:
            raise DesyncError("draw chain not complete")
        if entry.revealed:
            raise DesyncError("card already revealed")

        done = len(entry.reveal_nonces)
        position = entry.position - done
        if position < 0 or sender != game.order[position]:
            raise DesyncError("reveal out of turn")
        if msg.next != game.prev_player(sender):
            raise DesyncError("reveal sent to the wrong player")
        if len(msg.nonces) != done + 1 \
                or msg.nonces[:done] != entry.reveal_nonces:
            raise CheatError("reveal chain rewritten")
        if msg.name not in game.pass_names[position]:
            raise CheatError("reveal chain leaves the published names")
        if fold_names(fold_names(msg.name, msg.nonces),
                      entry.nonces) != entry.final_name:
            raise CheatError("invalid reveal chain")

        entry.reveal_nonces = list(msg.nonces)

        if msg.next is None:
            value = game.cards_raw[msg.name]
            if entry.value is not None and entry.value != value:
                raise CheatError("revealed card differs from the drawn one")
            entry.revealed = True
            self._card_known(entry, value)
            return

        if msg.next == self.player:
            record = game.records.get(msg.name)
            if record is None:
                raise MessageError("reveal names a card we never shuffled")
            self._emit(RevealMessage(dest=msg.dest,
                                     next=game.prev_player(self.player),
                                     final_name=msg.final_name,
                                     name=record.prev_name,
                                     nonces=msg.nonces + [record.nonce]))

    # move --------------------------------------------------------------------
    def _check_move_dest(self, game, dest, holder):
        if dest == holder:
            raise DesyncError("card moved onto its holder")
        if dest not in game.order and is_name(dest):
            raise DesyncError(f"{_short(dest)} does not play")

    def move_card(self, final_name, dest):
        """Pass a held card to another player or put it onto a pile

        Args:
            final_name (str): card to move
            dest (str): peer id, or a pile label such as 'discard'

        Raises:
            DesyncError: if the card is not in our hand or dest is an
                unknown player
        """
        game = self._require_ready()
        entry = self._entry(game, final_name)
        if entry.holder != self.player:
            raise DesyncError(f"card {final_name[:8]} is not in our hand")
        if entry.player == self.player and entry.value is None:
            raise DesyncError(f"card {final_name[:8]} is still being drawn")
        self._check_move_dest(game, dest, self.player)

        self._emit(MoveMessage(final_name=final_name, dest=dest))

    def move_msg(self, sender, msg):
        game = self._require_ready()
        entry = self._entry(game, msg.final_name)
        if entry.holder is None:
            raise DesyncError(f"card {msg.final_name[:8]} not dealt")
        if entry.holder != sender:
            if entry.holder not in game.order:
                raise CheatError(f"card {msg.final_name[:8]} played twice")
            raise CheatError("card moved by a player who does not hold it")
        self._check_move_dest(game, msg.dest, sender)

        entry.holder = msg.dest
        logger.info(f"Card {msg.final_name[:8]} moved from {_short(sender)} "
                    f"to {_short(msg.dest)}")
        self.card_update(entry)

    # -------------------------------------------------------------------------
    def hands_by_owner(self):
        """Dealt cards per owner

        Returns:
            Dict[str, List[FinalDeckEntry]]: cards per peer id or pile label
        """
        if self.game is None:
            return {}
        return self.game.hands_by_owner()
