import random

from game.deck import build_deck, shuffle, draw_cards
from game.game_state import Match, ACTIVE, ENDED
from game.models import COLORS
from game.rules import can_play, is_valid_start_card, rank_by_hand_size, DRAW_COUNTS
from config import GameConfig
from utils import safe_print


class UnoEngine:
    """
    Rules engine for one match. Every operation validates first and returns
    a result dict: {"ok": True, ...} when state changed, {"error": ...} when
    the request was rejected and nothing was touched.
    """

    def __init__(self, match, roster=None, rng=random):
        self.match = match
        self.roster = roster
        self.rng = rng

    # ---------------------
    # STATE HELPERS
    # ---------------------

    def _name(self, key):
        player = self.roster.by_key(key) if self.roster else None
        return player.name if player else '???'

    def _advance(self):
        m = self.match
        m.current_turn_index = (m.current_turn_index + m.direction) % len(m.turn_order)

    def _force_draw(self, key, count):
        cards = draw_cards(self.match, count, self.rng)
        self.match.hands[key].extend(cards)
        self.match.uno_flags[key] = False
        return cards

    def _reject(self, reason):
        safe_print(f"[ENGINE] Rejected: {reason}")
        return {"error": reason}

    def _guard_turn(self, key):
        m = self.match
        if not m.is_active:
            return self._reject("Game is not active")
        if m.current_player != key:
            return self._reject(f"Not {key}'s turn (current: {m.current_player})")
        return None

    # ---------------------
    # MATCH START
    # ---------------------

    @classmethod
    def start_match(cls, room, rng=random):
        """
        Deal a fresh match for everyone in the room and store it on the room.
        The opening card is never wild: wild cards are cycled to the bottom.
        """
        match = Match(generation=room.next_generation())
        hand_size = room.settings.get('starting_hand_size', GameConfig.DEFAULT_HAND_SIZE)

        match.deck = shuffle(build_deck(), rng)
        match.turn_order = shuffle([p.key for p in room.players], rng)
        match.hands = {key: [] for key in match.turn_order}
        match.uno_flags = {key: False for key in match.turn_order}
        for key in match.turn_order:
            for _ in range(hand_size):
                match.hands[key].append(match.deck.pop())

        start = match.deck.pop()
        for _ in range(len(match.deck)):
            if is_valid_start_card(start):
                break
            match.deck.insert(0, start)
            start = match.deck.pop()

        match.discard_pile = [start]
        match.top_discard = start
        match.active_color = start.color
        match.active_value = start.value
        match.phase = ACTIVE
        room.match = match

        engine = cls(match, room.roster, rng)
        if start.value == 'skip':
            match.log(f"⊘ {engine._name(match.current_player)} skipped!")
            engine._advance()
        elif start.value == 'draw2':
            victim = match.current_player
            engine._force_draw(victim, 2)
            match.log(f"+2 → {engine._name(victim)} draws 2!")
            engine._advance()

        match.log("Game started! Good luck! 🃏", system=True)
        safe_print(f"[ENGINE] Match {match.generation} started in room {room.code}: "
                   f"{len(match.turn_order)} players, opening card {start}")
        return engine

    # ---------------------
    # PLAY
    # ---------------------

    def play(self, key, card, chosen_color=None):
        rejected = self._guard_turn(key)
        if rejected:
            return rejected

        m = self.match
        hand = m.hands.get(key)
        if not hand or card not in hand:
            return self._reject(f"{key} does not hold {card}")
        if not can_play(m, card):
            return self._reject(f"{card} cannot be played on {m.active_color}/{m.active_value}")

        called_uno = m.uno_flags.get(key, False)

        hand.remove(card)
        m.discard_pile.append(card)
        m.top_discard = card
        m.active_value = card.value
        if not card.is_wild:
            m.active_color = card.color

        banner = None
        if card.value == 'skip':
            self._advance()
            banner = f"⊘ {self._name(m.current_player)} skipped!"
            self._advance()
        elif card.value == 'reverse':
            m.direction *= -1
            if len(m.turn_order) == 2:
                self._advance()
                self._advance()
                banner = f"↺ {self._name(key)} goes again!"
            else:
                self._advance()
                banner = "↺ Direction reversed!"
        elif card.value in ('wild', 'wild_draw4'):
            m.active_color = chosen_color if chosen_color in COLORS else GameConfig.FALLBACK_COLOR
            self._advance()
            if card.value == 'wild':
                banner = f"✦ {self._name(key)} chose {m.active_color}"
            else:
                victim = m.current_player
                self._force_draw(victim, DRAW_COUNTS['wild_draw4'])
                banner = f"+4 → {self._name(victim)} draws 4! Color: {m.active_color}"
                self._advance()
        elif card.value == 'draw2':
            self._advance()
            victim = m.current_player
            self._force_draw(victim, DRAW_COUNTS['draw2'])
            banner = f"+2 → {self._name(victim)} draws 2!"
            self._advance()
        else:
            self._advance()

        if banner:
            m.log(banner)
        safe_print(f"[ENGINE] {key} plays {card}, next: {m.current_player}")

        uno_penalty = False
        if len(hand) == 1:
            if called_uno:
                m.uno_flags[key] = False
            else:
                uno_penalty = True

        finished = False
        if not hand:
            finished = True
            self._finish_player(key)

        return {
            "ok": True,
            "card": card,
            "banner": banner,
            "uno_penalty": uno_penalty,
            "finished": finished,
            "game_over": not m.is_active,
        }

    def _finish_player(self, key):
        m = self.match
        m.finish_order.append(key)
        del m.hands[key]
        m.uno_flags.pop(key, None)
        self._remove_from_turn_order(key)
        m.log(f"{self._name(key)} finished! 🎉", system=True)
        safe_print(f"[ENGINE] {key} finished in position {len(m.finish_order)}")
        if len(m.turn_order) <= 1:
            self._end_match()

    # ---------------------
    # DRAW
    # ---------------------

    def draw(self, key):
        rejected = self._guard_turn(key)
        if rejected:
            return rejected

        m = self.match
        drawn = draw_cards(m, 1, self.rng)
        if not drawn:
            safe_print("[ENGINE] Nothing left to draw, ranking by hand size")
            m.log("No cards left to draw!", system=True)
            self._end_match()
            return {"ok": True, "drawn": [], "game_over": True}

        m.hands[key].extend(drawn)
        m.uno_flags[key] = False
        self._advance()
        safe_print(f"[ENGINE] {key} draws a card, next: {m.current_player}")
        return {"ok": True, "drawn": drawn, "game_over": False}

    # ---------------------
    # UNO CALLS
    # ---------------------

    def call_uno(self, key):
        m = self.match
        if not m.is_active or key not in m.hands:
            return self._reject(f"{key} cannot call UNO now")
        m.uno_flags[key] = True
        return {"ok": True}

    def apply_uno_penalty(self, key, generation):
        """
        Fired a while after `key` went down to one card. Only bites if nothing
        relevant changed in between.
        """
        m = self.match
        if m.generation != generation or not m.is_active:
            return {"error": "stale match"}
        hand = m.hands.get(key)
        if hand is None or len(hand) != 1 or m.uno_flags.get(key):
            return {"error": "penalty no longer applies"}

        drawn = self._force_draw(key, GameConfig.UNO_PENALTY_CARDS)
        m.log(f"{self._name(key)} forgot UNO! +{len(drawn)} 🤦", system=True)
        safe_print(f"[ENGINE] UNO penalty: {key} draws {len(drawn)}")
        return {"ok": True, "drawn": drawn}

    # ---------------------
    # DEPARTURES
    # ---------------------

    def remove_player(self, key):
        """
        A player left mid-match. Their cards go to the bottom of the draw
        pile and the match ends when one player or fewer is left.
        """
        m = self.match
        if not m.is_active or key not in m.hands:
            return {"error": f"{key} is not playing"}

        returned = m.hands.pop(key)
        m.deck[0:0] = returned
        m.uno_flags.pop(key, None)
        self._remove_from_turn_order(key)
        safe_print(f"[ENGINE] {key} left the match, {len(returned)} cards returned to the deck")

        if len(m.turn_order) <= 1:
            self._end_match()
        return {"ok": True, "game_over": not m.is_active}

    def _remove_from_turn_order(self, key):
        m = self.match
        if key not in m.turn_order:
            return
        index = m.turn_order.index(key)
        was_current = index == m.current_turn_index
        m.turn_order.pop(index)
        if not m.turn_order:
            m.current_turn_index = 0
            return
        if index < m.current_turn_index:
            m.current_turn_index -= 1
        elif was_current and m.direction == -1:
            m.current_turn_index = (index - 1) % len(m.turn_order)
        if m.current_turn_index >= len(m.turn_order):
            m.current_turn_index = 0

    def _end_match(self):
        m = self.match
        remaining = [k for k in rank_by_hand_size(m.turn_order, m.hands) if k not in m.finish_order]
        m.finish_order.extend(remaining)
        m.phase = ENDED
        safe_print(f"[ENGINE] Match {m.generation} over, finish order: {m.finish_order}")
