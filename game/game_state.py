from collections import Counter

from game.deck import build_deck

NOT_STARTED = 'NOT_STARTED'
ACTIVE = 'ACTIVE'
ENDED = 'ENDED'


class Match:
    """
    Holds mutable match state. Every per-player map is keyed by the
    player's persistent id, never by the connection id.
    """

    def __init__(self, generation=0):
        self.generation = generation
        self.phase = NOT_STARTED
        self.deck = []
        self.hands = {}
        self.discard_pile = []
        self.top_discard = None
        self.active_color = None
        self.active_value = None
        self.turn_order = []
        self.current_turn_index = 0
        self.direction = 1
        self.finish_order = []
        self.uno_flags = {}
        self.ui_log = []

    @property
    def is_active(self):
        return self.phase == ACTIVE

    @property
    def current_player(self):
        if not self.turn_order:
            return None
        return self.turn_order[self.current_turn_index]

    def hand_counts(self):
        return {key: len(hand) for key, hand in self.hands.items()}

    def log(self, msg, system=False):
        """Queue a banner (or a system notice) for the broadcaster."""
        self.ui_log.append({'msg': msg, 'system': system})

    def consume_ui_log(self):
        entries = list(self.ui_log)
        self.ui_log.clear()
        return entries

    def check_invariants(self):
        """
        Returns a list of violated invariants (empty when consistent).
        Used by the tests after every mutation.
        """
        problems = []
        everything = Counter(self.deck) + Counter(self.discard_pile)
        for hand in self.hands.values():
            everything += Counter(hand)
        if everything != Counter(build_deck()):
            problems.append("card conservation")
        if self.top_discard is not None and self.discard_pile and self.discard_pile[-1] != self.top_discard:
            problems.append("top discard mismatch")
        if self.is_active:
            if not 0 <= self.current_turn_index < len(self.turn_order):
                problems.append("turn index out of range")
            if set(self.turn_order) != {k for k, h in self.hands.items() if h}:
                problems.append("turn order does not match players holding cards")
        if len(set(self.finish_order)) != len(self.finish_order):
            problems.append("duplicate in finish order")
        return problems

    def __repr__(self):
        return f"<Match gen={self.generation} {self.phase} turn={self.current_player}>"
