import random
from collections import Counter

from config import GameConfig
from game.models import COLORS
from game.rules import playable_cards, card_tier
from utils import safe_print


class BotController:
    """
    Watches whose turn it is and schedules a delayed move for bots.
    `on_fire(code, generation, bot_key)` is called when the delay elapses;
    it must re-check the room before acting.
    """

    def __init__(self, scheduler, on_fire, rng=random):
        self.scheduler = scheduler
        self.on_fire = on_fire
        self.rng = rng
        # (room_code, match generation, bot key) already waiting to fire
        self.pending = set()

    # -----------------------------
    # SCHEDULING
    # -----------------------------

    def maybe_schedule(self, room):
        match = room.match
        if match is None or not match.is_active:
            return None
        bot = room.roster.by_key(match.current_player)
        if bot is None or not bot.is_bot:
            return None

        tag = (room.code, match.generation, bot.key)
        if tag in self.pending:
            return None
        self.pending.add(tag)

        delay = GameConfig.get_bot_delay(bot.bot_difficulty)
        safe_print(f"[AI] {bot.name} will move in {delay:.1f}s")
        self.scheduler.schedule(delay, self._fire, tag)
        return tag

    def _fire(self, tag):
        self.pending.discard(tag)
        code, generation, key = tag
        self.on_fire(code, generation, key)

    @staticmethod
    def still_valid(room, generation, key):
        """The bot may only act if nothing moved the turn since scheduling."""
        if room is None or room.match is None:
            return False
        match = room.match
        return match.is_active and match.generation == generation and match.current_player == key

    # -----------------------------
    # DECISION
    # -----------------------------

    def decide(self, match, key):
        """
        Returns {"action": "play", "card", "color", "call_uno"} or
        {"action": "draw", "call_uno"}.
        """
        hand = match.hands.get(key, [])
        call_uno = len(hand) == 2

        card = self.choose_card(match, hand)
        if card is None:
            safe_print(f"[AI] {key} has nothing playable, drawing")
            return {"action": "draw", "call_uno": call_uno}

        color = None
        if card.is_wild:
            rest = list(hand)
            rest.remove(card)
            color = self.choose_color(rest)
        safe_print(f"[AI] {key} plays {card}" + (f" and picks {color}" if color else ""))
        return {"action": "play", "card": card, "color": color, "call_uno": call_uno}

    def choose_card(self, match, hand):
        # Prefer action and penalty cards, then numbers, then plain wilds
        candidates = playable_cards(match, hand)
        if not candidates:
            return None
        best = min(card_tier(c) for c in candidates)
        return self.rng.choice([c for c in candidates if card_tier(c) == best])

    @staticmethod
    def choose_color(hand):
        counts = Counter(c.color for c in hand if c.color in COLORS)
        if not counts:
            return GameConfig.COLOR_PRIORITY[0]
        top = max(counts.values())
        return next(color for color in GameConfig.COLOR_PRIORITY if counts.get(color) == top)
