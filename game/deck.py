import random

from game.models import Card, COLORS, NUMBERS, ACTIONS, WILD
from utils import safe_print

DECK_SIZE = 108


def build_deck():
    """
    The 108-card deck in a fixed order: per color one 0 and two of every
    other number and action, then four wild and four wild draw-4.
    """
    cards = []
    for color in COLORS:
        cards.append(Card(color, '0'))
        for value in NUMBERS[1:] + ACTIONS:
            cards.append(Card(color, value))
            cards.append(Card(color, value))
    for value in ('wild', 'wild_draw4'):
        for _ in range(4):
            cards.append(Card(WILD, value))
    return cards


def shuffle(items, rng=random):
    """Fisher-Yates, in place. Returns the same list for chaining."""
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items


def draw_cards(match, count=1, rng=random):
    """
    Pop up to `count` cards off the draw pile. Whenever the pile is empty the
    discard pile minus its top card is shuffled back in; if that leaves
    nothing, fewer cards than requested are returned.
    """
    drawn = []
    for _ in range(count):
        if not match.deck:
            if len(match.discard_pile) <= 1:
                break
            top = match.discard_pile.pop()
            match.deck = shuffle(match.discard_pile, rng)
            match.discard_pile = [top]
            match.top_discard = top
            match.log("🔀 Deck reshuffled!", system=True)
            safe_print(f"[DECK] Reshuffled {len(match.deck)} cards back into the draw pile")
            if not match.deck:
                break
        drawn.append(match.deck.pop())
    return drawn
