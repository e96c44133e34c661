from game.models import WILD, ACTIONS

'''
[**UNO HOUSE RULES**]
1. A card is playable if it is wild, or matches the active color, or matches the active value.
2. skip: the next player loses their turn.
3. reverse: direction flips. With only two players left it acts as a skip.
4. draw2 / wild_draw4: the next player draws 2 / 4 and loses their turn.
5. wild / wild_draw4: the player names the new active color.
6. A player left with one card must have called UNO beforehand, or draws 2 shortly after.
7. Emptying your hand finishes you; the rest keep playing until one player is left.
8. If nobody can draw any more cards, the remaining players are ranked by hand size.
'''

DRAW_COUNTS = {'draw2': 2, 'wild_draw4': 4}

# Bot preference tiers, lower is better
TIER_ACTION = 0
TIER_NUMBER = 1
TIER_WILD = 2


def can_play(match, card):
    if card.color == WILD:
        return True
    return card.color == match.active_color or card.value == match.active_value


def playable_cards(match, hand):
    return [c for c in hand if can_play(match, c)]


def is_action_card(card):
    return card.value in ACTIONS or card.value == 'wild_draw4'


def card_tier(card):
    if is_action_card(card):
        return TIER_ACTION
    if card.value == 'wild':
        return TIER_WILD
    return TIER_NUMBER


def is_valid_start_card(card):
    return card.color != WILD


def rank_by_hand_size(player_keys, hands):
    """Order players by ascending hand size; stable for equal sizes."""
    return sorted(player_keys, key=lambda key: len(hands.get(key, [])))
