"""
Unit tests for the UNO rules engine: dealing, card effects, UNO calls,
finishing, drawing and players leaving mid-match.
"""
import random

import pytest

from conftest import card, cards, make_room, rig_match
from game.engine import UnoEngine
from game.game_state import ACTIVE, ENDED
from game.rules import playable_cards


def snapshot(match):
    return (
        {k: list(v) for k, v in match.hands.items()},
        list(match.turn_order),
        match.current_turn_index,
        match.direction,
        len(match.deck),
        list(match.discard_pile),
    )


@pytest.fixture
def three():
    """A, B, C in that turn order; A to act on a red 5."""
    room = make_room('A', 'B', 'C')
    match = rig_match(room, {
        'A': cards('red:7', 'red:skip', 'red:reverse', 'red:draw2', 'wild:wild', 'wild:wild_draw4', 'green:8'),
        'B': cards('blue:1', 'blue:2'),
        'C': cards('yellow:1', 'yellow:2'),
    }, card('red:5'))
    return room, match, UnoEngine(match, room.roster, random.Random(0))


# ============================================================================
# Match start
# ============================================================================

class TestStartMatch:

    @pytest.mark.parametrize("seed", range(15))
    def test_deal_keeps_every_card_and_never_opens_on_a_wild(self, seed):
        room = make_room('A', 'B', 'C')
        engine = UnoEngine.start_match(room, random.Random(seed))
        match = room.match

        assert engine.match is match
        assert match.phase == ACTIVE
        assert match.check_invariants() == []
        assert not match.top_discard.is_wild
        assert sorted(match.turn_order) == ['A', 'B', 'C']
        assert sorted(len(h) for h in match.hands.values()) in ([7, 7, 7], [7, 7, 9])

    def test_each_start_gets_a_new_generation(self):
        room = make_room('A', 'B')
        UnoEngine.start_match(room, random.Random(1))
        first = room.match
        UnoEngine.start_match(room, random.Random(2))
        assert room.match is not first
        assert room.match.generation == first.generation + 1

    def test_starting_skip_advances_exactly_once(self, monkeypatch):
        # unshuffled deck: A is dealt 4 wild draw-4 + 2 wild, B the rest of the
        # wilds, two draw2 and two reverse; the opening card is a blue skip
        monkeypatch.setattr('game.engine.shuffle', lambda items, rng=None: items)
        room = make_room('A', 'B')
        room.settings['starting_hand_size'] = 6

        UnoEngine.start_match(room)
        match = room.match

        assert match.top_discard == card('blue:skip')
        assert match.current_player == 'B'
        assert len(match.hands['A']) == len(match.hands['B']) == 6

    def test_starting_draw2_hits_first_player_then_advances_once(self, monkeypatch):
        # with one card each, every wild is cycled under the deck and a blue
        # draw2 opens; A draws the next two cards
        monkeypatch.setattr('game.engine.shuffle', lambda items, rng=None: items)
        room = make_room('A', 'B')
        room.settings['starting_hand_size'] = 1

        UnoEngine.start_match(room)
        match = room.match

        assert match.top_discard == card('blue:draw2')
        assert match.hands['A'] == cards('wild:wild_draw4', 'blue:draw2', 'blue:reverse')
        assert len(match.hands['B']) == 1
        assert match.current_player == 'B'
        assert match.check_invariants() == []


# ============================================================================
# Rejections
# ============================================================================

class TestPlayRejections:

    def test_out_of_turn_play_changes_nothing(self, three):
        room, match, engine = three
        before = snapshot(match)
        assert 'error' in engine.play('B', card('blue:1'))
        assert snapshot(match) == before

    def test_card_not_in_hand(self, three):
        room, match, engine = three
        before = snapshot(match)
        assert 'error' in engine.play('A', card('red:9'))
        assert snapshot(match) == before

    def test_card_that_does_not_match(self, three):
        room, match, engine = three
        before = snapshot(match)
        assert 'error' in engine.play('A', card('green:8'))
        assert snapshot(match) == before

    def test_inactive_match(self, three):
        room, match, engine = three
        match.phase = ENDED
        assert 'error' in engine.play('A', card('red:7'))
        assert 'error' in engine.draw('A')


# ============================================================================
# Card effects
# ============================================================================

class TestCardEffects:

    def test_number_card_advances_once(self, three):
        room, match, engine = three
        result = engine.play('A', card('red:7'))
        assert result['ok'] and result['banner'] is None
        assert match.current_player == 'B'
        assert (match.active_color, match.active_value) == ('red', '7')
        assert match.top_discard == card('red:7') == match.discard_pile[-1]
        assert match.check_invariants() == []

    def test_skip_passes_over_next_player(self, three):
        room, match, engine = three
        result = engine.play('A', card('red:skip'))
        assert match.current_player == 'C'
        assert 'B skipped' in result['banner']

    def test_reverse_with_three_players_flips_direction(self, three):
        room, match, engine = three
        engine.play('A', card('red:reverse'))
        assert match.direction == -1
        assert match.current_player == 'C'

    def test_reverse_with_two_players_acts_like_skip(self):
        room = make_room('A', 'B')
        match = rig_match(room, {'A': cards('red:reverse', 'red:1'), 'B': cards('blue:1', 'blue:2')}, card('red:5'))
        result = UnoEngine(match, room.roster).play('A', card('red:reverse'))
        assert match.current_player == 'A'
        assert match.direction == -1
        assert 'A goes again' in result['banner']

    def test_draw2_hits_next_player_and_skips_them(self, three):
        room, match, engine = three
        engine.play('A', card('red:draw2'))
        assert len(match.hands['B']) == 4
        assert len(match.hands['C']) == 2
        assert match.current_player == 'C'
        assert match.check_invariants() == []

    def test_draw2_follows_reversed_direction(self, three):
        room, match, engine = three
        match.direction = -1
        engine.play('A', card('red:draw2'))
        assert len(match.hands['C']) == 4
        assert len(match.hands['B']) == 2
        assert match.current_player == 'B'

    def test_wild_draw4_sets_color_and_hits_next_player(self, three):
        room, match, engine = three
        result = engine.play('A', card('wild:wild_draw4'), 'blue')
        assert len(match.hands['B']) == 6
        assert len(match.hands['A']) == 6
        assert match.current_player == 'C'
        assert (match.active_color, match.active_value) == ('blue', 'wild_draw4')
        assert 'B draws 4' in result['banner']

    @pytest.mark.parametrize("chosen, expected", [('green', 'green'), (None, 'red'), ('purple', 'red')])
    def test_wild_uses_chosen_color_or_falls_back(self, three, chosen, expected):
        room, match, engine = three
        engine.play('A', card('wild:wild'), chosen)
        assert match.active_color == expected
        assert match.active_value == 'wild'
        assert match.current_player == 'B'

    def test_only_one_of_two_identical_cards_is_played(self):
        room = make_room('A', 'B')
        match = rig_match(room, {'A': cards('red:7', 'red:7', 'blue:1'), 'B': cards('blue:2')}, card('red:3'))
        UnoEngine(match, room.roster).play('A', card('red:7'))
        assert match.hands['A'] == cards('red:7', 'blue:1')
        assert match.check_invariants() == []


# ============================================================================
# UNO calls
# ============================================================================

class TestUno:

    @pytest.fixture
    def near_uno(self):
        room = make_room('A', 'B', 'C')
        match = rig_match(room, {
            'A': cards('red:7', 'blue:1'),
            'B': cards('blue:2', 'blue:3'),
            'C': cards('yellow:1', 'yellow:2'),
        }, card('red:5'))
        return room, match, UnoEngine(match, room.roster)

    def test_reaching_one_card_without_a_call_arms_the_penalty(self, near_uno):
        room, match, engine = near_uno
        assert engine.play('A', card('red:7'))['uno_penalty'] is True

    def test_a_prior_call_is_consumed_instead(self, near_uno):
        room, match, engine = near_uno
        engine.call_uno('A')
        assert engine.play('A', card('red:7'))['uno_penalty'] is False
        assert match.uno_flags['A'] is False

    def test_penalty_draws_two(self, near_uno):
        room, match, engine = near_uno
        engine.play('A', card('red:7'))
        result = engine.apply_uno_penalty('A', match.generation)
        assert result['ok']
        assert len(match.hands['A']) == 3
        assert match.check_invariants() == []

    def test_calling_uno_before_the_check_fires_avoids_penalty(self, near_uno):
        room, match, engine = near_uno
        engine.play('A', card('red:7'))
        engine.call_uno('A')
        assert 'error' in engine.apply_uno_penalty('A', match.generation)
        assert len(match.hands['A']) == 1

    def test_stale_generation_is_ignored(self, near_uno):
        room, match, engine = near_uno
        engine.play('A', card('red:7'))
        assert 'error' in engine.apply_uno_penalty('A', match.generation - 1)
        assert len(match.hands['A']) == 1

    def test_penalty_skipped_once_hand_size_changed(self, near_uno):
        room, match, engine = near_uno
        engine.play('A', card('red:7'))
        match.hands['A'].append(match.deck.pop())
        assert 'error' in engine.apply_uno_penalty('A', match.generation)

    def test_drawing_clears_the_flag(self, near_uno):
        room, match, engine = near_uno
        engine.call_uno('A')
        engine.draw('A')
        assert match.uno_flags['A'] is False

    def test_finished_players_cannot_call(self, near_uno):
        room, match, engine = near_uno
        del match.hands['C']
        assert 'error' in engine.call_uno('C')


# ============================================================================
# Finishing and drawing
# ============================================================================

class TestFinishing:

    def test_first_finisher_leaves_turn_order_and_play_continues(self):
        room = make_room('A', 'B', 'C')
        match = rig_match(room, {
            'A': cards('red:7'), 'B': cards('blue:2', 'blue:3'), 'C': cards('yellow:1'),
        }, card('red:5'))
        result = UnoEngine(match, room.roster).play('A', card('red:7'))

        assert result['finished'] and not result['game_over']
        assert match.finish_order == ['A']
        assert 'A' not in match.hands
        assert match.turn_order == ['B', 'C']
        assert match.current_player == 'B'
        assert match.check_invariants() == []

    def test_finishing_on_a_skip_keeps_the_right_player_current(self):
        room = make_room('A', 'B', 'C')
        match = rig_match(room, {
            'A': cards('red:skip'), 'B': cards('blue:2', 'blue:3'), 'C': cards('yellow:1'),
        }, card('red:5'))
        UnoEngine(match, room.roster).play('A', card('red:skip'))
        assert match.turn_order == ['B', 'C']
        assert match.current_player == 'C'

    def test_two_player_finish_ends_the_match(self):
        room = make_room('A', 'B')
        match = rig_match(room, {'A': cards('red:7'), 'B': cards('blue:2')}, card('red:5'))
        result = UnoEngine(match, room.roster).play('A', card('red:7'))
        assert result['game_over']
        assert match.finish_order == ['A', 'B']
        assert match.phase == ENDED


class TestDraw:

    def test_draw_adds_a_card_and_passes_the_turn(self, three):
        room, match, engine = three
        result = engine.draw('A')
        assert len(result['drawn']) == 1
        assert len(match.hands['A']) == 8
        assert match.current_player == 'B'
        assert match.check_invariants() == []

    def test_out_of_turn_draw_is_rejected(self, three):
        room, match, engine = three
        assert 'error' in engine.draw('C')
        assert len(match.hands['C']) == 2

    def test_exhausted_deck_ends_match_ranked_by_hand_size(self):
        room = make_room('A', 'B', 'C')
        top = card('green:5')
        match = rig_match(room, {
            'A': cards('red:1', 'red:2', 'red:3'),
            'B': cards('blue:1', 'blue:2'),
            'C': cards('yellow:1', 'yellow:2', 'yellow:3', 'yellow:4'),
        }, top, deck=[])
        match.hands['C'].extend(match.discard_pile[:-1])
        match.discard_pile = [top]

        result = UnoEngine(match, room.roster).draw('A')

        assert result == {"ok": True, "drawn": [], "game_over": True}
        assert match.phase == ENDED
        assert match.finish_order == ['B', 'A', 'C']
        assert match.check_invariants() == []


# ============================================================================
# Departures
# ============================================================================

class TestRemovePlayer:

    @pytest.fixture
    def four(self):
        room = make_room('A', 'B', 'C', 'D')
        match = rig_match(room, {
            'A': cards('red:1'), 'B': cards('blue:1', 'blue:2'),
            'C': cards('yellow:1'), 'D': cards('green:1'),
        }, card('red:5'))
        return room, match, UnoEngine(match, room.roster)

    def test_cards_go_back_to_the_deck(self, four):
        room, match, engine = four
        engine.remove_player('B')
        assert match.deck[:2] == cards('blue:1', 'blue:2')
        assert match.check_invariants() == []

    def test_leaver_before_current_keeps_same_player_current(self, four):
        room, match, engine = four
        match.current_turn_index = 2
        engine.remove_player('A')
        assert match.current_player == 'C'

    def test_leaver_after_current_changes_nothing(self, four):
        room, match, engine = four
        match.current_turn_index = 1
        engine.remove_player('D')
        assert match.current_player == 'B'
        assert match.turn_order == ['A', 'B', 'C']

    def test_current_leaver_passes_turn_forward(self, four):
        room, match, engine = four
        match.current_turn_index = 1
        engine.remove_player('B')
        assert match.current_player == 'C'

    def test_current_leaver_passes_turn_backward_when_reversed(self, four):
        room, match, engine = four
        match.current_turn_index = 1
        match.direction = -1
        engine.remove_player('B')
        assert match.current_player == 'A'

    def test_current_leaver_at_end_wraps(self, four):
        room, match, engine = four
        match.current_turn_index = 3
        engine.remove_player('D')
        assert match.current_player == 'A'

    def test_last_opponent_leaving_ends_the_match(self):
        room = make_room('A', 'B')
        match = rig_match(room, {'A': cards('red:1'), 'B': cards('blue:1')}, card('red:5'))
        result = UnoEngine(match, room.roster).remove_player('B')
        assert result['game_over']
        assert match.finish_order == ['A']
        assert match.check_invariants() == []

    def test_unknown_player(self, four):
        room, match, engine = four
        assert 'error' in engine.remove_player('Z')


# ============================================================================
# Whole games
# ============================================================================

@pytest.mark.parametrize("seed", range(8))
def test_invariants_hold_through_a_whole_game(seed):
    rng = random.Random(seed)
    room = make_room('A', 'B', 'C', 'D')
    engine = UnoEngine.start_match(room, rng)
    match = room.match

    for _ in range(3000):
        if not match.is_active:
            break
        key = match.current_player
        hand = match.hands[key]
        if len(hand) == 2 and rng.random() < 0.5:
            engine.call_uno(key)
        playable = playable_cards(match, hand)
        if playable:
            result = engine.play(key, rng.choice(playable), rng.choice(['red', 'blue']))
            if result.get('uno_penalty'):
                engine.apply_uno_penalty(key, match.generation)
        else:
            result = engine.draw(key)
        assert result.get('ok')
        assert match.check_invariants() == []

    if match.phase == ENDED:
        assert sorted(match.finish_order) == ['A', 'B', 'C', 'D']
