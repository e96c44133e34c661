import random

import pytest

from controllers.broadcaster import StateBroadcaster
from controllers.room_controller import RoomController
from game.deck import build_deck
from game.game_state import Match, ACTIVE
from game.manager import RoomManager
from game.models import Card, Room
from game.roster import Roster


class ManualScheduler:
    """Collects deferred callbacks; tests decide when they fire."""

    def __init__(self):
        self.tasks = []

    def schedule(self, delay, callback, *args):
        self.tasks.append((delay, callback, args))
        return len(self.tasks)

    def run_pending(self):
        tasks, self.tasks = self.tasks, []
        for _delay, callback, args in tasks:
            callback(*args)
        return len(tasks)


class RecordingTransport:
    """Stands in for Socket.IO: remembers everything that was emitted."""

    def __init__(self):
        self.sent = []

    def emit(self, event, payload, to=None, skip_sid=None):
        self.sent.append({'event': event, 'payload': payload, 'to': to, 'skip_sid': skip_sid})

    def events(self, name, to=None):
        return [m['payload'] for m in self.sent if m['event'] == name and (to is None or m['to'] == to)]

    def messages(self, name):
        return [m for m in self.sent if m['event'] == name]

    def names(self):
        return [m['event'] for m in self.sent]

    def clear(self):
        self.sent.clear()


def card(spec):
    """'red:5', 'blue:skip', 'wild:wild_draw4'"""
    color, value = spec.split(':')
    return Card(color, value)


def cards(*specs):
    return [card(s) for s in specs]


def make_room(*names, code='ROOM42'):
    """Room whose humans use their name as both connection id and persistent id."""
    roster = Roster()
    for name in names:
        roster.add_human(f"sid-{name}", name, name)
    return Room(code, roster)


def rig_match(room, hands, top, current=0, direction=1, deck=None, turn_order=None):
    """
    Put `room` into an active match with exactly these hands. Cards not in
    a hand, on top, or in an explicit `deck` go to the draw pile (or under
    the top card when a deck is given) so all 108 cards stay accounted for.
    """
    pool = build_deck()
    match = Match(generation=room.next_generation())
    for key, held in hands.items():
        for c in held:
            pool.remove(c)
        match.hands[key] = list(held)
    pool.remove(top)
    if deck is None:
        match.deck = pool
        match.discard_pile = [top]
    else:
        for c in deck:
            pool.remove(c)
        match.deck = list(deck)
        match.discard_pile = pool + [top]
    match.top_discard = top
    match.active_color = top.color
    match.active_value = top.value
    match.turn_order = list(turn_order or hands.keys())
    match.current_turn_index = current
    match.direction = direction
    match.uno_flags = {key: False for key in hands}
    match.phase = ACTIVE
    room.match = match
    return match


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def controller(scheduler, transport):
    rng = random.Random(7)
    return RoomController(RoomManager(rng=rng), StateBroadcaster(transport), scheduler, rng=rng)
