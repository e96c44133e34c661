import time

from config import GameConfig

COLORS = ['red', 'yellow', 'green', 'blue']
WILD = 'wild'
NUMBERS = ['0', '1', '2', '3', '4', '5', '6', '7', '8', '9']
ACTIONS = ['skip', 'reverse', 'draw2']
WILD_VALUES = ['wild', 'wild_draw4']
VALUES = NUMBERS + ACTIONS + WILD_VALUES

SYMBOLS = {'skip': '⊘', 'reverse': '↺', 'draw2': '+2', 'wild': '✦', 'wild_draw4': '+4'}


# -----------------------------
# CARD
# -----------------------------

class Card:
    """
    Immutable UNO card. Two cards with the same color and value are equal;
    the deck holds duplicates, so hands are matched by value, not identity.
    """
    __slots__ = ('color', 'value')

    def __init__(self, color, value):
        if color not in COLORS and color != WILD:
            raise ValueError(f"Invalid color: {color!r}")
        if value not in VALUES:
            raise ValueError(f"Invalid value: {value!r}")
        if (color == WILD) != (value in WILD_VALUES):
            raise ValueError(f"Invalid card: {color} {value}")
        object.__setattr__(self, 'color', color)
        object.__setattr__(self, 'value', value)

    def __setattr__(self, name, value):
        raise AttributeError("Card is immutable")

    def __eq__(self, other):
        if not isinstance(other, Card):
            return NotImplemented
        return self.color == other.color and self.value == other.value

    def __hash__(self):
        return hash((self.color, self.value))

    def __repr__(self):
        return f"{self.color}:{SYMBOLS.get(self.value, self.value)}"

    @property
    def is_wild(self):
        return self.color == WILD

    def to_dict(self):
        return {'color': self.color, 'value': self.value}

    @classmethod
    def from_dict(cls, data):
        """Parse a card sent by a client. Raises ValueError on anything malformed."""
        if not isinstance(data, dict):
            raise ValueError("Card must be an object")
        return cls(data.get('color'), str(data.get('value')))


# -----------------------------
# PLAYER
# -----------------------------

class Player:
    """
    A room participant. `id` is the current connection id and changes on
    reconnect; `persistent_id` is stable and keys everything in the match.
    """

    def __init__(self, player_id, persistent_id, name, avatar=None,
                 is_host=False, is_bot=False, bot_difficulty=None):
        self.id = player_id
        self.persistent_id = persistent_id
        self.name = name
        self.avatar = avatar
        self.is_host = is_host
        self.is_bot = is_bot
        self.bot_difficulty = bot_difficulty

    @property
    def key(self):
        return self.persistent_id

    def to_dict(self, private=False):
        """
        Public form shared with the room. `private=True` adds the persistent
        id, for payloads sent to this player only.
        """
        data = {
            'id': self.id,
            'name': self.name,
            'avatar': self.avatar,
            'is_host': self.is_host,
            'is_bot': self.is_bot,
        }
        if self.is_bot:
            data['bot_difficulty'] = self.bot_difficulty
        if private:
            data['persistent_id'] = self.persistent_id
        return data

    def __repr__(self):
        kind = 'bot' if self.is_bot else 'human'
        return f"<Player {self.name} ({kind}) {self.id}>"


# -----------------------------
# ROOM
# -----------------------------

class Room:
    """
    Holds one lobby: roster, settings, and at most one match.
    """

    def __init__(self, code, roster, settings=None):
        self.code = code
        self.roster = roster
        self.settings = dict(settings or GameConfig.default_settings())
        self.match = None
        self.match_generation = 0
        self.voice_participants = set()
        self.rematch_votes = set()
        self.created_at = time.time()

    @property
    def players(self):
        return self.roster.players

    @property
    def host_id(self):
        host = self.roster.host
        return host.id if host else None

    @property
    def has_active_match(self):
        return self.match is not None and self.match.is_active

    def next_generation(self):
        self.match_generation += 1
        return self.match_generation

    def age(self, now=None):
        return (now or time.time()) - self.created_at

    def to_dict(self):
        return {
            'code': self.code,
            'host_id': self.host_id,
            'players': [p.to_dict() for p in self.players],
            'settings': dict(self.settings),
        }

    def __repr__(self):
        return f"<Room {self.code} players={len(self.players)}>"
