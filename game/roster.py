from config import GameConfig
from game.models import Player
from utils import safe_print, new_id


class Roster:
    """
    Ordered list of everyone in a room, humans and bots. Also the only place
    that maps a connection id to a player.
    """

    def __init__(self):
        self.players = []
        self._bot_name_index = 0

    # -----------------------------
    # LOOKUPS
    # -----------------------------

    def by_connection(self, connection_id):
        return next((p for p in self.players if p.id == connection_id), None)

    def by_key(self, key):
        return next((p for p in self.players if p.persistent_id == key), None)

    def connection_id(self, key):
        player = self.by_key(key)
        return player.id if player else key

    @property
    def host(self):
        return next((p for p in self.players if p.is_host), None)

    @property
    def humans(self):
        return [p for p in self.players if not p.is_bot]

    @property
    def bots(self):
        return [p for p in self.players if p.is_bot]

    def __len__(self):
        return len(self.players)

    # -----------------------------
    # MEMBERSHIP
    # -----------------------------

    def add_human(self, connection_id, persistent_id, name, avatar=None):
        if persistent_id and self.by_key(persistent_id) is not None:
            safe_print(f"[ROSTER] {persistent_id} is already taken, issuing a new id")
            persistent_id = None
        player = Player(
            connection_id,
            persistent_id or new_id('uid-'),
            name,
            avatar=avatar,
            is_host=not self.players,
        )
        self.players.append(player)
        safe_print(f"[ROSTER] {player.name} joined as {player.persistent_id}")
        return player

    def add_bot(self, difficulty=GameConfig.BOT_DEFAULT_DIFFICULTY):
        """Returns {"ok": True, "player": bot} or {"error": reason}."""
        if len(self.players) >= GameConfig.MAX_PLAYERS:
            return {"error": "Room is full"}
        if len(self.bots) >= GameConfig.MAX_BOTS:
            return {"error": "Bot slots are full"}
        if difficulty not in GameConfig.BOT_DELAYS:
            difficulty = GameConfig.BOT_DEFAULT_DIFFICULTY

        names = GameConfig.BOT_NAMES
        name = f"{names[self._bot_name_index % len(names)]} 🤖"
        self._bot_name_index += 1

        bot_id = new_id('bot-')
        bot = Player(bot_id, bot_id, name, avatar=GameConfig.BOT_AVATAR,
                     is_bot=True, bot_difficulty=difficulty)
        self.players.append(bot)
        safe_print(f"[ROSTER] Bot {name} ({difficulty}) added as {bot_id}")
        return {"ok": True, "player": bot}

    def remove(self, player):
        """
        Drop a player. If they were host, hand the flag to the first remaining
        human, else to whoever is left. Returns the new host or None.
        """
        self.players = [p for p in self.players if p is not player]
        safe_print(f"[ROSTER] {player.name} removed")
        if not player.is_host:
            return None
        player.is_host = False
        successor = next((p for p in self.players if not p.is_bot), None)
        if successor is None and self.players:
            successor = self.players[0]
        if successor:
            successor.is_host = True
            safe_print(f"[ROSTER] {successor.name} is the new host")
        return successor

    def remap_connection(self, player, connection_id):
        old = player.id
        player.id = connection_id
        safe_print(f"[ROSTER] {player.name} remapped {old} -> {connection_id}")
        return old
