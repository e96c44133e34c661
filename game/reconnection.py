"""
Reconnection handling.

A returning player comes back on a new connection id but with the same
persistent id. Match state is keyed by the persistent id, so a rejoin only
has to move the roster entry and the connection index over to the new id;
hands, turn order and the turn index are left exactly as they were.
"""
from utils import safe_print


class ReconnectionManager:

    def __init__(self, manager):
        self.manager = manager

    @staticmethod
    def find_player(room, persistent_id):
        """The human in `room` holding this persistent id, or None."""
        player = room.roster.by_key(persistent_id) if persistent_id else None
        if player is None or player.is_bot:
            return None
        return player

    def rejoin(self, room, persistent_id, connection_id):
        """
        Returns {"ok": True, "player": ..., "old_id": ...} when the persistent
        id belongs to someone already in the room, {"error": ...} otherwise.
        """
        player = self.find_player(room, persistent_id)
        if player is None:
            safe_print(f"[RECONNECT] Unknown identity {persistent_id} for room {room.code}")
            return {"error": "Game in progress" if room.has_active_match else "Unknown player"}

        old_id = room.roster.remap_connection(player, connection_id)
        self.manager.unbind(old_id)
        self.manager.bind(connection_id, room.code)

        # votes are keyed by connection id, carry this player's vote over
        if old_id in room.rematch_votes:
            room.rematch_votes.discard(old_id)
            room.rematch_votes.add(connection_id)
        if old_id in room.voice_participants:
            room.voice_participants.discard(old_id)

        safe_print(f"[RECONNECT] {player.name} rejoined room {room.code} ({old_id} -> {connection_id})")
        return {"ok": True, "player": player, "old_id": old_id}
