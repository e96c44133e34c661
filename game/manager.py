import random
import time

from config import GameConfig
from game.game_state import ENDED
from game.models import Room
from game.roster import Roster
from utils import safe_print


def generate_room_code(rng=random):
    """Generate a 6-character room code from an alphabet without look-alikes"""
    return ''.join(rng.choice(GameConfig.ROOM_CODE_ALPHABET) for _ in range(GameConfig.ROOM_CODE_LENGTH))


class RoomManager:
    """
    Responsible for creating, storing, and destroying rooms, plus the
    connection id -> room code index.
    """

    def __init__(self, rng=random):
        # room_code -> Room
        self.rooms = {}
        # connection id -> room_code
        self.connections = {}
        self.rng = rng

    # -----------------------------
    # CREATE ROOM
    # -----------------------------

    def create_room(self, connection_id, persistent_id, name, avatar=None, settings=None):
        """
        Creates a room with the caller as host and returns (room, host).
        """
        code = generate_room_code(self.rng)
        while code in self.rooms:
            safe_print(f"[MANAGER] Room code collision on {code}, retrying")
            code = generate_room_code(self.rng)

        roster = Roster()
        host = roster.add_human(connection_id, persistent_id, name, avatar)
        room = Room(code, roster, settings)
        self.rooms[code] = room
        self.bind(connection_id, code)

        safe_print(f"[MANAGER] Created room {code} for {name}")
        return room, host

    # -----------------------------
    # GET ROOM
    # -----------------------------

    def get_room(self, code):
        if not code:
            return None
        return self.rooms.get(str(code).strip().upper())

    def room_for(self, connection_id):
        return self.get_room(self.connections.get(connection_id))

    # -----------------------------
    # CONNECTION INDEX
    # -----------------------------

    def bind(self, connection_id, code):
        self.connections[connection_id] = code

    def unbind(self, connection_id):
        return self.connections.pop(connection_id, None)

    # -----------------------------
    # DELETE ROOM
    # -----------------------------

    def destroy_room(self, code):
        room = self.rooms.pop(code, None)
        if room is None:
            return None
        for sid in [sid for sid, c in self.connections.items() if c == code]:
            del self.connections[sid]
        if room.match is not None and room.match.is_active:
            room.match.phase = ENDED
        safe_print(f"[MANAGER] Deleted room {code}")
        return room

    def expire_rooms(self, now=None, ttl=None):
        """Destroy every room older than the TTL. Returns the expired codes."""
        now = now or time.time()
        ttl = ttl if ttl is not None else GameConfig.get_room_ttl().total_seconds()
        expired = [code for code, room in self.rooms.items() if room.age(now) > ttl]
        for code in expired:
            self.destroy_room(code)
        if expired:
            safe_print(f"[MANAGER] Expired {len(expired)} room(s): {expired}")
        return expired

    # -----------------------------
    # LIST ROOMS (DEBUG / ADMIN)
    # -----------------------------

    def list_rooms(self):
        return {
            code: {
                "players": len(room.players),
                "bots": len(room.roster.bots),
                "phase": room.match.phase if room.match else None,
                "age": time.time() - room.created_at,
            }
            for code, room in self.rooms.items()
        }
