"""
Room Controller
Dispatches client intents to the registry, roster and engine, then pushes
the resulting state out. Transport-agnostic: callers pass connection ids.

All intents and all fired timers run under one lock, so state for a room
is only ever mutated by one thing at a time.
"""
import random
import threading

from config import GameConfig
from controllers.ai_controller import BotController
from Forms import (CreateRoomForm, JoinRoomForm, SettingsForm, AddBotForm,
                   clean_payload, first_error)
from game.engine import UnoEngine
from game.models import Card
from game.reconnection import ReconnectionManager
from utils import safe_print


class RoomController:

    def __init__(self, manager, broadcaster, scheduler, rng=random):
        self.manager = manager
        self.broadcaster = broadcaster
        self.scheduler = scheduler
        self.rng = rng
        self.reconnection = ReconnectionManager(manager)
        self.bots = BotController(scheduler, self.run_bot_turn, rng)
        self.lock = threading.RLock()

    # -----------------------------
    # HELPERS
    # -----------------------------

    def _engine(self, room):
        return UnoEngine(room.match, room.roster, self.rng)

    def _locate(self, sid):
        """(room, player) for a connection, or (None, None)."""
        room = self.manager.room_for(sid)
        if room is None:
            return None, None
        return room, room.roster.by_connection(sid)

    def _host_only(self, sid):
        room, player = self._locate(sid)
        if room is None or player is None or not player.is_host:
            safe_print(f"[ROOMS] Ignoring host-only request from {sid}")
            return None
        return room

    def _after_change(self, room, actor=None, result=None):
        """Broadcast, arm the UNO penalty check, then let bots look at the turn."""
        if result and result.get('uno_penalty') and actor is not None:
            self.scheduler.schedule(GameConfig.UNO_PENALTY_DELAY, self.run_uno_penalty,
                                    room.code, room.match.generation, actor.key)
        self.broadcaster.sync(room)
        self.bots.maybe_schedule(room)

    def _start(self, room):
        room.rematch_votes.clear()
        UnoEngine.start_match(room, self.rng)
        self.broadcaster.game_start(room)
        self.broadcaster.game_state(room)
        self.bots.maybe_schedule(room)

    # -----------------------------
    # CREATE / JOIN
    # -----------------------------

    def create_room(self, sid, data):
        form = CreateRoomForm(data=clean_payload(data))
        with self.lock:
            if not form.validate():
                self.broadcaster.error(sid, first_error(form))
                return None
            if self.manager.room_for(sid):
                self._leave(sid)
            room, host = self.manager.create_room(
                sid, form.persistent_id.data, form.name.data, form.avatar.data
            )
            self.broadcaster.room_created(room, sid)
            return room

    def join_room(self, sid, data):
        """Join a lobby, or rejoin a running match under a known persistent id."""
        form = JoinRoomForm(data=clean_payload(data))
        with self.lock:
            room = self.manager.get_room(form.code.data)
            if room is None:
                self.broadcaster.error(sid, 'Room not found!')
                return None
            if not form.validate():
                self.broadcaster.error(sid, first_error(form))
                return None
            persistent_id = form.persistent_id.data
            returning = self.reconnection.find_player(room, persistent_id)

            # every rejection happens before the caller leaves its current room
            if returning is None:
                if room.has_active_match:
                    self.broadcaster.error(sid, 'Game in progress')
                    return None
                if persistent_id and room.roster.by_key(persistent_id) is not None:
                    self.broadcaster.error(sid, 'Invalid player id')
                    return None
                if len(room.players) >= GameConfig.MAX_PLAYERS:
                    self.broadcaster.error(sid, 'Room is full')
                    return None

            current = self.manager.room_for(sid)
            if current is not None and current is not room:
                self._leave(sid)

            if returning is not None:
                self.reconnection.rejoin(room, persistent_id, sid)
                if room.has_active_match:
                    self.broadcaster.game_rejoin(room, returning)
                    self.broadcaster.player_rejoined(room, returning)
                    self.broadcaster.game_state(room)
                    self.bots.maybe_schedule(room)
                else:
                    self.broadcaster.lobby_state(room, sid)
                    self.broadcaster.player_rejoined(room, returning)
                return room

            player = room.roster.add_human(sid, persistent_id, form.name.data, form.avatar.data)
            self.manager.bind(sid, room.code)
            self.broadcaster.lobby_state(room, sid)
            self.broadcaster.player_joined(room, player, skip_sid=sid)
            return room

    # -----------------------------
    # LOBBY (HOST ONLY)
    # -----------------------------

    def update_settings(self, sid, data):
        with self.lock:
            room = self._host_only(sid)
            if room is None:
                return
            form = SettingsForm(data=clean_payload(data))
            if not form.validate():
                self.broadcaster.error(sid, first_error(form))
                return
            room.settings = {
                'starting_hand_size': form.starting_hand_size.data,
                'stacking_enabled': bool(form.stacking_enabled.data),
            }
            self.broadcaster.settings_updated(room)

    def start_game(self, sid):
        with self.lock:
            room = self._host_only(sid)
            if room is None or room.has_active_match:
                return
            if len(room.players) < GameConfig.MIN_PLAYERS_TO_START:
                self.broadcaster.error(sid, 'Need at least 2 players!')
                return
            self._start(room)

    def add_bot(self, sid, data):
        with self.lock:
            room = self._host_only(sid)
            if room is None:
                return
            if room.has_active_match:
                self.broadcaster.error(sid, 'Game in progress')
                return
            form = AddBotForm(data=clean_payload(data))
            if not form.validate():
                self.broadcaster.error(sid, first_error(form))
                return
            result = room.roster.add_bot(form.difficulty.data)
            if result.get('error'):
                self.broadcaster.error(sid, result['error'])
                return
            self.broadcaster.player_joined(room, result['player'])

    def remove_bot(self, sid, data):
        with self.lock:
            room = self._host_only(sid)
            if room is None:
                return
            bot_id = (data or {}).get('bot_id')
            bot = room.roster.by_key(bot_id)
            if bot is None or not bot.is_bot:
                return
            self._depart(room, bot)

    # -----------------------------
    # GAME ACTIONS
    # -----------------------------

    def play_card(self, sid, data):
        with self.lock:
            room, player = self._locate(sid)
            if player is None or room.match is None:
                return
            data = data or {}
            try:
                card = Card.from_dict(data.get('card'))
            except ValueError as e:
                safe_print(f"[ROOMS] Bad card from {sid}: {e}")
                return
            result = self._engine(room).play(player.key, card, data.get('chosen_color'))
            if result.get('error'):
                return
            self._after_change(room, player, result)

    def draw_card(self, sid):
        with self.lock:
            room, player = self._locate(sid)
            if player is None or room.match is None:
                return
            result = self._engine(room).draw(player.key)
            if result.get('error'):
                return
            self._after_change(room, player, result)

    def call_uno(self, sid):
        with self.lock:
            room, player = self._locate(sid)
            if player is None or room.match is None:
                return
            self._call_uno(room, player)

    def _call_uno(self, room, player):
        result = self._engine(room).call_uno(player.key)
        if result.get('error'):
            return
        self.broadcaster.uno_called(room, player)
        self.broadcaster.game_state(room)

    def rematch_vote(self, sid):
        with self.lock:
            room, player = self._locate(sid)
            if player is None or room.match is None or room.match.is_active:
                return
            room.rematch_votes.add(sid)
            self._check_rematch(room)

    def _check_rematch(self, room):
        # bots never vote, consensus means every human in the room
        total = len(room.roster.humans)
        self.broadcaster.rematch_count(room, total)
        if not room.rematch_votes or len(room.rematch_votes) < total:
            return
        if len(room.players) < GameConfig.MIN_PLAYERS_TO_START:
            safe_print(f"[ROOMS] Rematch agreed in {room.code} but only {len(room.players)} player(s) left")
            return
        room.rematch_votes.clear()
        self.broadcaster.rematch_go(room)
        self._start(room)

    # -----------------------------
    # VOICE PRESENCE
    # -----------------------------

    def voice_join(self, sid):
        with self.lock:
            room, player = self._locate(sid)
            if player is None:
                return
            room.voice_participants.add(sid)
            self.broadcaster.voice_participants(room)

    def voice_leave(self, sid):
        with self.lock:
            room, player = self._locate(sid)
            if player is None or sid not in room.voice_participants:
                return
            room.voice_participants.discard(sid)
            self.broadcaster.voice_participants(room)

    # -----------------------------
    # LEAVE / DISCONNECT
    # -----------------------------

    def leave(self, sid):
        """Returns the code of the room that was left, if any."""
        with self.lock:
            return self._leave(sid)

    def _leave(self, sid):
        room, player = self._locate(sid)
        self.manager.unbind(sid)
        if room is None or player is None:
            return None
        self._depart(room, player)
        return room.code

    def _depart(self, room, player):
        new_host = room.roster.remove(player)
        room.rematch_votes.discard(player.id)
        room.voice_participants.discard(player.id)
        self.broadcaster.player_left(room, player)

        if room.has_active_match:
            result = self._engine(room).remove_player(player.key)
            if result.get('ok'):
                self.broadcaster.sync(room)

        if not room.roster.humans:
            self.manager.destroy_room(room.code)
            return

        if new_host is not None:
            self.broadcaster.new_host(room, new_host)
        if room.match is not None and not room.match.is_active and room.rematch_votes:
            self._check_rematch(room)
        self.bots.maybe_schedule(room)

    # -----------------------------
    # DEFERRED CALLBACKS
    # -----------------------------

    def run_bot_turn(self, code, generation, key):
        with self.lock:
            room = self.manager.get_room(code)
            if not BotController.still_valid(room, generation, key):
                safe_print(f"[ROOMS] Stale bot turn for {key} in {code}, skipping")
                return
            bot = room.roster.by_key(key)
            decision = self.bots.decide(room.match, key)
            if decision['call_uno']:
                self._call_uno(room, bot)

            engine = self._engine(room)
            if decision['action'] == 'play':
                result = engine.play(key, decision['card'], decision['color'])
                if result.get('error'):
                    result = engine.draw(key)
            else:
                result = engine.draw(key)
            if result.get('error'):
                return
            self._after_change(room, bot, result)

    def run_uno_penalty(self, code, generation, key):
        with self.lock:
            room = self.manager.get_room(code)
            if room is None or room.match is None:
                return
            result = self._engine(room).apply_uno_penalty(key, generation)
            if result.get('error'):
                safe_print(f"[ROOMS] UNO penalty for {key} skipped: {result['error']}")
                return
            self.broadcaster.sync(room)

    def sweep_expired(self):
        with self.lock:
            return self.manager.expire_rooms()
