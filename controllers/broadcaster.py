"""
Projects room and match state into outbound messages.

Match state is keyed by persistent ids; everything sent to clients is keyed
by current connection ids so a client can recognise itself. Other players'
hands never leave the server, only their counts.
"""
from utils import safe_print


class StateBroadcaster:

    def __init__(self, transport):
        # transport.emit(event, payload, to=..., skip_sid=None)
        self.transport = transport

    # -----------------------------
    # PROJECTIONS
    # -----------------------------

    @staticmethod
    def _sid(room, key):
        return room.roster.connection_id(key)

    def public_state(self, room):
        m = room.match

        def sid(key):
            return self._sid(room, key)

        return {
            'phase': m.phase,
            'current_turn_index': m.current_turn_index,
            'current_player': sid(m.current_player) if m.current_player else None,
            'direction': m.direction,
            'active_color': m.active_color,
            'active_value': m.active_value,
            'top_discard': m.top_discard.to_dict() if m.top_discard else None,
            'deck_count': len(m.deck),
            'hand_counts': {sid(k): n for k, n in m.hand_counts().items()},
            'turn_order': [sid(k) for k in m.turn_order],
            'finish_order': [sid(k) for k in m.finish_order],
            'uno_flags': {sid(k): bool(v) for k, v in m.uno_flags.items()},
        }

    def private_hand(self, room, player):
        hand = room.match.hands.get(player.key, []) if room.match else []
        return [c.to_dict() for c in hand]

    def lobby_payload(self, room, viewer=None):
        data = room.to_dict()
        data['voice_participants'] = sorted(room.voice_participants)
        if viewer is not None:
            data['you'] = viewer.to_dict(private=True)
        return data

    def rejoin_snapshot(self, room, player):
        state = self.public_state(room)
        state.update({
            'hand': self.private_hand(room, player),
            'you': player.to_dict(private=True),
            'players': [p.to_dict() for p in room.players],
            'settings': dict(room.settings),
            'code': room.code,
        })
        return state

    # -----------------------------
    # ROOM / LOBBY EVENTS
    # -----------------------------

    def room_created(self, room, sid):
        self.transport.emit('room_created', self.lobby_payload(room, room.roster.by_connection(sid)), to=sid)

    def lobby_state(self, room, sid):
        self.transport.emit('lobby_state', self.lobby_payload(room, room.roster.by_connection(sid)), to=sid)

    def player_joined(self, room, player, skip_sid=None):
        self.transport.emit('player_joined', {'player': player.to_dict()}, to=room.code, skip_sid=skip_sid)
        self.system_notice(room, f"{player.name} joined 👋")

    def player_left(self, room, player):
        self.transport.emit('player_left', {'id': player.id}, to=room.code, skip_sid=player.id)
        self.system_notice(room, f"{player.name} left")

    def game_rejoin(self, room, player):
        self.transport.emit('game_rejoin', self.rejoin_snapshot(room, player), to=player.id)

    def player_rejoined(self, room, player):
        self.transport.emit('player_rejoined', {'player': player.to_dict()}, to=room.code, skip_sid=player.id)
        self.system_notice(room, f"{player.name} reconnected 🔄")

    def settings_updated(self, room):
        self.transport.emit('settings_updated', dict(room.settings), to=room.code)

    def new_host(self, room, player):
        self.transport.emit('new_host', {'id': player.id}, to=room.code)

    def voice_participants(self, room):
        self.transport.emit('voice_participants', {'participants': sorted(room.voice_participants)}, to=room.code)

    def rematch_count(self, room, total):
        self.transport.emit('rematch_count', {'votes': sorted(room.rematch_votes), 'total': total}, to=room.code)

    def rematch_go(self, room):
        self.transport.emit('rematch_go', {}, to=room.code)

    def system_notice(self, room, text):
        self.transport.emit('chat', {'name': None, 'text': text, 'system': True}, to=room.code)

    def error(self, sid, msg):
        safe_print(f"[BROADCAST] error_msg to {sid}: {msg}")
        self.transport.emit('error_msg', {'msg': msg}, to=sid)

    # -----------------------------
    # GAME EVENTS
    # -----------------------------

    def game_start(self, room):
        """Personalised start packet: each human only sees their own hand."""
        base = self.public_state(room)
        base['settings'] = dict(room.settings)
        base['players'] = [p.to_dict() for p in room.players]
        for player in room.roster.humans:
            packet = dict(base)
            packet['hand'] = self.private_hand(room, player)
            packet['you'] = player.to_dict(private=True)
            self.transport.emit('game_start', packet, to=player.id)
        self.flush_ui_log(room)

    def game_state(self, room):
        self.transport.emit('game_state', self.public_state(room), to=room.code)

    def hands(self, room):
        for player in room.roster.humans:
            if player.key in room.match.hands:
                self.transport.emit('your_hand', {'hand': self.private_hand(room, player)}, to=player.id)

    def uno_called(self, room, player):
        self.transport.emit('uno_called', {'id': player.id}, to=room.code)

    def game_over(self, room):
        finish_order = [self._sid(room, k) for k in room.match.finish_order]
        self.transport.emit('game_over', {'finish_order': finish_order}, to=room.code)

    def flush_ui_log(self, room):
        for entry in room.match.consume_ui_log():
            if entry['system']:
                self.system_notice(room, entry['msg'])
            else:
                self.transport.emit('action_banner', {'msg': entry['msg']}, to=room.code)

    def sync(self, room):
        """Everything a state change needs to push out, in order."""
        self.flush_ui_log(room)
        self.game_state(room)
        self.hands(room)
        if not room.match.is_active:
            self.game_over(room)
