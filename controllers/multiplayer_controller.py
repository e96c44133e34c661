"""
Multiplayer Controller using Flask-SocketIO
Wires Socket.IO events to the RoomController and keeps each connection's
Socket.IO room membership in step with the game room it belongs to.
"""
import functools
import traceback

from flask import request
from flask_socketio import emit, join_room, leave_room, rooms

from utils import safe_print


class SocketIOTransport:
    """The broadcaster's outbound side: emit to one connection or a whole room."""

    def __init__(self, socketio):
        self.socketio = socketio

    def emit(self, event, payload, to=None, skip_sid=None):
        self.socketio.emit(event, payload, to=to, skip_sid=skip_sid)


def _switch_room(code):
    """Leave any other game room this socket is in, then join `code`."""
    for joined in rooms():
        if joined not in (request.sid, code):
            leave_room(joined)
    join_room(code)


def _guarded(handler):
    @functools.wraps(handler)
    def wrapper(*args, **kwargs):
        try:
            return handler(*args, **kwargs)
        except Exception as e:
            safe_print(f"[MULTIPLAYER] ERROR in {handler.__name__}: {e}")
            traceback.print_exc()
            emit('error_msg', {'msg': 'Server error'})
    return wrapper


def init_multiplayer_events(socketio, controller):
    """Initialize all SocketIO event handlers"""

    @socketio.on('connect')
    def handle_connect():
        safe_print(f"[MULTIPLAYER] Connected - SID: {request.sid}")
        emit('connected', {'id': request.sid})
        return True

    @socketio.on('disconnect')
    @_guarded
    def handle_disconnect(reason=None):
        safe_print(f"[MULTIPLAYER] Disconnected - SID: {request.sid} ({reason})")
        controller.leave(request.sid)

    # -----------------------------
    # ROOMS
    # -----------------------------

    @socketio.on('create_room')
    @_guarded
    def handle_create_room(data=None):
        room = controller.create_room(request.sid, data)
        if room:
            _switch_room(room.code)

    @socketio.on('join_room')
    @_guarded
    def handle_join_room(data=None):
        room = controller.join_room(request.sid, data)
        if room:
            _switch_room(room.code)

    @socketio.on('leave_room')
    @_guarded
    def handle_leave_room(data=None):
        code = controller.leave(request.sid)
        if code:
            leave_room(code)

    @socketio.on('update_settings')
    @_guarded
    def handle_update_settings(data=None):
        controller.update_settings(request.sid, data)

    @socketio.on('start_game')
    @_guarded
    def handle_start_game(data=None):
        controller.start_game(request.sid)

    @socketio.on('add_bot')
    @_guarded
    def handle_add_bot(data=None):
        controller.add_bot(request.sid, data)

    @socketio.on('remove_bot')
    @_guarded
    def handle_remove_bot(data=None):
        controller.remove_bot(request.sid, data)

    # -----------------------------
    # GAME ACTIONS
    # -----------------------------

    @socketio.on('play_card')
    @_guarded
    def handle_play_card(data=None):
        controller.play_card(request.sid, data)

    @socketio.on('draw_card')
    @_guarded
    def handle_draw_card(data=None):
        controller.draw_card(request.sid)

    @socketio.on('call_uno')
    @_guarded
    def handle_call_uno(data=None):
        controller.call_uno(request.sid)

    @socketio.on('rematch_vote')
    @_guarded
    def handle_rematch_vote(data=None):
        controller.rematch_vote(request.sid)

    # -----------------------------
    # VOICE PRESENCE
    # -----------------------------

    @socketio.on('voice_join')
    @_guarded
    def handle_voice_join(data=None):
        controller.voice_join(request.sid)

    @socketio.on('voice_leave')
    @_guarded
    def handle_voice_leave(data=None):
        controller.voice_leave(request.sid)

    return socketio
