"""
Deferred callbacks (bot turns, UNO penalty checks).

Callbacks are fire-and-forget: nothing is cancelled when the game moves on.
Whatever runs at fire time must look the room up again and re-check that
its preconditions still hold.
"""
import traceback

from utils import safe_print


class SocketIOScheduler:
    """Runs callbacks on Socket.IO background tasks after a delay."""

    def __init__(self, socketio):
        self.socketio = socketio

    def schedule(self, delay, callback, *args):
        def _run():
            self.socketio.sleep(delay)
            try:
                callback(*args)
            except Exception as e:
                safe_print(f"[SCHEDULER] Deferred {getattr(callback, '__name__', callback)} failed: {e}")
                traceback.print_exc()

        return self.socketio.start_background_task(_run)
