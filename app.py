from flask import Flask
from flask_socketio import SocketIO

from config import ServerConfig
from controllers.broadcaster import StateBroadcaster
from controllers.multiplayer_controller import SocketIOTransport, init_multiplayer_events
from controllers.room_controller import RoomController
from controllers.scheduler import SocketIOScheduler
from game.manager import RoomManager
from utils import safe_print


def sweep_expired_rooms(socketio, controller):
    """Background loop dropping rooms past their TTL."""
    while True:
        socketio.sleep(ServerConfig.EXPIRY_SWEEP_SECONDS)
        try:
            controller.sweep_expired()
        except Exception as e:
            safe_print(f"[APP] Room sweep failed: {e}")


def create_app(scheduler=None, start_sweeper=True):
    app = Flask(__name__)
    app.config['SECRET_KEY'] = ServerConfig.SECRET_KEY

    socketio = SocketIO(
        app,
        cors_allowed_origins=ServerConfig.CORS_ORIGINS,
        async_mode=ServerConfig.ASYNC_MODE,
        ping_interval=ServerConfig.PING_INTERVAL,
        ping_timeout=ServerConfig.PING_TIMEOUT,
    )

    # -----------------------------
    # ROOM MANAGER (GLOBAL)
    # -----------------------------

    manager = RoomManager()
    broadcaster = StateBroadcaster(SocketIOTransport(socketio))
    controller = RoomController(manager, broadcaster, scheduler or SocketIOScheduler(socketio))
    init_multiplayer_events(socketio, controller)

    @app.route("/")
    def index():
        return "UNO Server OK"

    if start_sweeper:
        socketio.start_background_task(sweep_expired_rooms, socketio, controller)

    return app, socketio, controller


if __name__ == "__main__":
    app, socketio, _ = create_app()
    safe_print(f"[APP] UNO server running on port {ServerConfig.PORT}")
    socketio.run(app, host=ServerConfig.HOST, port=ServerConfig.PORT, allow_unsafe_werkzeug=True)
