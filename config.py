"""
Game Configuration
Centralized settings for the UNO rooms server
"""
import os
import random
from datetime import timedelta


class GameConfig:
    """Core game configuration"""

    # Room settings
    ROOM_CODE_LENGTH = 6
    ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
    ROOM_TTL_HOURS = 2
    MAX_PLAYERS = 8
    MAX_BOTS = 3
    MIN_PLAYERS_TO_START = 2

    # Game settings
    DEFAULT_HAND_SIZE = 7
    MIN_HAND_SIZE = 1
    MAX_HAND_SIZE = 12
    FALLBACK_COLOR = 'red'
    UNO_PENALTY_DELAY = 1.5
    UNO_PENALTY_CARDS = 2

    # Bot difficulties -> (think delay, jitter) in seconds
    BOT_EASY = 'easy'
    BOT_MEDIUM = 'medium'
    BOT_HARD = 'hard'
    BOT_DEFAULT_DIFFICULTY = BOT_MEDIUM
    BOT_DELAYS = {
        BOT_EASY: (2.6, 0.8),
        BOT_MEDIUM: (1.7, 0.6),
        BOT_HARD: (0.9, 0.4),
    }
    BOT_NAMES = ['Robo', 'Chip', 'Sparky', 'Bolt', 'Gizmo', 'Pixel']
    BOT_AVATAR = 'robot'

    # Wild color tie-break order for bots
    COLOR_PRIORITY = ['red', 'yellow', 'green', 'blue']

    @staticmethod
    def get_room_ttl():
        """Get how long a room may live before the expiry sweep removes it"""
        return timedelta(hours=GameConfig.ROOM_TTL_HOURS)

    @staticmethod
    def get_bot_delay(difficulty):
        """Think delay for a bot, randomized within the difficulty's jitter"""
        base, jitter = GameConfig.BOT_DELAYS.get(
            difficulty, GameConfig.BOT_DELAYS[GameConfig.BOT_DEFAULT_DIFFICULTY]
        )
        return base + random.random() * jitter

    @staticmethod
    def default_settings():
        return {
            'starting_hand_size': GameConfig.DEFAULT_HAND_SIZE,
            'stacking_enabled': False,
        }


class ServerConfig:
    """Flask / Socket.IO configuration, overridable from the environment"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-uno-rooms-secret')
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', 3000))
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')
    ASYNC_MODE = os.getenv('SOCKETIO_ASYNC_MODE', 'threading')
    PING_INTERVAL = 10
    PING_TIMEOUT = 25
    EXPIRY_SWEEP_SECONDS = 300
