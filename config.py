import os


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Default room options (a room creator may override them per room)
    MIN_REQ_PLAYERS = int(os.environ.get('MIN_REQ_PLAYERS', '2'))
    NUMBER_OF_TARGET_ROWS = int(os.environ.get('NUMBER_OF_TARGET_ROWS', '4'))
    # Per-room capacity
    MAX_CLIENTS = int(os.environ.get('MAX_CLIENTS', '8'))
    # Simulation tick period (milliseconds)
    TICK_INTERVAL_MS = int(os.environ.get('TICK_INTERVAL_MS', '50'))
    # Drop rooms once the last user has left
    AUTO_DISPOSE_EMPTY_ROOMS = _env_bool('AUTO_DISPOSE_EMPTY_ROOMS', True)
    # Rooms nobody is in are dropped after this many seconds
    EMPTY_ROOM_GRACE_SEC = float(os.environ.get('EMPTY_ROOM_GRACE_SEC', '30'))
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173',
        ).split(',') if o.strip()
    ]
