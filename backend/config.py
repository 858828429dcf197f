import os


def _env_flag(name, default='0'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    PORT = int(os.environ.get('PORT', '3001'))
    # Comma-separated list of origins allowed to open sockets / call the API
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get('CORS_ORIGINS', 'http://localhost:3000').split(',') if o.strip()
    ]
    # Background sweep of rooms left without members (seconds)
    EMPTY_ROOM_SWEEP_INTERVAL_SEC = int(os.environ.get('EMPTY_ROOM_SWEEP_INTERVAL_SEC', '120'))
    # Number of digits in generated room ids
    ROOM_ID_LENGTH = int(os.environ.get('ROOM_ID_LENGTH', '3'))
    # Upper bound on a decoded drawing (bytes)
    MAX_DRAWING_BYTES = int(os.environ.get('MAX_DRAWING_BYTES', str(5 * 1024 * 1024)))
    # Optional: reject a second drawing from the same member within one round
    ENFORCE_ONE_DRAWING_PER_ROUND = _env_flag('ENFORCE_ONE_DRAWING_PER_ROUND')
