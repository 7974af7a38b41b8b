import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of allowed origins, "*" allows any
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    # Sessions idle longer than this are evicted by the sweeper (hours)
    SESSION_TTL_HOURS = int(os.environ.get('SESSION_TTL_HOURS', '24'))
    # Expiry sweep interval (sec). 0 disables the background sweeper.
    SWEEP_INTERVAL_SEC = int(os.environ.get('SWEEP_INTERVAL_SEC', '3600'))
    # Coalescing delay for turn broadcasts (ms). 0 broadcasts synchronously.
    BROADCAST_DELAY_MS = int(os.environ.get('BROADCAST_DELAY_MS', '100'))
    # Player count bounds at session creation
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '10'))
    # Length of the join code derived from the session id
    JOIN_CODE_LENGTH = int(os.environ.get('JOIN_CODE_LENGTH', '6'))
    PORT = int(os.environ.get('PORT', '3001'))
