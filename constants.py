import os

# Redis is optional. With neither REDIS_URL nor REDIS_HOST set, storage runs in memory only.
REDIS_URL = os.getenv("REDIS_URL", None)
REDIS_HOST = os.getenv("REDIS_HOST", None)
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_DB = int(os.getenv("REDIS_DB", 0))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
REDIS_CONNECT_TIMEOUT = float(os.getenv("REDIS_CONNECT_TIMEOUT", 2.0))

# Rooms, message lists and the discovery index all live for 24 hours after their last qualifying activity
ROOM_TTL_SECONDS = 24 * 60 * 60
ROOM_TTL_MS = ROOM_TTL_SECONDS * 1000

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)


def get_redis_url():
    """Resolve the Redis connection URL from the environment, or None when Redis is not configured."""
    if REDIS_URL:
        return REDIS_URL
    if REDIS_HOST:
        auth = f":{REDIS_PASSWORD}@" if REDIS_PASSWORD else ""
        return f"redis://{auth}{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}"
    return None
