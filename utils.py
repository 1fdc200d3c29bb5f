import hashlib
import random
import secrets
import string
import time

BASE36_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("base36 encoding expects a non-negative integer")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def random_base36(length: int) -> str:
    return "".join(random.choices(BASE36_ALPHABET, k=length))


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def new_id() -> str:
    """Random fragment followed by the current time, both base-36. Used for message ids."""
    return random_base36(11) + to_base36(now_ms())


def new_user_id() -> str:
    return random_base36(6)


def new_room_id() -> str:
    """Short shareable room code: last three base-36 digits of epoch seconds plus two random characters."""
    seconds = int(time.time())
    return (to_base36(seconds)[-3:] + random_base36(2)).lower()


def new_capability_token() -> str:
    """Host key handed to a room's creator. Independent of the room id."""
    return secrets.token_urlsafe(32)


def digest_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def digests_match(expected: str, candidate: str) -> bool:
    return secrets.compare_digest(expected.encode("utf-8"), candidate.encode("utf-8"))
