import fnmatch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from memory_store import MemoryStore
from storage import Storage
from utils import now_ms


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = None):
        self.now = now_ms() if now is None else now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


class FakeRedis:
    """Async stand-in for the subset of redis.asyncio.Redis the backend uses.

    Keys expire against a manually advanced clock. Set `fail = True` to make every
    command raise a connection error, or name commands in `failing_commands` to break
    only those. Reading a key with the wrong command raises WRONGTYPE like Redis does.
    """

    def __init__(self):
        self.data = {}
        self.expires = {}
        self.now = 0.0
        self.fail = False
        self.failing_commands = set()
        self.closed = False
        self.commands = []

    def _call(self, name, *args):
        if self.fail or name in self.failing_commands:
            raise RedisConnectionError("Connection refused")
        self.commands.append((name,) + args)
        self._purge()

    def _purge(self):
        for key, expires_at in list(self.expires.items()):
            if expires_at <= self.now:
                self.data.pop(key, None)
                del self.expires[key]

    def _wrong_type(self):
        raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")

    def advance(self, seconds: float):
        self.now += seconds

    async def ping(self):
        self._call("ping")
        return True

    async def aclose(self):
        self.closed = True

    async def set(self, key, value, ex=None):
        self._call("set", key, value)
        self.data[key] = value
        self.expires.pop(key, None)
        if ex:
            self.expires[key] = self.now + ex
        return True

    async def get(self, key):
        self._call("get", key)
        if isinstance(self.data.get(key), (list, set)):
            self._wrong_type()
        return self.data.get(key)

    async def exists(self, *keys):
        self._call("exists", *keys)
        return sum(1 for key in keys if key in self.data)

    async def expire(self, key, seconds):
        self._call("expire", key, seconds)
        if key not in self.data:
            return False
        self.expires[key] = self.now + seconds
        return True

    async def ttl(self, key):
        self._call("ttl", key)
        if key not in self.data:
            return -2
        if key not in self.expires:
            return -1
        return int(self.expires[key] - self.now)

    async def delete(self, *keys):
        self._call("delete", *keys)
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expires.pop(key, None)
        return removed

    async def rpush(self, key, *values):
        self._call("rpush", key, *values)
        items = self.data.setdefault(key, [])
        items.extend(values)
        return len(items)

    async def lrange(self, key, start, end):
        self._call("lrange", key, start, end)
        if key in self.data and not isinstance(self.data[key], list):
            self._wrong_type()
        items = self.data.get(key, [])
        return list(items[start:] if end == -1 else items[start:end + 1])

    async def sadd(self, key, *members):
        self._call("sadd", key, *members)
        existing = self.data.setdefault(key, set())
        before = len(existing)
        existing.update(members)
        return len(existing) - before

    async def smembers(self, key):
        self._call("smembers", key)
        return set(self.data.get(key, set()))

    async def scan_iter(self, match=None):
        self._call("scan_iter", match)
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_storage(fake_redis, memory_store):
    """Facade wired to the fake Redis, with a private fallback store."""
    return Storage(redis_client=fake_redis, memory_store=memory_store)


@pytest.fixture
def memory_storage(memory_store):
    """Facade with no Redis configured."""
    return Storage(memory_store=memory_store)


@pytest.fixture(params=["redis", "memory"])
def any_storage(request, redis_storage, memory_storage):
    """Runs a test once per backend to check both honour the same contract."""
    return redis_storage if request.param == "redis" else memory_storage
