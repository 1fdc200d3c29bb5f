import asyncio
import threading
from typing import Awaitable, Callable, List, Optional, TypeVar

import redis.asyncio as redis

from backend import RedisBackend, create_redis_client
from constants import get_redis_url
from errors import RoomNotFoundError
from logging_config import get_logger
from memory_store import MemoryStore, get_memory_store
from schemas.rooms import Message, Room

logger = get_logger(__name__)

T = TypeVar("T")

MEMORY_STORAGE = "Memory"


class Storage:
    """Single entry point for room storage.

    On first use it decides between Redis and the in-process store. Once Redis fails,
    the facade stays on the in-process store for the rest of the process and callers
    never see the failure.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        redis_client: Optional[redis.Redis] = None,
        memory_store: Optional[MemoryStore] = None,
    ):
        self.redis_url = redis_url
        self._redis_client = redis_client
        self._memory_store = memory_store
        self._backend: Optional[RedisBackend] = None
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def memory(self) -> MemoryStore:
        if self._memory_store is None:
            self._memory_store = get_memory_store()
        return self._memory_store

    async def _ensure_initialized(self):
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            self._backend = await self._connect()
            self._initialized = True
            logger.info(f"Storage initialized using {self._storage_type()} backend")

    async def _connect(self) -> Optional[RedisBackend]:
        client = self._redis_client
        if client is None:
            if not self.redis_url:
                logger.info("Redis is not configured, using in-memory storage")
                return None
            client = create_redis_client(self.redis_url)

        backend = RedisBackend(client)
        try:
            await backend.ping()
        except Exception as e:
            logger.warning(f"Redis liveness probe failed, using in-memory storage: {e}")
            await self._close_quietly(backend)
            return None
        logger.info("Redis liveness probe succeeded")
        return backend

    @staticmethod
    async def _close_quietly(backend: RedisBackend):
        try:
            await backend.close()
        except Exception as e:
            logger.debug(f"Error closing Redis client: {e}")

    async def _downgrade(self, description: str, error: Exception):
        backend, self._backend = self._backend, None
        logger.error(
            f"Redis failed during {description}; switching to in-memory storage for this process: {error}",
            exc_info=True,
        )
        if backend is not None:
            await self._close_quietly(backend)

    async def _run(
        self,
        description: str,
        on_redis: Callable[[RedisBackend], Awaitable[T]],
        on_memory: Callable[[MemoryStore], T],
    ) -> T:
        await self._ensure_initialized()
        backend = self._backend
        if backend is not None:
            try:
                return await on_redis(backend)
            except Exception as e:
                await self._downgrade(description, e)
        return on_memory(self.memory)

    def _storage_type(self) -> str:
        return RedisBackend.name if self._backend is not None else MEMORY_STORAGE

    async def get_storage_type(self) -> str:
        """Name of the active backend. For diagnostics only."""
        await self._ensure_initialized()
        return self._storage_type()

    async def set_room(self, room_id: str, room: Room):
        await self._run(
            f"set_room({room_id})",
            lambda b: b.set_room(room_id, room),
            lambda m: m.set_room(room_id, room),
        )

    async def get_room(self, room_id: str) -> Optional[Room]:
        return await self._run(
            f"get_room({room_id})",
            lambda b: b.get_room(room_id),
            lambda m: m.get_room(room_id),
        )

    async def room_exists(self, room_id: str) -> bool:
        return await self._run(
            f"room_exists({room_id})",
            lambda b: b.room_exists(room_id),
            lambda m: m.room_exists(room_id),
        )

    async def delete_room(self, room_id: str) -> bool:
        return await self._run(
            f"delete_room({room_id})",
            lambda b: b.delete_room(room_id),
            lambda m: m.delete_room(room_id),
        )

    async def add_message(self, room_id: str, message: Message):
        if not await self.room_exists(room_id):
            logger.warning(f"Rejected message {message.id}: room {room_id} not found")
            raise RoomNotFoundError(room_id)
        added = await self._run(
            f"add_message({room_id})",
            lambda b: b.add_message(room_id, message),
            lambda m: m.add_message(room_id, message),
        )
        if not added:
            # Room expired between the check and the append
            raise RoomNotFoundError(room_id)

    async def get_messages(self, room_id: str) -> List[Message]:
        return await self._run(
            f"get_messages({room_id})",
            lambda b: b.get_messages(room_id),
            lambda m: m.get_messages(room_id),
        )

    async def get_all_rooms(self) -> List[str]:
        return await self._run(
            "get_all_rooms",
            lambda b: b.get_all_rooms(),
            lambda m: m.get_all_rooms(),
        )

    async def add_room_to_ip(self, address: str, room_id: str):
        await self._run(
            f"add_room_to_ip({address})",
            lambda b: b.add_room_to_ip(address, room_id),
            lambda m: m.add_room_to_ip(address, room_id),
        )

    async def get_rooms_by_ip(self, address: str) -> List[str]:
        """Room ids created from an address, with expired or deleted rooms filtered out."""
        room_ids = await self._run(
            f"get_rooms_by_ip({address})",
            lambda b: b.get_rooms_by_ip(address),
            lambda m: m.get_rooms_by_ip(address),
        )
        live = []
        for room_id in room_ids:
            if await self.room_exists(room_id):
                live.append(room_id)
        logger.debug(f"Address {address} has {len(live)}/{len(room_ids)} live rooms")
        return live


_storage: Optional[Storage] = None
_storage_lock = threading.Lock()


def get_storage() -> Storage:
    """Process-wide storage facade configured from the environment.

    FastAPI resolves this dependency on worker threads, so creation is locked.
    """
    global _storage
    if _storage is None:
        with _storage_lock:
            if _storage is None:
                _storage = Storage(redis_url=get_redis_url())
    return _storage
