import threading
from typing import Callable, Dict, List, Optional, Set, Tuple

from constants import ROOM_TTL_MS
from logging_config import get_logger
from schemas.rooms import Message, Room
from utils import now_ms

logger = get_logger(__name__)


class MemoryStore:
    """In-process stand-in for Redis with the same room/message/index contract.

    Expiry is swept on every entry point: a room older than the TTL window is removed
    together with its messages. Index entries carry their own sliding expiry.
    """

    def __init__(self, ttl_ms: int = ROOM_TTL_MS, clock: Callable[[], int] = now_ms):
        self.ttl_ms = ttl_ms
        self.clock = clock
        self.rooms: Dict[str, Room] = {}
        self.messages: Dict[str, List[Message]] = {}
        # address -> (expires_at_ms, room ids)
        self.ip_rooms: Dict[str, Tuple[int, Set[str]]] = {}
        # Handlers may run on worker threads
        self._lock = threading.RLock()
        logger.debug(f"Memory store initialized with TTL {ttl_ms}ms")

    def _cleanup(self):
        now = self.clock()
        expired = [room_id for room_id, room in self.rooms.items() if now - room.created_at > self.ttl_ms]
        for room_id in expired:
            del self.rooms[room_id]
            self.messages.pop(room_id, None)

        stale_ips = [address for address, (expires_at, _) in self.ip_rooms.items() if expires_at <= now]
        for address in stale_ips:
            del self.ip_rooms[address]

        if expired:
            logger.info(f"Cleaned {len(expired)} expired rooms from memory")

    def set_room(self, room_id: str, room: Room):
        key = room_id.lower()
        with self._lock:
            self._cleanup()
            self.rooms[key] = room.model_copy()
            logger.debug(f"Room {key} stored in memory (total rooms: {len(self.rooms)})")

    def get_room(self, room_id: str) -> Optional[Room]:
        key = room_id.lower()
        with self._lock:
            self._cleanup()
            room = self.rooms.get(key)
            return room.model_copy() if room else None

    def room_exists(self, room_id: str) -> bool:
        with self._lock:
            self._cleanup()
            return room_id.lower() in self.rooms

    def add_message(self, room_id: str, message: Message) -> bool:
        key = room_id.lower()
        with self._lock:
            self._cleanup()
            if key not in self.rooms:
                logger.error(f"Cannot add message: room {key} does not exist")
                return False
            room_messages = self.messages.setdefault(key, [])
            room_messages.append(message)
            logger.debug(f"Message added to room {key} (total messages in room: {len(room_messages)})")
            return True

    def get_messages(self, room_id: str) -> List[Message]:
        with self._lock:
            self._cleanup()
            room_messages = self.messages.get(room_id.lower(), [])
            return sorted(room_messages, key=lambda m: m.created_at)

    def get_all_rooms(self) -> List[str]:
        with self._lock:
            self._cleanup()
            return list(self.rooms.keys())

    def delete_room(self, room_id: str) -> bool:
        key = room_id.lower()
        with self._lock:
            deleted = self.rooms.pop(key, None) is not None
            self.messages.pop(key, None)
            logger.debug(f"Room {key} deleted from memory: existed={deleted}")
            return deleted

    def add_room_to_ip(self, address: str, room_id: str):
        with self._lock:
            self._cleanup()
            _, room_ids = self.ip_rooms.get(address, (0, set()))
            room_ids.add(room_id)
            self.ip_rooms[address] = (self.clock() + self.ttl_ms, room_ids)
            logger.debug(f"Linked room {room_id} to address {address} in memory")

    def get_rooms_by_ip(self, address: str) -> List[str]:
        with self._lock:
            self._cleanup()
            entry = self.ip_rooms.get(address)
            return sorted(entry[1]) if entry else []


_memory_store: Optional[MemoryStore] = None
_memory_store_lock = threading.Lock()


def get_memory_store() -> MemoryStore:
    """Process-wide fallback store, built on first use and never replaced.

    Every request handler in the process must see the same rooms, so this is a deliberate global.
    """
    global _memory_store
    if _memory_store is None:
        with _memory_store_lock:
            if _memory_store is None:
                _memory_store = MemoryStore()
                logger.info("Initialized process-wide memory store")
    return _memory_store
