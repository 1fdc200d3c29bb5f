from typing import List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError, ResponseError

from constants import REDIS_CONNECT_TIMEOUT, ROOM_TTL_SECONDS
from logging_config import get_logger
from redis_keys import REDIS_IP_ROOMS_KEY, REDIS_MESSAGES_KEY, REDIS_ROOM_KEY, REDIS_ROOM_PATTERN, REDIS_ROOM_PREFIX
from schemas.rooms import Message, Room, parse_message, parse_room

logger = get_logger(__name__)


def create_redis_client(url: str) -> redis.Redis:
    return redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=REDIS_CONNECT_TIMEOUT,
        socket_timeout=REDIS_CONNECT_TIMEOUT,
    )


class RedisBackend:
    """Room storage on Redis, relying on native key expiry.

    Connection and command errors propagate to the caller; malformed payloads never do.
    """

    name = "Redis"

    def __init__(self, redis_client: redis.Redis, ttl: int = ROOM_TTL_SECONDS):
        self.redis_client = redis_client
        self.ttl = ttl

    @staticmethod
    def _room_key(room_id: str) -> str:
        return REDIS_ROOM_KEY.format(room_id=room_id.lower())

    @staticmethod
    def _messages_key(room_id: str) -> str:
        return REDIS_MESSAGES_KEY.format(room_id=room_id.lower())

    async def ping(self) -> bool:
        return bool(await self.redis_client.ping())

    async def close(self):
        await self.redis_client.aclose()

    async def set_room(self, room_id: str, room: Room):
        key = self._room_key(room_id)
        logger.debug(f"Storing room {key} with TTL {self.ttl} seconds")
        await self.redis_client.set(key, room.to_json(), ex=self.ttl)

    async def _discard_corrupt_room(self, room_id: str):
        try:
            await self.delete_room(room_id)
        except RedisError as e:
            logger.warning(f"Could not delete corrupt room {self._room_key(room_id)}: {e}")

    async def get_room(self, room_id: str) -> Optional[Room]:
        key = self._room_key(room_id)
        try:
            data = await self.redis_client.get(key)
        except ResponseError as e:
            # WRONGTYPE: something other than a string sits under the room key
            logger.warning(f"Unreadable room key {key}, deleting it: {e}")
            await self._discard_corrupt_room(room_id)
            return None
        if not data:
            logger.debug(f"Room {key} not found in Redis")
            return None

        room = parse_room(data)
        if room is None:
            logger.warning(f"Invalid room data under {key}, deleting it")
            await self._discard_corrupt_room(room_id)
            return None

        try:
            await self.refresh_ttl(room_id)
        except RedisError as e:
            logger.warning(f"TTL refresh failed for room {key}: {e}")
        return room

    async def refresh_ttl(self, room_id: str):
        await self.redis_client.expire(self._room_key(room_id), self.ttl)
        await self.redis_client.expire(self._messages_key(room_id), self.ttl)
        logger.debug(f"TTL refreshed for room and messages: {room_id.lower()}")

    async def room_exists(self, room_id: str) -> bool:
        exists = await self.redis_client.exists(self._room_key(room_id))
        return exists == 1

    async def add_message(self, room_id: str, message: Message) -> bool:
        key = self._messages_key(room_id)
        await self.redis_client.rpush(key, message.to_json())
        await self.redis_client.expire(key, self.ttl)
        # Activity keeps the room alive
        await self.refresh_ttl(room_id)
        logger.debug(f"Message {message.id} appended to {key}")
        return True

    async def get_messages(self, room_id: str) -> List[Message]:
        key = self._messages_key(room_id)
        try:
            items = await self.redis_client.lrange(key, 0, -1)
        except ResponseError as e:
            logger.warning(f"Unreadable message list {key}, deleting it: {e}")
            try:
                await self.redis_client.delete(key)
            except RedisError as delete_error:
                logger.warning(f"Could not delete corrupt message list {key}: {delete_error}")
            return []
        if not items:
            return []

        messages = []
        for item in items:
            message = parse_message(item)
            if message is None:
                logger.warning(f"Skipping malformed message in {key}")
                continue
            messages.append(message)
        logger.debug(f"Retrieved {len(messages)}/{len(items)} messages from {key}")
        return messages

    async def get_all_rooms(self) -> List[str]:
        room_ids = []
        async for key in self.redis_client.scan_iter(match=REDIS_ROOM_PATTERN):
            room_ids.append(key[len(REDIS_ROOM_PREFIX):])
        return room_ids

    async def delete_room(self, room_id: str) -> bool:
        room_key = self._room_key(room_id)
        messages_key = self._messages_key(room_id)
        # Messages first: a concurrent reader may see an empty room, never orphaned messages
        messages_deleted = await self.redis_client.delete(messages_key)
        deleted = await self.redis_client.delete(room_key)
        logger.debug(f"Room {room_id.lower()} deleted: room_key={deleted}, messages_key={messages_deleted}")
        return bool(deleted)

    async def add_room_to_ip(self, address: str, room_id: str):
        key = REDIS_IP_ROOMS_KEY.format(address=address)
        await self.redis_client.sadd(key, room_id)
        await self.redis_client.expire(key, self.ttl)
        logger.debug(f"Linked room {room_id} to address {address}")

    async def get_rooms_by_ip(self, address: str) -> List[str]:
        key = REDIS_IP_ROOMS_KEY.format(address=address)
        members = await self.redis_client.smembers(key)
        return sorted(members)
