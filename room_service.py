import asyncio
import random
from typing import List, Optional

from errors import UnauthorizedError
from logging_config import get_logger
from schemas.rooms import Message, MessageType, Room, RoomDetailsResponse
from storage import Storage
from utils import digest_password, digests_match, new_capability_token, new_id, new_room_id, new_user_id, now_ms

logger = get_logger(__name__)


async def create_room(storage: Storage, client_address: Optional[str] = None, password: Optional[str] = None) -> Room:
    """Create a room, store it and link it to the creator's address for discovery.

    A colliding id gets a random numeric suffix instead of a second draw, so the
    final id may differ from the first candidate.
    """
    room_id = new_room_id()
    if await storage.room_exists(room_id):
        suffixed = f"{room_id}-{random.randint(0, 999)}"
        logger.info(f"Room id collision on {room_id}, using {suffixed}")
        room_id = suffixed

    room = Room(
        id=room_id,
        created_at=now_ms(),
        host_key=new_capability_token(),
        is_private=bool(password),
        password_digest=digest_password(password) if password else None,
    )
    await storage.set_room(room.id, room)

    if client_address:
        await storage.add_room_to_ip(client_address, room.id)

    logger.info(f"Room {room.id} created (private={room.is_private}, address={client_address})")
    return room


def check_password(room: Room, password: Optional[str]) -> bool:
    """Public rooms accept anything; private rooms need a matching digest."""
    if not room.is_private:
        return True
    if not password or not room.password_digest:
        return False
    return digests_match(room.password_digest, digest_password(password))


async def verify_room_password(storage: Storage, room_id: str, password: Optional[str]) -> Room:
    room = await storage.get_room(room_id)
    if room is None or not check_password(room, password):
        logger.warning(f"Password verification failed for room {room_id}")
        raise UnauthorizedError("Incorrect password")
    return room


async def destroy_room(storage: Storage, room_id: str, host_key: Optional[str]):
    """Delete a room and its messages when the caller holds the room's host key."""
    room = await storage.get_room(room_id)
    if room is None or not room.host_key or not host_key or not digests_match(room.host_key, host_key):
        logger.warning(f"Unauthorized delete attempt for room {room_id}")
        raise UnauthorizedError("Invalid host key")
    await storage.delete_room(room.id)
    logger.info(f"Room {room.id} destroyed by host")


async def post_message(
    storage: Storage,
    room_id: str,
    content: str,
    type: MessageType = "text",
    file_name: Optional[str] = None,
    file_size: Optional[int] = None,
    file_type: Optional[str] = None,
) -> Message:
    message = Message(
        id=new_id(),
        room_id=room_id,
        user_id=new_user_id(),
        content=content,
        type=type,
        file_name=file_name,
        file_size=file_size,
        file_type=file_type,
        created_at=now_ms(),
    )
    await storage.add_message(room_id, message)
    logger.info(f"Message {message.id} ({message.type}) posted to room {room_id}")
    return message


async def find_nearby_rooms(storage: Storage, client_address: str) -> List[Room]:
    """Rooms previously created from this address that are still alive."""
    room_ids = await storage.get_rooms_by_ip(client_address)
    rooms = await asyncio.gather(*(storage.get_room(room_id) for room_id in room_ids))
    active = [room for room in rooms if room is not None]
    logger.debug(f"Found {len(active)} nearby rooms for address {client_address}")
    return active


def public_view(room: Room) -> RoomDetailsResponse:
    return RoomDetailsResponse(id=room.id, created_at=room.created_at, is_private=room.is_private)
