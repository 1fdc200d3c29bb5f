from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request

import room_service
from errors import RoomNotFoundError, UnauthorizedError
from logging_config import get_logger
from schemas.rooms import (
    CreateRoomRequest,
    CreateRoomResponse,
    Message,
    PostMessageRequest,
    RoomDetailsResponse,
    RoomListResponse,
    VerifyPasswordRequest,
)
from storage import Storage, get_storage

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/api/rooms", tags=["rooms"])


def get_client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


@rooms_router.post("", response_model=CreateRoomResponse, response_model_by_alias=True)
async def create_room(
    request: Request,
    body: Optional[CreateRoomRequest] = Body(None),
    storage: Storage = Depends(get_storage),
):
    # Response: { "roomId": "k3fq7", "hostKey": "..." }; hostKey is only ever returned here
    client_address = get_client_address(request)
    logger.info(f"Room creation request from {client_address}")
    password = body.password if body else None
    try:
        room = await room_service.create_room(storage, client_address=client_address, password=password)
    except Exception as e:
        logger.error(f"Error creating room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create room")
    return CreateRoomResponse(room_id=room.id, host_key=room.host_key)


@rooms_router.get("", response_model=RoomListResponse)
async def list_rooms(storage: Storage = Depends(get_storage)):
    rooms = await storage.get_all_rooms()
    return RoomListResponse(count=len(rooms), rooms=rooms)


@rooms_router.get("/nearby", response_model=List[RoomDetailsResponse], response_model_by_alias=True)
async def nearby_rooms(request: Request, storage: Storage = Depends(get_storage)):
    client_address = get_client_address(request)
    logger.info(f"Nearby rooms request from {client_address}")
    rooms = await room_service.find_nearby_rooms(storage, client_address)
    return [room_service.public_view(room) for room in rooms]


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse, response_model_by_alias=True)
async def get_room_details(room_id: str, storage: Storage = Depends(get_storage)):
    room = await storage.get_room(room_id)
    if not room:
        logger.warning(f"Room details failed: room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found or has expired")
    return room_service.public_view(room)


@rooms_router.delete("/{room_id}")
async def delete_room(
    room_id: str,
    x_host_key: Optional[str] = Header(None),
    storage: Storage = Depends(get_storage),
):
    if not x_host_key:
        raise HTTPException(status_code=400, detail="Host key is required")
    try:
        await room_service.destroy_room(storage, room_id, x_host_key)
    except UnauthorizedError:
        raise HTTPException(status_code=403, detail="Unauthorized: invalid host key")
    return {"success": True, "message": "Room destroyed successfully"}


@rooms_router.post("/{room_id}/verify")
async def verify_password(room_id: str, body: VerifyPasswordRequest, storage: Storage = Depends(get_storage)):
    try:
        room = await room_service.verify_room_password(storage, room_id, body.password)
    except UnauthorizedError:
        raise HTTPException(status_code=401, detail="Incorrect password")
    if not room.is_private:
        return {"success": True, "message": "Room is not password protected"}
    return {"success": True, "message": "Password verified"}


@rooms_router.get("/{room_id}/messages", response_model=List[Message], response_model_by_alias=True)
async def get_messages(room_id: str, storage: Storage = Depends(get_storage)):
    if not await storage.room_exists(room_id):
        logger.warning(f"Get messages failed: room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")
    messages = await storage.get_messages(room_id)
    logger.debug(f"Returning {len(messages)} messages for room {room_id}")
    return messages


@rooms_router.post("/{room_id}/messages", response_model=Message, response_model_by_alias=True)
async def post_message(room_id: str, body: PostMessageRequest, storage: Storage = Depends(get_storage)):
    try:
        return await room_service.post_message(
            storage,
            room_id,
            body.content,
            type=body.type,
            file_name=body.file_name,
            file_size=body.file_size,
            file_type=body.file_type,
        )
    except RoomNotFoundError:
        raise HTTPException(status_code=404, detail="Room not found")
