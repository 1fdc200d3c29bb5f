import json
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from logging_config import get_logger

logger = get_logger(__name__)

MessageType = Literal["text", "image", "pdf", "file"]


class Room(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    created_at: int = Field(..., alias="createdAt", strict=True)
    host_key: Optional[str] = Field(None, alias="hostKey")
    is_private: bool = Field(False, alias="isPrivate")
    # Stored under "password", but only ever holds the sha256 digest
    password_digest: Optional[str] = Field(None, alias="password")

    @model_validator(mode="after")
    def check_private_has_digest(self):
        if self.is_private and not self.password_digest:
            raise ValueError("private room requires a password digest")
        return self

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    room_id: str = Field(..., alias="roomId", min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)
    content: str = Field(..., min_length=1)
    type: MessageType = "text"
    file_name: Optional[str] = Field(None, alias="fileName")
    file_size: Optional[int] = Field(None, alias="fileSize")
    file_type: Optional[str] = Field(None, alias="fileType")
    created_at: int = Field(..., alias="createdAt", strict=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


def _load_payload(payload: Any) -> Optional[dict]:
    # Redis clients hand back str or bytes depending on decode_responses; some hand back parsed JSON
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        payload = json.loads(payload)
    if isinstance(payload, dict):
        return payload
    return None


def parse_room(payload: Union[str, bytes, dict, None]) -> Optional[Room]:
    """Deserialize and validate a stored room. Returns None for anything corrupt."""
    if payload is None:
        return None
    try:
        data = _load_payload(payload)
        if data is None:
            logger.warning(f"Unexpected room payload type: {type(payload).__name__}")
            return None
        return Room.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Discarding invalid room payload: {e}")
        return None


def parse_message(payload: Union[str, bytes, dict, None]) -> Optional[Message]:
    """Deserialize and validate a stored message. Returns None for anything corrupt."""
    if payload is None:
        return None
    try:
        data = _load_payload(payload)
        if data is None:
            logger.warning(f"Unexpected message payload type: {type(payload).__name__}")
            return None
        return Message.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Discarding invalid message payload: {e}")
        return None


# --- HTTP request/response bodies ---

class CreateRoomRequest(BaseModel):
    password: Optional[str] = None


class CreateRoomResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(..., alias="roomId")
    host_key: str = Field(..., alias="hostKey")


class RoomDetailsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    created_at: int = Field(..., alias="createdAt")
    is_private: bool = Field(False, alias="isPrivate")


class RoomListResponse(BaseModel):
    success: bool = True
    count: int
    rooms: list[str]


class VerifyPasswordRequest(BaseModel):
    password: str = Field(..., min_length=1)


class PostMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(..., min_length=1)
    type: MessageType = "text"
    file_name: Optional[str] = Field(None, alias="fileName")
    file_size: Optional[int] = Field(None, alias="fileSize")
    file_type: Optional[str] = Field(None, alias="fileType")


class StorageInfoResponse(BaseModel):
    type: str
