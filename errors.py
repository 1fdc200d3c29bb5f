class StorageError(Exception):
    """Base class for errors surfaced by the room storage layer."""


class RoomNotFoundError(StorageError):
    """Raised when content is submitted to a room that does not exist."""

    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} not found")
        self.room_id = room_id


class UnauthorizedError(StorageError):
    """Raised when a host key or password does not match.

    The message is the same whether the room is missing or the credential is wrong.
    """

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
