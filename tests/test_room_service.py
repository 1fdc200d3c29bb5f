import re

import pytest

import room_service
from errors import RoomNotFoundError, UnauthorizedError
from utils import digest_password


async def test_create_public_room(any_storage):
    room = await room_service.create_room(any_storage, client_address="10.0.0.1")

    assert room.is_private is False
    assert room.password_digest is None
    assert room.host_key and len(room.host_key) >= 40
    assert await any_storage.get_room(room.id) == room
    assert await any_storage.get_rooms_by_ip("10.0.0.1") == [room.id]


async def test_create_private_room_stores_only_digest(any_storage):
    room = await room_service.create_room(any_storage, password="abc123")

    stored = await any_storage.get_room(room.id)
    assert stored.is_private is True
    assert stored.password_digest == digest_password("abc123")
    assert "abc123" not in stored.to_json()


async def test_colliding_room_id_gets_numeric_suffix(any_storage, monkeypatch):
    monkeypatch.setattr(room_service, "new_room_id", lambda: "k3fq7")

    first = await room_service.create_room(any_storage)
    second = await room_service.create_room(any_storage)

    assert first.id == "k3fq7"
    assert re.fullmatch(r"k3fq7-\d{1,3}", second.id)
    assert await any_storage.room_exists(second.id)


async def test_private_room_password_gate(any_storage):
    room = await room_service.create_room(any_storage, password="abc123")

    verified = await room_service.verify_room_password(any_storage, room.id, "abc123")
    assert verified.id == room.id
    with pytest.raises(UnauthorizedError):
        await room_service.verify_room_password(any_storage, room.id, "ABC123")
    with pytest.raises(UnauthorizedError):
        await room_service.verify_room_password(any_storage, room.id, None)


async def test_public_room_accepts_any_password(any_storage):
    room = await room_service.create_room(any_storage)

    for attempt in ("", "anything", None):
        assert room_service.check_password(room, attempt)
    assert (await room_service.verify_room_password(any_storage, room.id, "whatever")).id == room.id


async def test_verify_on_missing_room_is_unauthorized(any_storage):
    with pytest.raises(UnauthorizedError) as excinfo:
        await room_service.verify_room_password(any_storage, "ghost", "abc123")
    assert str(excinfo.value) == "Incorrect password"


async def test_destroy_room_requires_matching_host_key(any_storage):
    room = await room_service.create_room(any_storage)
    await room_service.post_message(any_storage, room.id, "hello")

    with pytest.raises(UnauthorizedError):
        await room_service.destroy_room(any_storage, room.id, "not-the-key")
    with pytest.raises(UnauthorizedError):
        await room_service.destroy_room(any_storage, room.id, None)
    assert await any_storage.room_exists(room.id)
    assert len(await any_storage.get_messages(room.id)) == 1

    await room_service.destroy_room(any_storage, room.id, room.host_key)
    assert await any_storage.get_room(room.id) is None
    assert await any_storage.get_messages(room.id) == []


async def test_destroy_missing_room_looks_like_bad_key(any_storage):
    with pytest.raises(UnauthorizedError) as excinfo:
        await room_service.destroy_room(any_storage, "ghost", "some-key")
    assert str(excinfo.value) == "Invalid host key"


async def test_post_message(any_storage):
    room = await room_service.create_room(any_storage)

    message = await room_service.post_message(
        any_storage, room.id, "https://files.example/doc.pdf", type="pdf", file_name="doc.pdf", file_size=1024, file_type="application/pdf"
    )

    assert message.room_id == room.id
    assert message.type == "pdf"
    assert message.file_size == 1024
    assert await any_storage.get_messages(room.id) == [message]


async def test_post_message_to_missing_room(any_storage):
    with pytest.raises(RoomNotFoundError):
        await room_service.post_message(any_storage, "ghost", "hello")


async def test_discovery_returns_live_rooms_from_same_address(any_storage):
    first = await room_service.create_room(any_storage, client_address="203.0.113.7")
    second = await room_service.create_room(any_storage, client_address="203.0.113.7")
    deleted = await room_service.create_room(any_storage, client_address="203.0.113.7")
    await room_service.create_room(any_storage, client_address="198.51.100.1")
    await room_service.destroy_room(any_storage, deleted.id, deleted.host_key)

    ids = await any_storage.get_rooms_by_ip("203.0.113.7")
    assert sorted(ids) == sorted([first.id, second.id])

    nearby = await room_service.find_nearby_rooms(any_storage, "203.0.113.7")
    assert sorted(room.id for room in nearby) == sorted([first.id, second.id])


def test_public_view_hides_secrets():
    from schemas.rooms import Room

    room = Room(id="r1", created_at=1, host_key="secret", is_private=True, password_digest="d")
    view = room_service.public_view(room).model_dump(by_alias=True)
    assert view == {"id": "r1", "createdAt": 1, "isPrivate": True}
