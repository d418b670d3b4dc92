import asyncio

import pytest
from bson import ObjectId

from unlinked.core.exceptions import AuthorizationError, ValidationError
from unlinked.realtime.dispatcher import ChatDispatcher
from unlinked.realtime.typing import TypingTracker


@pytest.fixture()
def dispatcher(chat_service, broadcaster):
    return ChatDispatcher(
        chats=chat_service, broadcaster=broadcaster, typing=TypingTracker(broadcaster, timeout=0)
    )


def test_send_fans_out_to_chat_room_and_other_participants(dispatcher, broadcaster, chat_between):
    alice, bob, chat_id = chat_between

    message = asyncio.run(dispatcher.send_message(alice, str(chat_id), "hello"))

    [received] = broadcaster.named("receive_message")
    assert received["room"] == str(chat_id)
    assert received["data"]["_id"] == str(message.id)
    assert received["data"]["sender"]["username"] == "alice"

    [updated] = broadcaster.named("chat_updated")
    assert updated["room"] == str(bob)
    assert updated["data"]["chatId"] == str(chat_id)
    assert updated["data"]["lastMessage"]["content"] == "hello"


def test_failed_send_broadcasts_nothing(dispatcher, broadcaster, chat_between, make_user):
    alice, _bob, chat_id = chat_between

    with pytest.raises(ValidationError):
        asyncio.run(dispatcher.send_message(alice, chat_id, "   "))
    with pytest.raises(AuthorizationError):
        asyncio.run(dispatcher.send_message(make_user("eve"), chat_id, "hi"))

    assert broadcaster.events == []


def test_typing_goes_to_chat_room_without_the_sender(dispatcher, broadcaster):
    uid = ObjectId()

    async def scenario():
        await dispatcher.typing_started(uid, "Alice", "sid-a", "chat-9")
        await dispatcher.typing_stopped(uid, "sid-a", "chat-9")
        await dispatcher.typing_started(uid, "Alice", "sid-a", "")

    asyncio.run(scenario())

    typing, stop = broadcaster.events
    assert typing["event"] == "user_typing"
    assert typing["room"] == "chat-9" and typing["skip_sid"] == "sid-a"
    assert typing["data"] == {"chatId": "chat-9", "user": {"_id": str(uid), "name": "Alice"}}
    assert stop["event"] == "user_stop_typing"
    assert stop["data"] == {"chatId": "chat-9", "userId": str(uid)}
    assert not dispatcher.typing.is_typing("chat-9", str(uid))


def test_mark_read_notifies_the_other_participant(dispatcher, broadcaster, chat_service, chat_between):
    alice, bob, chat_id = chat_between
    chat_service.send_message(alice, chat_id, "ping")

    receipt = asyncio.run(dispatcher.mark_read(bob, str(chat_id)))

    assert receipt.updated == 1
    [event] = broadcaster.named("messages_read")
    assert event["room"] == str(alice)
    assert event["data"] == {"chatId": str(chat_id), "readBy": str(bob)}


def test_mark_read_by_outsider_broadcasts_nothing(dispatcher, broadcaster, chat_between, make_user):
    _alice, _bob, chat_id = chat_between
    with pytest.raises(AuthorizationError):
        asyncio.run(dispatcher.mark_read(make_user("eve"), chat_id))
    assert broadcaster.events == []


def test_delete_of_last_message_updates_every_participant(
    dispatcher, broadcaster, chat_service, chat_between
):
    alice, bob, chat_id = chat_between
    earlier = chat_service.send_message(bob, chat_id, "earlier").message
    last = chat_service.send_message(alice, chat_id, "oops").message

    asyncio.run(dispatcher.delete_message(alice, str(last.id)))

    [deleted] = broadcaster.named("message_deleted")
    assert deleted["room"] == str(chat_id)
    assert deleted["data"] == {"messageId": str(last.id), "chatId": str(chat_id)}
    updates = broadcaster.named("chat_updated")
    assert sorted(u["room"] for u in updates) == sorted([str(alice), str(bob)])
    assert all(u["data"]["lastMessage"]["_id"] == str(earlier.id) for u in updates)


def test_delete_of_older_message_sends_no_chat_update(dispatcher, broadcaster, chat_service, chat_between):
    alice, _bob, chat_id = chat_between
    old = chat_service.send_message(alice, chat_id, "old").message
    chat_service.send_message(alice, chat_id, "new")

    asyncio.run(dispatcher.delete_message(alice, old.id))

    assert broadcaster.rooms("message_deleted") == [str(chat_id)]
    assert broadcaster.named("chat_updated") == []
