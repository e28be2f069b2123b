from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from db.repository import (
    ChatOwnershipError,
    get_chat,
    get_chats,
    get_daily_request_count,
    get_day_bounds,
    insert_request_log,
    upsert_chat,
)
from db.tables import chats


def _message(role, text, message_id=None):
    message = {"role": role, "parts": [{"type": "text", "text": text}]}
    if message_id:
        message["id"] = message_id
    return message


def test_upsert_creates_chat_with_ordered_messages(session_factory):
    with session_factory() as db:
        upsert_chat(
            db,
            user_id="u1",
            chat_id="chat-1",
            title="Who won?",
            messages_list=[_message("user", "Who won?", "m1"), _message("assistant", "Norris")],
        )
        db.commit()

    with session_factory() as db:
        chat = get_chat(db, "chat-1", "u1")

    assert chat["title"] == "Who won?"
    assert [m["role"] for m in chat["messages"]] == ["user", "assistant"]
    assert chat["messages"][0]["id"] == "m1"
    assert chat["messages"][1]["parts"] == [{"type": "text", "text": "Norris"}]


def test_upsert_replaces_all_messages(session_factory):
    with session_factory() as db:
        upsert_chat(db, user_id="u1", chat_id="c", title="t", messages_list=[_message("user", "a")])
        upsert_chat(
            db,
            user_id="u1",
            chat_id="c",
            title="t2",
            messages_list=[_message("user", "a"), _message("assistant", "b"), _message("user", "c")],
        )
        db.commit()
        chat = get_chat(db, "c", "u1")

    assert chat["title"] == "t2"
    assert [m["parts"][0]["text"] for m in chat["messages"]] == ["a", "b", "c"]


def test_upsert_rejects_other_users_chat(session_factory):
    with session_factory() as db:
        upsert_chat(db, user_id="owner", chat_id="c", title="t", messages_list=[])
        db.commit()
        with pytest.raises(ChatOwnershipError):
            upsert_chat(db, user_id="intruder", chat_id="c", title="x", messages_list=[])


def test_get_chat_is_scoped_to_owner(session_factory):
    with session_factory() as db:
        upsert_chat(db, user_id="owner", chat_id="c", title="t", messages_list=[])
        db.commit()
        assert get_chat(db, "c", "someone-else") is None
        assert get_chat(db, "missing", "owner") is None


def test_get_chats_most_recent_first(session_factory):
    base = datetime(2026, 10, 1, tzinfo=timezone.utc)
    with session_factory() as db:
        for chat_id in ["old", "new", "middle"]:
            upsert_chat(db, user_id="u1", chat_id=chat_id, title=chat_id, messages_list=[])
        upsert_chat(db, user_id="u2", chat_id="other", title="other", messages_list=[])
        for offset, chat_id in enumerate(["old", "middle", "new"]):
            db.execute(
                update(chats).where(chats.c.id == chat_id).values(updated_at=base + timedelta(hours=offset))
            )
        db.commit()

        rows = get_chats(db, "u1")

    assert [row["id"] for row in rows] == ["new", "middle", "old"]


def test_day_bounds_are_utc_calendar_day():
    start, end = get_day_bounds(date(2026, 10, 19))
    assert start == datetime(2026, 10, 19, tzinfo=timezone.utc)
    assert end - start == timedelta(days=1)

    late_evening_elsewhere = datetime(2026, 10, 19, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert get_day_bounds(late_evening_elsewhere)[0] == datetime(2026, 10, 20, tzinfo=timezone.utc)


def test_daily_request_count_only_counts_that_day(session_factory):
    day = datetime(2026, 10, 19, 12, tzinfo=timezone.utc)
    with session_factory() as db:
        insert_request_log(db, "u1", created_at=day)
        insert_request_log(db, "u1", created_at=day.replace(hour=0))
        insert_request_log(db, "u1", created_at=day - timedelta(days=1))
        insert_request_log(db, "u2", created_at=day)
        db.commit()

        assert get_daily_request_count(db, "u1", day) == 2
        assert get_daily_request_count(db, "u2", day.date()) == 1
        assert get_daily_request_count(db, "u3", day) == 0


def test_message_ids_only_need_to_be_unique_within_a_chat(session_factory):
    shared = [_message("user", "hello", "m1"), _message("assistant", "hi", "m1")]
    with session_factory() as db:
        upsert_chat(db, user_id="u1", chat_id="a", title="a", messages_list=shared)
        upsert_chat(db, user_id="u2", chat_id="b", title="b", messages_list=[_message("user", "other", "m1")])
        db.commit()

        first = get_chat(db, "a", "u1")
        second = get_chat(db, "b", "u2")

    assert first["messages"][0]["id"] == "m1"
    assert first["messages"][1]["id"] not in ("m1", None)
    assert second["messages"][0]["id"] == "m1"
    assert second["messages"][0]["parts"][0]["text"] == "other"
