"""
Unit tests for the change feed and the notification inbox.

Tests cover:
- Table and member scoping of subscriptions
- Drop-oldest behaviour of slow subscribers
- Unsubscribe on context exit
- SSE frame rendering
- Change type filtering on the admin stream
- Last-write-wins inbox merge
"""

import json
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from silent_money.routers.admin import ADMIN_STREAM_TABLES, ADMIN_STREAM_TYPES
from silent_money.routers.sse import change_event_frames
from silent_money.services.realtime import (
    ChangeEvent,
    ChangeFeed,
    ChangeType,
    NotificationInbox,
)


def notification(is_read=False, **overrides):
    row = {"id": uuid4(), "title": "Hello", "is_read": is_read}
    row.update(overrides)
    return row


# ============================================================================
# CHANGE FEED
# ============================================================================


class TestChangeFeed:
    """Test publish/subscribe fan-out."""

    @pytest.mark.asyncio
    async def test_subscriber_receives_matching_table(self, feed):
        async with feed.subscribe(["income_ideas"]) as sub:
            delivered = feed.publish(ChangeEvent(table="income_ideas", type=ChangeType.INSERT, new={"x": 1}))
            event = await sub.get(timeout=1)

        assert delivered == 1
        assert event.new == {"x": 1}

    @pytest.mark.asyncio
    async def test_other_tables_are_filtered(self, feed):
        async with feed.subscribe(["franchises"]) as sub:
            delivered = feed.publish(ChangeEvent(table="income_ideas", type=ChangeType.INSERT))
            event = await sub.get(timeout=0.01)

        assert delivered == 0
        assert event is None

    @pytest.mark.asyncio
    async def test_member_scoped_subscription(self, feed):
        me, other = uuid4(), uuid4()

        async with feed.subscribe(["notifications"], user_id=me) as sub:
            feed.publish(ChangeEvent(table="notifications", type=ChangeType.INSERT, user_id=other))
            feed.publish(ChangeEvent(table="notifications", type=ChangeType.INSERT, user_id=me, new={"n": 2}))
            event = await sub.get(timeout=1)

        assert event.user_id == me
        assert sub.queue.empty()

    @pytest.mark.asyncio
    async def test_change_type_filter(self, feed):
        async with feed.subscribe(["income_ideas"], types=[ChangeType.INSERT]) as sub:
            feed.publish(ChangeEvent(table="income_ideas", type=ChangeType.UPDATE, new={"i": 1}))
            feed.publish(ChangeEvent(table="income_ideas", type=ChangeType.INSERT, new={"i": 2}))
            event = await sub.get(timeout=1)

        assert event.type is ChangeType.INSERT
        assert sub.queue.empty()

    @pytest.mark.asyncio
    async def test_full_queue_drops_oldest(self):
        feed = ChangeFeed(queue_size=2)

        async with feed.subscribe(["t"]) as sub:
            for i in range(3):
                feed.publish(ChangeEvent(table="t", type=ChangeType.INSERT, new={"i": i}))
            first = await sub.get(timeout=1)
            second = await sub.get(timeout=1)

        assert sub.dropped == 1
        assert [first.new["i"], second.new["i"]] == [1, 2]

    @pytest.mark.asyncio
    async def test_unsubscribe_on_exit(self, feed):
        async with feed.subscribe(["t"]):
            assert feed.subscriber_count == 1

        assert feed.subscriber_count == 0
        assert feed.publish(ChangeEvent(table="t", type=ChangeType.DELETE)) == 0


class TestChangeEventFrame:
    """Test SSE rendering."""

    def test_to_sse(self):
        row_id = uuid4()
        event = ChangeEvent(table="notifications", type=ChangeType.UPDATE, new={"id": row_id})

        frame = event.to_sse()

        assert frame.startswith("event: notifications\ndata: ")
        assert frame.endswith("\n\n")
        payload = json.loads(frame.split("data: ", 1)[1])
        assert payload["type"] == "UPDATE"
        assert payload["new"]["id"] == str(row_id)
        assert payload["old"] is None


# ============================================================================
# NOTIFICATION INBOX
# ============================================================================


class TestNotificationInbox:
    """Test last-write-wins merge of notification events."""

    def test_insert_prepends_and_truncates(self):
        items = [notification() for _ in range(3)]
        inbox = NotificationInbox(items, limit=3)
        fresh = notification()

        inbox.apply(ChangeEvent(table="notifications", type=ChangeType.INSERT, new=fresh))

        assert inbox.items[0] is fresh
        assert len(inbox.items) == 3
        assert items[-1] not in inbox.items

    def test_duplicate_insert_is_not_doubled(self):
        row = notification()
        inbox = NotificationInbox([row])

        inbox.apply(ChangeEvent(table="notifications", type=ChangeType.INSERT, new=row))

        assert len(inbox.items) == 1

    def test_update_replaces_by_id(self):
        row = notification()
        inbox = NotificationInbox([row])

        inbox.apply(ChangeEvent(
            table="notifications",
            type=ChangeType.UPDATE,
            new={**row, "is_read": True},
        ))

        assert inbox.unread_count == 0
        assert inbox.items[0]["is_read"] is True

    def test_delete_removes_by_id(self):
        keep, gone = notification(), notification()
        inbox = NotificationInbox([keep, gone])

        inbox.apply(ChangeEvent(table="notifications", type=ChangeType.DELETE, old=gone))

        assert inbox.items == [keep]

    def test_unread_count_follows_sequence(self):
        a, b = notification(), notification()
        inbox = NotificationInbox()

        inbox.apply_all([
            ChangeEvent(table="notifications", type=ChangeType.INSERT, new=a),
            ChangeEvent(table="notifications", type=ChangeType.INSERT, new=b),
            ChangeEvent(table="notifications", type=ChangeType.UPDATE, new={**a, "is_read": True}),
        ])

        assert inbox.unread_count == 1
        assert [item["id"] for item in inbox.items] == [b["id"], a["id"]]

    def test_update_for_unknown_id_is_ignored(self):
        row = notification()
        inbox = NotificationInbox([row])

        inbox.apply(ChangeEvent(table="notifications", type=ChangeType.UPDATE, new=notification()))

        assert inbox.items == [row]


# ============================================================================
# ADMIN STREAM
# ============================================================================


class TestAdminStreamFrames:
    """Test what the admin dashboard stream carries."""

    @pytest.mark.asyncio
    async def test_only_new_submissions_are_streamed(self, feed):
        request = MagicMock(is_disconnected=AsyncMock(return_value=False))
        frames = change_event_frames(
            request, feed, ADMIN_STREAM_TABLES, None, 1, types=ADMIN_STREAM_TYPES
        )

        assert await frames.__anext__() == "retry: 5000\n\n"
        feed.publish(ChangeEvent(table="income_ideas", type=ChangeType.UPDATE, new={"title": "edited"}))
        feed.publish(ChangeEvent(table="franchises", type=ChangeType.INSERT, new={"name": "Chai Point"}))
        frame = await frames.__anext__()
        await frames.aclose()

        assert frame.startswith("event: franchises\n")
        assert "Chai Point" in frame
        assert feed.subscriber_count == 0
