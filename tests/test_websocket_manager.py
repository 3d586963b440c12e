import asyncio
import json
from datetime import datetime

from timbel.models import TaskNote
from timbel.services.websocket_manager import WebSocketManager, publish_note_change, websocket_manager


class FakeWebSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(text))


def test_events_reach_every_connection_of_a_user():
    manager = WebSocketManager()
    first, second = FakeWebSocket(), FakeWebSocket()

    async def scenario():
        await manager.connect(first, "alice")
        await manager.connect(second, "alice")
        await manager.send_event_to_user("alice", {"type": "note_changed", "note_id": "n1"})
        await manager.send_event_to_user("bob", {"type": "note_changed"})

    asyncio.run(scenario())

    assert manager.get_total_connections() == 2
    for ws in (first, second):
        assert [m["type"] for m in ws.sent] == ["connection", "note_changed"]
        assert ws.sent[1]["data"]["note_id"] == "n1"


def test_broken_connections_are_dropped():
    manager = WebSocketManager()
    healthy = FakeWebSocket()
    broken = FakeWebSocket()

    async def scenario():
        await manager.connect(healthy, "alice")
        await manager.connect(broken, "alice")
        broken.fail = True
        await manager.send_event_to_user("alice", {"type": "note_changed"})

    asyncio.run(scenario())

    assert manager.get_total_connections() == 1
    manager.disconnect(healthy, "alice")
    assert manager.get_total_connections() == 0


def test_publish_note_change_notifies_both_participants():
    sender_ws, recipient_ws = FakeWebSocket(), FakeWebSocket()
    note = TaskNote(
        id="n1",
        weekly_task_id="t1",
        sender_id="alice",
        recipient_id="leader",
        status="pending",
        updated_at=datetime(2025, 2, 10, 9, 0),
    )

    async def scenario():
        await websocket_manager.connect(sender_ws, "alice")
        await websocket_manager.connect(recipient_ws, "leader")
        try:
            await publish_note_change(note, "created")
        finally:
            websocket_manager.disconnect(sender_ws, "alice")
            websocket_manager.disconnect(recipient_ws, "leader")

    asyncio.run(scenario())

    for ws in (sender_ws, recipient_ws):
        event = ws.sent[-1]
        assert event["type"] == "note_changed"
        assert event["data"]["event"] == "created"
        assert event["data"]["weekly_task_id"] == "t1"
