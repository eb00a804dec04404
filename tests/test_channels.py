"""Tests for message envelopes and the in-process channels."""

from __future__ import annotations

from typing import List

import pytest

from common.channels import NotificationChannel, RequestChannel, TransportError
from common.models.actions import EventType
from common.models.messages import (
    ExecuteWorkflowMessage,
    MessageError,
    NewActionMessage,
    RefreshDashboardMessage,
    parse_message,
)


class TestParseMessage:
    def test_new_action(self, make_action) -> None:
        action = make_action(event_type=EventType.INPUT, value="hello")
        message = parse_message(NewActionMessage(data=action).to_dict())
        assert isinstance(message, NewActionMessage)
        assert message.data == action

    def test_execute_workflow(self, make_action) -> None:
        actions = [make_action(), make_action()]
        message = parse_message({"type": "execute-workflow", "actions": [a.to_dict() for a in actions]})
        assert isinstance(message, ExecuteWorkflowMessage)
        assert message.actions == actions

    def test_refresh_dashboard(self) -> None:
        assert isinstance(parse_message({"type": "refresh-dashboard"}), RefreshDashboardMessage)

    def test_unknown_type(self) -> None:
        with pytest.raises(MessageError):
            parse_message({"type": "teleport"})

    def test_malformed_body(self) -> None:
        with pytest.raises(MessageError):
            parse_message({"type": "new-action", "data": {"eventType": "hover"}})
        with pytest.raises(MessageError):
            parse_message({"type": "execute-workflow", "actions": "nope"})
        with pytest.raises(MessageError):
            parse_message(["not", "a", "dict"])


class TestNotificationChannel:
    def test_delivers_to_subscribers_in_order(self) -> None:
        channel = NotificationChannel()
        received: List[str] = []
        channel.subscribe(lambda m: received.append("first"))
        channel.subscribe(lambda m: received.append("second"))

        channel.send(RefreshDashboardMessage())
        assert received == ["first", "second"]

    def test_failing_handler_does_not_block_others(self) -> None:
        channel = NotificationChannel()
        received: list = []

        def broken(message) -> None:
            raise RuntimeError("boom")

        channel.subscribe(broken)
        channel.subscribe(received.append)
        message = RefreshDashboardMessage()
        channel.send(message)

        assert received == [message]

    def test_unsubscribe(self) -> None:
        channel = NotificationChannel()
        received: list = []
        channel.subscribe(received.append)

        assert channel.unsubscribe(received.append) is True
        assert channel.unsubscribe(received.append) is False
        channel.send(RefreshDashboardMessage())
        assert received == []


class TestRequestChannel:
    @pytest.mark.asyncio
    async def test_no_listener_raises(self) -> None:
        channel = RequestChannel()
        with pytest.raises(TransportError):
            await channel.request(1, RefreshDashboardMessage())

    @pytest.mark.asyncio
    async def test_sync_listener_ack(self) -> None:
        channel = RequestChannel()
        channel.register(1, lambda m: {"status": "ok"})

        assert channel.has_listener(1)
        assert await channel.request(1, RefreshDashboardMessage()) == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_async_listener_ack(self) -> None:
        channel = RequestChannel()

        async def listener(message) -> dict:
            return {"type": message.type}

        channel.register("tab-7", listener)
        ack = await channel.request("tab-7", RefreshDashboardMessage())
        assert ack == {"type": "refresh-dashboard"}

    @pytest.mark.asyncio
    async def test_listener_error_becomes_transport_error(self) -> None:
        channel = RequestChannel()

        def listener(message) -> dict:
            raise ValueError("page went away")

        channel.register(1, listener)
        with pytest.raises(TransportError, match="page went away"):
            await channel.request(1, RefreshDashboardMessage())

    @pytest.mark.asyncio
    async def test_unregister(self) -> None:
        channel = RequestChannel()
        channel.register(1, lambda m: {})
        channel.unregister(1)

        assert not channel.has_listener(1)
        with pytest.raises(TransportError):
            await channel.request(1, RefreshDashboardMessage())
