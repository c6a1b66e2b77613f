import asyncio
from types import SimpleNamespace

from twilio.base.exceptions import TwilioException

import orderdesk.tasks
from orderdesk.services.notifications import get_chat_transport, reset_chat_transport
from orderdesk.services.notifications.mock import MockChatTransport
from orderdesk.services.notifications.queued import QueuedChatTransport
from orderdesk.services.notifications.twilio_whatsapp import (
    TwilioWhatsAppTransport,
    whatsapp_address,
)


class FakeMessages:
    def __init__(self, error=None):
        self.error = error
        self.created = []

    def create(self, **kwargs):
        if self.error:
            raise self.error
        self.created.append(kwargs)
        return SimpleNamespace(sid=f"SM{len(self.created):04d}")


def twilio_with(messages):
    transport = TwilioWhatsAppTransport(
        account_sid="AC" + "0" * 32,
        auth_token="secret",
        from_number="+14155238886",
    )
    transport.client = SimpleNamespace(messages=messages)
    return transport


class TestMockTransport:

    def test_records_messages(self):
        transport = MockChatTransport()
        result = asyncio.run(transport.send_message("+919812345678", "hello"))

        assert result.success
        assert result.provider == "mock"
        assert transport.sent == [("+919812345678", "hello")]

    def test_simulated_failure(self):
        transport = MockChatTransport(failure_rate=1.0)
        result = asyncio.run(transport.send_message("+919812345678", "hello"))

        assert not result.success
        assert transport.sent == []


class TestTwilioTransport:

    def test_whatsapp_address(self):
        assert whatsapp_address("+919812345678") == "whatsapp:+919812345678"
        assert whatsapp_address(" whatsapp:+919812345678") == "whatsapp:+919812345678"

    def test_sends_from_whatsapp_number(self):
        messages = FakeMessages()
        result = asyncio.run(twilio_with(messages).send_message("+919812345678", "Order placed"))

        assert result.success
        assert result.message_id == "SM0001"
        assert messages.created == [{
            "from_": "whatsapp:+14155238886",
            "to": "whatsapp:+919812345678",
            "body": "Order placed",
        }]

    def test_provider_error_reported(self):
        transport = twilio_with(FakeMessages(error=TwilioException("rate limited")))
        result = asyncio.run(transport.send_message("+919812345678", "hi"))

        assert not result.success
        assert "rate limited" in result.error_message

    def test_unconfigured_skips(self):
        transport = twilio_with(FakeMessages())
        transport.client = None

        result = transport.send_message_sync("+919812345678", "hi")
        assert not result.success
        assert result.error_message == "Twilio not configured"
        assert asyncio.run(transport.health_check()) is False


class TestQueuedTransport:

    def test_enqueues_task(self, monkeypatch):
        queued = []

        def delay(contact, text):
            queued.append((contact, text))
            return SimpleNamespace(id="task-1")

        monkeypatch.setattr(
            orderdesk.tasks, "deliver_chat_message", SimpleNamespace(delay=delay)
        )
        result = asyncio.run(QueuedChatTransport().send_message("+919812345678", "hi"))

        assert result.success
        assert result.message_id == "task-1"
        assert queued == [("+919812345678", "hi")]


class TestFactory:

    def test_mock_in_development(self):
        reset_chat_transport()
        try:
            assert get_chat_transport().provider_name == "mock"
        finally:
            reset_chat_transport()
