import orderdesk.tasks
from orderdesk.celery_worker import celery_app
from orderdesk.services.notifications.base import NotificationResult
from orderdesk.tasks import deliver_chat_message


class StubTwilio:
    outcome = NotificationResult(success=True, message_id="SM42", provider="twilio")
    sent = []

    def send_message_sync(self, contact, text):
        self.sent.append((contact, text))
        return self.outcome


class TestDeliverChatMessage:

    def test_registered(self):
        assert "orderdesk.tasks.deliver_chat_message" in celery_app.tasks

    def test_success(self, monkeypatch):
        StubTwilio.sent = []
        monkeypatch.setattr(orderdesk.tasks, "TwilioWhatsAppTransport", StubTwilio)

        result = deliver_chat_message.apply(args=("+919812345678", "hello")).get()

        assert result["success"] is True
        assert result["message_id"] == "SM42"
        assert result["error"] is None
        assert StubTwilio.sent == [("+919812345678", "hello")]

    def test_failure_is_reported_not_raised(self, monkeypatch):
        class FailingTwilio(StubTwilio):
            outcome = NotificationResult(
                success=False, error_message="Twilio not configured", provider="twilio"
            )

        monkeypatch.setattr(orderdesk.tasks, "TwilioWhatsAppTransport", FailingTwilio)

        result = deliver_chat_message.apply(args=("+919812345678", "hello")).get()
        assert result["success"] is False
        assert result["error"] == "Twilio not configured"
