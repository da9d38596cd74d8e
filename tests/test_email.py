"""
Tests for reset code delivery.

Tests:
- SES email sending and error handling
- Background retry task
- Queueing helper
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from kombu.exceptions import OperationalError

from app.core.celery_utils import queue_task_safely
from app.services.email_service import EmailService
from app.tasks.email_tasks import EmailDeliveryError, send_password_reset_code_task


@pytest.fixture
def email():
    service = EmailService(code_ttl_minutes=10)
    service.ses_client = MagicMock()
    service.ses_client.send_email.return_value = {"MessageId": "msg-1"}
    return service


def _client_error(code: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": f"{code} happened"}},
        "SendEmail"
    )


class TestEmailService:
    """Test sending reset codes through SES"""

    def test_send_reset_code(self, email):
        assert email.send_password_reset_code("a@x.com", "483920") is True

        kwargs = email.ses_client.send_email.call_args.kwargs
        assert kwargs["Destination"] == {"ToAddresses": ["a@x.com"]}
        assert "483920" in kwargs["Message"]["Body"]["Html"]["Data"]
        assert "483920" in kwargs["Message"]["Body"]["Text"]["Data"]
        assert "10 minutes" in kwargs["Message"]["Body"]["Text"]["Data"]

    def test_deliver(self, email):
        assert email.deliver("a@x.com", "483920") is True
        email.ses_client.send_email.assert_called_once()

    @pytest.mark.parametrize("code", ["MessageRejected", "MailFromDomainNotVerified", "Throttling", "AccessDenied"])
    def test_client_error(self, email, code):
        email.ses_client.send_email.side_effect = _client_error(code)
        assert email.deliver("a@x.com", "483920") is False

    def test_connection_error(self, email):
        email.ses_client.send_email.side_effect = EndpointConnectionError(endpoint_url="https://email.us-east-1.amazonaws.com")
        assert email.deliver("a@x.com", "483920") is False


class TestResetCodeTask:
    """Test the background delivery retry"""

    def test_success(self, monkeypatch):
        sent = []
        monkeypatch.setattr(
            "app.tasks.email_tasks.email_service.send_password_reset_code",
            lambda to_email, reset_code: sent.append((to_email, reset_code)) or True
        )

        result = send_password_reset_code_task(to_email="a@x.com", reset_code="483920")

        assert result == {"status": "success", "email": "a@x.com"}
        assert sent == [("a@x.com", "483920")]

    def test_failure_raises(self, monkeypatch):
        monkeypatch.setattr(
            "app.tasks.email_tasks.email_service.send_password_reset_code",
            lambda to_email, reset_code: False
        )

        with pytest.raises(EmailDeliveryError):
            send_password_reset_code_task(to_email="a@x.com", reset_code="483920")


class TestQueueTaskSafely:
    """Test queueing tasks on the broker"""

    def test_queued(self, monkeypatch):
        calls = []

        def mock_publish(task, args, kwargs):
            calls.append((task, args, kwargs))
            return "task-1"

        monkeypatch.setattr("app.core.celery_utils._publish", mock_publish)

        assert queue_task_safely(send_password_reset_code_task, to_email="a@x.com", reset_code="483920") is True
        assert calls == [(send_password_reset_code_task, (), {"to_email": "a@x.com", "reset_code": "483920"})]

    @pytest.mark.parametrize("error", [
        OperationalError("Error 111 connecting to localhost:6379. Connection refused."),
        ConnectionRefusedError("Connection refused"),
    ])
    def test_broker_unavailable(self, monkeypatch, error):
        def mock_publish(task, args, kwargs):
            raise error

        monkeypatch.setattr("app.core.celery_utils._publish", mock_publish)

        assert queue_task_safely(send_password_reset_code_task, to_email="a@x.com", reset_code="483920") is False
