import json

import pytest

from callnotify.mailer import MailDispatcher
from callnotify.models import NotificationResult
from callnotify.settings import Settings


class FakeTransport:
    """Records outgoing mail; raises `error` when set."""

    def __init__(self, error=None):
        self.sent = []
        self.error = error

    def send(self, mail):
        self.sent.append(mail)
        if self.error:
            raise self.error
        return NotificationResult(message_id=f"<msg-{len(self.sent)}@example.com>",
                                  accepted=[mail.to], rejected=[])


@pytest.fixture
def contacts_file(tmp_path):
    path = tmp_path / "contacts.json"
    path.write_text(json.dumps([
        {"name": "Bob", "number": "555-123-4567", "email": "bob@x.com"},
        {"name": "Carol", "phone": "+44 20 7946 0000", "email": "carol@x.com"},
    ]))
    return path


@pytest.fixture
def settings(contacts_file):
    return Settings(
        gmail_email="assistant@example.com",
        gmail_client_id="client-id-123",
        gmail_client_secret="client-secret-456",
        gmail_refresh_token="refresh-token-789",
        default_email="owner@example.com",
        contacts_path=str(contacts_file),
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def dispatcher(settings, transport):
    return MailDispatcher(settings, transport)
