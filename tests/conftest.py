"""Shared fixtures for helpscout-inbox tests."""

from datetime import datetime, timedelta, timezone

import pytest

from helpscout_inbox.client import HelpScoutError
from helpscout_inbox.config import HelpScoutConfig
from helpscout_inbox.models import Conversation, Customer, Mailbox, Thread

pytest_plugins = ["pytester"]

BASE_TIME = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeSource:
    """In-memory stand-in for the Help Scout client.

    ``batches`` are returned one per ``list_conversations`` call; the last
    batch repeats once the others are used up.
    """

    def __init__(self, *batches: list[Conversation], error: str | None = None):
        self.batches = list(batches) or [[]]
        self.error = error
        self.list_calls: list[tuple] = []
        self.deleted: list[int | str] = []

    def list_conversations(self, filters, request=None):
        self.list_calls.append((filters, request))
        if self.error:
            raise HelpScoutError(self.error, status_code=500)
        if len(self.batches) > 1:
            return list(self.batches.pop(0))
        return list(self.batches[0])

    def delete_conversation(self, conversation_id):
        if self.error:
            raise HelpScoutError(self.error, status_code=404)
        self.deleted.append(conversation_id)


def _make_conversation(
    id: int,
    created_at: int = 0,
    sender: str = "customer@example.com",
    subject: str = "Help needed",
    body: str = "Hello support",
    cc: list[str] | None = None,
    bcc: list[str] | None = None,
    mailbox_email: str = "support@example.com",
) -> Conversation:
    """Build a conversation; ``created_at`` is seconds after BASE_TIME."""
    return Conversation(
        id=id,
        subject=subject,
        status="active",
        created_at=BASE_TIME + timedelta(seconds=created_at),
        mailbox_id=100,
        primary_customer=Customer(id=id * 10, email=sender),
        cc=cc or [],
        bcc=bcc or [],
        threads=[Thread(id=id * 100, body=body)],
        mailbox=Mailbox(id=100, name="Support", email=mailbox_email),
    )


@pytest.fixture
def make_conversation():
    """Factory for Conversation objects."""
    return _make_conversation


@pytest.fixture
def fake_source_cls():
    return FakeSource


@pytest.fixture
def config():
    """A configuration with short polling settings."""
    return HelpScoutConfig(
        app_id="test-app",
        app_secret="test-secret",
        mailbox_id="100",
        poll_interval=0.01,
        wait_timeout=0.2,
    )


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep real HELPSCOUT_* settings out of the tests."""
    for var in (
        "HELPSCOUT_APP_ID",
        "HELPSCOUT_APP_SECRET",
        "HELPSCOUT_MAILBOX_ID",
        "HELPSCOUT_BASE_URL",
        "XDG_CONFIG_HOME",
    ):
        monkeypatch.delenv(var, raising=False)
