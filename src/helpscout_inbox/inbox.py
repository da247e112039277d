"""The unread-inbox queue over a fetched batch of conversations."""

from dataclasses import dataclass, field
from typing import Protocol

from loguru import logger

from .client import HelpScoutError
from .models import Conversation, ConversationFilters, ConversationRequest, unassigned_open_filters
from .reporting import FailureReporter


class ConversationSource(Protocol):
    """The parts of the Help Scout client the inbox needs."""

    def list_conversations(
        self,
        filters: ConversationFilters,
        request: ConversationRequest | None = None,
    ) -> list[Conversation]:
        ...

    def delete_conversation(self, conversation_id: int | str) -> None:
        ...


@dataclass
class InboxState:
    """Consumption state for the last fetched batch.

    ``unread_inbox`` starts as a copy of ``current_inbox`` and only ever loses
    items from the front. ``opened_email`` is the last item popped from it.
    """

    fetched_emails: list[Conversation] = field(default_factory=list)
    current_inbox: list[Conversation] = field(default_factory=list)
    unread_inbox: list[Conversation] = field(default_factory=list)
    opened_email: Conversation | None = None


def sort_newest_first(conversations: list[Conversation]) -> list[Conversation]:
    """Sort by creation time, newest first.

    Conversations created at the same instant keep the order they were
    returned in (``sorted`` is stable, including with ``reverse=True``).
    """
    return sorted(conversations, key=lambda c: c.created_at, reverse=True)


# =============================================================================
# Field projections
# =============================================================================


def get_email_subject(email: Conversation) -> str:
    return email.subject


def get_email_body(email: Conversation) -> str:
    """Text of the first thread, or "" for a conversation without threads."""
    if not email.threads:
        return ""
    return email.threads[0].text


def get_email_to(email: Conversation) -> str:
    """The mailbox address the conversation was sent to."""
    if email.mailbox is None:
        return ""
    return email.mailbox.email


def get_email_cc(email: Conversation) -> str:
    return ",".join(email.cc)


def get_email_bcc(email: Conversation) -> str:
    return ",".join(email.bcc)


def get_email_sender(email: Conversation) -> str:
    return email.customer.first_email


class InboxQueue:
    """Fetches conversations and hands them out one at a time, newest first."""

    def __init__(
        self,
        source: ConversationSource,
        reporter: FailureReporter,
        default_mailbox_id: int | str | None = None,
    ) -> None:
        self.source = source
        self.reporter = reporter
        self.default_mailbox_id = default_mailbox_id
        self.state = InboxState()

    @property
    def current_inbox(self) -> list[Conversation]:
        return self.state.current_inbox

    @property
    def unread_inbox(self) -> list[Conversation]:
        return self.state.unread_inbox

    @property
    def opened_email(self) -> Conversation | None:
        return self.state.opened_email

    def reset(self) -> None:
        """Forget everything fetched so far."""
        self.state = InboxState()

    def fetch_emails(self, mailbox_id: int | str | None = None) -> list[Conversation]:
        """Fetch open, unassigned conversations and reset the inbox from them."""
        if mailbox_id is None:
            mailbox_id = self.default_mailbox_id

        self.state.fetched_emails = []
        try:
            conversations = self.source.list_conversations(
                unassigned_open_filters(mailbox_id),
                ConversationRequest(with_mailbox=True, with_threads=True),
            )
        except HelpScoutError as e:
            self.set_current_inbox(self.state.fetched_emails)
            self.reporter.fail(f"Exception: {e}", cause=e)

        self.state.fetched_emails = sort_newest_first(conversations)
        logger.debug(
            "Fetched {} conversation(s) from mailbox {}",
            len(self.state.fetched_emails),
            mailbox_id,
        )

        self.set_current_inbox(self.state.fetched_emails)
        return self.state.fetched_emails

    def set_current_inbox(self, inbox: list[Conversation]) -> None:
        """Set the batch to work on, with an independent unread copy."""
        self.state.current_inbox = list(inbox)
        self.state.unread_inbox = list(inbox)

    def get_most_recent_unread_email(self) -> Conversation:
        """Pop the most recent unread email, failing when there is none."""
        if not self.state.unread_inbox:
            self.reporter.fail("Unread Inbox is Empty")
        return self.state.unread_inbox.pop(0)

    def open_next_unread_email(self) -> Conversation:
        self.state.opened_email = self.get_most_recent_unread_email()
        return self.state.opened_email

    def get_opened_email(self, force_next: bool = False) -> Conversation:
        """The currently opened email, opening the next unread one if asked
        to (or if nothing is open yet)."""
        if force_next or self.state.opened_email is None:
            self.open_next_unread_email()
        assert self.state.opened_email is not None
        return self.state.opened_email

    def delete_conversation(self, email: Conversation) -> None:
        """Delete a conversation on the service; local state is untouched."""
        try:
            self.source.delete_conversation(email.id)
        except HelpScoutError as e:
            self.reporter.fail(f"Exception: {e}", cause=e)
