"""HelpScoutMailbox - the object tests talk to.

Wraps the inbox queue, the poller and the Help Scout client behind the
operations a test script calls: fetch, open, inspect, assert, delete, wait.

Example:
    def test_signup_sends_welcome_mail(helpscout):
        signup("new-user@example.com")
        helpscout.wait_for_email_from_sender(None, "new-user@example.com")
        helpscout.see_in_opened_email_subject("Welcome")
"""

import re

from loguru import logger

from .client import HelpScoutClient
from .config import HelpScoutConfig
from .inbox import (
    ConversationSource,
    InboxQueue,
    get_email_bcc,
    get_email_body,
    get_email_cc,
    get_email_sender,
    get_email_subject,
    get_email_to,
)
from .models import Conversation
from .polling import Poller
from .reporting import FailureReporter, RaisingReporter


class HelpScoutMailbox:
    """Test-facing access to a Help Scout mailbox."""

    def __init__(
        self,
        config: HelpScoutConfig,
        source: ConversationSource | None = None,
        reporter: FailureReporter | None = None,
    ) -> None:
        self.config = config
        self.reporter = reporter or RaisingReporter()
        self.source = source if source is not None else HelpScoutClient(config)
        self.inbox = InboxQueue(
            self.source,
            self.reporter,
            default_mailbox_id=config.mailbox_id or None,
        )

    def close(self) -> None:
        """Release the underlying HTTP client, if we own one."""
        if isinstance(self.source, HelpScoutClient):
            self.source.close()

    def reset(self) -> None:
        self.inbox.reset()

    # =========================================================================
    # Inbox operations
    # =========================================================================

    def fetch_emails(self, mailbox_id: int | str | None = None) -> list[Conversation]:
        return self.inbox.fetch_emails(mailbox_id)

    def get_opened_email(self, fetch_next_unread: bool = False) -> Conversation:
        return self.inbox.get_opened_email(fetch_next_unread)

    def open_next_unread_email(self) -> Conversation:
        return self.inbox.open_next_unread_email()

    def dont_have_email_email(self, email: Conversation) -> None:
        """Delete the conversation from the mailbox."""
        self.inbox.delete_conversation(email)

    @property
    def current_inbox(self) -> list[Conversation]:
        return self.inbox.current_inbox

    @property
    def unread_inbox(self) -> list[Conversation]:
        return self.inbox.unread_inbox

    # =========================================================================
    # Waiting
    # =========================================================================

    def wait_for_email_from_sender(
        self,
        mailbox_id: int | str | None,
        email_address: str,
        timeout: float | None = None,
    ) -> None:
        """Block until a fetch contains an email from ``email_address``.

        Every tick refetches (resetting the inbox) and scans the fresh batch.
        Fails once ``timeout`` seconds (default ``config.wait_timeout``) pass
        without a match.
        """
        if timeout is None:
            timeout = self.config.wait_timeout

        def sender_arrived() -> bool:
            fetched = self.fetch_emails(mailbox_id)
            return any(get_email_sender(email) == email_address for email in fetched)

        poller = Poller(timeout=timeout, interval=self.config.poll_interval)
        result = poller.run(sender_arrived)
        if result.succeeded:
            logger.info(
                "Email from {} arrived after {} poll(s)", email_address, result.ticks
            )
            return

        logger.warning("Timed out after {}s waiting for {}", timeout, email_address)
        self.reporter.fail(
            f"Waited for {timeout:g} seconds for an email from {email_address}, none arrived"
        )

    # =========================================================================
    # Field accessors
    # =========================================================================

    def get_email_subject(self, email: Conversation) -> str:
        return get_email_subject(email)

    def get_email_body(self, email: Conversation) -> str:
        return get_email_body(email)

    def get_email_to(self, email: Conversation) -> str:
        return get_email_to(email)

    def get_email_cc(self, email: Conversation) -> str:
        return get_email_cc(email)

    def get_email_bcc(self, email: Conversation) -> str:
        return get_email_bcc(email)

    def get_email_sender(self, email: Conversation) -> str:
        return get_email_sender(email)

    # =========================================================================
    # Assertions on the opened email
    # =========================================================================

    def _see_in(self, label: str, actual: str, expected: str) -> None:
        if expected not in actual:
            self.reporter.fail(f"Email {label} does not contain '{expected}': '{actual}'")

    def _dont_see_in(self, label: str, actual: str, expected: str) -> None:
        if expected in actual:
            self.reporter.fail(f"Email {label} contains '{expected}': '{actual}'")

    def see_in_opened_email_subject(self, expected: str) -> None:
        self._see_in("subject", get_email_subject(self.get_opened_email()), expected)

    def dont_see_in_opened_email_subject(self, expected: str) -> None:
        self._dont_see_in("subject", get_email_subject(self.get_opened_email()), expected)

    def see_in_opened_email_body(self, expected: str) -> None:
        self._see_in("body", get_email_body(self.get_opened_email()), expected)

    def dont_see_in_opened_email_body(self, expected: str) -> None:
        self._dont_see_in("body", get_email_body(self.get_opened_email()), expected)

    def see_in_opened_email_sender(self, expected: str) -> None:
        self._see_in("sender", get_email_sender(self.get_opened_email()), expected)

    def dont_see_in_opened_email_sender(self, expected: str) -> None:
        self._dont_see_in("sender", get_email_sender(self.get_opened_email()), expected)

    def see_in_opened_email_to_field(self, expected: str) -> None:
        self._see_in("To field", get_email_to(self.get_opened_email()), expected)

    def dont_see_in_opened_email_to_field(self, expected: str) -> None:
        self._dont_see_in("To field", get_email_to(self.get_opened_email()), expected)

    def see_in_opened_email_cc_field(self, expected: str) -> None:
        self._see_in("CC field", get_email_cc(self.get_opened_email()), expected)

    def dont_see_in_opened_email_cc_field(self, expected: str) -> None:
        self._dont_see_in("CC field", get_email_cc(self.get_opened_email()), expected)

    def see_in_opened_email_bcc_field(self, expected: str) -> None:
        self._see_in("BCC field", get_email_bcc(self.get_opened_email()), expected)

    def dont_see_in_opened_email_bcc_field(self, expected: str) -> None:
        self._dont_see_in("BCC field", get_email_bcc(self.get_opened_email()), expected)

    def see_in_opened_email_subject_matches(self, pattern: str) -> None:
        subject = get_email_subject(self.get_opened_email())
        if not re.search(pattern, subject):
            self.reporter.fail(f"Email subject does not match /{pattern}/: '{subject}'")

    def see_in_opened_email_body_matches(self, pattern: str) -> None:
        body = get_email_body(self.get_opened_email())
        if not re.search(pattern, body):
            self.reporter.fail(f"Email body does not match /{pattern}/")

    def grab_from_opened_email_body(self, pattern: str) -> str:
        """Return the first match of ``pattern`` in the opened email's body.

        Returns group 1 when the pattern has groups, the whole match otherwise.
        """
        body = get_email_body(self.get_opened_email())
        match = re.search(pattern, body)
        if match is None:
            self.reporter.fail(f"Nothing in the email body matches /{pattern}/")
        return match.group(1) if match.re.groups else match.group(0)

    def see_email_count(self, expected: int) -> None:
        count = len(self.current_inbox)
        if count != expected:
            self.reporter.fail(f"Expected {expected} email(s) in the inbox, found {count}")

    def see_unread_email_count(self, expected: int) -> None:
        count = len(self.unread_inbox)
        if count != expected:
            self.reporter.fail(f"Expected {expected} unread email(s), found {count}")
