"""Failure reporting.

Every hard failure (collaborator error, empty unread inbox, wait timeout,
failed e-mail assertion) goes through a single ``FailureReporter.fail`` call.
The pytest plugin reports through ``pytest.fail``; anything running outside a
test session uses ``RaisingReporter``.
"""

from typing import NoReturn, Protocol

import pytest


class InboxAssertionError(AssertionError):
    """Raised by ``RaisingReporter`` for a failed inbox check."""


class FailureReporter(Protocol):
    """Ends the current test step with a reason."""

    def fail(self, reason: str, cause: BaseException | None = None) -> NoReturn:
        ...


class PytestReporter:
    """Report failures as pytest test failures."""

    def fail(self, reason: str, cause: BaseException | None = None) -> NoReturn:
        if cause is None:
            pytest.fail(reason, pytrace=False)
        raise pytest.fail.Exception(reason, pytrace=False) from cause


class RaisingReporter:
    """Report failures by raising ``InboxAssertionError``."""

    def fail(self, reason: str, cause: BaseException | None = None) -> NoReturn:
        raise InboxAssertionError(reason) from cause
