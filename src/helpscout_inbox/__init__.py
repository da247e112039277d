"""helpscout-inbox - inspect a Help Scout mailbox from end-to-end tests."""

__version__ = "0.1.0"
