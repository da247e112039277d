"""pytest plugin: configuration injection and the ``helpscout`` fixture.

Settings are resolved per run, highest priority first: command-line options,
ini keys, ``HELPSCOUT_*`` environment variables, then the YAML config file.
"""

from collections.abc import Iterator
from pathlib import Path

import pytest

from .config import HelpScoutConfig, apply_env_overrides, apply_overrides, load_config
from .module import HelpScoutMailbox
from .reporting import PytestReporter

# config field -> (command-line option, ini key, help)
SETTINGS = {
    "app_id": ("--helpscout-app-id", "helpscout_app_id", "Help Scout app id"),
    "app_secret": ("--helpscout-app-secret", "helpscout_app_secret", "Help Scout app secret"),
    "mailbox_id": ("--helpscout-mailbox-id", "helpscout_mailbox_id", "Default mailbox id"),
}


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("helpscout", "Help Scout mailbox inspection")
    for field, (option, ini_key, help_text) in SETTINGS.items():
        group.addoption(option, dest=f"helpscout_{field}", default=None, help=help_text)
        parser.addini(ini_key, help=help_text, default="")
    group.addoption(
        "--helpscout-config",
        dest="helpscout_config",
        default=None,
        help="Path to a helpscout-inbox YAML config file",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "helpscout: test reads or changes a live Help Scout mailbox"
    )


def resolve_config(pytestconfig: pytest.Config) -> HelpScoutConfig:
    """Build the effective configuration for this test run."""
    config_path = pytestconfig.getoption("helpscout_config")
    config = load_config(Path(config_path) if config_path else None)
    config = apply_env_overrides(config)
    config = apply_overrides(
        config, **{field: pytestconfig.getini(ini_key) for field, (_, ini_key, _) in SETTINGS.items()}
    )
    return apply_overrides(
        config, **{field: pytestconfig.getoption(f"helpscout_{field}") for field in SETTINGS}
    )


@pytest.fixture(scope="session")
def helpscout_config(pytestconfig: pytest.Config) -> HelpScoutConfig:
    return resolve_config(pytestconfig)


@pytest.fixture(scope="session")
def helpscout_session(helpscout_config: HelpScoutConfig) -> Iterator[HelpScoutMailbox]:
    """One mailbox (and HTTP client) per test session."""
    if not helpscout_config.is_configured:
        pytest.skip("Help Scout is not configured (set HELPSCOUT_APP_ID or --helpscout-app-id)")
    mailbox = HelpScoutMailbox(helpscout_config, reporter=PytestReporter())
    yield mailbox
    mailbox.close()


@pytest.fixture
def helpscout(helpscout_session: HelpScoutMailbox) -> HelpScoutMailbox:
    """The session mailbox with inbox state cleared for this test."""
    helpscout_session.reset()
    return helpscout_session
