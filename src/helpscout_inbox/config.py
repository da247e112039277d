"""Configuration loading and validation for helpscout-inbox."""

import os
import subprocess
from pathlib import Path

import keyring
import keyring.errors
import yaml
from pydantic import BaseModel, Field

KEYRING_SERVICE = "helpscout-inbox"

# Environment variable -> config field
ENV_VARS = {
    "HELPSCOUT_APP_ID": "app_id",
    "HELPSCOUT_APP_SECRET": "app_secret",
    "HELPSCOUT_MAILBOX_ID": "mailbox_id",
    "HELPSCOUT_BASE_URL": "base_url",
}


def get_config_dir() -> Path:
    """Get the configuration directory."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "helpscout-inbox"
    return Path.home() / ".config" / "helpscout-inbox"


class HelpScoutConfig(BaseModel):
    """Credentials, default mailbox and polling settings."""

    app_id: str = ""
    app_secret: str | None = None
    mailbox_id: str = ""
    base_url: str = "https://api.helpscout.net/v2"
    request_timeout: float = Field(default=30.0, gt=0)

    # Waiting for mail
    poll_interval: float = Field(default=0.25, gt=0)
    wait_timeout: float = Field(default=5.0, gt=0)
    max_pages: int = Field(default=10, ge=1)

    # Secret retrieval options
    app_secret_cmd: str | None = None
    app_secret_file: Path | None = None

    model_config = {"coerce_numbers_to_str": True}

    @property
    def is_configured(self) -> bool:
        return bool(self.app_id)

    def get_app_secret(self) -> str:
        """Retrieve the app secret using the configured method.

        Priority:
        1. Explicit app_secret
        2. System keyring
        3. app_secret_cmd (shell command)
        4. app_secret_file
        """
        if self.app_secret:
            return self.app_secret

        try:
            secret = keyring.get_password(KEYRING_SERVICE, self.app_id)
            if secret:
                return secret
        except keyring.errors.KeyringError:
            pass

        if self.app_secret_cmd:
            result = subprocess.run(
                self.app_secret_cmd,
                shell=True,
                capture_output=True,
                text=True,
                timeout=10,
            )
            if result.returncode == 0:
                return result.stdout.strip()
            raise ValueError(f"Secret command failed: {result.stderr}")

        if self.app_secret_file:
            path = Path(self.app_secret_file).expanduser()
            if not path.exists():
                raise ValueError(f"Secret file not found: {path}")
            mode = path.stat().st_mode & 0o777
            if mode != 0o600:
                raise ValueError(
                    f"Secret file {path} has insecure permissions {oct(mode)}, should be 0600"
                )
            return path.read_text().strip()

        raise ValueError(
            f"No app secret configured for app '{self.app_id}'. "
            "Set app_secret, or use keyring, app_secret_cmd or app_secret_file."
        )


def load_config(config_path: Path | None = None) -> HelpScoutConfig:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = get_config_dir() / "config.yaml"

    if not config_path.exists():
        return HelpScoutConfig()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return HelpScoutConfig.model_validate(data)


def apply_overrides(config: HelpScoutConfig, **overrides: object) -> HelpScoutConfig:
    """Return a copy with every non-empty override applied and re-validated."""
    values = {k: v for k, v in overrides.items() if v not in (None, "")}
    if not values:
        return config
    data = config.model_dump()
    data.update(values)
    return HelpScoutConfig.model_validate(data)


def apply_env_overrides(config: HelpScoutConfig) -> HelpScoutConfig:
    """Apply HELPSCOUT_* environment variables on top of a loaded config."""
    return apply_overrides(
        config, **{field: os.environ.get(var) for var, field in ENV_VARS.items()}
    )


def get_config(config_path: Path | None = None) -> HelpScoutConfig:
    """Load the config file and apply environment overrides."""
    return apply_env_overrides(load_config(config_path))


def save_app_secret(app_id: str, secret: str) -> None:
    """Save the app secret to the system keyring."""
    keyring.set_password(KEYRING_SERVICE, app_id, secret)
