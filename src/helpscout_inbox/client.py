"""Help Scout Mailbox API v2 client."""

import subprocess
import time
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from .config import HelpScoutConfig
from .models import Conversation, ConversationFilters, ConversationRequest, Mailbox

# Refresh the token this many seconds before it actually expires
TOKEN_EXPIRY_MARGIN = 60


class HelpScoutError(Exception):
    """An error reported by (or while talking to) the Help Scout API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}


def _error_message(response: httpx.Response) -> tuple[str, dict[str, Any]]:
    """Pull a readable message out of an error response."""
    try:
        details = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text}", {}
    if not isinstance(details, dict):
        return f"HTTP {response.status_code}: {details}", {}
    message = details.get("message") or details.get("error_description") or details.get("error")
    return f"HTTP {response.status_code}: {message or response.reason_phrase}", details


class HelpScoutClient:
    """API client using OAuth2 client credentials (app id + app secret)."""

    def __init__(
        self,
        config: HelpScoutConfig,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self._external_client = http_client is not None
        self._http: httpx.Client | None = http_client
        self._access_token: str | None = None
        self._token_expires_at = 0.0
        self._mailboxes: dict[str, Mailbox] = {}

    def connect(self) -> None:
        """Open the HTTP connection pool."""
        if self._http is not None:
            return
        self._http = httpx.Client(
            base_url=self.config.base_url.rstrip("/"),
            timeout=self.config.request_timeout,
            headers={"Accept": "application/json"},
        )

    def close(self) -> None:
        """Close the HTTP client unless it was supplied by the caller."""
        if self._http is not None and not self._external_client:
            self._http.close()
            self._http = None
        self._access_token = None

    def __enter__(self) -> "HelpScoutClient":
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @property
    def http(self) -> httpx.Client:
        """Get the HTTP client, connecting on first use."""
        if self._http is None:
            self.connect()
        assert self._http is not None
        return self._http

    # =========================================================================
    # Authentication
    # =========================================================================

    def _token(self) -> str:
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        try:
            secret = self.config.get_app_secret()
        except (ValueError, OSError, subprocess.SubprocessError) as e:
            raise HelpScoutError(f"Could not read app secret: {e}") from e

        logger.debug("Requesting Help Scout access token for app {}", self.config.app_id)
        try:
            response = self.http.post(
                "/oauth2/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.config.app_id,
                    "client_secret": secret,
                },
            )
        except httpx.HTTPError as e:
            raise HelpScoutError(f"Authentication request failed: {e}") from e

        if response.status_code != 200:
            message, details = _error_message(response)
            logger.warning("Help Scout authentication failed: {}", message)
            raise HelpScoutError(
                f"Authentication failed: {message}", response.status_code, details
            )

        try:
            payload = response.json()
            access_token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 7200))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise HelpScoutError(
                f"Malformed token response: {e!r}", response.status_code
            ) from e

        self._access_token = access_token
        self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
        return access_token

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send an authenticated request, retrying once on an expired token."""
        for attempt in range(2):
            headers = {"Authorization": f"Bearer {self._token()}"}
            try:
                response = self.http.request(method, path, headers=headers, **kwargs)
            except httpx.HTTPError as e:
                raise HelpScoutError(f"{method} {path} failed: {e}") from e

            if response.status_code == 401 and attempt == 0:
                logger.debug("Access token rejected, requesting a new one")
                self._access_token = None
                continue
            break

        if response.status_code >= 400:
            message, details = _error_message(response)
            logger.warning("{} {} failed: {}", method, path, message)
            raise HelpScoutError(message, response.status_code, details)

        if response.status_code == 204 or not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            logger.warning("{} {} returned a non-JSON body", method, path)
            raise HelpScoutError(
                f"{method} {path} returned invalid JSON: {response.text[:200]}",
                response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise HelpScoutError(
                f"{method} {path} returned unexpected JSON: {data!r}", response.status_code
            )
        return data

    # =========================================================================
    # Conversations
    # =========================================================================

    def _list_page(self, params: dict[str, Any], page: int) -> tuple[list[Conversation], int]:
        """Fetch one page; returns its conversations and the total page count."""
        data = self._request("GET", "/conversations", params={**params, "page": page})
        items = (data.get("_embedded") or {}).get("conversations", [])
        try:
            conversations = [Conversation.model_validate(item) for item in items]
        except ValidationError as e:
            raise HelpScoutError(f"Malformed conversation in page {page}: {e}") from e
        return conversations, int((data.get("page") or {}).get("totalPages", 1))

    def list_conversations(
        self,
        filters: ConversationFilters,
        request: ConversationRequest | None = None,
    ) -> list[Conversation]:
        """List conversations matching the filters, following pagination.

        At most ``config.max_pages`` pages are kept. When there are more, the
        last pages are kept instead of the first ones: with the ascending
        ``createdAt`` sort those hold the newest conversations.
        """
        request = request or ConversationRequest()
        params = filters.to_params()
        embed = request.embed()
        if embed:
            params["embed"] = embed

        conversations, total_pages = self._list_page(params, 1)
        max_pages = self.config.max_pages
        first_page = 2
        if total_pages > max_pages:
            logger.warning(
                "Mailbox has {} pages of conversations, reading only the last {} (max_pages)",
                total_pages,
                max_pages,
            )
            first_page = total_pages - max_pages + 1
            conversations = []

        for page in range(first_page, total_pages + 1):
            page_conversations, _ = self._list_page(params, page)
            conversations.extend(page_conversations)

        if request.with_mailbox:
            for conversation in conversations:
                if conversation.mailbox_id is not None:
                    conversation.mailbox = self.get_mailbox(conversation.mailbox_id)

        logger.debug(
            "Listed {} conversations ({} page(s)) with {}",
            len(conversations),
            total_pages,
            params,
        )
        return conversations

    def delete_conversation(self, conversation_id: int | str) -> None:
        """Delete a conversation by id."""
        self._request("DELETE", f"/conversations/{conversation_id}")
        logger.info("Deleted conversation {}", conversation_id)

    # =========================================================================
    # Mailboxes
    # =========================================================================

    def get_mailbox(self, mailbox_id: int | str) -> Mailbox:
        """Get a mailbox by id (cached per client)."""
        key = str(mailbox_id)
        if key not in self._mailboxes:
            data = self._request("GET", f"/mailboxes/{mailbox_id}")
            try:
                self._mailboxes[key] = Mailbox.model_validate(data)
            except ValidationError as e:
                raise HelpScoutError(f"Malformed mailbox {mailbox_id}: {e}") from e
        return self._mailboxes[key]


def get_client(config: HelpScoutConfig) -> HelpScoutClient:
    """Get an API client for the given configuration."""
    if not config.app_id:
        raise ValueError("No Help Scout app_id configured")
    return HelpScoutClient(config)
