"""Core data models for helpscout-inbox."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class ConversationStatus(str, Enum):
    """Conversation status values accepted by the list filter."""

    OPEN = "open"  # active + pending


class Customer(BaseModel):
    """The customer a conversation was started by."""

    id: int | None = None
    email: str = ""
    first: str = ""
    last: str = ""

    model_config = {"populate_by_name": True}

    @property
    def first_email(self) -> str:
        return self.email


class Mailbox(BaseModel):
    """A Help Scout mailbox (the To side of a conversation)."""

    id: int
    name: str = ""
    email: str = ""


class Thread(BaseModel):
    """A single thread (message, reply, note) inside a conversation."""

    id: int
    type: str = "customer"
    body: str = Field(default="", description="Thread text")
    status: str | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")

    model_config = {"populate_by_name": True}

    @property
    def text(self) -> str:
        return self.body


class Conversation(BaseModel):
    """A Help Scout conversation, one support request."""

    id: int = Field(description="Opaque conversation ID")
    number: int | None = None
    subject: str = ""
    status: str = ""
    created_at: datetime = Field(alias="createdAt")
    mailbox_id: int | None = Field(default=None, alias="mailboxId")

    primary_customer: Customer = Field(default_factory=Customer, alias="primaryCustomer")
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)

    # Populated from `_embedded` / a mailbox lookup
    threads: list[Thread] = Field(default_factory=list)
    mailbox: Mailbox | None = None

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def lift_embedded(cls, data: Any) -> Any:
        """Move `_embedded.threads` onto the model."""
        if isinstance(data, dict) and "_embedded" in data:
            data = dict(data)
            embedded = data.pop("_embedded") or {}
            if "threads" not in data and "threads" in embedded:
                data["threads"] = embedded["threads"]
        return data

    @property
    def customer(self) -> Customer:
        return self.primary_customer


class ConversationFilters(BaseModel):
    """Filters for listing conversations."""

    mailbox: int | str | None = None
    status: ConversationStatus = ConversationStatus.OPEN
    query: str | None = None
    sort_field: str = "createdAt"
    sort_order: str = "asc"

    def to_params(self) -> dict[str, Any]:
        """Render as Help Scout query parameters."""
        params: dict[str, Any] = {
            "status": self.status.value,
            "sortField": self.sort_field,
            "sortOrder": self.sort_order,
        }
        if self.mailbox is not None:
            params["mailbox"] = self.mailbox
        if self.query:
            params["query"] = self.query
        return params


class ConversationRequest(BaseModel):
    """Which related resources to load alongside each conversation."""

    with_mailbox: bool = False
    with_threads: bool = False

    def embed(self) -> str | None:
        return "threads" if self.with_threads else None


def unassigned_open_filters(mailbox_id: int | str) -> ConversationFilters:
    """The filter used for inbox fetches: open, unassigned, oldest first."""
    return ConversationFilters(
        mailbox=mailbox_id,
        status=ConversationStatus.OPEN,
        query='assigned:"Unassigned"',
        sort_field="createdAt",
        sort_order="asc",
    )


# Exit codes for the CLI
class ExitCode(int, Enum):
    SUCCESS = 0
    NOT_FOUND = 1
    INVALID_INPUT = 2
    API_ERROR = 3
