"""
Client Models.

``Client`` mirrors a row of the ``clients`` table.  The form models
validate loosely typed payloads coming from the client create / edit and
reminder forms; keys are snake_case by the time they reach these models
(see :func:`yachtcrm.utils.string_helpers.normalize_keys`).
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from yachtcrm.models.enums import BudgetRange

__all__ = [
    "BUDGET_MAPPING",
    "Client",
    "ClientForm",
    "ClientSearch",
    "ClientUpdateForm",
    "ReminderForm",
    "map_budget",
]

EMAIL_RE: re.Pattern[str] = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

# Separators ignored when checking a phone number.
_PHONE_SEPARATORS_RE: re.Pattern[str] = re.compile(r"[\s\-()]")
_PHONE_RE: re.Pattern[str] = re.compile(r"^\+?[1-9]\d{0,15}$")

BUDGET_MAPPING: dict[BudgetRange, int] = {
    BudgetRange.UNDER_500K: 500_000,
    BudgetRange.FROM_500K_TO_1M: 750_000,
    BudgetRange.FROM_1M_TO_5M: 3_000_000,
    BudgetRange.FROM_5M_TO_10M: 7_500_000,
    BudgetRange.OVER_10M: 15_000_000,
}


def map_budget(token: Optional[str]) -> Optional[int]:
    """Translate a budget range token into its representative amount.

    Unknown or empty tokens map to ``None`` (budget left unset).
    """
    if not token:
        return None
    try:
        return BUDGET_MAPPING[BudgetRange(token)]
    except ValueError:
        return None


class Client(BaseModel):
    """A prospective buyer owned by exactly one broker.

    ``state`` stores the free-text company from the form; the column name
    is kept for compatibility with existing data.
    """

    id: str
    user_id: str
    name: str
    email: str
    phone: Optional[str] = None
    state: Optional[str] = None
    model_interest: Optional[str] = None
    budget: Optional[int] = None
    communication: Optional[str] = None
    to_contact: Optional[datetime] = None
    to_contact_text: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def company(self) -> Optional[str]:
        return self.state


# ---------------------------------------------------------------------------
# Form payloads
# ---------------------------------------------------------------------------

def _as_text(value: object) -> object:
    """Coerce numbers to ``str`` so numeric form inputs validate as text."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class ClientUpdateForm(BaseModel):
    """Partial client edit.

    Empty strings are treated as "not provided" so a blank form field
    never erases stored data.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = Field(default=None, max_length=100)
    boat_type: Optional[str] = Field(default=None, max_length=100)
    budget: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        value = _as_text(value)
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not EMAIL_RE.match(value):
            raise ValueError("Invalid email address")
        return value

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _PHONE_RE.match(_PHONE_SEPARATORS_RE.sub("", value)):
            raise ValueError("Invalid phone number")
        return value

    @property
    def budget_amount(self) -> Optional[int]:
        return map_budget(self.budget)


class ClientForm(ClientUpdateForm):
    """Client creation payload; ``name`` and ``email`` are mandatory."""

    name: str = Field(min_length=1, max_length=100)
    email: str


class ReminderForm(BaseModel):
    """Follow-up reminder payload.

    Any parseable date is accepted, past dates included, so an overdue
    follow-up can be recorded after the fact.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    date: datetime
    note: Optional[str] = Field(default=None, max_length=500)

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.strip())
            except ValueError as exc:
                raise ValueError("Invalid date") from exc
        return value

    @field_validator("note", mode="before")
    @classmethod
    def _blank_note(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ClientSearch(BaseModel):
    """Client search criteria.  All filters are optional and combined with AND."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    model_interest: Optional[str] = None
    min_budget: Optional[int] = Field(default=None, ge=0)
    max_budget: Optional[int] = Field(default=None, ge=0)
    has_reminder: Optional[bool] = None
