"""
Boat Models.

Prices are held as a structured amount plus currency.  The display string
``"<CURRENCY> <amount>"`` is derived from them and is also persisted in the
``price`` column.  Rows that carry only a display string (listings
imported as free text) are valued by re-reading the first run of digits
and commas in it.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from yachtcrm.models.enums import Currency

__all__ = [
    "Boat",
    "BoatForm",
    "BoatImage",
    "BoatSearch",
    "BoatUpdateForm",
    "ImageRef",
    "MAX_PRICE",
    "format_price",
    "parse_legacy_price",
]

MAX_PRICE: Decimal = Decimal("1000000000")
MAX_SIZE: Decimal = Decimal("200")
MIN_YEAR: int = 1900

_NON_PRICE_CHARS_RE: re.Pattern[str] = re.compile(r"[^\d.]")
_LEGACY_AMOUNT_RE: re.Pattern[str] = re.compile(r"[\d,]+")


def format_price(amount: Decimal, currency: Currency | str) -> str:
    """Render ``"<CURRENCY> <amount>"`` without exponent or trailing zeros."""
    return f"{currency} {format(amount.normalize(), 'f')}"


def parse_legacy_price(text: Optional[str]) -> Decimal:
    """Value a display price string by its first run of digits and commas.

    ``"EUR 1,250,000"`` -> ``1250000``.  Anything unparseable counts as zero.
    """
    if not text:
        return Decimal(0)
    match = _LEGACY_AMOUNT_RE.search(text)
    if match is None:
        return Decimal(0)
    digits = match.group(0).replace(",", "")
    return Decimal(digits) if digits else Decimal(0)


class BoatImage(BaseModel):
    id: str
    filename: str = ""
    url: str
    alt: Optional[str] = None

    model_config = {"from_attributes": True}


class Boat(BaseModel):
    """A listing owned by exactly one broker."""

    id: str
    user_id: str
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    size: Optional[int] = None
    price_amount: Optional[Decimal] = None
    price_currency: Optional[Currency] = None
    price_label: Optional[str] = None  # persisted display string
    location: Optional[str] = None
    description: Optional[str] = None
    equipment: Optional[str] = None
    owner: Optional[str] = None
    engine: Optional[str] = None
    engine_hours: Optional[int] = None
    images: list[BoatImage] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def price(self) -> Optional[str]:
        """Stored display string, or one rendered from the structured amount."""
        if self.price_label or self.price_amount is None:
            return self.price_label
        return format_price(self.price_amount, self.price_currency or Currency.EUR)

    @property
    def portfolio_amount(self) -> Decimal:
        """Amount this listing contributes to the portfolio value."""
        if self.price_amount is not None:
            return self.price_amount
        return parse_legacy_price(self.price_label)


# ---------------------------------------------------------------------------
# Image references
# ---------------------------------------------------------------------------

class ImageRef(BaseModel):
    """An already-stored image: a bare URL or ``{url, filename, alt}``."""

    url: str = Field(min_length=1)
    filename: str = ""
    alt: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _from_url(cls, value: object) -> object:
        if isinstance(value, str):
            return {"url": value}
        return value

    @model_validator(mode="after")
    def _default_filename(self) -> "ImageRef":
        if not self.filename:
            self.filename = PurePosixPath(urlparse(self.url).path).name
        return self


# ---------------------------------------------------------------------------
# Form payloads
# ---------------------------------------------------------------------------

def _blank(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class BoatUpdateForm(BaseModel):
    """Partial boat edit.  Empty values mean "not provided"."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    model: Optional[str] = Field(default=None, max_length=100)
    brand: Optional[str] = None
    year: Optional[int] = None
    size: Optional[int] = None
    price: Optional[Decimal] = None
    currency: Optional[Currency] = None
    location: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    equipment: Optional[str] = Field(default=None, max_length=1000)
    owner: Optional[str] = None
    engine: Optional[str] = None
    engine_hours: Optional[int] = Field(default=None, ge=0)
    images: list[ImageRef] = Field(default_factory=list)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        return _blank(value)

    @field_validator("model", "brand", "location", "description", "equipment",
                     "owner", "engine", mode="before")
    @classmethod
    def _as_text(cls, value: object) -> object:
        value = _blank(value)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("images", mode="before")
    @classmethod
    def _images_default(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("currency", mode="before")
    @classmethod
    def _upper_currency(cls, value: object) -> object:
        value = _blank(value)
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, value: object) -> object:
        value = _blank(value)
        if value is None:
            return None
        cleaned = _NON_PRICE_CHARS_RE.sub("", str(value))
        try:
            amount = Decimal(cleaned)
        except InvalidOperation as exc:
            raise ValueError("Invalid price") from exc
        if not amount.is_finite() or not (0 < amount <= MAX_PRICE):
            raise ValueError("Invalid price")
        return amount

    @field_validator("year")
    @classmethod
    def _check_year(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not (MIN_YEAR <= value <= date.today().year + 1):
            raise ValueError("Invalid year")
        return value

    @field_validator("size", mode="before")
    @classmethod
    def _round_size(cls, value: object) -> object:
        value = _blank(value)
        if value is None:
            return None
        try:
            size = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError("Invalid size") from exc
        if not size.is_finite() or not (0 < size <= MAX_SIZE):
            raise ValueError("Invalid size")
        return int(size.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class BoatForm(BoatUpdateForm):
    """Boat creation payload; ``model`` and ``price`` are mandatory."""

    model: str = Field(min_length=1, max_length=100)
    price: Decimal
    currency: Currency = Currency.EUR

    @field_validator("currency", mode="before")
    @classmethod
    def _default_currency(cls, value: object) -> object:
        value = _blank(value)
        return Currency.EUR if value is None else value


class BoatSearch(BaseModel):
    """Boat search criteria.  All filters are optional and combined with AND."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    brand: Optional[str] = None
    model: Optional[str] = None
    location: Optional[str] = None
    min_year: Optional[int] = Field(default=None, ge=MIN_YEAR)
    max_year: Optional[int] = None
    min_size: Optional[float] = Field(default=None, gt=0)
    max_size: Optional[float] = Field(default=None, gt=0)
    min_price: Optional[Decimal] = Field(default=None, gt=0)
    max_price: Optional[Decimal] = Field(default=None, gt=0)
