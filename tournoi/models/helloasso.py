"""HelloAsso API payloads (only the fields the reconciler reads)."""
import re
from datetime import datetime, timezone
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

# HelloAsso sends 7 fractional digits ("...T10:23:45.1234567+01:00")
_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


def _trim_fraction(value: Any) -> Any:
    if isinstance(value, str):
        return _EXCESS_FRACTION.sub(r"\1", value)
    return value


class HelloAssoModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CustomField(HelloAssoModel):
    name: Optional[str] = None
    type: Optional[str] = None
    answer: Optional[str] = None


class Payer(HelloAssoModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class OrderRef(HelloAssoModel):
    id: Optional[int] = None
    date: Optional[datetime] = None
    form_slug: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value: Any) -> Any:
        return _trim_fraction(value)

    @field_validator("date")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Orders without an offset are read as UTC so dates stay comparable
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class RawItem(HelloAssoModel):
    """One line item of an order, as returned by the items endpoint."""

    id: int
    name: str = ""
    price_category: Optional[str] = None
    amount: Optional[int] = None
    type: Optional[str] = None
    state: Optional[str] = None
    custom_fields: List[CustomField] = Field(default_factory=list)
    payer: Optional[Payer] = None
    order: Optional[OrderRef] = None


class Order(HelloAssoModel):
    id: int
    date: Optional[datetime] = None
    form_slug: Optional[str] = None
    form_type: Optional[str] = None
    organization_slug: Optional[str] = None
    payer: Optional[Payer] = None
    items: List[RawItem] = Field(default_factory=list)
    state: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value: Any) -> Any:
        return _trim_fraction(value)


class Pagination(HelloAssoModel):
    page_size: Optional[int] = None
    total_count: Optional[int] = None
    page_index: Optional[int] = None
    total_pages: Optional[int] = None
    continuation_token: Optional[str] = None


class PaginatedResponse(HelloAssoModel, Generic[T]):
    data: List[T] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    refresh_token: Optional[str] = None
