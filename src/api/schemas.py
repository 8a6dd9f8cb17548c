"""Request/response Pydantic models."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

CrawlInterval = Literal["12h", "1d", "1w"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- sites ---


def _blank_to_none(value):
    return None if value == "" else value


class SiteCreate(CamelModel):
    name: str = Field(min_length=1)
    domain: str = Field(min_length=1)
    crawl_interval: Optional[CrawlInterval] = None

    @field_validator("crawl_interval", mode="before")
    @classmethod
    def blank_interval_is_unset(cls, value):
        # An empty interval counts as not given
        return _blank_to_none(value)


class SiteUpdate(CamelModel):
    name: Optional[str] = None
    domain: Optional[str] = None
    crawl_interval: Optional[CrawlInterval] = None

    @field_validator("crawl_interval", mode="before")
    @classmethod
    def blank_interval_is_unset(cls, value):
        # An empty interval counts as not given
        return _blank_to_none(value)


class SiteOut(CamelModel):
    id: str
    name: str
    domain: str
    crawl_interval: str
    last_crawled_at: Optional[datetime] = None
    status: str
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    page_count: int = 0


class SiteRef(CamelModel):
    id: str
    name: str
    domain: str


# --- pages ---


class PageOut(CamelModel):
    id: str
    site_id: str
    url: str
    title: str
    discovered_at: datetime
    is_read: bool
    created_at: datetime
    site: Optional[SiteRef] = None


class PageList(CamelModel):
    pages: list[PageOut]
    total: int
    unread_count: int
    limit: int
    offset: int


class PageUpdate(CamelModel):
    is_read: bool


# --- crawl ---


class CrawlRequest(CamelModel):
    site_id: str = Field(min_length=1)
    date_range: str = "1w"


class CrawlResponse(CamelModel):
    success: bool = True
    new_pages_count: int
    total_found: int


class SuccessResponse(CamelModel):
    success: bool = True
