"""Pydantic schemas for API requests and responses."""

from datetime import datetime, timezone
from typing import Optional, List, Literal

from pydantic import BaseModel, Field, field_validator

from shortlink.common.validators import (
    is_valid_url,
    MAX_URL_LENGTH,
    MAX_CREATED_BY_LENGTH,
    MAX_DESCRIPTION_LENGTH,
)
from shortlink.models import LinkRecord


def _assume_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ShortenRequest(BaseModel):
    """Request to shorten a URL."""

    url: str = Field(..., description="The URL to shorten", min_length=1, max_length=MAX_URL_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    created_by: Optional[str] = Field(None, max_length=MAX_CREATED_BY_LENGTH)
    expires_at: Optional[datetime] = Field(None, description="Expiry time (naive values are UTC)")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Only absolute http(s) URLs reach the service."""
        is_valid, error = is_valid_url(v)
        if not is_valid:
            raise ValueError(error)
        return v

    @field_validator('expires_at')
    @classmethod
    def validate_expires_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _assume_utc(v)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"url": "https://example.com/very/long/path/to/resource"},
                {
                    "url": "https://github.com/user/repo",
                    "description": "Project repository",
                    "expires_at": "2030-01-01T00:00:00Z",
                },
            ]
        }
    }


class ShortenResponse(BaseModel):
    """Response after shortening a URL."""

    status: Literal["created", "duplicate"] = Field(..., description="Whether a new token was minted")
    short_token: str = Field(..., description="The short token")
    short_url: str = Field(..., description="The complete short URL")
    long_url: str = Field(..., description="The original long URL")
    created_at: datetime = Field(..., description="Creation timestamp")
    expires_at: Optional[datetime] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "created",
                    "short_token": "abc1234",
                    "short_url": "https://short.link/abc1234",
                    "long_url": "https://example.com/very/long/path",
                    "created_at": "2024-01-01T12:00:00Z",
                    "expires_at": None,
                }
            ]
        }
    }


class LinkResponse(BaseModel):
    """Full link record."""

    id: Optional[int] = None
    short_token: str
    short_url: str
    long_url: str
    created_at: datetime
    last_accessed: Optional[datetime] = None
    access_count: int
    is_active: bool
    expires_at: Optional[datetime] = None
    created_by: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_record(cls, record: LinkRecord, short_url: str) -> "LinkResponse":
        return cls(
            id=record.id,
            short_token=record.short_token,
            short_url=short_url,
            long_url=record.long_url,
            created_at=record.created_at,
            last_accessed=record.last_accessed,
            access_count=record.access_count,
            is_active=record.is_active,
            expires_at=record.expires_at,
            created_by=record.created_by,
            description=record.description,
        )


class LinkListResponse(BaseModel):
    count: int
    links: List[LinkResponse]


class UpdateLinkRequest(BaseModel):
    """Partial update; only the fields present in the body change."""

    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)

    @field_validator('expires_at')
    @classmethod
    def validate_expires_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _assume_utc(v)

    @field_validator('is_active')
    @classmethod
    def validate_is_active(cls, v: Optional[bool]) -> Optional[bool]:
        if v is None:
            raise ValueError("is_active cannot be null")
        return v


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    database: str = Field(..., description="Database status")
    cache: str = Field(..., description="Cache status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")


class DomainCount(BaseModel):
    domain: str
    count: int


class StatisticsResponse(BaseModel):
    """Statistics response."""

    total_urls: int
    active_urls: int
    created_today: int
    total_accesses: int
    top_domains: List[DomainCount]
    generated_at: datetime
    database: str
    cache: str
