"""Pydantic schemas for media metadata."""

from pydantic import BaseModel, Field


class PdfPageCountResponse(BaseModel):
    """Page count of an uploaded PDF."""

    filename: str | None = None
    size_bytes: int
    total_pages: int = Field(..., ge=0)


class YouTubeDurationResponse(BaseModel):
    """Duration of a YouTube video (None when it could not be looked up)."""

    url: str
    video_id: str | None = None
    total_duration_seconds: int | None = None
    configured: bool
