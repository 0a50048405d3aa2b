"""Media metadata API endpoints.

Provides routes for:
- Counting the pages of an uploaded PDF
- Looking up a YouTube video duration
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, File, Query, UploadFile

from src.auth.dependencies import InstructorUser
from src.config.settings import get_settings
from src.media.dependencies import YouTubeClientDep, handle_media_error
from src.media.schemas import PdfPageCountResponse, YouTubeDurationResponse
from src.media.service import (
    InvalidVideoUrlError,
    MediaError,
    PdfTooLargeError,
    count_pdf_pages,
)


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/media", tags=["media"])


@router.post(
    "/pdf/page-count",
    response_model=PdfPageCountResponse,
    summary="Count PDF pages",
)
async def pdf_page_count(
    file: Annotated[UploadFile, File(description="PDF document")],
    user: InstructorUser,
) -> PdfPageCountResponse:
    """Count the pages of a PDF (INSTRUCTOR or ADMIN). The file is not stored."""
    max_bytes = get_settings().pdf_max_file_size_mb * 1024 * 1024
    content = await file.read()

    try:
        if len(content) > max_bytes:
            raise PdfTooLargeError
        total_pages = count_pdf_pages(content)
    except MediaError as e:
        logger.warning("pdf_page_count_rejected", code=e.code, filename=file.filename)
        raise handle_media_error(e) from e

    return PdfPageCountResponse(
        filename=file.filename,
        size_bytes=len(content),
        total_pages=total_pages,
    )


@router.get(
    "/youtube/duration",
    response_model=YouTubeDurationResponse,
    summary="Get YouTube video duration",
)
async def youtube_duration(
    youtube: YouTubeClientDep,
    user: InstructorUser,
    url: Annotated[str, Query(min_length=1, description="YouTube video URL")],
) -> YouTubeDurationResponse:
    """Look up a video duration (INSTRUCTOR or ADMIN)."""
    if not youtube.is_youtube_url(url):
        raise handle_media_error(InvalidVideoUrlError())

    return YouTubeDurationResponse(
        url=url,
        video_id=youtube.extract_video_id(url),
        total_duration_seconds=await youtube.get_video_duration_seconds(url),
        configured=youtube.is_configured,
    )
