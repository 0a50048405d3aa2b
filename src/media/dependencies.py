"""FastAPI dependencies for media metadata."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.config.settings import get_settings
from src.media.service import MediaError, YouTubeClient


def get_youtube_client(request: Request) -> YouTubeClient:
    """Get the shared YouTube client from app state."""
    client = getattr(request.app.state, "youtube_client", None)
    if client is None:
        client = YouTubeClient(get_settings())
        request.app.state.youtube_client = client
    return client


YouTubeClientDep = Annotated[YouTubeClient, Depends(get_youtube_client)]


def handle_media_error(error: MediaError) -> HTTPException:
    """Convert media errors to HTTP exceptions."""
    status_map = {
        "invalid_pdf": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "invalid_video_url": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "pdf_too_large": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(status_code=status_code, detail=error.message)
