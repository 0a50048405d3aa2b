"""Lesson extent discovery.

Provides:
- Video duration lookup through the YouTube Data API v3
- PDF page counting with pypdf

Files are only inspected, never stored.
"""

import io
import re
import struct
import zlib
from urllib.parse import parse_qs, urlparse

import httpx
import structlog
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from src.config.settings import Settings


logger = structlog.get_logger(__name__)

PDF_SIGNATURE = b"%PDF-"

# pypdf surfaces broken structure as its own errors or as raw lookup and decode
# failures from the objects it walks.
MALFORMED_PDF_ERRORS = (
    PyPdfError,
    ValueError,
    KeyError,
    IndexError,
    TypeError,
    AttributeError,
    struct.error,
    zlib.error,
    RecursionError,
)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class MediaError(Exception):
    """Base media error."""

    def __init__(self, message: str, code: str = "media_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidPdfError(MediaError):
    """File is not a readable PDF."""

    def __init__(self, message: str = "Arquivo PDF invalido ou corrompido"):
        super().__init__(message, "invalid_pdf")


class PdfTooLargeError(MediaError):
    """PDF exceeds the configured size limit."""

    def __init__(self, message: str = "Arquivo PDF muito grande"):
        super().__init__(message, "pdf_too_large")


class InvalidVideoUrlError(MediaError):
    """URL does not point to a YouTube video."""

    def __init__(self, message: str = "URL do YouTube invalida"):
        super().__init__(message, "invalid_video_url")


# ==============================================================================
# PDF
# ==============================================================================


def count_pdf_pages(data: bytes) -> int:
    """Count the pages of a PDF document.

    Raises:
        InvalidPdfError: If the bytes are not a readable PDF
    """
    if not data.startswith(PDF_SIGNATURE):
        raise InvalidPdfError

    try:
        pages = len(PdfReader(io.BytesIO(data)).pages)
    except MALFORMED_PDF_ERRORS as e:
        logger.warning("pdf_unreadable", error=str(e), size_bytes=len(data))
        raise InvalidPdfError from e

    logger.debug("pdf_pages_counted", pages=pages, size_bytes=len(data))
    return pages


# ==============================================================================
# YouTube
# ==============================================================================


class YouTubeClient:
    """Client for video durations from the YouTube Data API v3.

    Every failure (no API key, unknown video, HTTP or payload errors) is
    logged and reported as ``None`` so lesson authoring never fails because
    YouTube is unavailable.
    """

    VIDEO_ID_PATTERNS = [
        re.compile(r"youtu\.be/([A-Za-z0-9_-]{11})"),
        re.compile(r"[?&]v=([A-Za-z0-9_-]{11})"),
        re.compile(r"/embed/([A-Za-z0-9_-]{11})"),
        re.compile(r"/v/([A-Za-z0-9_-]{11})"),
    ]
    ISO_DURATION_PATTERN = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize with settings.

        Args:
            settings: Application settings containing the YouTube configuration.
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        """
        self.settings = settings
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self.settings.youtube_configured

    @classmethod
    def is_youtube_url(cls, url: str | None) -> bool:
        if not url:
            return False
        host = (urlparse(url).hostname or "").lower()
        return host == "youtu.be" or host.endswith("youtube.com")

    @classmethod
    def extract_video_id(cls, url: str) -> str | None:
        """Extract the 11 character video id from a YouTube URL."""
        for pattern in cls.VIDEO_ID_PATTERNS:
            match = pattern.search(url)
            if match:
                return match.group(1)

        video_id = parse_qs(urlparse(url).query).get("v", [None])[0]
        return video_id or None

    @classmethod
    def parse_iso_duration(cls, value: str) -> int | None:
        """Parse ``PT#H#M#S`` into seconds."""
        match = cls.ISO_DURATION_PATTERN.match(value or "")
        if not match or not any(match.groups()):
            return None
        hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
        return hours * 3600 + minutes * 60 + seconds

    async def get_video_duration_seconds(self, url: str) -> int | None:
        """Look up the duration of a YouTube video in seconds."""
        if not self.is_configured:
            logger.debug("youtube_not_configured")
            return None

        video_id = self.extract_video_id(url)
        if not video_id:
            logger.warning("youtube_video_id_not_found", url=url)
            return None

        params = {
            "id": video_id,
            "part": "contentDetails",
            "key": self.settings.youtube_api_key,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.settings.youtube_api_base_url,
                timeout=self.settings.youtube_request_timeout,
                transport=self._transport,
            ) as client:
                response = await client.get("/videos", params=params)

            if response.status_code != httpx.codes.OK:
                logger.error(
                    "youtube_request_failed",
                    status_code=response.status_code,
                    response_text=response.text[:500],
                )
                return None

            items = response.json().get("items", [])
        except httpx.HTTPError as e:
            logger.error("youtube_request_error", error=str(e), video_id=video_id)
            return None
        except ValueError as e:
            logger.error("youtube_invalid_payload", error=str(e), video_id=video_id)
            return None

        if not items:
            logger.warning("youtube_video_not_found", video_id=video_id)
            return None

        duration = self.parse_iso_duration(
            items[0].get("contentDetails", {}).get("duration", "")
        )
        logger.info("youtube_duration_fetched", video_id=video_id, seconds=duration)
        return duration
