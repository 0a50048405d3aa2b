"""Tests for lesson extent discovery (YouTube durations and PDF pages)."""

import io
import struct
from unittest.mock import patch

import httpx
import pytest
from pypdf import PdfWriter

from src.config.settings import Settings
from src.media.service import InvalidPdfError, YouTubeClient, count_pdf_pages


def build_pdf(pages: int) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def youtube_client(handler, api_key: str | None = "test-key") -> YouTubeClient:
    settings = Settings(youtube_api_key=api_key)
    return YouTubeClient(settings, transport=httpx.MockTransport(handler))


class TestCountPdfPages:
    """Tests for count_pdf_pages."""

    def test_counts_pages(self) -> None:
        """Page count of a generated document."""
        assert count_pdf_pages(build_pdf(3)) == 3

    def test_rejects_missing_signature(self) -> None:
        """Files without the PDF header are rejected before parsing."""
        with pytest.raises(InvalidPdfError):
            count_pdf_pages(b"PK\x03\x04 zip archive")

    def test_rejects_corrupt_document(self) -> None:
        """A PDF header followed by garbage is rejected."""
        with pytest.raises(InvalidPdfError):
            count_pdf_pages(b"%PDF-1.4\nthis is not a pdf body")

    @pytest.mark.parametrize(
        "error",
        [KeyError("/Root"), struct.error("unpack requires a buffer"), IndexError("list")],
    )
    def test_rejects_malformed_structure(self, error: Exception) -> None:
        """Lookup and decode failures inside pypdf become InvalidPdfError."""
        with (
            patch("src.media.service.PdfReader", side_effect=error),
            pytest.raises(InvalidPdfError),
        ):
            count_pdf_pages(build_pdf(1))


class TestYouTubeUrls:
    """Tests for URL helpers."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ",
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "https://m.youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
        ],
    )
    def test_extract_video_id(self, url: str) -> None:
        """Common URL shapes yield the video id."""
        assert YouTubeClient.extract_video_id(url) == "dQw4w9WgXcQ"

    def test_is_youtube_url(self) -> None:
        """Only YouTube hosts are recognised."""
        assert YouTubeClient.is_youtube_url("https://youtu.be/dQw4w9WgXcQ")
        assert not YouTubeClient.is_youtube_url("https://videos.example.com/a.mp4")
        assert not YouTubeClient.is_youtube_url(None)

    @pytest.mark.parametrize(
        ("value", "seconds"),
        [("PT1H2M3S", 3723), ("PT4M", 240), ("PT45S", 45), ("PT", None), ("", None)],
    )
    def test_parse_iso_duration(self, value: str, seconds: int | None) -> None:
        """ISO 8601 durations become seconds."""
        assert YouTubeClient.parse_iso_duration(value) == seconds


class TestYouTubeDuration:
    """Tests for get_video_duration_seconds."""

    @pytest.mark.asyncio
    async def test_duration_fetched(self) -> None:
        """The contentDetails duration is returned in seconds."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200, json={"items": [{"contentDetails": {"duration": "PT12M34S"}}]}
            )

        client = youtube_client(handler)
        seconds = await client.get_video_duration_seconds(
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        )

        assert seconds == 754
        assert requests[0].url.path == "/youtube/v3/videos"
        assert requests[0].url.params["id"] == "dQw4w9WgXcQ"

    @pytest.mark.asyncio
    async def test_not_configured(self) -> None:
        """Without an API key no request is made."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("unexpected request")

        client = youtube_client(handler, api_key=None)
        assert await client.get_video_duration_seconds("https://youtu.be/dQw4w9WgXcQ") is None

    @pytest.mark.asyncio
    async def test_api_error(self) -> None:
        """Non-200 answers are reported as unknown duration."""
        client = youtube_client(lambda request: httpx.Response(403, text="quota"))
        assert await client.get_video_duration_seconds("https://youtu.be/dQw4w9WgXcQ") is None

    @pytest.mark.asyncio
    async def test_unknown_video(self) -> None:
        """An empty item list means the video does not exist."""
        client = youtube_client(lambda request: httpx.Response(200, json={"items": []}))
        assert await client.get_video_duration_seconds("https://youtu.be/dQw4w9WgXcQ") is None

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        """Connection failures are reported as unknown duration."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        client = youtube_client(handler)
        assert await client.get_video_duration_seconds("https://youtu.be/dQw4w9WgXcQ") is None
