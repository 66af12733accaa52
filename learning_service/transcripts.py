from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import parse_qs, urlparse

from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

logger = logging.getLogger(__name__)


class TranscriptError(RuntimeError):
    """Raised when a video transcript cannot be retrieved."""


def extract_video_id(video_url: str) -> Optional[str]:
    """Extract the video id from the common YouTube URL formats (or a bare id)."""
    if not video_url:
        return None
    url = video_url.strip()
    if len(url) == 11 and "/" not in url and "." not in url:
        return url

    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = (parsed.hostname or "").lower()
    if host.endswith("youtu.be"):
        return parsed.path.lstrip("/").split("/")[0] or None
    if host.endswith("youtube.com"):
        if parsed.path == "/watch":
            return (parse_qs(parsed.query).get("v") or [None])[0]
        for prefix in ("/embed/", "/v/", "/shorts/", "/live/"):
            if parsed.path.startswith(prefix):
                return parsed.path[len(prefix):].split("/")[0] or None
    return None


class TranscriptService:
    """Fetches plain-text transcripts with youtube-transcript-api."""

    def __init__(self, languages: List[str] | None = None, api: YouTubeTranscriptApi | None = None) -> None:
        self.languages = languages or ["en"]
        self._api = api or YouTubeTranscriptApi()

    def get_text(self, video_url: str) -> str:
        video_id = extract_video_id(video_url)
        if not video_id:
            raise TranscriptError(f"Invalid YouTube URL or video ID: {video_url}")

        logger.info("Getting transcript for video ID: %s", video_id)
        try:
            fetched = self._api.fetch(video_id, languages=self.languages)
        except CouldNotRetrieveTranscript as exc:
            raise TranscriptError(f"Could not retrieve transcript for {video_id}: {exc}") from exc

        text = " ".join(snippet.text.strip() for snippet in fetched if snippet.text.strip())
        if not text:
            raise TranscriptError(f"Transcript for {video_id} is empty.")
        return text
