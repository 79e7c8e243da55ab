from __future__ import annotations

import json
import logging
from pathlib import Path
import time
from typing import Any
from urllib.parse import urljoin
import uuid

import requests

from karaoke_sync.script.model import LyricEvent, LyricKind
from karaoke_sync.script.parse import parse_events

from .errors import CatalogError
from .song import Song, parse_year

logger = logging.getLogger(__name__)


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


class CatalogProvider:
    name: str

    def songs(self) -> list[Song]:
        raise NotImplementedError


def _kind_from_record(rec: dict[str, Any]) -> LyricKind:
    if rec.get("isPause"):
        return LyricKind.PAUSE
    if rec.get("isGolden"):
        return LyricKind.GOLDEN
    if rec.get("isProlongation"):
        return LyricKind.PROLONGATION
    return LyricKind.NORMAL


def events_from_records(records: list[Any]) -> tuple[LyricEvent, ...]:
    """Pre-parsed lyric lines as stored in older songs.json files."""
    out: list[LyricEvent] = []
    for rec in records:
        if not isinstance(rec, dict):
            continue
        try:
            start = max(round(float(rec["startTime"])), 0)
            end = max(round(float(rec["endTime"])), start)
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping lyric record without usable times: %r", rec)
            continue
        out.append(LyricEvent(start_ms=start, end_ms=end, text=str(rec.get("text", "")), kind=_kind_from_record(rec)))
    return tuple(out)


class JsonCatalog(CatalogProvider):
    """
    songs.json index, local or over HTTP.

    Each record may point at a script (`lyricsUrl`, relative to the index) or
    carry the lyrics inline, either as script text or as pre-parsed lines.
    """

    name = "json"

    def __init__(
        self,
        location: str,
        *,
        timeout_s: float = 10.0,
        max_retries: int = 3,
        backoff_base_s: float = 1.0,
    ):
        self.location = location
        self.timeout_s = timeout_s
        self.max_retries = max(max_retries, 1)
        self.backoff_base_s = backoff_base_s

    def _resolve(self, ref: str) -> str:
        if _is_url(ref):
            return ref
        if _is_url(self.location):
            return urljoin(self.location, ref)
        return str(Path(self.location).parent / ref)

    def _fetch_text(self, location: str) -> str:
        if not _is_url(location):
            try:
                return Path(location).read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                raise CatalogError(f"Cannot read {location}: {e}") from e

        for attempt in range(1, self.max_retries + 1):
            try:
                r = requests.get(location, timeout=self.timeout_s)
                if r.status_code == 404:
                    raise CatalogError(f"Not found: {location}")
                r.raise_for_status()
                return r.text
            except requests.RequestException as e:
                logger.warning("Fetch error for %s (attempt %s/%s): %s", location, attempt, self.max_retries, e)
                if attempt == self.max_retries:
                    raise CatalogError(f"Cannot fetch {location}: {e}") from e
                time.sleep(self.backoff_base_s * attempt)

        raise CatalogError(f"Cannot fetch {location}")

    def _lyrics(self, rec: dict[str, Any]) -> tuple[LyricEvent, ...]:
        inline = rec.get("lyrics")
        if isinstance(inline, list):
            return events_from_records(inline)
        if isinstance(inline, str):
            return parse_events(inline)

        ref = rec.get("lyricsUrl")
        if not ref:
            return ()
        try:
            return parse_events(self._fetch_text(self._resolve(str(ref))))
        except CatalogError as e:
            # a song without lyrics is still playable
            logger.warning("Lyrics unavailable for %s: %s", rec.get("title") or ref, e)
            return ()

    def _locator(self, rec: dict[str, Any], key: str) -> str:
        value = rec.get(key)
        return self._resolve(str(value)) if value else ""

    def songs(self) -> list[Song]:
        raw = self._fetch_text(self.location)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CatalogError(f"{self.location} is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise CatalogError(f"{self.location} must contain a JSON list of songs")

        out: list[Song] = []
        for rec in data:
            if not isinstance(rec, dict):
                logger.info("Skipping non-object catalog entry: %r", rec)
                continue
            out.append(
                Song(
                    id=str(rec.get("id") or uuid.uuid4()),
                    title=str(rec.get("title", "")),
                    artist=str(rec.get("artist", "")),
                    year=parse_year(rec.get("year")),
                    album_cover=self._locator(rec, "albumCover"),
                    video_url=self._locator(rec, "videoUrl"),
                    music_url=self._locator(rec, "musicUrl"),
                    vocals_url=self._locator(rec, "vocalsUrl"),
                    lyrics=self._lyrics(rec),
                )
            )
        return out
