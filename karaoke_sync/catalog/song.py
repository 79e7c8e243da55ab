from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import uuid

from karaoke_sync.script.model import LyricEvent
from karaoke_sync.script.parse import parse_script


@dataclass(frozen=True, slots=True)
class Song:
    id: str
    title: str
    artist: str
    year: int | None = None
    album_cover: str = ""
    video_url: str = ""
    music_url: str = ""
    vocals_url: str = ""
    lyrics: tuple[LyricEvent, ...] = ()

    @property
    def display(self) -> str:
        if self.artist and self.title:
            return f"{self.artist} - {self.title}"
        return self.title or self.artist or "Unknown song"


def parse_year(value: object) -> int | None:
    try:
        return int(str(value).strip()[:4])
    except (TypeError, ValueError):
        return None


def _split_name(stem: str) -> tuple[str, str]:
    # folders and files are conventionally named "Artist - Title"
    artist, sep, title = stem.partition(" - ")
    if sep:
        return artist.strip(), title.strip()
    return "", stem.strip()


def _locate(base: Path, value: str | None, fallback: str) -> str:
    if value:
        return str(base / value)
    candidate = base / fallback
    return str(candidate) if candidate.exists() else ""


def song_from_script(path: Path) -> Song:
    """
    Build a Song from a single script file.

    Headers (#TITLE, #ARTIST, #VIDEO, #MP3, ...) win; otherwise the
    "Artist - Title" file name and its "[music]"/"[vocals]" siblings are used.
    """
    text = path.read_text(encoding="utf-8", errors="replace")
    doc = parse_script(text)
    tags = doc.tags
    base = path.parent
    stem = path.stem
    artist, title = _split_name(stem)

    return Song(
        id=str(uuid.uuid5(uuid.NAMESPACE_URL, path.resolve().as_uri())),
        title=tags.get("TITLE") or title,
        artist=tags.get("ARTIST") or artist,
        year=parse_year(tags.get("YEAR")),
        album_cover=_locate(base, tags.get("COVER"), f"{stem}.jpg"),
        video_url=_locate(base, tags.get("VIDEO"), f"{stem}.mp4"),
        music_url=_locate(base, tags.get("INSTRUMENTAL") or tags.get("MP3"), f"{stem} [music].mp3"),
        vocals_url=_locate(base, tags.get("VOCALS"), f"{stem} [vocals].mp3"),
        lyrics=doc.events,
    )
