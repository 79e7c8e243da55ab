from __future__ import annotations

import json

from karaoke_sync.sync.activation import display_text

from .model import LyricEvent, LyricKind, ScriptDocument


def _sung(doc: ScriptDocument) -> list[LyricEvent]:
    return [e for e in doc.events if e.kind is not LyricKind.PAUSE]


def export_json(doc: ScriptDocument) -> str:
    # full timeline, pauses and raw text included
    return json.dumps(
        {
            "tempo": {
                "bpm": doc.tempo.bpm,
                "gap_ms": doc.tempo.gap_ms,
                "video_gap_ms": doc.tempo.video_gap_ms,
            },
            "tags": doc.tags,
            "events": [
                {"start_ms": e.start_ms, "end_ms": e.end_ms, "kind": e.kind.value, "text": e.text}
                for e in doc.events
            ],
        },
        ensure_ascii=False,
        indent=2,
    )


def _fmt_lrc_time(ms: int) -> str:
    m, rem = divmod(ms, 60_000)
    s, ms2 = divmod(rem, 1_000)
    return f"{m:02d}:{s:02d}.{ms2 // 10:02d}"


def export_lrc(doc: ScriptDocument, include_tags: bool = True) -> str:
    """One LRC line per sung note; notes are syllables, so lines can be short."""
    out: list[str] = []
    if include_tags:
        for tag, key in (("ar", "ARTIST"), ("ti", "TITLE"), ("al", "ALBUM")):
            if doc.tags.get(key):
                out.append(f"[{tag}:{doc.tags[key]}]")

    for e in sorted(_sung(doc), key=lambda e: e.start_ms):
        out.append(f"[{_fmt_lrc_time(e.start_ms)}]{display_text(e)}")
    return "\n".join(out) + ("\n" if out else "")


def _fmt_srt_time(ms: int) -> str:
    h, rem = divmod(ms, 3_600_000)
    m, rem = divmod(rem, 60_000)
    s, ms2 = divmod(rem, 1_000)
    return f"{h:02d}:{m:02d}:{s:02d},{ms2:03d}"


def export_srt(doc: ScriptDocument) -> str:
    events = sorted(_sung(doc), key=lambda e: e.start_ms)
    out: list[str] = []
    for i, e in enumerate(events, start=1):
        out.append(str(i))
        out.append(f"{_fmt_srt_time(e.start_ms)} --> {_fmt_srt_time(max(e.end_ms, e.start_ms + 1))}")
        out.append(display_text(e))
        out.append("")
    return "\n".join(out)
