from __future__ import annotations

from dataclasses import replace
import json
from pathlib import Path
import typer

from karaoke_sync.app import play as play_loop
from karaoke_sync.catalog.errors import CatalogError
from karaoke_sync.catalog.provider import JsonCatalog
from karaoke_sync.catalog.song import song_from_script
from karaoke_sync.config import load_config, save_config_value
from karaoke_sync.logging_setup import setup_logging
from karaoke_sync.mpris.client import MprisClient
from karaoke_sync.script.export import export_json, export_lrc, export_srt
from karaoke_sync.script.parse import parse_script, parse_script_with_stats
from karaoke_sync.sync.activation import active_events, display_text


app = typer.Typer(no_args_is_help=True, add_completion=False)


def _read_script(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


@app.command()
def parse(script_path: Path):
    """Parse a karaoke script and print stats."""
    doc, stats = parse_script_with_stats(_read_script(script_path))
    typer.echo(f"lines_total={stats.lines_total}")
    typer.echo(f"header_lines={stats.header_lines}")
    typer.echo(f"event_lines={stats.event_lines}")
    typer.echo(f"lines_malformed={stats.lines_malformed}")
    typer.echo(f"lines_ignored={stats.lines_ignored}")
    typer.echo(f"events_total={stats.events_total}")
    typer.echo(f"bpm={doc.tempo.bpm:g} gap_ms={doc.tempo.gap_ms:g} video_gap_ms={doc.tempo.video_gap_ms:g}")
    typer.echo(f"tags={doc.tags}")


@app.command()
def export(
    script_path: Path,
    fmt: str = typer.Option("srt", "--format", case_sensitive=False, help="lrc|srt|json"),
    out: Path | None = typer.Option(None, "--out", help="Output file (default: stdout)"),
):
    """Export a karaoke script timeline to SRT/JSON/LRC."""
    doc = parse_script(_read_script(script_path))
    fmt_l = fmt.lower()
    if fmt_l == "json":
        data = export_json(doc)
    elif fmt_l == "lrc":
        data = export_lrc(doc)
    elif fmt_l == "srt":
        data = export_srt(doc)
    else:
        raise typer.BadParameter("format must be one of: lrc, srt, json")

    if out:
        out.write_text(data, encoding="utf-8")
    else:
        typer.echo(data, nl=False)


@app.command()
def lyrics(
    script_path: Path,
    at: int = typer.Option(..., "--at", help="Playback position in ms"),
    buffer_ms: int | None = typer.Option(None, "--buffer", help="End-of-line buffer in ms"),
):
    """Show which lyric events are active at a position."""
    cfg = load_config()
    doc = parse_script(_read_script(script_path))
    active = active_events(doc.events, at, cfg.buffer_ms if buffer_ms is None else buffer_ms)
    for e in active:
        typer.echo(f"{e.start_ms}-{e.end_ms}\t{e.kind.value}\t{display_text(e)}")


@app.command()
def songs(
    catalog: str | None = typer.Argument(None, help="songs.json path or URL (default: config)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List songs from a songs.json catalog."""
    cfg = load_config()
    location = catalog or cfg.catalog
    if not location:
        typer.echo("Error: no catalog given and none configured", err=True)
        raise typer.Exit(code=1)

    provider = JsonCatalog(
        location,
        timeout_s=cfg.http_timeout_s,
        max_retries=cfg.http_max_retries,
        backoff_base_s=cfg.http_backoff_base_s,
    )
    try:
        items = provider.songs()
    except CatalogError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {
                        "id": s.id,
                        "title": s.title,
                        "artist": s.artist,
                        "year": s.year,
                        "video_url": s.video_url,
                        "music_url": s.music_url,
                        "vocals_url": s.vocals_url,
                        "lyric_events": len(s.lyrics),
                    }
                    for s in items
                ],
                indent=2,
                ensure_ascii=False,
            )
        )
        return

    for s in items:
        year = f" ({s.year})" if s.year else ""
        typer.echo(f"{s.id}  {s.display}{year}  [{len(s.lyrics)} lyric events]")


@app.command()
def players():
    """List available MPRIS players."""
    for p in MprisClient.list_players():
        typer.echo(p)


@app.command()
def play(
    script_path: Path,
    master: str | None = typer.Option(None, "--master", help="MPRIS player driving the clock (e.g. vlc)"),
    follower: list[str] = typer.Option([], "--follower", help="MPRIS player to keep in sync (repeatable)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    buffer_ms: int | None = typer.Option(None, "--buffer", help="End-of-line buffer in ms"),
    no_alt_screen: bool = typer.Option(False, "--no-alt-screen", help="Do not use alternate screen buffer"),
):
    """
    Show synced lyrics for a script while MPRIS players play the media.
    """
    cfg = load_config()
    if buffer_ms is not None:
        cfg = replace(cfg, buffer_ms=buffer_ms)
    if no_alt_screen:
        cfg = replace(cfg, use_alt_screen=False)

    master_name = master or cfg.master_player
    if not master_name:
        typer.echo("Error: --master is required (or set KARAOKE_SYNC_MASTER)", err=True)
        raise typer.Exit(code=1)

    setup_logging(debug)
    song = song_from_script(script_path)
    raise typer.Exit(
        code=play_loop(cfg, song, master_name=master_name, follower_names=follower or cfg.follower_players)
    )


@app.command("config")
def config_cmd(key: str, value: str):
    """Persist a config value (e.g. `config catalog /srv/songs/songs.json`)."""
    try:
        path = save_config_value(key, value)
    except KeyError:
        typer.echo(f"Error: unknown config key '{key}'", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Saved {key} to {path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
