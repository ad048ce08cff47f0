"""
The Ogg packaging helper, installed as `oggify-tag-ogg`.

Reads Ogg Vorbis audio from stdin, writes it to the destination path, then
embeds identifying comments and the cover art.
"""

import asyncio
import logging
import sys
from pathlib import Path

import typer
from mutagen import MutagenError
from rich.console import Console
from rich.logging import RichHandler

from oggify.media.tagger import OggTagger, fetch_cover

log = logging.getLogger("oggify.tag_ogg")

app = typer.Typer(
    name="oggify-tag-ogg",
    help="Write Ogg Vorbis audio from stdin to a file and tag it.",
    add_completion=False,
    pretty_exceptions_show_locals=False,
)


# Titles and artist names may start with a dash
@app.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False}
)
def tag_ogg(
    catalog_id: str = typer.Argument(..., help="Catalog ID stored as SPOTIFY_ID."),
    title: str = typer.Argument(..., help="Track title."),
    album: str = typer.Argument(..., help="Album or show name."),
    track_path: Path = typer.Argument(..., help="Destination file."),
    cover_url: str = typer.Argument("", help="Cover art URL, may be empty."),
    artists: list[str] = typer.Argument(None, help="Artist names."),  # noqa: B008
):
    """Save stdin to TRACK_PATH and tag it."""
    try:
        track_path.write_bytes(sys.stdin.buffer.read())
    except OSError as e:
        log.error(f"Cannot write '{track_path}': {e}")
        raise typer.Exit(code=1) from e

    cover = asyncio.run(fetch_cover(cover_url))
    try:
        OggTagger().tag_file(
            str(track_path), catalog_id, title, album, artists or [], cover
        )
    except (MutagenError, OSError) as e:
        log.error(f"Failed to tag '{track_path}': {e}")
        raise typer.Exit(code=1) from e


def main() -> None:
    logging.basicConfig(
        level="INFO",
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    app()


if __name__ == "__main__":
    main()
